import pytest

from statement_recon.matching.manual import ManualMatchCoordinator
from statement_recon.models.reconciliation import MatchType
from statement_recon.utils.exceptions import ValidationError


@pytest.fixture
def session(make_txn, make_entry, make_session):
    return make_session(
        transactions=[
            make_txn("B1", credit="300", description="Customer receipts"),
            make_txn("B2", credit="100", description="Deposit"),
            make_txn("B3", credit="200", description="Deposit"),
        ],
        entries=[
            make_entry("G1", credit="100", description="Invoice 1"),
            make_entry("G2", credit="200", description="Invoice 2"),
            make_entry("G3", credit="300", description="Customer receipts"),
        ],
    )


@pytest.fixture
def coordinator(session, config):
    return ManualMatchCoordinator(session, config, reconciled_by="alice")


class TestMatchSelected:
    def test_one_to_one(self, coordinator, session):
        (match,) = coordinator.match_selected(["B1"], ["G3"])

        assert match.match_type == MatchType.MANUAL
        assert match.match_score is None
        assert match.reconciled_by == "alice"
        assert session.statement_transaction("B1").matched
        assert session.statement_transaction("B1").matched_entry_id == "G3"

    def test_one_to_many_and_back(self, coordinator, session):
        (match,) = coordinator.match_selected(["B1"], ["G1", "G2"])

        assert match.match_type == MatchType.MANUAL_ONE_TO_MANY
        assert match.ledger_entry_id == "G1"
        assert match.related_ledger_entry_ids == ["G2"]
        assert [e.id for e in session.unmatched_ledger_entries] == ["G3"]

        coordinator.unmatch("B1")
        assert session.matches == []
        assert [e.id for e in session.unmatched_ledger_entries] == ["G1", "G2", "G3"]
        assert not session.statement_transaction("B1").matched

    def test_one_to_three_round_trip(self, config, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("B1", credit="60")],
            entries=[
                make_entry("G1", credit="10"),
                make_entry("G2", credit="20"),
                make_entry("G3", credit="30"),
            ],
        )
        coordinator = ManualMatchCoordinator(session, config)

        (match,) = coordinator.match_selected(["B1"], ["G1", "G2", "G3"])
        assert match.related_ledger_entry_ids == ["G2", "G3"]
        assert session.unmatched_statement_transactions == []
        assert session.unmatched_ledger_entries == []

        coordinator.unmatch("B1")
        assert [t.id for t in session.unmatched_statement_transactions] == ["B1"]
        assert [e.id for e in session.unmatched_ledger_entries] == ["G1", "G2", "G3"]

    def test_many_to_one(self, coordinator, session):
        (match,) = coordinator.match_selected(["B2", "B3"], ["G3"])

        assert match.match_type == MatchType.MANUAL_MANY_TO_ONE
        assert match.statement_transaction_id == "B2"
        assert match.related_statement_transaction_ids == ["B3"]
        assert [t.id for t in session.unmatched_statement_transactions] == ["B1"]
        assert session.statement_transaction("B3").matched_entry_id == "G3"

    def test_equal_counts_pair_by_position(self, coordinator):
        matches = coordinator.match_selected(["B2", "B3"], ["G1", "G2"])

        assert [(m.statement_transaction_id, m.ledger_entry_id) for m in matches] == [
            ("B2", "G1"),
            ("B3", "G2"),
        ]
        assert all(m.match_type == MatchType.MANUAL for m in matches)

    def test_unequal_many_to_many_rejected(self, coordinator, session):
        with pytest.raises(ValidationError, match="Cannot match 2"):
            coordinator.match_selected(["B1", "B2"], ["G1", "G2", "G3"])
        assert session.matches == []

    @pytest.mark.parametrize(
        "statement_ids, ledger_ids",
        [([], ["G1"]), (["B1"], []), (["B1", "B1"], ["G1"]), (["B9"], ["G1"]), (["B1"], ["G9"])],
    )
    def test_invalid_selection(self, coordinator, session, statement_ids, ledger_ids):
        with pytest.raises(ValidationError):
            coordinator.match_selected(statement_ids, ledger_ids)
        assert session.matches == []

    def test_already_matched_rejected(self, coordinator, session):
        coordinator.match_selected(["B1"], ["G1", "G2"])

        with pytest.raises(ValidationError, match="Already matched: G2"):
            coordinator.match_selected(["B2"], ["G2"])
        assert len(session.matches) == 1


class TestUnmatch:
    def test_by_primary_ledger_entry(self, coordinator, session):
        coordinator.match_selected(["B1"], ["G3"])
        removed = coordinator.unmatch("G3")

        assert removed.statement_transaction_id == "B1"
        assert session.matches == []

    def test_related_id_is_not_a_handle(self, coordinator):
        coordinator.match_selected(["B1"], ["G1", "G2"])
        with pytest.raises(ValidationError):
            coordinator.unmatch("G2")

    def test_unknown(self, coordinator):
        with pytest.raises(ValidationError, match="No match found"):
            coordinator.unmatch("B1")


class TestSuggestions:
    @pytest.fixture
    def ranking(self, config, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("X", credit="100", description="ACME")],
            entries=[
                make_entry("E1", day=17, credit="100", description="Other"),
                make_entry("E2", credit="100", description="ACME"),
                make_entry("E3", credit="100.50", description="Other"),
                make_entry("E4", debit="5", description="Other"),
            ],
        )
        return ManualMatchCoordinator(session, config)

    def test_ranked_best_first(self, ranking):
        suggestions = ranking.top_suggestions("X")

        assert [s.entry.id for s in suggestions] == ["E2", "E1", "E3"]
        assert [s.score for s in suggestions] == [95, 60, 60]

    def test_limit_and_threshold(self, ranking, config):
        assert [s.entry.id for s in ranking.top_suggestions("X", limit=1)] == ["E2"]
        assert ranking.top_suggestions("X", limit=0) == []

        config.matching.settings.suggestion_threshold = 61
        assert [s.entry.id for s in ranking.top_suggestions("X")] == ["E2"]

    def test_used_entries_not_suggested(self, coordinator):
        coordinator.match_selected(["B2"], ["G3"])
        assert "G3" not in [s.entry.id for s in coordinator.top_suggestions("B1")]

    def test_accept_suggestion(self, coordinator, session):
        match = coordinator.accept_suggestion("B1", "G3")

        assert match.match_type == MatchType.SUGGESTED
        assert match.match_score == 95
        assert session.find_match("B1") is match

    def test_accept_used_suggestion_rejected(self, coordinator):
        coordinator.accept_suggestion("B1", "G3")
        with pytest.raises(ValidationError):
            coordinator.accept_suggestion("B2", "G3")

    def test_unknown_statement_line(self, coordinator):
        with pytest.raises(ValidationError, match="Unknown bank transaction"):
            coordinator.top_suggestions("B9")
