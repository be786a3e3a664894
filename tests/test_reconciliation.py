from decimal import Decimal

import pytest

from statement_recon.models.reconciliation import Match, MatchType, ReconciliationStatus
from statement_recon.reconciliation import calculator
from statement_recon.reconciliation.session import ReconciliationSession
from statement_recon.utils.exceptions import InvariantViolation, ValidationError


def _match(statement_id, ledger_id, **kwargs):
    return Match(
        statement_transaction_id=statement_id,
        ledger_entry_id=ledger_id,
        match_type=kwargs.pop("match_type", MatchType.MANUAL),
        **kwargs,
    )


class TestDifferenceAndStatus:
    def test_discrepancy_without_matches(self, make_session):
        session = make_session(statement_balance="1000", book_balance="900")

        assert session.difference == Decimal("100")
        assert session.status == ReconciliationStatus.DISCREPANCY

    def test_in_progress_once_matched(self, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("B1", credit="10")],
            entries=[make_entry("G1", credit="10")],
            statement_balance="1000",
            book_balance="900",
        )
        session.add_match(_match("B1", "G1"))

        assert session.difference == Decimal("100")
        assert session.status == ReconciliationStatus.IN_PROGRESS

    def test_completed_when_everything_matched(self, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("B1", credit="10")],
            entries=[make_entry("G1", credit="10")],
            statement_balance="500",
            book_balance="500",
        )
        session.add_match(_match("B1", "G1"))

        assert session.difference == Decimal("0")
        assert session.status == ReconciliationStatus.COMPLETED

    def test_unmatched_credit_and_debit_signs(self, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("B1", credit="40")],
            entries=[make_entry("G1", debit="10")],
            statement_balance="1000",
            book_balance="950",
        )

        assert session.difference == Decimal("100")
        assert session.status == ReconciliationStatus.DISCREPANCY

    def test_unmatched_items_adjust_difference(self, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[make_txn("B1", debit="100")],
            entries=[make_entry("G1", credit="50")],
            statement_balance="1000",
            book_balance="900",
        )

        # 1000 - 900 + (-100) - 50
        assert session.difference == Decimal("-50")

    @pytest.mark.parametrize(
        "difference, status",
        [
            ("0.009", ReconciliationStatus.COMPLETED),
            ("-0.009", ReconciliationStatus.COMPLETED),
            ("0.01", ReconciliationStatus.DISCREPANCY),
        ],
    )
    def test_tolerance(self, difference, status):
        assert calculator.determine_status(Decimal(difference), 0) == status

    def test_search_does_not_change_difference(self, make_entry, make_session):
        session = make_session(
            entries=[
                make_entry("G1", credit="5", description="Rent March"),
                make_entry("G2", credit="7", description="Fee", document="RENT-9"),
                make_entry("G3", credit="9", description="Other"),
            ],
        )
        before = session.difference

        assert [e.id for e in session.search_ledger_entries("rent")] == ["G1", "G2"]
        assert session.difference == before == Decimal("-21")


class TestMatchCommit:
    @pytest.fixture
    def session(self, make_txn, make_entry, make_session):
        return make_session(
            transactions=[make_txn("B1"), make_txn("B2")],
            entries=[make_entry("G1"), make_entry("G2")],
        )

    def test_flags_follow_match_list(self, session):
        session.add_match(_match("B1", "G1"))
        assert session.statement_transaction("B1").matched_entry_id == "G1"

        session.remove_match("B1")
        assert not session.statement_transaction("B1").matched
        assert session.statement_transaction("B1").matched_entry_id is None

    def test_overlap_raises(self, session):
        session.add_match(_match("B1", "G1"))

        with pytest.raises(InvariantViolation):
            session.add_match(_match("B2", "G1"))
        with pytest.raises(InvariantViolation):
            session.add_match(_match("B2", "G2", related_statement_transaction_ids=["B1"]))
        assert len(session.matches) == 1

    def test_unknown_member_raises(self, session):
        with pytest.raises(ValidationError):
            session.add_match(_match("B1", "G9"))

    def test_remove_unknown_returns_none(self, session):
        assert session.remove_match("B1") is None

    def test_partition_holds(self, session):
        session.add_match(_match("B1", "G1", related_ledger_entry_ids=["G2"]))
        session.check_partition()

        used = session.used_ledger_entry_ids()
        unmatched = {e.id for e in session.unmatched_ledger_entries}
        assert used == {"G1", "G2"}
        assert unmatched == set()


class TestCalculator:
    def test_check_partition_detects_duplicates(self, make_txn, make_entry):
        transactions = [make_txn("B1"), make_txn("B2")]
        entries = [make_entry("G1")]
        matches = [_match("B1", "G1"), _match("B2", "G1")]

        with pytest.raises(InvariantViolation, match="G1"):
            calculator.check_partition(transactions, entries, matches)

    def test_unmatched_ledger_filters(self, make_entry):
        entries = [
            make_entry("G1", description="Rent"),
            make_entry("G2", description="Rent", account_id="2000"),
            make_entry("G3", description="Fee"),
        ]
        matches = [_match("B1", "G3")]

        assert [e.id for e in calculator.unmatched_ledger_entries(entries, matches)] == [
            "G1",
            "G2",
        ]
        assert [
            e.id for e in calculator.unmatched_ledger_entries(entries, [], account_id="1000")
        ] == ["G1", "G3"]

    def test_net_total(self, make_txn):
        assert calculator.net_total([make_txn(credit="10"), make_txn(debit="4")]) == Decimal("6")
        assert calculator.net_total([]) == Decimal("0")


class TestSummaryAndPersistence:
    @pytest.fixture
    def session(self, make_txn, make_entry, make_session):
        session = make_session(
            transactions=[
                make_txn("B1", credit="100", description="ACME"),
                make_txn("B2", debit="20", description="Fee"),
            ],
            entries=[
                make_entry("G1", credit="60", description="Part 1"),
                make_entry("G2", credit="40", description="Part 2"),
                make_entry("G3", debit="5", description="Other", document="D-1"),
            ],
            statement_balance="80",
            book_balance="95",
            bank_account_name="Operating",
        )
        session.add_match(
            _match(
                "B1",
                "G1",
                match_type=MatchType.MANUAL_ONE_TO_MANY,
                related_ledger_entry_ids=["G2"],
                reconciled_by="alice",
            )
        )
        return session

    def test_summary(self, session):
        summary = session.summary()

        assert summary.matched_count == 1
        assert summary.matched_statement_count == 1
        assert summary.matched_ledger_count == 2
        assert summary.unmatched_statement_count == 1
        assert summary.unmatched_ledger_count == 1
        assert summary.unmatched_statement_total == Decimal("-20")
        assert summary.unmatched_ledger_total == Decimal("-5")
        # 80 - 95 + (-20) - (-5)
        assert summary.difference == Decimal("-30")
        assert summary.status == ReconciliationStatus.IN_PROGRESS
        assert summary.verdict == "Discrepancy"
        assert summary.matches_by_type == {"manual-one-to-many": 1}
        assert summary.match_rate == 50.0

    def test_to_dict_shape(self, session):
        data = session.to_dict()

        assert data["bankAccountId"] == "1000"
        assert data["status"] == "in-progress"
        assert data["difference"] == -30.0
        assert data["reconciliationNumber"].startswith("REC-")
        assert [t["id"] for t in data["unmatchedBankTransactions"]] == ["B2"]
        assert [e["id"] for e in data["unmatchedBookTransactions"]] == ["G3"]
        match = data["matchedTransactions"][0]
        assert match["bankTransactionId"] == "B1"
        assert match["glEntryId"] == "G1"
        assert match["relatedGLEntryIds"] == ["G2"]
        assert "matchScore" not in match

    def test_restore(self, session):
        restored = ReconciliationSession.from_dict(session.to_dict())

        assert restored.session_id == session.session_id
        assert restored.reconciliation_number == session.reconciliation_number
        assert restored.difference == session.difference
        assert restored.matches[0].related_ledger_entry_ids == ["G2"]
        assert restored.matches[0].reconciled_by == "alice"
        assert restored.statement_transaction("B1").matched
        assert [e.id for e in restored.unmatched_ledger_entries] == ["G3"]
