from decimal import Decimal

import pytest

from statement_recon.matching.scorer import (
    amount_points,
    date_points,
    score_breakdown,
    score_match,
)


class TestBands:
    @pytest.mark.parametrize(
        "bank, ledger, points",
        [("100", "100", 50), ("100", "100.50", 30), ("100", "105", 10), ("100", "110", 0)],
    )
    def test_amount_points(self, bank, ledger, points):
        assert amount_points(Decimal(bank), Decimal(ledger)) == points

    @pytest.mark.parametrize(
        "days, points", [(0, 30), (1, 20), (2, 10), (3, 10), (7, 5), (8, 0)]
    )
    def test_date_points(self, days, points):
        assert date_points(days) == points


class TestScoreMatch:
    def test_same_movement_without_reference(self, make_txn, make_entry):
        txn = make_txn(credit="100", description="ACME invoice")
        entry = make_entry(credit="100", description="ACME invoice")

        breakdown = score_breakdown(txn, entry)
        assert (breakdown.amount, breakdown.date, breakdown.text) == (50, 30, 15)
        assert breakdown.total == 95

    def test_reference_reaches_maximum(self, make_txn, make_entry):
        txn = make_txn(credit="100", description="ACME invoice", reference="INV-1")
        entry = make_entry(credit="100", description="ACME", document="inv-1")

        assert score_match(txn, entry) == 100

    def test_description_containment_either_way(self, make_txn, make_entry):
        txn = make_txn(description="ACME")
        entry = make_entry(description="Payment to acme ltd")
        assert score_breakdown(txn, entry).text == 15

    def test_debit_never_scores_against_credit(self, make_txn, make_entry):
        txn = make_txn(debit="100")
        entry = make_entry(credit="100")
        assert score_breakdown(txn, entry).amount == 0

    def test_date_distance_is_symmetric(self, make_txn, make_entry):
        entry = make_entry(day=15, credit="10", description="x")
        earlier = score_match(make_txn(day=13, credit="10", description="y"), entry)
        later = score_match(make_txn(day=17, credit="10", description="y"), entry)
        assert earlier == later == 60

    def test_unrelated_pair_scores_zero(self, make_txn, make_entry):
        txn = make_txn(day=1, debit="999", description="Coffee")
        entry = make_entry(day=30, credit="5", description="Rent")
        assert score_match(txn, entry) == 0

    def test_reason_mentions_components(self, make_txn, make_entry):
        reason = score_breakdown(make_txn(credit="1"), make_entry(credit="1")).reason
        assert "Amount 50/50" in reason
        assert "date 30/30" in reason
