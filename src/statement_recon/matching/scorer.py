"""
Confidence scoring for statement line / ledger entry pairs.

Three additive components capped at 100: amount (max 50), date proximity
(max 30) and text similarity (max 20). Amount alone never reaches the
auto-match threshold; date and text have to agree as well.
"""

from dataclasses import dataclass
from decimal import Decimal

from ..models.statement import LedgerEntry, StatementTransaction

MAX_SCORE = 100

# (upper bound exclusive, points)
AMOUNT_BANDS = (
    (Decimal("0.01"), 50),
    (Decimal("1"), 30),
    (Decimal("10"), 10),
)

# (max days apart inclusive, points)
DATE_BANDS = (
    (0, 30),
    (1, 20),
    (3, 10),
    (7, 5),
)

DESCRIPTION_POINTS = 15
REFERENCE_POINTS = 5


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points awarded per component for one pair."""

    amount: int
    date: int
    text: int
    amount_difference: Decimal
    days_apart: int

    @property
    def total(self) -> int:
        return min(MAX_SCORE, self.amount + self.date + self.text)

    @property
    def reason(self) -> str:
        return (
            f"Amount {self.amount}/50 (diff {self.amount_difference:.2f}), "
            f"date {self.date}/30 ({self.days_apart} day(s) apart), "
            f"text {self.text}/20"
        )


def amount_points(bank_amount: Decimal, ledger_amount: Decimal) -> int:
    difference = abs(bank_amount - ledger_amount)
    for bound, points in AMOUNT_BANDS:
        if difference < bound:
            return points
    return 0


def date_points(days_apart: int) -> int:
    for max_days, points in DATE_BANDS:
        if days_apart <= max_days:
            return points
    return 0


def _contains_either(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def text_points(txn: StatementTransaction, entry: LedgerEntry) -> int:
    points = 0
    if _contains_either(txn.description, entry.description):
        points += DESCRIPTION_POINTS
    if txn.reference and entry.source_document_number:
        if _contains_either(txn.reference, entry.source_document_number):
            points += REFERENCE_POINTS
    return points


def score_breakdown(txn: StatementTransaction, entry: LedgerEntry) -> ScoreBreakdown:
    """Score each component for a pair."""
    days_apart = abs((txn.transaction_date - entry.transaction_date).days)
    return ScoreBreakdown(
        amount=amount_points(txn.signed_amount, entry.signed_amount),
        date=date_points(days_apart),
        text=text_points(txn, entry),
        amount_difference=abs(txn.signed_amount - entry.signed_amount),
        days_apart=days_apart,
    )


def score_match(txn: StatementTransaction, entry: LedgerEntry) -> int:
    """Confidence score in [0, 100] that the two records are the same movement."""
    return score_breakdown(txn, entry).total
