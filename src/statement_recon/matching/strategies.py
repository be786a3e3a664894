"""
Matching strategies for automatic reconciliation.

Two heuristics: the scoring strategy used on the reconciliation screen and
the quicker first-hit rule used while a statement is being imported. They
label matches differently.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Sequence

from ..config import MatchingSettings
from ..models.reconciliation import MatchType
from ..models.statement import LedgerEntry, StatementTransaction
from ..utils.exceptions import ConfigurationError
from .scorer import MAX_SCORE, score_breakdown


class MatchingStrategy(ABC):
    """Abstract base class for matching strategies."""

    name: str = "base"

    @abstractmethod
    def find_match(
        self,
        txn: StatementTransaction,
        candidates: Sequence[LedgerEntry],
    ) -> Optional[LedgerEntry]:
        """
        Pick the ledger entry to match with a statement line.

        Args:
            txn: Statement line to match
            candidates: Unused ledger entries, in ledger order

        Returns:
            The chosen entry, or None
        """
        pass

    @abstractmethod
    def calculate_match_score(
        self,
        txn: StatementTransaction,
        entry: LedgerEntry,
    ) -> tuple[int, MatchType, str]:
        """
        Score a chosen pair and label it.

        Args:
            txn: Statement line
            entry: Chosen ledger entry

        Returns:
            Tuple of (score 0-100, match type, reason string)
        """
        pass


class StrictScoreStrategy(MatchingStrategy):
    """
    Best-scoring candidate at or above the threshold.

    Ties go to the earliest candidate in ledger order. Greedy per statement
    line, so the overall assignment depends on statement order.
    """

    name = "strict"

    def __init__(self, threshold: int = 85):
        """
        Initialize with the auto-commit threshold.

        Args:
            threshold: Minimum score a candidate needs
        """
        self.threshold = threshold

    def find_match(
        self,
        txn: StatementTransaction,
        candidates: Sequence[LedgerEntry],
    ) -> Optional[LedgerEntry]:
        best_entry: Optional[LedgerEntry] = None
        best_score = -1

        for entry in candidates:
            score = score_breakdown(txn, entry).total
            if score >= self.threshold and score > best_score:
                best_entry = entry
                best_score = score

        return best_entry

    def calculate_match_score(
        self,
        txn: StatementTransaction,
        entry: LedgerEntry,
    ) -> tuple[int, MatchType, str]:
        breakdown = score_breakdown(txn, entry)
        score = breakdown.total
        match_type = MatchType.EXACT if score == MAX_SCORE else MatchType.FUZZY
        return score, match_type, breakdown.reason


class ImportTimeStrategy(MatchingStrategy):
    """
    First ledger entry with the same amount and a nearby date or description.

    Amounts are compared side for side (statement debit against ledger
    debit, statement credit against ledger credit). No ranking: the first
    qualifying entry in ledger order wins and is recorded as exact.
    """

    name = "import"

    def __init__(
        self,
        amount_tolerance: Decimal = Decimal("0.01"),
        date_window_days: int = 7,
        description_prefix: int = 10,
    ):
        """
        Initialize with tolerances.

        Args:
            amount_tolerance: Amounts must differ by less than this
            date_window_days: Dates must be fewer than this many days apart
            description_prefix: Characters of each description compared
        """
        self.amount_tolerance = amount_tolerance
        self.date_window_days = date_window_days
        self.description_prefix = description_prefix

    def find_match(
        self,
        txn: StatementTransaction,
        candidates: Sequence[LedgerEntry],
    ) -> Optional[LedgerEntry]:
        for entry in candidates:
            if self._amount_matches(txn, entry) and (
                self._date_matches(txn, entry) or self._description_matches(txn, entry)
            ):
                return entry
        return None

    def _amount_matches(self, txn: StatementTransaction, entry: LedgerEntry) -> bool:
        if txn.debit > 0:
            return abs(entry.debit - txn.debit) < self.amount_tolerance
        return abs(entry.credit - txn.credit) < self.amount_tolerance

    def _date_matches(self, txn: StatementTransaction, entry: LedgerEntry) -> bool:
        return abs((entry.transaction_date - txn.transaction_date).days) < self.date_window_days

    def _description_matches(self, txn: StatementTransaction, entry: LedgerEntry) -> bool:
        bank_desc = txn.description.lower()
        ledger_desc = entry.description.lower()
        return (
            ledger_desc[: self.description_prefix] in bank_desc
            or bank_desc[: self.description_prefix] in ledger_desc
        )

    def calculate_match_score(
        self,
        txn: StatementTransaction,
        entry: LedgerEntry,
    ) -> tuple[int, MatchType, str]:
        days = abs((entry.transaction_date - txn.transaction_date).days)
        reason = (
            f"Amount match within {self.amount_tolerance}, {days} day(s) apart"
            if days < self.date_window_days
            else "Amount match with matching description"
        )
        return MAX_SCORE, MatchType.EXACT, reason


def build_strategy(name: str, settings: MatchingSettings) -> MatchingStrategy:
    """
    Create a strategy by name from matching settings.

    Args:
        name: "strict" or "import"
        settings: Matching thresholds

    Returns:
        Configured strategy
    """
    if name == StrictScoreStrategy.name:
        return StrictScoreStrategy(threshold=settings.auto_match_threshold)
    if name == ImportTimeStrategy.name:
        return ImportTimeStrategy(
            amount_tolerance=Decimal(str(settings.import_amount_tolerance)),
            date_window_days=settings.import_date_window_days,
            description_prefix=settings.import_description_prefix,
        )
    raise ConfigurationError(f"Unknown matching strategy: {name}")
