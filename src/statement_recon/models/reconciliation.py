"""Data models for committed matches and reconciliation results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class MatchType(Enum):
    """How a match was produced."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    MANUAL = "manual"
    MANUAL_ONE_TO_MANY = "manual-one-to-many"
    MANUAL_MANY_TO_ONE = "manual-many-to-one"
    SUGGESTED = "suggested"


class ReconciliationStatus(Enum):
    """Derived state of a reconciliation session."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    DISCREPANCY = "discrepancy"


@dataclass
class Match:
    """
    A committed correspondence between statement lines and ledger entries.

    One statement line and one ledger entry are always the primary pair.
    A one-to-many match folds extra ledger entries into
    ``related_ledger_entry_ids``; a many-to-one match folds extra statement
    lines into ``related_statement_transaction_ids``.
    """

    statement_transaction_id: str
    ledger_entry_id: str
    match_type: MatchType
    match_score: Optional[int] = None
    related_ledger_entry_ids: list[str] = field(default_factory=list)
    related_statement_transaction_ids: list[str] = field(default_factory=list)
    reconciled_at: datetime = field(default_factory=datetime.now)
    reconciled_by: str = ""

    @property
    def statement_transaction_ids(self) -> list[str]:
        """Primary statement line followed by any related lines."""
        return [self.statement_transaction_id, *self.related_statement_transaction_ids]

    @property
    def ledger_entry_ids(self) -> list[str]:
        """Primary ledger entry followed by any related entries."""
        return [self.ledger_entry_id, *self.related_ledger_entry_ids]

    @property
    def is_scored(self) -> bool:
        return self.match_score is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "bankTransactionId": self.statement_transaction_id,
            "glEntryId": self.ledger_entry_id,
            "matchType": self.match_type.value,
            "reconciledAt": int(self.reconciled_at.timestamp() * 1000),
            "reconciledBy": self.reconciled_by,
        }
        if self.match_score is not None:
            data["matchScore"] = self.match_score
        if self.related_ledger_entry_ids:
            data["relatedGLEntryIds"] = list(self.related_ledger_entry_ids)
        if self.related_statement_transaction_ids:
            data["relatedBankTransactionIds"] = list(self.related_statement_transaction_ids)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Match":
        reconciled_at = data.get("reconciledAt")
        return cls(
            statement_transaction_id=str(data["bankTransactionId"]),
            ledger_entry_id=str(data["glEntryId"]),
            match_type=MatchType(data["matchType"]),
            match_score=data.get("matchScore"),
            related_ledger_entry_ids=list(data.get("relatedGLEntryIds") or []),
            related_statement_transaction_ids=list(
                data.get("relatedBankTransactionIds") or []
            ),
            reconciled_at=(
                datetime.fromtimestamp(reconciled_at / 1000)
                if reconciled_at is not None
                else datetime.now()
            ),
            reconciled_by=str(data.get("reconciledBy", "")),
        )


@dataclass
class ReconciliationSummary:
    """Summary of a reconciliation session at one point in time."""

    bank_account_id: str
    bank_account_name: str
    statement_date: date
    generated_at: datetime

    # Balances
    statement_balance: Decimal
    book_balance: Decimal
    difference: Decimal
    status: ReconciliationStatus

    # Transaction counts
    total_statement_transactions: int
    total_ledger_entries: int
    matched_count: int
    matched_statement_count: int
    matched_ledger_count: int
    unmatched_statement_count: int
    unmatched_ledger_count: int

    # Unmatched totals (credit - debit)
    unmatched_statement_total: Decimal
    unmatched_ledger_total: Decimal

    matches_by_type: dict[str, int] = field(default_factory=dict)

    @property
    def is_reconciled(self) -> bool:
        return self.status == ReconciliationStatus.COMPLETED

    @property
    def verdict(self) -> str:
        return "Reconciled" if self.is_reconciled else "Discrepancy"

    @property
    def match_rate(self) -> float:
        """Percentage of statement lines covered by a match."""
        if self.total_statement_transactions == 0:
            return 0.0
        return (self.matched_statement_count / self.total_statement_transactions) * 100
