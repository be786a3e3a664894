"""Data models for bank statement lines and ledger entries."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ZERO = Decimal("0")


class ColumnField(Enum):
    """Logical field a physical statement column can be mapped to."""

    DATE = "date"
    DESCRIPTION = "description"
    DEBIT = "debit"
    CREDIT = "credit"
    BALANCE = "balance"
    REFERENCE = "reference"
    SKIP = "skip"


def to_decimal(value: Any) -> Decimal:
    """Convert a number or numeric string to Decimal; None becomes zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_date(value: Any) -> date:
    """
    Convert a structured-payload date to a date.

    Accepts date/datetime objects, epoch milliseconds and ISO strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000).date()
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip()).date()
    raise TypeError(f"Unsupported date value: {value!r}")


def signed_amount(debit: Decimal, credit: Decimal) -> Decimal:
    """Credit as a positive amount, otherwise the debit as a negative one."""
    return credit if credit > 0 else -debit


@dataclass
class StatementTransaction:
    """
    One line of an imported bank statement.

    Fields are fixed once parsed; only ``matched`` and ``matched_entry_id``
    are updated as matches are committed or released.
    """

    id: str
    transaction_date: date
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    running_balance: Decimal = ZERO
    reference: Optional[str] = None
    value_date: Optional[date] = None

    # Match bookkeeping
    matched: bool = False
    matched_entry_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.value_date is None:
            self.value_date = self.transaction_date

    @property
    def net_amount(self) -> Decimal:
        """Credit minus debit."""
        return self.credit - self.debit

    @property
    def signed_amount(self) -> Decimal:
        return signed_amount(self.debit, self.credit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transactionDate": self.transaction_date.isoformat(),
            "valueDate": self.value_date.isoformat() if self.value_date else None,
            "description": self.description,
            "reference": self.reference,
            "debit": float(self.debit),
            "credit": float(self.credit),
            "balance": float(self.running_balance),
            "matched": self.matched,
            "matchedGLEntryId": self.matched_entry_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatementTransaction":
        txn_date = to_date(data["transactionDate"])
        value_date = data.get("valueDate")
        return cls(
            id=str(data["id"]),
            transaction_date=txn_date,
            value_date=to_date(value_date) if value_date is not None else txn_date,
            description=str(data.get("description", "")),
            reference=data.get("reference") or None,
            debit=to_decimal(data.get("debit")),
            credit=to_decimal(data.get("credit")),
            running_balance=to_decimal(data.get("balance")),
            matched=bool(data.get("matched", False)),
            matched_entry_id=data.get("matchedGLEntryId"),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """
    One book-of-record line for a ledger account.

    Supplied by the ledger subsystem and never modified here.
    """

    id: str
    account_id: str
    transaction_date: date
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    source_document_number: Optional[str] = None
    account_name: str = ""

    @property
    def net_amount(self) -> Decimal:
        """Credit minus debit."""
        return self.credit - self.debit

    @property
    def signed_amount(self) -> Decimal:
        return signed_amount(self.debit, self.credit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "accountName": self.account_name,
            "transactionDate": self.transaction_date.isoformat(),
            "description": self.description,
            "debit": float(self.debit),
            "credit": float(self.credit),
            "sourceDocumentNumber": self.source_document_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerEntry":
        return cls(
            id=str(data["id"]),
            account_id=str(data["accountId"]),
            transaction_date=to_date(data["transactionDate"]),
            description=str(data.get("description", "")),
            debit=to_decimal(data.get("debit")),
            credit=to_decimal(data.get("credit")),
            source_document_number=data.get("sourceDocumentNumber") or None,
            account_name=str(data.get("accountName", "")),
        )


@dataclass
class DataQualityWarning:
    """A statement value that could not be read and was replaced by a fallback."""

    row_index: int
    field: str
    raw_value: str
    fallback: str
    message: str = ""

    def __str__(self) -> str:
        return (
            f"Row {self.row_index}: {self.field} value {self.raw_value!r} "
            f"replaced with {self.fallback} ({self.message})"
        )


@dataclass
class ParseResult:
    """Typed statement lines plus the data-quality warnings raised producing them."""

    transactions: list[StatementTransaction] = field(default_factory=list)
    warnings: list[DataQualityWarning] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)

    @property
    def closing_balance(self) -> Decimal:
        if not self.transactions:
            return ZERO
        return self.transactions[-1].running_balance
