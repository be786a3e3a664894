"""Data models for reconciliation."""

from .statement import (
    ColumnField,
    StatementTransaction,
    LedgerEntry,
    DataQualityWarning,
    ParseResult,
)
from .reconciliation import (
    Match,
    MatchType,
    ReconciliationStatus,
    ReconciliationSummary,
)

__all__ = [
    "ColumnField",
    "StatementTransaction",
    "LedgerEntry",
    "DataQualityWarning",
    "ParseResult",
    "Match",
    "MatchType",
    "ReconciliationStatus",
    "ReconciliationSummary",
]
