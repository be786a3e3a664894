"""Reconciliation session and balance calculations."""

from .calculator import (
    build_summary,
    calculate_difference,
    check_partition,
    determine_status,
    net_total,
    unmatched_ledger_entries,
    unmatched_statement_transactions,
)
from .session import ReconciliationSession

__all__ = [
    "ReconciliationSession",
    "build_summary",
    "calculate_difference",
    "check_partition",
    "determine_status",
    "net_total",
    "unmatched_ledger_entries",
    "unmatched_statement_transactions",
]
