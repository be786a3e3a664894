"""
Balance, variance and status calculations for a reconciliation.

Unmatched pools are always derived from the match list by set subtraction;
nothing here caches results between calls.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Union
import logging

from ..models.reconciliation import Match, ReconciliationStatus, ReconciliationSummary
from ..models.statement import ZERO, LedgerEntry, StatementTransaction
from ..utils.exceptions import InvariantViolation

if TYPE_CHECKING:
    from .session import ReconciliationSession

logger = logging.getLogger(__name__)

# Differences below one minor currency unit count as reconciled
BALANCE_TOLERANCE = Decimal("0.01")


def matched_statement_ids(matches: Iterable[Match]) -> set[str]:
    """Every statement line id held by a match, primary or related."""
    ids: set[str] = set()
    for match in matches:
        ids.update(match.statement_transaction_ids)
    return ids


def matched_ledger_entry_ids(matches: Iterable[Match]) -> set[str]:
    """Every ledger entry id held by a match, primary or related."""
    ids: set[str] = set()
    for match in matches:
        ids.update(match.ledger_entry_ids)
    return ids


def unmatched_statement_transactions(
    transactions: Sequence[StatementTransaction], matches: Sequence[Match]
) -> list[StatementTransaction]:
    used = matched_statement_ids(matches)
    return [txn for txn in transactions if txn.id not in used]


def unmatched_ledger_entries(
    entries: Sequence[LedgerEntry],
    matches: Sequence[Match],
    account_id: Optional[str] = None,
    search_term: str = "",
) -> list[LedgerEntry]:
    """
    Ledger entries not held by any match.

    Args:
        entries: Ledger entries
        matches: Committed matches
        account_id: Only keep entries of this account
        search_term: Case-insensitive filter on description and document number

    Returns:
        Unmatched entries in ledger order
    """
    used = matched_ledger_entry_ids(matches)
    term = search_term.strip().lower()
    result: list[LedgerEntry] = []

    for entry in entries:
        if entry.id in used:
            continue
        if account_id is not None and entry.account_id != account_id:
            continue
        if term and not _entry_matches_search(entry, term):
            continue
        result.append(entry)

    return result


def _entry_matches_search(entry: LedgerEntry, term: str) -> bool:
    if term in entry.description.lower():
        return True
    return bool(entry.source_document_number and term in entry.source_document_number.lower())


def net_total(items: Iterable[Union[StatementTransaction, LedgerEntry]]) -> Decimal:
    """Sum of credit minus debit."""
    return sum((item.net_amount for item in items), ZERO)


def calculate_difference(
    statement_balance: Decimal,
    book_balance: Decimal,
    unmatched_statement: Sequence[StatementTransaction],
    unmatched_ledger: Sequence[LedgerEntry],
) -> Decimal:
    """
    Signed residual between statement and book after unmatched items.

    ``statement - book + net(unmatched statement) - net(unmatched ledger)``
    """
    return (
        statement_balance
        - book_balance
        + net_total(unmatched_statement)
        - net_total(unmatched_ledger)
    )


def determine_status(difference: Decimal, match_count: int) -> ReconciliationStatus:
    if abs(difference) < BALANCE_TOLERANCE:
        return ReconciliationStatus.COMPLETED
    if match_count > 0:
        return ReconciliationStatus.IN_PROGRESS
    return ReconciliationStatus.DISCREPANCY


def check_partition(
    transactions: Sequence[StatementTransaction],
    entries: Sequence[LedgerEntry],
    matches: Sequence[Match],
) -> None:
    """
    Verify no record belongs to two matches and every match member exists.

    Raises:
        InvariantViolation: On the first problem found
    """
    known_statement = {txn.id for txn in transactions}
    known_ledger = {entry.id for entry in entries}
    seen_statement: set[str] = set()
    seen_ledger: set[str] = set()

    for match in matches:
        for txn_id in match.statement_transaction_ids:
            if txn_id in seen_statement:
                raise InvariantViolation(f"Statement transaction {txn_id} is in two matches")
            if txn_id not in known_statement:
                raise InvariantViolation(f"Match references unknown statement transaction {txn_id}")
            seen_statement.add(txn_id)
        for entry_id in match.ledger_entry_ids:
            if entry_id in seen_ledger:
                raise InvariantViolation(f"Ledger entry {entry_id} is in two matches")
            if entry_id not in known_ledger:
                raise InvariantViolation(f"Match references unknown ledger entry {entry_id}")
            seen_ledger.add(entry_id)


def build_summary(session: "ReconciliationSession") -> ReconciliationSummary:
    """
    Summarize a session for reports and the CLI.

    Args:
        session: Reconciliation session

    Returns:
        Summary computed from the current match set and balances
    """
    matches = session.matches
    unmatched_statement = session.unmatched_statement_transactions
    unmatched_ledger = session.unmatched_ledger_entries
    difference = calculate_difference(
        session.statement_balance, session.book_balance, unmatched_statement, unmatched_ledger
    )

    by_type: dict[str, int] = {}
    for match in matches:
        by_type[match.match_type.value] = by_type.get(match.match_type.value, 0) + 1

    summary = ReconciliationSummary(
        bank_account_id=session.bank_account_id,
        bank_account_name=session.bank_account_name,
        statement_date=session.statement_date,
        generated_at=datetime.now(),
        statement_balance=session.statement_balance,
        book_balance=session.book_balance,
        difference=difference,
        status=determine_status(difference, len(matches)),
        total_statement_transactions=len(session.statement_transactions),
        total_ledger_entries=len(session.ledger_entries),
        matched_count=len(matches),
        matched_statement_count=len(matched_statement_ids(matches)),
        matched_ledger_count=len(matched_ledger_entry_ids(matches)),
        unmatched_statement_count=len(unmatched_statement),
        unmatched_ledger_count=len(unmatched_ledger),
        unmatched_statement_total=net_total(unmatched_statement),
        unmatched_ledger_total=net_total(unmatched_ledger),
        matches_by_type=by_type,
    )

    logger.debug(
        f"Summary for {session.bank_account_id}: difference {difference}, "
        f"status {summary.status.value}"
    )
    return summary
