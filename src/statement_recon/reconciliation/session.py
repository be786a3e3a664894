"""
Reconciliation session aggregate.

Holds the statement lines, the account's ledger entries, the balances and
the list of committed matches. The match list is the only mutable state;
unmatched pools, difference and status are recomputed on every read.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import uuid4
import logging

from ..models.reconciliation import Match, ReconciliationStatus, ReconciliationSummary
from ..models.statement import LedgerEntry, StatementTransaction, to_date, to_decimal
from ..utils.exceptions import InvariantViolation, ValidationError
from . import calculator

logger = logging.getLogger(__name__)


def generate_reconciliation_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"REC-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


class ReconciliationSession:
    """One account reconciled against one statement date."""

    def __init__(
        self,
        bank_account_id: str,
        statement_date: date,
        statement_balance: Decimal,
        book_balance: Decimal,
        statement_transactions: Iterable[StatementTransaction] = (),
        ledger_entries: Iterable[LedgerEntry] = (),
        matches: Iterable[Match] = (),
        bank_account_name: str = "",
        session_id: Optional[str] = None,
        reconciliation_number: Optional[str] = None,
    ):
        """
        Initialize a session.

        Args:
            bank_account_id: Ledger account being reconciled
            statement_date: Closing date of the bank statement
            statement_balance: Closing balance printed on the statement
            book_balance: Current balance of the ledger account
            statement_transactions: Imported statement lines
            ledger_entries: Ledger entries; other accounts' entries are dropped
            matches: Previously committed matches to restore
            bank_account_name: Display name of the account
            session_id: Identifier kept across saves
            reconciliation_number: Human-facing number kept across saves
        """
        self.bank_account_id = bank_account_id
        self.bank_account_name = bank_account_name
        self.statement_date = statement_date
        self.statement_balance = to_decimal(statement_balance)
        self.book_balance = to_decimal(book_balance)
        self.session_id = session_id or f"recon-{uuid4().hex[:12]}"
        self.reconciliation_number = reconciliation_number or generate_reconciliation_number()
        self.created_at = datetime.now()
        self.updated_at = self.created_at

        self.statement_transactions: list[StatementTransaction] = list(statement_transactions)
        all_entries = list(ledger_entries)
        self.ledger_entries: list[LedgerEntry] = [
            e for e in all_entries if e.account_id == bank_account_id
        ]
        if len(self.ledger_entries) != len(all_entries):
            logger.debug(
                f"Dropped {len(all_entries) - len(self.ledger_entries)} ledger entries "
                f"outside account {bank_account_id}"
            )

        self._statement_index = {txn.id: txn for txn in self.statement_transactions}
        self._ledger_index = {entry.id: entry for entry in self.ledger_entries}
        self._matches: list[Match] = []

        for match in matches:
            self.add_match(match)

    # Lookups

    @property
    def matches(self) -> list[Match]:
        return list(self._matches)

    def statement_transaction(self, txn_id: str) -> Optional[StatementTransaction]:
        return self._statement_index.get(txn_id)

    def ledger_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        return self._ledger_index.get(entry_id)

    def used_statement_ids(self) -> set[str]:
        return calculator.matched_statement_ids(self._matches)

    def used_ledger_entry_ids(self) -> set[str]:
        return calculator.matched_ledger_entry_ids(self._matches)

    def find_match(self, record_id: str) -> Optional[Match]:
        """Match whose primary statement line or primary ledger entry is ``record_id``."""
        for match in self._matches:
            if match.statement_transaction_id == record_id or match.ledger_entry_id == record_id:
                return match
        return None

    # Derived state

    @property
    def unmatched_statement_transactions(self) -> list[StatementTransaction]:
        return calculator.unmatched_statement_transactions(
            self.statement_transactions, self._matches
        )

    @property
    def unmatched_ledger_entries(self) -> list[LedgerEntry]:
        return calculator.unmatched_ledger_entries(
            self.ledger_entries, self._matches, account_id=self.bank_account_id
        )

    def search_ledger_entries(self, search_term: str) -> list[LedgerEntry]:
        """Unmatched ledger entries filtered by description or document number."""
        return calculator.unmatched_ledger_entries(
            self.ledger_entries,
            self._matches,
            account_id=self.bank_account_id,
            search_term=search_term,
        )

    @property
    def difference(self) -> Decimal:
        return calculator.calculate_difference(
            self.statement_balance,
            self.book_balance,
            self.unmatched_statement_transactions,
            self.unmatched_ledger_entries,
        )

    @property
    def status(self) -> ReconciliationStatus:
        return calculator.determine_status(self.difference, len(self._matches))

    def summary(self) -> ReconciliationSummary:
        return calculator.build_summary(self)

    # Mutation

    def add_match(self, match: Match) -> Match:
        """
        Commit a match.

        Raises:
            ValidationError: If a member id is not part of this session
            InvariantViolation: If a member already belongs to another match
        """
        for txn_id in match.statement_transaction_ids:
            if txn_id not in self._statement_index:
                raise ValidationError(f"Unknown statement transaction: {txn_id}")
        for entry_id in match.ledger_entry_ids:
            if entry_id not in self._ledger_index:
                raise ValidationError(f"Unknown ledger entry: {entry_id}")

        statement_ids = match.statement_transaction_ids
        entry_ids = match.ledger_entry_ids
        if len(set(statement_ids)) != len(statement_ids) or len(set(entry_ids)) != len(entry_ids):
            raise InvariantViolation("A match lists the same record twice")

        clash = set(statement_ids) & self.used_statement_ids()
        clash |= set(entry_ids) & self.used_ledger_entry_ids()
        if clash:
            raise InvariantViolation(f"Already matched: {', '.join(sorted(clash))}")

        self._matches.append(match)
        for txn_id in statement_ids:
            txn = self._statement_index[txn_id]
            txn.matched = True
            txn.matched_entry_id = match.ledger_entry_id
        self.updated_at = datetime.now()

        logger.debug(
            f"Committed {match.match_type.value} match {match.statement_transaction_id} -> "
            f"{match.ledger_entry_id}"
        )
        return match

    def remove_match(self, record_id: str) -> Optional[Match]:
        """
        Remove the match whose primary statement line or ledger entry is ``record_id``.

        All members of the match return to the unmatched pools.

        Returns:
            The removed match, or None if no match has that primary id
        """
        match = self.find_match(record_id)
        if match is None:
            return None

        self._matches.remove(match)
        for txn_id in match.statement_transaction_ids:
            txn = self._statement_index[txn_id]
            txn.matched = False
            txn.matched_entry_id = None
        self.updated_at = datetime.now()

        logger.debug(f"Removed match {match.statement_transaction_id} -> {match.ledger_entry_id}")
        return match

    def check_partition(self) -> None:
        calculator.check_partition(self.statement_transactions, self.ledger_entries, self._matches)

    # Persistence payload

    def to_dict(self) -> dict[str, Any]:
        """Snapshot handed to the persistence layer, derived values included."""
        return {
            "id": self.session_id,
            "reconciliationNumber": self.reconciliation_number,
            "bankAccountId": self.bank_account_id,
            "bankAccountName": self.bank_account_name,
            "statementDate": self.statement_date.isoformat(),
            "statementBalance": float(self.statement_balance),
            "bookBalance": float(self.book_balance),
            "difference": float(self.difference),
            "status": self.status.value,
            "bankTransactions": [txn.to_dict() for txn in self.statement_transactions],
            "ledgerEntries": [entry.to_dict() for entry in self.ledger_entries],
            "matchedTransactions": [match.to_dict() for match in self._matches],
            "unmatchedBankTransactions": [
                txn.to_dict() for txn in self.unmatched_statement_transactions
            ],
            "unmatchedBookTransactions": [
                entry.to_dict() for entry in self.unmatched_ledger_entries
            ],
            "createdAt": int(self.created_at.timestamp() * 1000),
            "updatedAt": int(self.updated_at.timestamp() * 1000),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconciliationSession":
        """Restore a session saved with ``to_dict``; derived fields are recomputed."""
        session = cls(
            bank_account_id=str(data["bankAccountId"]),
            bank_account_name=str(data.get("bankAccountName", "")),
            statement_date=to_date(data["statementDate"]),
            statement_balance=to_decimal(data.get("statementBalance")),
            book_balance=to_decimal(data.get("bookBalance")),
            statement_transactions=[
                StatementTransaction.from_dict(t) for t in data.get("bankTransactions", [])
            ],
            ledger_entries=[LedgerEntry.from_dict(e) for e in data.get("ledgerEntries", [])],
            matches=[Match.from_dict(m) for m in data.get("matchedTransactions", [])],
            session_id=data.get("id"),
            reconciliation_number=data.get("reconciliationNumber"),
        )
        if data.get("createdAt") is not None:
            session.created_at = datetime.fromtimestamp(data["createdAt"] / 1000)
        return session
