"""
Statement import wizard.

Steps: upload -> map -> review -> match -> complete. The match step runs the
import-time auto-match one statement line at a time, yielding to the event
loop after each so a host UI can paint progress, and can be cancelled
between lines without undoing matches already committed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union
import logging

from ..config import ReconConfig
from ..matching.engine import AutoMatcher
from ..matching.strategies import ImportTimeStrategy
from ..models.reconciliation import Match
from ..models.statement import (
    ZERO,
    ColumnField,
    DataQualityWarning,
    LedgerEntry,
    ParseResult,
    StatementTransaction,
    to_decimal,
)
from ..parsers.column_inference import ColumnMapping
from ..parsers.statement_parser import StatementParser
from ..reconciliation.session import ReconciliationSession
from ..utils.exceptions import ValidationError, WizardStateError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class WizardStep(Enum):
    """Wizard steps, in order."""

    UPLOAD = "upload"
    MAP = "map"
    REVIEW = "review"
    MATCH = "match"
    COMPLETE = "complete"


@dataclass
class ImportResult:
    """Everything the wizard hands over when the import is completed."""

    statement_transactions: list[StatementTransaction]
    matches: list[Match]
    unmatched_statement_transactions: list[StatementTransaction]
    unmatched_ledger_entries: list[LedgerEntry]
    ledger_entries: list[LedgerEntry]
    bank_account_id: str
    statement_date: date
    statement_balance: Decimal
    cancelled: bool = False
    warnings: list[DataQualityWarning] = field(default_factory=list)

    @property
    def match_rate(self) -> float:
        if not self.statement_transactions:
            return 0.0
        return len(self.matches) / len(self.statement_transactions) * 100

    def to_session(
        self, book_balance: Decimal, bank_account_name: str = ""
    ) -> ReconciliationSession:
        """Start a reconciliation session from this import."""
        return ReconciliationSession(
            bank_account_id=self.bank_account_id,
            bank_account_name=bank_account_name,
            statement_date=self.statement_date,
            statement_balance=self.statement_balance,
            book_balance=book_balance,
            statement_transactions=self.statement_transactions,
            ledger_entries=self.ledger_entries,
            matches=self.matches,
        )


class ImportWizard:
    """State machine sequencing parse, column mapping, auto-match and review."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the wizard.

        Args:
            config: Application configuration
        """
        self.config = config
        self.parser = StatementParser(config)
        self.matcher = AutoMatcher(config)
        self.reset()

    def reset(self) -> None:
        """Return to the upload step and forget everything loaded."""
        self.step = WizardStep.UPLOAD
        self.rows: list[list[str]] = []
        self.mapping: Optional[ColumnMapping] = None
        self.has_headers = self.config.input.statement.has_headers
        self.parse_result: Optional[ParseResult] = None
        self.bank_account_id: Optional[str] = None
        self.statement_date = date.today()
        self.statement_balance = ZERO
        self.progress = 0
        self.cancelled = False
        self._cancel_requested = False
        self._session: Optional[ReconciliationSession] = None

    @property
    def transactions(self) -> list[StatementTransaction]:
        return self.parse_result.transactions if self.parse_result else []

    # Upload / map

    def load_text(self, text: str) -> ColumnMapping:
        """
        Load statement text and propose a column mapping.

        Raises:
            ValidationError: If the text holds no rows
        """
        self._require(WizardStep.UPLOAD, WizardStep.MAP)
        rows = self.parser.read_rows(text)
        if not rows:
            raise ValidationError("Statement file is empty")

        self.rows = rows
        self.mapping = self.parser.propose_mapping(rows, self.has_headers)
        self.step = WizardStep.MAP
        logger.info(f"Loaded {len(rows)} rows from statement")
        return self.mapping

    def load_file(self, file_path: Path) -> ColumnMapping:
        return self.load_text(self.parser.read_text(file_path))

    def load_records(self, records: Iterable[dict[str, Any]]) -> ParseResult:
        """Load an already structured statement, skipping column mapping."""
        self._require(WizardStep.UPLOAD)
        self.parse_result = self.parser.from_records(records)
        self.step = WizardStep.REVIEW
        return self.parse_result

    def set_has_headers(self, has_headers: bool) -> ColumnMapping:
        """Toggle the header row flag and propose a fresh mapping."""
        self._require(WizardStep.MAP)
        self.has_headers = has_headers
        self.mapping = self.parser.propose_mapping(self.rows, has_headers)
        return self.mapping

    def assign_column(self, column: int, column_field: Union[ColumnField, str]) -> None:
        """Override the proposed field of one column."""
        self._require(WizardStep.MAP)
        self.mapping.assign(column, column_field)

    def parse(self) -> ParseResult:
        """
        Parse the loaded rows with the effective mapping.

        Raises:
            ValidationError: If date or description are unmapped; the wizard
                stays on the map step
        """
        self._require(WizardStep.MAP)
        self.parse_result = self.parser.parse_rows(self.rows, self.mapping, self.has_headers)
        self.step = WizardStep.REVIEW
        return self.parse_result

    def back(self) -> WizardStep:
        """Go back one step from map or review."""
        if self.step == WizardStep.MAP:
            self.rows = []
            self.mapping = None
            self.step = WizardStep.UPLOAD
        elif self.step == WizardStep.REVIEW:
            self.parse_result = None
            self.step = WizardStep.MAP if self.rows else WizardStep.UPLOAD
        else:
            raise WizardStateError(f"Cannot go back from the {self.step.value} step")
        return self.step

    # Match

    def select_account(
        self,
        bank_account_id: str,
        statement_date: Optional[date] = None,
        statement_balance: Optional[Any] = None,
    ) -> None:
        """Choose the account and statement details used for matching."""
        self.bank_account_id = bank_account_id
        if statement_date is not None:
            self.statement_date = statement_date
        if statement_balance is not None:
            self.statement_balance = to_decimal(statement_balance)

    async def auto_match(
        self,
        ledger_entries: Iterable[LedgerEntry],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> list[Match]:
        """
        Auto-match the parsed statement against the account's ledger entries.

        Args:
            ledger_entries: Ledger entries; other accounts are ignored
            progress_callback: Called with (percent, message) after each line

        Returns:
            Matches committed, including those made before a cancellation

        Raises:
            ValidationError: If no account has been selected
        """
        self._require(WizardStep.REVIEW)
        if not self.bank_account_id:
            raise ValidationError("Please select a bank account")

        self.step = WizardStep.MATCH
        self.progress = 0
        self.cancelled = False
        self._cancel_requested = False

        session = ReconciliationSession(
            bank_account_id=self.bank_account_id,
            statement_date=self.statement_date,
            statement_balance=self.statement_balance,
            book_balance=ZERO,
            statement_transactions=self.transactions,
            ledger_entries=ledger_entries,
        )
        self._session = session

        strategy = self.matcher.strategy(ImportTimeStrategy.name)
        available = session.unmatched_ledger_entries
        total = len(self.transactions)
        delay = self.config.wizard.step_delay_seconds

        for i, txn in enumerate(self.transactions):
            if self._cancel_requested:
                self.cancelled = True
                logger.info(f"Auto-match cancelled after {i} of {total} transactions")
                break

            self.matcher.match_transaction(session, txn, available, strategy)

            self.progress = round((i + 1) / total * 100)
            if progress_callback:
                progress_callback(self.progress, f"Matched {i + 1} of {total}")
            await asyncio.sleep(delay)
        else:
            self.progress = 100

        self.step = WizardStep.COMPLETE
        logger.info(f"Auto-matched {len(session.matches)} of {total} transactions")
        return session.matches

    def cancel(self) -> None:
        """Stop auto-matching before the next statement line."""
        if self.step == WizardStep.MATCH:
            self._cancel_requested = True

    def complete(self) -> ImportResult:
        """
        Hand over the import and reset the wizard.

        Raises:
            WizardStateError: If auto-match has not finished
        """
        self._require(WizardStep.COMPLETE)
        session = self._session

        result = ImportResult(
            statement_transactions=list(self.transactions),
            matches=session.matches,
            unmatched_statement_transactions=session.unmatched_statement_transactions,
            unmatched_ledger_entries=session.unmatched_ledger_entries,
            ledger_entries=list(session.ledger_entries),
            bank_account_id=session.bank_account_id,
            statement_date=self.statement_date,
            statement_balance=self.statement_balance,
            cancelled=self.cancelled,
            warnings=list(self.parse_result.warnings) if self.parse_result else [],
        )
        self.reset()
        return result

    def _require(self, *steps: WizardStep) -> None:
        if self.step not in steps:
            expected = " or ".join(s.value for s in steps)
            raise WizardStateError(
                f"Wizard is on the {self.step.value} step; expected {expected}"
            )
