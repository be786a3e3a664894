"""
Ledger entry CSV loader.
Reads a general-ledger export into read-only ledger entries.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.statement import ZERO, LedgerEntry
from ..utils.exceptions import LedgerParseError

logger = logging.getLogger(__name__)


class LedgerParser:
    """
    Parser for ledger exports.

    Column names come from ``input.ledger.column_mappings``. Rows without a
    readable date are skipped; blank amounts are zero.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.ledger_config = config.input.ledger
        self.column_mappings = self.ledger_config.column_mappings

    def parse_file(
        self, file_path: Path, account_id: Optional[str] = None
    ) -> list[LedgerEntry]:
        """
        Parse a ledger CSV file.

        Args:
            file_path: Path to the CSV file
            account_id: Account assigned to rows that have no account column

        Returns:
            List of ledger entries

        Raises:
            LedgerParseError: If the file cannot be read
        """
        logger.info(f"Parsing ledger file: {file_path}")

        try:
            df = pd.read_csv(
                file_path,
                encoding=self.ledger_config.encoding,
                delimiter=self.ledger_config.delimiter,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Failed to read ledger file: {e}")
            raise LedgerParseError(f"Failed to read ledger file: {e}") from e

        entries = self._process_dataframe(df, account_id)
        logger.info(f"Extracted {len(entries)} ledger entries")

        return entries

    def _process_dataframe(
        self, df: pd.DataFrame, account_id: Optional[str]
    ) -> list[LedgerEntry]:
        entries: list[LedgerEntry] = []

        for idx, row in df.iterrows():
            entry = self._normalize_row(row, int(idx), account_id)
            if entry:
                entries.append(entry)

        return entries

    def _normalize_row(
        self, row: pd.Series, idx: int, default_account: Optional[str]
    ) -> Optional[LedgerEntry]:
        """
        Convert a DataFrame row to a LedgerEntry.

        Args:
            row: Pandas Series representing a row
            idx: Row index
            default_account: Account id used when the row has none

        Returns:
            Ledger entry or None if the row has no usable date or account
        """
        entry_date = self._parse_date(self._get(row, "date"))
        if not entry_date:
            logger.warning(f"Ledger row {idx}: invalid date, skipping")
            return None

        account_id = self._get(row, "account_id") or default_account
        if not account_id:
            logger.warning(f"Ledger row {idx}: no account, skipping")
            return None

        return LedgerEntry(
            id=self._get(row, "id") or f"GL-{idx:05d}",
            account_id=account_id,
            account_name=self._get(row, "account_name"),
            transaction_date=entry_date,
            description=self._get(row, "description"),
            debit=self._parse_amount(self._get(row, "debit")),
            credit=self._parse_amount(self._get(row, "credit")),
            source_document_number=self._get(row, "source_document_number") or None,
        )

    def _get(self, row: pd.Series, field: str) -> str:
        column = self.column_mappings.get(field)
        if not column:
            return ""
        value = row.get(column, "")
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    def _parse_date(self, date_value: str) -> Optional[date]:
        if not date_value:
            return None

        try:
            return datetime.strptime(date_value, self.ledger_config.date_format).date()
        except ValueError:
            # Try pandas parser as fallback
            try:
                parsed = pd.to_datetime(date_value)
            except (ValueError, TypeError, OverflowError):
                return None
            return None if pd.isna(parsed) else parsed.date()

    def _parse_amount(self, amount_value: str) -> Decimal:
        if not amount_value:
            return ZERO

        try:
            cleaned = amount_value.replace("$", "").replace(",", "").strip()
            return Decimal(cleaned)
        except (InvalidOperation, ValueError):
            logger.warning(f"Unreadable ledger amount {amount_value!r}, using 0")
            return ZERO
