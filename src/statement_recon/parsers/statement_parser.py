"""
Bank statement parser.
Turns tokenized CSV rows (or a pre-structured payload) into statement lines.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence
import logging
import re
import time

import pandas as pd

from ..config import ReconConfig
from ..models.statement import (
    ZERO,
    ColumnField,
    DataQualityWarning,
    ParseResult,
    StatementTransaction,
    to_date,
)
from ..utils.exceptions import StatementParseError
from .column_inference import ColumnMapping, infer_mapping
from .csv_reader import read_rows

logger = logging.getLogger(__name__)

# Tried in order; the first pattern found anywhere in the cell wins.
DATE_PATTERNS = (
    re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{4})"),  # D-M-YYYY
    re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})"),  # YYYY-M-D
    re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{2})"),  # D-M-YY
)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NUMERIC_PREFIX = re.compile(r"^-?(\d+\.?\d*|\.\d+)")


def parse_date(value: str) -> Optional[date]:
    """
    Parse a statement date cell.

    Day-month-year is assumed unless the first segment has four digits.
    Returns None when neither the patterns nor pandas can read the value.
    """
    text = value.strip()
    if not text:
        return None

    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        first, second, last = match.groups()
        try:
            if len(first) == 4:
                return date(int(first), int(second), int(last))
            year = int(last) if len(last) == 4 else _expand_year(int(last))
            return date(year, int(second), int(first))
        except ValueError:
            # e.g. 31/02/2024 or a month-first export; let pandas have a go
            break

    return _generic_date(text)


def _expand_year(two_digit: int) -> int:
    """Same pivot as strptime's %y: 00-68 -> 2000s, 69-99 -> 1900s."""
    return 2000 + two_digit if two_digit < 69 else 1900 + two_digit


def _generic_date(text: str) -> Optional[date]:
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_amount(value: str) -> Optional[Decimal]:
    """
    Parse an amount cell after stripping everything but digits, '.' and '-'.

    Reads the leading numeric part of what is left ("1.2.3" gives 1.2).
    Returns None when nothing numeric remains.
    """
    cleaned = _NON_NUMERIC.sub("", value)
    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


class StatementParser:
    """
    Parser for bank statement exports.

    Never fails a batch over one bad cell: unreadable amounts become zero,
    unreadable dates become today's date, and each substitution is reported
    as a DataQualityWarning on the result.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.statement_config = config.input.statement

    def parse_file(
        self,
        file_path: Path,
        mapping: Optional[ColumnMapping] = None,
        has_headers: Optional[bool] = None,
    ) -> ParseResult:
        """
        Parse a statement CSV file.

        Args:
            file_path: Path to the CSV file
            mapping: Effective column mapping (inferred when omitted)
            has_headers: Whether the first row is a header (config default when omitted)

        Returns:
            Parse result with statement lines and warnings

        Raises:
            StatementParseError: If the file cannot be read
            ValidationError: If date or description are unmapped
        """
        logger.info(f"Parsing statement file: {file_path}")
        text = self.read_text(file_path)
        return self.parse_text(text, mapping=mapping, has_headers=has_headers)

    def read_text(self, file_path: Path) -> str:
        """Read a statement file using the configured encoding."""
        try:
            return Path(file_path).read_text(encoding=self.statement_config.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read statement file: {e}")
            raise StatementParseError(f"Failed to read statement file: {e}") from e

    def read_rows(self, text: str) -> list[list[str]]:
        return read_rows(text, self.statement_config.delimiter)

    def propose_mapping(
        self, rows: Sequence[Sequence[str]], has_headers: Optional[bool] = None
    ) -> ColumnMapping:
        if has_headers is None:
            has_headers = self.statement_config.has_headers
        return infer_mapping(rows, has_headers, self.statement_config.column_keywords)

    def parse_text(
        self,
        text: str,
        mapping: Optional[ColumnMapping] = None,
        has_headers: Optional[bool] = None,
    ) -> ParseResult:
        """Tokenize raw statement text and convert it to statement lines."""
        if has_headers is None:
            has_headers = self.statement_config.has_headers
        rows = self.read_rows(text)
        if mapping is None:
            mapping = self.propose_mapping(rows, has_headers)
        return self.parse_rows(rows, mapping, has_headers)

    def parse_rows(
        self,
        rows: Sequence[Sequence[str]],
        mapping: ColumnMapping,
        has_headers: Optional[bool] = None,
    ) -> ParseResult:
        """
        Convert tokenized rows into statement lines.

        Args:
            rows: Rows from the tokenizer, header included when has_headers
            mapping: Effective column mapping
            has_headers: Whether to skip the first row

        Returns:
            Parse result with statement lines and warnings

        Raises:
            ValidationError: If date or description are unmapped
        """
        mapping.validate()

        if has_headers is None:
            has_headers = self.statement_config.has_headers

        data_rows = [list(r) for r in rows[1:]] if has_headers else [list(r) for r in rows]
        df = pd.DataFrame(data_rows, dtype=object)

        result = ParseResult()
        columns = {f: mapping.column_for(f) for f in ColumnField if f != ColumnField.SKIP}
        batch = int(time.time() * 1000)
        running_balance = ZERO

        for idx, row in df.iterrows():
            idx = int(idx)
            date_str = self._cell(row, columns[ColumnField.DATE])
            description = self._cell(row, columns[ColumnField.DESCRIPTION])

            if not date_str or not description:
                logger.debug(f"Row {idx}: missing date or description, skipping")
                result.skipped_rows.append(idx)
                continue

            txn_date = parse_date(date_str)
            if txn_date is None:
                txn_date = date.today()
                self._warn(result, idx, "date", date_str, txn_date.isoformat(), "unrecognised date")

            debit = self._amount(result, idx, "debit", self._cell(row, columns[ColumnField.DEBIT]))
            credit = self._amount(
                result, idx, "credit", self._cell(row, columns[ColumnField.CREDIT])
            )
            debit, credit = self._normalize_sign(result, idx, debit, credit)

            balance_str = self._cell(row, columns[ColumnField.BALANCE])
            if balance_str:
                balance = self._amount(result, idx, "balance", balance_str)
            else:
                balance = running_balance + credit - debit
            running_balance = balance

            reference = self._cell(row, columns[ColumnField.REFERENCE])

            result.transactions.append(
                StatementTransaction(
                    id=f"{self.statement_config.id_prefix}-{batch}-{idx}",
                    transaction_date=txn_date,
                    value_date=txn_date,
                    description=description,
                    reference=reference or None,
                    debit=debit,
                    credit=credit,
                    running_balance=balance,
                )
            )

        logger.info(
            f"Parsed {len(result.transactions)} statement transactions "
            f"({len(result.skipped_rows)} rows skipped, {len(result.warnings)} warnings)"
        )
        return result

    def from_records(self, records: Iterable[dict[str, Any]]) -> ParseResult:
        """
        Build statement lines from an already structured payload.

        Each record carries ``transactionDate``, ``description``, ``debit``,
        ``credit`` and optionally ``valueDate``, ``reference``, ``balance``
        and ``id``.
        """
        result = ParseResult()
        batch = int(time.time() * 1000)
        running_balance = ZERO

        for idx, record in enumerate(records):
            txn_date = self._record_date(result, idx, record.get("transactionDate"))
            value_raw = record.get("valueDate")
            value_date = (
                self._record_date(result, idx, value_raw) if value_raw is not None else txn_date
            )

            debit = self._record_amount(result, idx, "debit", record.get("debit"))
            credit = self._record_amount(result, idx, "credit", record.get("credit"))
            debit, credit = self._normalize_sign(result, idx, debit, credit)

            if record.get("balance") is not None:
                balance = self._record_amount(result, idx, "balance", record.get("balance"))
            else:
                balance = running_balance + credit - debit
            running_balance = balance

            result.transactions.append(
                StatementTransaction(
                    id=str(
                        record.get("id") or f"{self.statement_config.id_prefix}-{batch}-{idx}"
                    ),
                    transaction_date=txn_date,
                    value_date=value_date,
                    description=str(record.get("description") or "").strip(),
                    reference=(str(record["reference"]).strip() or None)
                    if record.get("reference")
                    else None,
                    debit=debit,
                    credit=credit,
                    running_balance=balance,
                )
            )

        logger.info(f"Loaded {len(result.transactions)} structured statement transactions")
        return result

    @staticmethod
    def _cell(row: pd.Series, column: Optional[int]) -> str:
        if column is None:
            return ""
        value = row.get(column)
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    def _amount(self, result: ParseResult, idx: int, field: str, raw: str) -> Decimal:
        if not raw:
            return ZERO
        amount = parse_amount(raw)
        if amount is None:
            self._warn(result, idx, field, raw, "0", "unparsable amount")
            return ZERO
        return amount

    def _record_amount(self, result: ParseResult, idx: int, field: str, raw: Any) -> Decimal:
        if raw is None or raw == "":
            return ZERO
        if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
            amount = Decimal(str(raw))
            if not amount.is_finite():
                self._warn(result, idx, field, str(raw), "0", "unparsable amount")
                return ZERO
            return amount
        return self._amount(result, idx, field, str(raw))

    def _record_date(self, result: ParseResult, idx: int, raw: Any) -> date:
        if isinstance(raw, str):
            parsed = parse_date(raw)
        elif raw is None:
            parsed = None
        else:
            try:
                parsed = to_date(raw)
            except (TypeError, ValueError, OverflowError, OSError):
                parsed = None
        if parsed is None:
            parsed = date.today()
            self._warn(result, idx, "date", str(raw), parsed.isoformat(), "unrecognised date")
        return parsed

    def _normalize_sign(
        self, result: ParseResult, idx: int, debit: Decimal, credit: Decimal
    ) -> tuple[Decimal, Decimal]:
        """Keep debit and credit non-negative by moving negative values across."""
        if debit >= 0 and credit >= 0:
            return debit, credit
        net = credit - debit
        self._warn(
            result, idx, "amount", f"debit={debit} credit={credit}", f"net {net}",
            "negative amount moved to the opposite side",
        )
        if net >= 0:
            return ZERO, net
        return -net, ZERO

    @staticmethod
    def _warn(
        result: ParseResult, idx: int, field: str, raw: str, fallback: str, message: str
    ) -> None:
        warning = DataQualityWarning(
            row_index=idx, field=field, raw_value=raw, fallback=fallback, message=message
        )
        result.warnings.append(warning)
        logger.warning(str(warning))

