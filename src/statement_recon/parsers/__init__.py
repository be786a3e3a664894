"""Parsers for bank statements and ledger exports."""

from .csv_reader import read_rows
from .column_inference import ColumnAssignment, ColumnMapping, infer_field, infer_mapping
from .statement_parser import StatementParser, parse_amount, parse_date
from .ledger_parser import LedgerParser

__all__ = [
    "read_rows",
    "ColumnAssignment",
    "ColumnMapping",
    "infer_field",
    "infer_mapping",
    "StatementParser",
    "parse_amount",
    "parse_date",
    "LedgerParser",
]
