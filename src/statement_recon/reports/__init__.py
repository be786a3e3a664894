"""Reconciliation reports and export payloads."""

from .excel_generator import ExcelReportGenerator
from .export import (
    build_tables,
    matched_table,
    render_text_summary,
    summary_table,
    unmatched_bank_table,
    unmatched_book_table,
    write_csv_tables,
)

__all__ = [
    "ExcelReportGenerator",
    "build_tables",
    "matched_table",
    "render_text_summary",
    "summary_table",
    "unmatched_bank_table",
    "unmatched_book_table",
    "write_csv_tables",
]
