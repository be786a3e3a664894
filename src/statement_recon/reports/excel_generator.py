"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..models.reconciliation import MatchType, ReconciliationSummary
from ..reconciliation.session import ReconciliationSession
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
REVIEW_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.output_config = config.output.excel
        self.sheet_config = config.output.sheets

    def default_filename(self, session: ReconciliationSession) -> str:
        """Report filename from the configured template."""
        name = self.output_config.filename_template.format(
            account=session.bank_account_id,
            date=session.statement_date.isoformat(),
        )
        if self.output_config.include_timestamp:
            path = Path(name)
            name = f"{path.stem}_{datetime.now():%Y%m%d_%H%M%S}{path.suffix}"
        return name

    def generate_report(
        self, session: ReconciliationSession, output_path: Optional[Path] = None
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            session: Reconciliation session to report on
            output_path: Path for output file (template name when omitted)

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        output_path = output_path or Path(self.default_filename(session))
        logger.info(f"Generating Excel report: {output_path}")

        summary = session.summary()
        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        if self.sheet_config.summary.enabled:
            self._create_summary_sheet(wb, session, summary)
        if self.sheet_config.matched.enabled:
            self._create_matched_sheet(wb, session)
        if self.sheet_config.unmatched_bank.enabled:
            self._create_unmatched_bank_sheet(wb, session)
        if self.sheet_config.unmatched_book.enabled:
            self._create_unmatched_book_sheet(wb, session)

        if not wb.worksheets:
            raise ReportGenerationError("All report sheets are disabled")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}")

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self, wb: Workbook, session: ReconciliationSession, summary: ReconciliationSummary
    ) -> None:
        """Create the summary sheet with balances, counts and the verdict."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        # Title
        ws["A1"] = "Bank Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Reconciliation"
        ws["A3"].font = Font(bold=True)

        info = [
            ("Reconciliation Number:", session.reconciliation_number),
            ("Bank Account:", f"{summary.bank_account_id} {summary.bank_account_name}".strip()),
            ("Statement Date:", summary.statement_date.isoformat()),
            ("Generated At:", summary.generated_at.strftime("%Y-%m-%d %H:%M:%S")),
        ]
        row = self._write_pairs(ws, info, start=4)

        row += 1
        ws[f"A{row}"] = "Balances"
        ws[f"A{row}"].font = Font(bold=True)
        balances = [
            ("Statement Balance:", float(summary.statement_balance)),
            ("Book Balance:", float(summary.book_balance)),
            ("Unmatched Bank Total:", float(summary.unmatched_statement_total)),
            ("Unmatched Book Total:", float(summary.unmatched_ledger_total)),
            ("Difference:", float(summary.difference)),
        ]
        row = self._write_pairs(ws, balances, start=row + 1, number_format="#,##0.00")

        row += 1
        ws[f"A{row}"] = "Transaction Counts"
        ws[f"A{row}"].font = Font(bold=True)
        counts = [
            ("Bank Transactions:", summary.total_statement_transactions),
            ("Book Entries:", summary.total_ledger_entries),
            ("Matches:", summary.matched_count),
            ("Unmatched Bank Items:", summary.unmatched_statement_count),
            ("Unmatched Book Items:", summary.unmatched_ledger_count),
            ("Bank Match Rate:", f"{summary.match_rate:.1f}%"),
        ]
        row = self._write_pairs(ws, counts, start=row + 1)

        row += 1
        ws[f"A{row}"] = "Matches by Type"
        ws[f"A{row}"].font = Font(bold=True)
        row = self._write_pairs(ws, sorted(summary.matches_by_type.items()), start=row + 1)

        row += 1
        ws[f"A{row}"] = "Verdict:"
        ws[f"A{row}"].font = Font(bold=True)
        verdict = ws[f"B{row}"]
        verdict.value = summary.verdict
        verdict.font = Font(bold=True)
        verdict.fill = MATCH_FILL if summary.is_reconciled else UNMATCHED_FILL

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_matched_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        """Create the matched transactions sheet."""
        ws = wb.create_sheet(self.sheet_config.matched.name)

        headers = [
            "Bank Date",
            "Bank ID",
            "Bank Description",
            "Bank Amount",
            "GL Date",
            "GL ID",
            "GL Description",
            "GL Amount",
            "Related Items",
            "Match Type",
            "Match Score",
            "Reconciled By",
        ]
        self._write_headers(ws, headers)

        for row_num, match in enumerate(session.matches, start=2):
            txn = session.statement_transaction(match.statement_transaction_id)
            entry = session.ledger_entry(match.ledger_entry_id)
            related = match.related_statement_transaction_ids + match.related_ledger_entry_ids

            row_data = [
                txn.transaction_date,
                txn.id,
                txn.description,
                float(txn.signed_amount),
                entry.transaction_date,
                entry.id,
                entry.description,
                float(entry.signed_amount),
                ", ".join(related),
                match.match_type.value,
                match.match_score if match.is_scored else "",
                match.reconciled_by,
            ]

            fill = MATCH_FILL if match.match_type == MatchType.EXACT else REVIEW_FILL
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                if match.is_scored:
                    cell.fill = fill

        self._auto_fit_columns(ws)

    def _create_unmatched_bank_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        """Create the unmatched statement lines sheet."""
        ws = wb.create_sheet(self.sheet_config.unmatched_bank.name)

        headers = ["Date", "ID", "Description", "Reference", "Debit", "Credit", "Balance"]
        self._write_headers(ws, headers)

        for row_num, txn in enumerate(session.unmatched_statement_transactions, start=2):
            row_data = [
                txn.transaction_date,
                txn.id,
                txn.description,
                txn.reference or "",
                float(txn.debit),
                float(txn.credit),
                float(txn.running_balance),
            ]
            self._write_unmatched_row(ws, row_num, row_data)

        self._auto_fit_columns(ws)

    def _create_unmatched_book_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        """Create the unmatched ledger entries sheet."""
        ws = wb.create_sheet(self.sheet_config.unmatched_book.name)

        headers = ["Date", "ID", "Description", "Document Number", "Debit", "Credit"]
        self._write_headers(ws, headers)

        for row_num, entry in enumerate(session.unmatched_ledger_entries, start=2):
            row_data = [
                entry.transaction_date,
                entry.id,
                entry.description,
                entry.source_document_number or "",
                float(entry.debit),
                float(entry.credit),
            ]
            self._write_unmatched_row(ws, row_num, row_data)

        self._auto_fit_columns(ws)

    def _write_pairs(self, ws: Worksheet, pairs, start: int, number_format: str = "") -> int:
        """Write label/value rows from ``start``; returns the next free row."""
        row = start
        for label, value in pairs:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            if number_format:
                ws[f"B{row}"].number_format = number_format
            row += 1
        return row

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_unmatched_row(self, ws: Worksheet, row_num: int, row_data: list) -> None:
        for col, value in enumerate(row_data, start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = THIN_BORDER
            cell.fill = UNMATCHED_FILL

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)
