"""
Export payloads for a reconciliation session.

Two renderings of the same content: a flat text report for people and a set
of pandas tables (written as CSV files) for machines. Both list matched
transactions, unmatched bank items, unmatched book items, totals and the
reconciled/discrepancy verdict.
"""

from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.reconciliation import ReconciliationSummary
from ..reconciliation.session import ReconciliationSession
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

MATCHED_COLUMNS = [
    "Bank Transaction ID",
    "Bank Date",
    "Bank Description",
    "Bank Amount",
    "GL Entry ID",
    "GL Date",
    "GL Description",
    "GL Amount",
    "Related Bank Transactions",
    "Related GL Entries",
    "Match Type",
    "Match Score",
    "Reconciled By",
    "Reconciled At",
]

UNMATCHED_BANK_COLUMNS = ["ID", "Date", "Description", "Reference", "Debit", "Credit", "Balance"]

UNMATCHED_BOOK_COLUMNS = ["ID", "Date", "Description", "Document Number", "Debit", "Credit"]


def summary_table(summary: ReconciliationSummary) -> pd.DataFrame:
    """Two-column metric/value table."""
    rows = [
        ("Bank Account", summary.bank_account_id),
        ("Account Name", summary.bank_account_name),
        ("Statement Date", summary.statement_date.isoformat()),
        ("Statement Balance", float(summary.statement_balance)),
        ("Book Balance", float(summary.book_balance)),
        ("Unmatched Bank Total", float(summary.unmatched_statement_total)),
        ("Unmatched Book Total", float(summary.unmatched_ledger_total)),
        ("Difference", float(summary.difference)),
        ("Status", summary.status.value),
        ("Verdict", summary.verdict),
        ("Bank Transactions", summary.total_statement_transactions),
        ("Book Entries", summary.total_ledger_entries),
        ("Matches", summary.matched_count),
        ("Unmatched Bank Items", summary.unmatched_statement_count),
        ("Unmatched Book Items", summary.unmatched_ledger_count),
    ]
    for match_type, count in sorted(summary.matches_by_type.items()):
        rows.append((f"Matches ({match_type})", count))

    return pd.DataFrame(rows, columns=["Metric", "Value"])


def matched_table(session: ReconciliationSession) -> pd.DataFrame:
    """One row per committed match, showing the primary pair."""
    records = []
    for match in session.matches:
        txn = session.statement_transaction(match.statement_transaction_id)
        entry = session.ledger_entry(match.ledger_entry_id)
        records.append(
            {
                "Bank Transaction ID": txn.id,
                "Bank Date": txn.transaction_date.isoformat(),
                "Bank Description": txn.description,
                "Bank Amount": float(txn.signed_amount),
                "GL Entry ID": entry.id,
                "GL Date": entry.transaction_date.isoformat(),
                "GL Description": entry.description,
                "GL Amount": float(entry.signed_amount),
                "Related Bank Transactions": ", ".join(match.related_statement_transaction_ids),
                "Related GL Entries": ", ".join(match.related_ledger_entry_ids),
                "Match Type": match.match_type.value,
                "Match Score": match.match_score if match.is_scored else None,
                "Reconciled By": match.reconciled_by,
                "Reconciled At": match.reconciled_at.strftime("%Y-%m-%d %H:%M:%S"),
            }
        )
    return pd.DataFrame(records, columns=MATCHED_COLUMNS)


def unmatched_bank_table(session: ReconciliationSession) -> pd.DataFrame:
    records = [
        {
            "ID": txn.id,
            "Date": txn.transaction_date.isoformat(),
            "Description": txn.description,
            "Reference": txn.reference or "",
            "Debit": float(txn.debit),
            "Credit": float(txn.credit),
            "Balance": float(txn.running_balance),
        }
        for txn in session.unmatched_statement_transactions
    ]
    return pd.DataFrame(records, columns=UNMATCHED_BANK_COLUMNS)


def unmatched_book_table(session: ReconciliationSession) -> pd.DataFrame:
    records = [
        {
            "ID": entry.id,
            "Date": entry.transaction_date.isoformat(),
            "Description": entry.description,
            "Document Number": entry.source_document_number or "",
            "Debit": float(entry.debit),
            "Credit": float(entry.credit),
        }
        for entry in session.unmatched_ledger_entries
    ]
    return pd.DataFrame(records, columns=UNMATCHED_BOOK_COLUMNS)


def build_tables(session: ReconciliationSession) -> dict[str, pd.DataFrame]:
    """All export tables keyed by short name."""
    return {
        "summary": summary_table(session.summary()),
        "matched": matched_table(session),
        "unmatched_bank": unmatched_bank_table(session),
        "unmatched_book": unmatched_book_table(session),
    }


def write_csv_tables(
    session: ReconciliationSession,
    output_dir: Path,
    config: Optional[ReconConfig] = None,
) -> list[Path]:
    """
    Write the export tables as CSV files.

    Args:
        session: Reconciliation session
        output_dir: Directory receiving the files
        config: Application configuration (defaults when omitted)

    Returns:
        Paths of the written files

    Raises:
        ReportGenerationError: If a file cannot be written
    """
    config = config or ReconConfig()
    prefix = config.output.csv.file_prefix

    written: list[Path] = []
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        for name, table in build_tables(session).items():
            path = output_dir / f"{prefix}_{name}.csv"
            table.to_csv(path, index=False)
            written.append(path)
    except OSError as e:
        raise ReportGenerationError(f"Failed to write CSV export to {output_dir}: {e}")

    logger.info(f"Wrote {len(written)} CSV files to {output_dir}")
    return written


def _money(value) -> str:
    return f"{value:,.2f}"


def render_text_summary(session: ReconciliationSession) -> str:
    """
    Plain text report of a session.

    Args:
        session: Reconciliation session

    Returns:
        The report, newline separated
    """
    summary = session.summary()
    lines = [
        "BANK RECONCILIATION",
        "=" * 60,
        f"Reconciliation: {session.reconciliation_number}",
        f"Account:        {summary.bank_account_id} {summary.bank_account_name}".rstrip(),
        f"Statement date: {summary.statement_date.isoformat()}",
        "",
        f"Statement balance: {_money(summary.statement_balance):>16}",
        f"Book balance:      {_money(summary.book_balance):>16}",
        "",
        f"MATCHED TRANSACTIONS ({summary.matched_count})",
        "-" * 60,
    ]

    for match in session.matches:
        txn = session.statement_transaction(match.statement_transaction_id)
        entry = session.ledger_entry(match.ledger_entry_id)
        score = f" {match.match_score}" if match.is_scored else ""
        lines.append(
            f"{txn.transaction_date.isoformat()}  {txn.description[:30]:<30} "
            f"{_money(txn.signed_amount):>12}  <-> {entry.id} [{match.match_type.value}{score}]"
        )
        extras = match.related_statement_transaction_ids + match.related_ledger_entry_ids
        if extras:
            lines.append(f"    also: {', '.join(extras)}")

    lines += ["", f"UNMATCHED BANK ITEMS ({summary.unmatched_statement_count})", "-" * 60]
    for txn in session.unmatched_statement_transactions:
        lines.append(
            f"{txn.transaction_date.isoformat()}  {txn.description[:40]:<40} "
            f"{_money(txn.signed_amount):>12}"
        )

    lines += ["", f"UNMATCHED BOOK ITEMS ({summary.unmatched_ledger_count})", "-" * 60]
    for entry in session.unmatched_ledger_entries:
        lines.append(
            f"{entry.transaction_date.isoformat()}  {entry.description[:40]:<40} "
            f"{_money(entry.signed_amount):>12}"
        )

    lines += [
        "",
        "TOTALS",
        "-" * 60,
        f"Unmatched bank total: {_money(summary.unmatched_statement_total):>16}",
        f"Unmatched book total: {_money(summary.unmatched_ledger_total):>16}",
        f"Difference:           {_money(summary.difference):>16}",
        "",
        f"Status:  {summary.status.value}",
        f"Verdict: {summary.verdict}",
    ]
    return "\n".join(lines)
