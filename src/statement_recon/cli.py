"""
Command-line interface for the bank statement reconciliation tool.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import AutoMatcher
from .matching.strategies import ImportTimeStrategy, StrictScoreStrategy
from .models.reconciliation import ReconciliationSummary
from .parsers.column_inference import ColumnMapping
from .parsers.ledger_parser import LedgerParser
from .reconciliation.session import ReconciliationSession
from .reports.excel_generator import ExcelReportGenerator
from .reports.export import render_text_summary, write_csv_tables
from .utils.exceptions import ValidationError
from .utils.logging_config import level_from_name, setup_logging
from .wizard.orchestrator import ImportWizard

console = Console()


def _decimal(ctx, param, value):
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"not a number: {value}")


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank Statement Reconciliation Tool."""
    pass


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.argument("ledger_file", type=click.Path(exists=True, path_type=Path))
@click.option("-a", "--account", required=True, help="Ledger account being reconciled")
@click.option(
    "--statement-balance",
    required=True,
    callback=_decimal,
    help="Closing balance printed on the statement",
)
@click.option(
    "--book-balance", required=True, callback=_decimal, help="Current ledger account balance"
)
@click.option(
    "--statement-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Statement closing date (YYYY-MM-DD, defaults to today)",
)
@click.option(
    "--strategy",
    type=click.Choice([StrictScoreStrategy.name, ImportTimeStrategy.name]),
    default=None,
    help="Auto-match strategy (configured default when omitted)",
)
@click.option(
    "--map",
    "column_overrides",
    multiple=True,
    metavar="COL=FIELD",
    help="Override a column mapping, e.g. --map 2=description",
)
@click.option("--no-headers", is_flag=True, help="Statement has no header row")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--csv-dir", type=click.Path(path_type=Path), help="Also write CSV tables to this directory"
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Match and show the summary without writing reports"
)
def reconcile(
    statement_file: Path,
    ledger_file: Path,
    account: str,
    statement_balance: Decimal,
    book_balance: Decimal,
    statement_date: Optional[datetime],
    strategy: Optional[str],
    column_overrides: tuple[str, ...],
    no_headers: bool,
    config: Optional[Path],
    output: Optional[Path],
    csv_dir: Optional[Path],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile a bank statement CSV with ledger entries for one account.

    STATEMENT_FILE: Path to the bank statement CSV
    LEDGER_FILE: Path to the ledger CSV export
    """
    try:
        recon_config = load_config(config)
        _setup_logging(recon_config, verbose)

        strategy_name = strategy or recon_config.matching.settings.default_strategy
        closing_date = statement_date.date() if statement_date else date.today()

        wizard = ImportWizard(recon_config)
        parse_result = _parse_statement(wizard, statement_file, column_overrides, no_headers)
        _display_warnings(parse_result.warnings)

        ledger_entries = LedgerParser(recon_config).parse_file(ledger_file, account_id=account)

        if strategy_name == ImportTimeStrategy.name:
            session = _run_import_match(
                wizard, ledger_entries, account, closing_date, statement_balance, book_balance
            )
        else:
            session = ReconciliationSession(
                bank_account_id=account,
                statement_date=closing_date,
                statement_balance=statement_balance,
                book_balance=book_balance,
                statement_transactions=parse_result.transactions,
                ledger_entries=ledger_entries,
            )
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Running auto-match...", total=None)
                matcher = AutoMatcher(recon_config)
                matcher.run(session, matcher.strategy(strategy_name))
                progress.update(task, completed=True)

        session.check_partition()
        summary = session.summary()
        _display_summary(summary)

        if verbose:
            console.print(render_text_summary(session), markup=False, highlight=False)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        report_generator = ExcelReportGenerator(recon_config)
        report_path = report_generator.generate_report(session, output)
        console.print(f"\n[green]Report generated: {report_path}[/green]")

        if csv_dir:
            paths = write_csv_tables(session, csv_dir, recon_config)
            console.print(f"[green]CSV tables written: {len(paths)} files in {csv_dir}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("inspect-columns")
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.option("--no-headers", is_flag=True, help="Statement has no header row")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def inspect_columns(statement_file: Path, no_headers: bool, config: Optional[Path]):
    """
    Show the column mapping proposed for a statement file.

    STATEMENT_FILE: Path to the bank statement CSV
    """
    recon_config = load_config(config)
    wizard = ImportWizard(recon_config)

    try:
        mapping = wizard.load_file(statement_file)
        if no_headers:
            mapping = wizard.set_has_headers(False)

        table = Table(title=f"Columns: {statement_file.name}")
        table.add_column("#", justify="right")
        table.add_column("Header")
        table.add_column("Sample")
        table.add_column("Field", style="cyan")

        for assignment in mapping:
            table.add_row(
                str(assignment.column),
                assignment.header or "-",
                assignment.sample or "-",
                assignment.field.value,
            )

        console.print(table)

        missing = mapping.missing_required()
        if missing:
            names = ", ".join(f.value for f in missing)
            console.print(f"\n[yellow]Unmapped required fields: {names}[/yellow]")

    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/red]")
        sys.exit(1)


@main.command("parse-statement")
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.option("--map", "column_overrides", multiple=True, metavar="COL=FIELD")
@click.option("--no-headers", is_flag=True, help="Statement has no header row")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_statement(
    statement_file: Path,
    column_overrides: tuple[str, ...],
    no_headers: bool,
    config: Optional[Path],
):
    """
    Parse a statement CSV and display its transactions.

    STATEMENT_FILE: Path to the bank statement CSV
    """
    recon_config = load_config(config)
    wizard = ImportWizard(recon_config)

    try:
        result = _parse_statement(wizard, statement_file, column_overrides, no_headers)
        transactions = result.transactions

        table = Table(title=f"Statement Transactions: {statement_file.name}")
        table.add_column("Date")
        table.add_column("Description")
        table.add_column("Debit", justify="right")
        table.add_column("Credit", justify="right")
        table.add_column("Balance", justify="right")

        for txn in transactions[:20]:  # Show first 20
            table.add_row(
                str(txn.transaction_date),
                (
                    txn.description[:40] + "..."
                    if len(txn.description) > 40
                    else txn.description
                ),
                f"{txn.debit:,.2f}",
                f"{txn.credit:,.2f}",
                f"{txn.running_balance:,.2f}",
            )

        console.print(table)

        if len(transactions) > 20:
            console.print(f"\n... and {len(transactions) - 20} more transactions")

        console.print(f"\nTotal transactions: {len(transactions)}")
        if result.skipped_rows:
            console.print(f"Skipped rows: {len(result.skipped_rows)}")
        _display_warnings(result.warnings)

    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _setup_logging(config: ReconConfig, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else level_from_name(config.logging.level)
    setup_logging(log_level, log_format=config.logging.format)


def _parse_statement(
    wizard: ImportWizard,
    statement_file: Path,
    column_overrides: tuple[str, ...],
    no_headers: bool,
):
    """Run the wizard's upload and map steps with any command-line overrides."""
    mapping = wizard.load_file(statement_file)
    if no_headers:
        mapping = wizard.set_has_headers(False)

    for override in column_overrides:
        column, field_name = _parse_override(override, mapping)
        wizard.assign_column(column, field_name)

    return wizard.parse()


def _parse_override(override: str, mapping: ColumnMapping) -> tuple[int, str]:
    """Split ``COL=FIELD``; COL is a column index or a header name."""
    column, sep, field_name = override.partition("=")
    if not sep or not column.strip() or not field_name.strip():
        raise ValidationError(f"Column override must look like COL=FIELD: {override}")

    column = column.strip()
    if column.isdigit():
        return int(column), field_name.strip()

    for assignment in mapping:
        if assignment.header.lower() == column.lower():
            return assignment.column, field_name.strip()
    raise ValidationError(f"No column with header {column!r}")


def _run_import_match(
    wizard: ImportWizard,
    ledger_entries,
    account: str,
    closing_date: date,
    statement_balance: Decimal,
    book_balance: Decimal,
) -> ReconciliationSession:
    """Run the wizard's import-time auto-match with a progress bar."""
    wizard.select_account(account, closing_date, statement_balance)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task("Auto-matching...", total=100)

        def on_progress(percent: int, message: str) -> None:
            progress.update(task, completed=percent, description=message)

        asyncio.run(wizard.auto_match(ledger_entries, on_progress))
        progress.update(task, completed=100)

    result = wizard.complete()
    return result.to_session(book_balance)


def _display_warnings(warnings) -> None:
    if not warnings:
        return
    console.print(f"\n[yellow]{len(warnings)} data quality warning(s):[/yellow]")
    for warning in warnings[:10]:
        console.print(f"  {warning}", style="yellow", markup=False, highlight=False)
    if len(warnings) > 10:
        console.print(f"  ... and {len(warnings) - 10} more")


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Bank Account", summary.bank_account_id)
    table.add_row("Statement Date", str(summary.statement_date))
    table.add_row("Total Bank Transactions", str(summary.total_statement_transactions))
    table.add_row("Total Book Entries", str(summary.total_ledger_entries))
    table.add_row("Matched", str(summary.matched_count))
    table.add_row("Unmatched Bank Items", str(summary.unmatched_statement_count))
    table.add_row("Unmatched Book Items", str(summary.unmatched_ledger_count))
    table.add_row("Bank Match Rate", f"{summary.match_rate:.1f}%")
    table.add_row("Statement Balance", f"{summary.statement_balance:,.2f}")
    table.add_row("Book Balance", f"{summary.book_balance:,.2f}")
    table.add_row("Difference", f"{summary.difference:,.2f}")
    table.add_row("Status", summary.status.value)

    console.print(table)

    if summary.is_reconciled:
        console.print("[green]Reconciled[/green]")
    else:
        console.print("[red]Discrepancy[/red]")


if __name__ == "__main__":
    main()
