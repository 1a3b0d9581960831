"""
Command-line interface for the transaction history reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import TransactionReconciler
from .models.transaction import (
    GroupedTransaction,
    ReconciliationResult,
    ReconciliationSummary,
)
from .parsers.history_parser import HistoryParser
from .presenter import HistoryPresenter
from .reports.excel_generator import ExcelReportGenerator, default_report_path
from .reports.receipt import display_label, format_amount, transaction_type_text
from .sources.history_client import HistoryClient
from .utils.exceptions import ReconciliationError
from .utils.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Transaction history grouping and fee reconciliation tool."""
    pass


@main.command()
@click.argument("history_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Override result cap")
@click.option(
    "--amount-tolerance",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Override fee amount tolerance",
)
@click.option("--show-dropped", is_flag=True, help="List records left out of the grouped view")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show results without generating a report")
def reconcile(
    history_file: Path,
    config: Optional[Path],
    output: Optional[Path],
    limit: Optional[int],
    amount_tolerance: Optional[float],
    show_dropped: bool,
    verbose: bool,
    dry_run: bool,
):
    """
    Group a saved transaction history and attach fees to their transactions.

    HISTORY_FILE: Path to a history JSON dump or CSV export
    """
    try:
        recon_config = load_config(config)
        _setup_logging(recon_config, verbose)

        if limit is not None:
            recon_config.matching.max_results = limit
        if amount_tolerance is not None:
            _apply_tolerance_override(recon_config, amount_tolerance)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Parsing history file...", total=None)
            records = HistoryParser(recon_config).parse_file(history_file)
            progress.update(task, completed=True)

            task = progress.add_task("Grouping transactions...", total=None)
            start_time = datetime.now()
            reconciler = TransactionReconciler(recon_config)
            result = reconciler.reconcile_detailed(records)
            processing_time = (datetime.now() - start_time).total_seconds()
            progress.update(task, completed=True)

            summary = reconciler.generate_summary(
                result, source_name=history_file.name, processing_time=processing_time
            )

        _display_transactions(result.transactions, recon_config.display.currency)
        _display_summary(summary)

        if show_dropped:
            _display_left_out(result)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        if output is None:
            output = default_report_path(recon_config)

        report_path = ExcelReportGenerator(recon_config).generate_report(
            summary=summary, result=result, output_path=output
        )
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse-history")
@click.argument("history_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_history(history_file: Path, config: Optional[Path]):
    """
    Parse a history file and display its raw records.

    HISTORY_FILE: Path to a history JSON dump or CSV export
    """
    try:
        recon_config = load_config(config)
        records = HistoryParser(recon_config).parse_file(history_file)
    except ReconciliationError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"History Records: {history_file.name}")
    table.add_column("Date")
    table.add_column("Reference")
    table.add_column("Type")
    table.add_column("Amount", justify="right")
    table.add_column("Direction")

    for record in records[:20]:  # Show first 20
        if not isinstance(record, dict):
            table.add_row("-", "-", "(not a record)", "-", "-")
            continue
        table.add_row(
            str(record.get("transactionDate") or "-"),
            str(record.get("reference") or "-"),
            transaction_type_text(record, default="-"),
            format_amount(record.get("amount") or 0),
            str(record.get("debitCreditIndicator") or "-"),
        )

    console.print(table)

    if len(records) > 20:
        console.print(f"\n... and {len(records) - 20} more records")

    console.print(f"\nTotal records: {len(records)}")


@main.command()
@click.argument("customer_id")
@click.option("--account", "account_no", help="Account number to restrict the history to")
@click.option("--url", help="Override the history endpoint URL")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def fetch(
    customer_id: str,
    account_no: Optional[str],
    url: Optional[str],
    config: Optional[Path],
    verbose: bool,
):
    """
    Fetch live history for a customer and display it grouped.

    CUSTOMER_ID: Customer whose history to fetch
    """
    try:
        recon_config = load_config(config)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    _setup_logging(recon_config, verbose)
    if url:
        recon_config.source.history_url = url

    async def run_fetch():
        async with HistoryClient(recon_config.source) as client:
            presenter = HistoryPresenter(
                client,
                customer_id,
                account_no=account_no,
                reconciler=TransactionReconciler(recon_config),
                limit=recon_config.source.fetch_limit,
                currency=recon_config.display.currency,
            )
            return await presenter.load()

    state = asyncio.run(run_fetch())

    if state.transactions:
        _display_transactions(state.transactions, recon_config.display.currency)
    if state.current_balance is not None:
        console.print(
            f"\nCurrent balance: {recon_config.display.currency} "
            f"{format_amount(state.current_balance)}"
        )
    if state.error:
        console.print(f"[red]{state.error}[/red]")
        if verbose and state.error_detail:
            console.print(state.error_detail)
        if not state.transactions:
            sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_transactions(transactions: list[GroupedTransaction], currency: str) -> None:
    """Display grouped transactions with their fees nested underneath."""
    table = Table(title="Recent Transactions")
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Reference")
    table.add_column("Amount", justify="right")

    for txn in transactions:
        style = "red" if txn.is_debit else "green"
        table.add_row(
            str(txn.transaction_date or "-"),
            display_label(txn),
            str(txn.reference or "-"),
            f"[{style}]{txn.get('currency') or currency} {format_amount(txn.amount or 0)}[/{style}]",
        )
        for fee in txn.associated_fees:
            table.add_row(
                "",
                f"  [cyan]{transaction_type_text(fee, default='Fee')}[/cyan]",
                "",
                f"{fee.get('currency') or currency} {format_amount(fee.get('amount') or 0)}",
            )

    console.print(table)


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Records Received", str(summary.record_count))
    table.add_row("Main Transactions", str(summary.main_count))
    table.add_row("Fee Records", str(summary.fee_count))
    table.add_row("Displayed", str(summary.displayed_count))
    table.add_row("Truncated", str(summary.truncated_count))
    table.add_row("Fees Attached", str(summary.attached_fee_count))
    table.add_row("Fees Unmatched", str(summary.unmatched_fee_count))
    table.add_row("Duplicates Collapsed", str(summary.duplicate_transaction_count))
    table.add_row("Dropped Records", str(summary.dropped_count))
    table.add_row("Fee Match Rate", f"{summary.fee_match_rate:.1f}%")
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_left_out(result: ReconciliationResult) -> None:
    """List unmatched fees and dropped records."""
    table = Table(title="Left Out of Grouped View")
    table.add_column("Reason", style="yellow")
    table.add_column("Type")
    table.add_column("Reference")
    table.add_column("Amount", justify="right")

    rows = [("unmatched fee", r) for r in result.unmatched_fees]
    rows += [("duplicate fee", r) for r in result.duplicate_fees]
    rows += [("dropped", r) for r in result.dropped_records]

    for reason, record in rows:
        if isinstance(record, dict):
            table.add_row(
                reason,
                transaction_type_text(record, default="-"),
                str(record.get("reference") or "-"),
                format_amount(record.get("amount") or 0),
            )
        else:
            table.add_row(reason, "(not a record)", "-", "-")

    console.print(table)


def _setup_logging(config: ReconConfig, verbose: bool) -> None:
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(
        logging.DEBUG if verbose else config.logging.level,
        log_file=log_file,
        log_format=config.logging.format,
    )


def _apply_tolerance_override(config: ReconConfig, tolerance: float) -> None:
    """Apply amount tolerance override to fee matching."""
    config.matching.amount_tolerance = tolerance


if __name__ == "__main__":
    main()
