"""
Command-line interface for bank statement reconciliation.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .backend import build_backend
from .config import load_config, generate_default_config, ReconConfig
from .matching.session import ReconciliationSession
from .matching.workflow import ReconciliationWorkflow
from .models.transaction import BankTransaction, SystemTransaction
from .parsers.statement_parser import StatementParser
from .reports.excel_generator import ExcelReportGenerator
from .utils.exceptions import ReconciliationError
from .utils.logging_config import setup_logging, get_logger

console = Console()
logger = get_logger("cli")

MAX_ROWS = 20


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank statement reconciliation tool."""
    pass


def _common_options(func):
    func = click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, path_type=Path),
        help="Path to configuration file (YAML)",
    )(func)
    func = click.option("--company", "company_id", required=True, help="Company ID")(func)
    func = click.option("--account", "account_id", required=True, help="Bank account ID")(func)
    func = click.option(
        "--ledger",
        type=click.Path(exists=True, path_type=Path),
        help="Ledger file with system transactions (local backend)",
    )(func)
    func = click.option(
        "--date-window", type=int, default=None, help="Override suggestion window in days"
    )(func)
    func = click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")(func)
    return func


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@_common_options
@click.option(
    "--auto-match/--no-auto-match",
    default=None,
    help="Match unambiguous suggestions automatically",
)
@click.option(
    "--incremental/--no-incremental",
    default=None,
    help="Save each match to the backend as it is made",
)
@click.option(
    "-m",
    "--match",
    "manual_matches",
    multiple=True,
    metavar="BANK_ID:SYSTEM_ID",
    help="Match a pair manually (repeatable)",
)
@click.option("--complete", is_flag=True, help="Complete and persist the reconciliation")
@click.option(
    "--allow-partial", is_flag=True, help="Complete without asking when lines are unmatched"
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--no-report", is_flag=True, help="Do not write an Excel report")
def reconcile(
    statement_file: Path,
    config: Optional[Path],
    company_id: str,
    account_id: str,
    ledger: Optional[Path],
    date_window: Optional[int],
    verbose: bool,
    auto_match: Optional[bool],
    incremental: Optional[bool],
    manual_matches: tuple[str, ...],
    complete: bool,
    allow_partial: bool,
    output: Optional[Path],
    no_report: bool,
):
    """
    Match a bank statement against ledger transactions.

    STATEMENT_FILE: CSV or JSON bank statement
    """
    try:
        recon_config = _prepare(config, verbose, ledger, date_window)
        if auto_match is not None:
            recon_config.matching.auto_match = auto_match
        if incremental is not None:
            recon_config.matching.persist_incrementally = incremental

        workflow = ReconciliationWorkflow(
            company_id, build_backend(recon_config), config=recon_config
        )
        workflow.select_account(account_id)
        session = workflow.import_statement(statement_file)

        for pair in manual_matches:
            bank_id, _, system_id = pair.partition(":")
            if not system_id:
                raise click.BadParameter(f"Expected BANK_ID:SYSTEM_ID, got '{pair}'")
            session.match(bank_id.strip(), system_id.strip())

        _display_summary(session)

        if complete:
            unmatched = session.summary().unmatched_count
            partial_ok = allow_partial
            if unmatched and not partial_ok:
                partial_ok = click.confirm(
                    f"There are {unmatched} unmatched transactions. "
                    f"Complete reconciliation anyway?",
                    default=False,
                )
                if not partial_ok:
                    console.print("[yellow]Reconciliation left open[/yellow]")
            if not unmatched or partial_ok:
                result = workflow.complete(allow_partial=partial_ok)
                console.print(
                    f"\n[green]Reconciliation completed: {result.reconciliation.id}[/green]"
                )

        if not no_report:
            if output is None:
                output = Path(
                    recon_config.output.filename_template.format(
                        account=account_id,
                        date=datetime.now().strftime("%Y%m%d"),
                        time=datetime.now().strftime("%H%M%S"),
                    )
                )
            report_path = ExcelReportGenerator(recon_config).generate_report(session, output)
            console.print(f"\n[green]Report generated: {report_path}[/green]")

    except (ReconciliationError, click.BadParameter) as e:
        logger.debug("reconcile failed", exc_info=True)
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.argument("bank_txn_id")
@_common_options
def suggest(
    statement_file: Path,
    bank_txn_id: str,
    config: Optional[Path],
    company_id: str,
    account_id: str,
    ledger: Optional[Path],
    date_window: Optional[int],
    verbose: bool,
):
    """
    Show ledger candidates for one bank transaction.

    STATEMENT_FILE: CSV or JSON bank statement
    BANK_TXN_ID: ID of the statement line
    """
    try:
        recon_config = _prepare(config, verbose, ledger, date_window)
        recon_config.matching.auto_match = False

        workflow = ReconciliationWorkflow(
            company_id, build_backend(recon_config), config=recon_config
        )
        workflow.select_account(account_id)
        session = workflow.import_statement(statement_file)

        bank_txn = session.get_bank_transaction(bank_txn_id)
        candidates = session.select_for_matching(bank_txn_id)

        console.print(
            f"{bank_txn.id}  {bank_txn.date}  {bank_txn.description}  "
            f"{bank_txn.type.value} {bank_txn.amount:,.2f}"
        )
        if not candidates:
            console.print(f"[yellow]No candidates ({session.strategy.describe()})[/yellow]")
            return
        console.print(_system_table(f"Candidates ({session.strategy.describe()})", candidates))

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("parse-statement")
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_statement(statement_file: Path, config: Optional[Path]):
    """
    Parse a bank statement and display its transactions.

    STATEMENT_FILE: CSV or JSON bank statement
    """
    try:
        transactions = StatementParser(load_config(config)).parse_file(statement_file)
    except ReconciliationError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    console.print(_bank_table(f"Statement: {statement_file.name}", transactions[:MAX_ROWS]))
    if len(transactions) > MAX_ROWS:
        console.print(f"\n... and {len(transactions) - MAX_ROWS} more transactions")
    console.print(f"\nTotal transactions: {len(transactions)}")


@main.command()
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--company", "company_id", required=True, help="Company ID")
@click.option("--account", "account_id", default=None, help="Limit to one bank account")
def history(config: Optional[Path], company_id: str, account_id: Optional[str]):
    """List completed reconciliations."""
    try:
        backend = build_backend(load_config(config))
        records = backend.list_reconciliations(company_id, account_id)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not records:
        console.print("No reconciliations found")
        return

    table = Table(title="Reconciliation History")
    table.add_column("ID")
    table.add_column("Account")
    table.add_column("Period")
    table.add_column("Opening", justify="right")
    table.add_column("Closing", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Unmatched", justify="right")
    table.add_column("Status")

    for record in records:
        table.add_row(
            record.id,
            record.account_name or record.account_id,
            f"{record.start_date} - {record.end_date}",
            f"{record.opening_balance:,.2f}",
            f"{record.closing_balance:,.2f}",
            str(record.matched_count),
            str(record.unmatched_count),
            record.status.value,
        )

    console.print(table)


@main.command()
@click.argument("reconciliation_id")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--company", "company_id", required=True, help="Company ID")
def show(reconciliation_id: str, config: Optional[Path], company_id: str):
    """Show one completed reconciliation."""
    try:
        backend = build_backend(load_config(config))
        record = backend.get_reconciliation(company_id, reconciliation_id)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Reconciliation {record.id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Account", record.account_name or record.account_id)
    table.add_row("Period", f"{record.start_date} - {record.end_date}")
    table.add_row("Opening Balance", f"{record.opening_balance:,.2f}")
    table.add_row("Closing Balance", f"{record.closing_balance:,.2f}")
    table.add_row("Matched", str(record.matched_count))
    table.add_row("Unmatched", str(record.unmatched_count))
    table.add_row("Status", record.status.value)
    table.add_row("Created", record.created_at.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _prepare(
    config: Optional[Path],
    verbose: bool,
    ledger: Optional[Path],
    date_window: Optional[int],
) -> ReconConfig:
    """Load configuration, apply command-line overrides and set up logging."""
    recon_config = load_config(config)

    level = (
        logging.DEBUG
        if verbose
        else getattr(logging, recon_config.logging.level.upper(), logging.INFO)
    )
    setup_logging(
        level,
        log_file=Path(recon_config.logging.file) if recon_config.logging.file else None,
        log_format=recon_config.logging.format,
    )

    if ledger is not None:
        recon_config.backend.ledger_file = str(ledger)
    if date_window is not None:
        recon_config.matching.date_window_days = date_window

    return recon_config


def _display_summary(session: ReconciliationSession) -> None:
    """Display match summary and remaining unmatched lines."""
    summary = session.summary()

    table = Table(title=f"Reconciliation Summary: {session.account_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Bank Transactions", str(summary.total))
    table.add_row("Matched", str(summary.matched_count))
    table.add_row("Unmatched Bank", str(summary.unmatched_count))
    table.add_row("Unmatched System", str(summary.unmatched_system_count))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")
    console.print(table)

    unmatched = session.unmatched_bank()
    if unmatched:
        console.print(_bank_table("Unmatched Bank Transactions", unmatched[:MAX_ROWS]))


def _bank_table(title: str, transactions: list[BankTransaction]) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Reference")
    table.add_column("Debit", justify="right")
    table.add_column("Credit", justify="right")
    table.add_column("Description")

    for txn in transactions:
        table.add_row(
            txn.id,
            str(txn.date),
            txn.reference or "-",
            f"{txn.debit:,.2f}" if txn.debit else "",
            f"{txn.credit:,.2f}" if txn.credit else "",
            txn.description[:40] + "..." if len(txn.description) > 40 else txn.description,
        )
    return table


def _system_table(title: str, transactions: list[SystemTransaction]) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Reference")
    table.add_column("Amount", justify="right")
    table.add_column("Type")
    table.add_column("Description")

    for txn in transactions:
        table.add_row(
            txn.id,
            str(txn.date),
            txn.reference or "-",
            f"{txn.amount:,.2f}",
            txn.type.value,
            txn.description,
        )
    return table


if __name__ == "__main__":
    main()
