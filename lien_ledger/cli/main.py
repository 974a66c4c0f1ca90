"""
CLI interface for Lien Ledger.

Provides command-line access to the lien calculator, bill summaries,
invoices and settlements.
"""

import logging
import re
import sys
from datetime import date, timedelta
from typing import List, NoReturn, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from lien_ledger.config.loader import AppConfig, load_config, resolve_config_path
from lien_ledger.core.bills import (
    BillLineItem,
    RawBill,
    apply_flat_reduction,
    summarize_bills
)
from lien_ledger.core.currency import format_currency, format_percentage, parse_amount
from lien_ledger.core.errors import InvalidStateError, ValidationError
from lien_ledger.core.invoice import (
    InvoiceLineItem,
    InvoiceStatus,
    cancel_invoice,
    create_invoice,
    effective_status,
    filter_invoices,
    mark_invoice_paid,
    outstanding_balance
)
from lien_ledger.core.lien import calculate_lien_reduction_from_strings
from lien_ledger.core.settlement import (
    SettlementStatus,
    create_settlement,
    transition_settlement
)
from lien_ledger.demo.seed_demo_data import seed_demo_data
from lien_ledger.storage.models import (
    INVOICES,
    SETTLEMENTS,
    invoice_from_document,
    invoice_to_document,
    settlement_from_document,
    settlement_to_document
)
from lien_ledger.storage.repository import ConcurrencyError, get_store, initialize_schema

_AMOUNT_TEXT = re.compile(r"\s*\$?[\d,]*\.?\d+\s*")

app = typer.Typer()
invoice_app = typer.Typer(help="Create, list and settle invoices.")
settlement_app = typer.Typer(help="Propose and finalize settlements.")
app.add_typer(invoice_app, name="invoice")
app.add_typer(settlement_app, name="settlement")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj if isinstance(ctx.obj, AppConfig) else AppConfig()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Lien Ledger CLI."""
    try:
        app_config = load_config(resolve_config_path(config))
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(f"Invalid configuration: {e}")

    logging.basicConfig(
        level=logging.DEBUG if verbose else app_config.log_level_number,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    ctx.obj = app_config

    if ctx.invoked_subcommand is None:
        console.print("Lien Ledger - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the Lien Ledger database."""
    db_path = _config(ctx).storage.db_path
    try:
        initialize_schema(db_path)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Database initialized at {db_path}")


@app.command("seed-demo")
def seed_demo(ctx: typer.Context):
    """Load demo invoices and settlements into the database."""
    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    try:
        invoices, settlements = seed_demo_data(get_store(db_path))
    except ValueError as e:
        _fail(f"Demo data already present: {e}")
    console.print(
        f"[green]✓[/] Inserted {len(invoices)} invoices and {len(settlements)} settlements"
    )


@app.command()
def lien(
    settlement: str = typer.Option(..., "--settlement", "-s", help="Gross settlement amount"),
    attorney_fees: str = typer.Option("", "--attorney-fees", "-a", help="Attorney fees"),
    case_expenses: str = typer.Option("", "--case-expenses", "-e", help="Case expenses"),
    medical_bills: str = typer.Option("", "--medical-bills", "-m", help="Total medical bills"),
    lien_amount: str = typer.Option("", "--lien", "-l", help="Lien amount claimed")
):
    """
    Calculate the proportional lien reduction for a settlement.

    Amounts are read the way a form reads them: anything other than
    digits and a decimal point is ignored, and blank values count as zero.
    """
    try:
        result = calculate_lien_reduction_from_strings(
            settlement_amount=settlement,
            attorney_fees=attorney_fees,
            case_expenses=case_expenses,
            medical_bills=medical_bills,
            lien_amount=lien_amount
        )
    except ValidationError as e:
        _fail(str(e))

    console.print("\n[bold]Lien Reduction Result[/bold]")
    console.print("-" * 40)
    console.print(f"Net settlement: {format_currency(result.net_settlement)}")
    console.print(f"Reduced lien: {format_currency(result.reduced_lien)}")
    console.print(f"Client recovery: {format_currency(result.client_recovery)}")
    console.print(f"Lien reduction: {format_percentage(result.lien_reduction_percentage)}")


def _load_bill_file(path: str) -> List[dict]:
    """Read bills from YAML: a list, or a mapping with a 'bills' list."""
    with open(path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f)
    if isinstance(raw, dict):
        raw = raw.get('bills')
    if not isinstance(raw, list):
        raise ValueError("Bill file must contain a list of bills")
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"Bill at index {index} must be a dictionary")
        if 'original_amount' not in entry:
            raise ValueError(f"Bill at index {index} is missing 'original_amount'")
    return raw


@app.command()
def bills(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="YAML file listing provider bills"),
    flat_rate: Optional[float] = typer.Option(
        None,
        "--flat-rate",
        "-r",
        help="Reduce every bill by this rate instead of using negotiated amounts"
    )
):
    """
    Summarize original vs reduced amounts for a set of medical bills.

    Bills without a reduced_amount are reduced with the flat rate from
    --flat-rate or, if not given, the configured billing.flat_reduction_rate.
    """
    try:
        entries = _load_bill_file(path)
    except FileNotFoundError:
        _fail(f"Bill file not found: {path}")
    except (ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    rate = flat_rate if flat_rate is not None else _config(ctx).billing.flat_reduction_rate
    items: List[BillLineItem] = []
    try:
        for entry in entries:
            provider = str(entry.get('provider', ''))
            description = str(entry.get('description', ''))
            original = parse_amount(entry['original_amount'])
            if flat_rate is None and entry.get('reduced_amount') is not None:
                items.append(BillLineItem(
                    provider=provider,
                    description=description,
                    original_amount=original,
                    reduced_amount=parse_amount(entry['reduced_amount'])
                ))
            else:
                raw = RawBill(provider=provider, description=description, original_amount=original)
                items.extend(apply_flat_reduction([raw], rate))
    except ValidationError as e:
        _fail(str(e))

    table = Table(title="Medical Bills")
    table.add_column("Provider")
    table.add_column("Description")
    table.add_column("Original", justify="right")
    table.add_column("Reduced", justify="right")
    table.add_column("Savings", justify="right")
    for item in items:
        table.add_row(
            item.provider,
            item.description,
            format_currency(item.original_amount),
            format_currency(item.reduced_amount),
            format_currency(item.savings)
        )
    console.print(table)

    summary = summarize_bills(items)
    console.print(f"Total original: {format_currency(summary.total_original)}")
    console.print(f"Total reduced: {format_currency(summary.total_reduced)}")
    console.print(f"Total savings: {format_currency(summary.total_savings)}")
    console.print(f"Savings: {format_percentage(summary.savings_percentage)}")


def _parse_item(raw: str) -> InvoiceLineItem:
    """Parse 'description:amount[:quantity]' into a line item.

    Fields are taken from the right, so the description may contain colons.
    """
    parts = raw.rsplit(":", 2)
    quantity = 1
    if len(parts) == 3 and parts[2].strip().isdigit() and _AMOUNT_TEXT.fullmatch(parts[1]):
        quantity = int(parts.pop())
    else:
        parts = raw.rsplit(":", 1)
    if len(parts) < 2 or not _AMOUNT_TEXT.fullmatch(parts[1]):
        raise ValidationError(
            f"item {raw!r} needs a numeric amount (description:amount[:quantity])",
            field="item",
        )
    return InvoiceLineItem(parts[0].strip(), parse_amount(parts[1]), quantity)


@invoice_app.command("create")
def invoice_create(
    ctx: typer.Context,
    client_id: str = typer.Option(..., "--client", help="Client id"),
    case_id: str = typer.Option(..., "--case", help="Case id"),
    due: Optional[str] = typer.Option(
        None,
        "--due",
        help="Due date (YYYY-MM-DD); defaults to billing.invoice_due_days from today"
    ),
    item: List[str] = typer.Option(
        ...,
        "--item",
        "-i",
        help="Line item as 'description:amount[:quantity]'; repeatable"
    )
):
    """Create a pending invoice."""
    app_config = _config(ctx)
    if due:
        try:
            due_date = date.fromisoformat(due)
        except ValueError:
            _fail(f"Invalid due date: {due}")
    else:
        due_date = date.today() + timedelta(days=app_config.billing.invoice_due_days)

    try:
        invoice = create_invoice(
            client_id=client_id,
            case_id=case_id,
            due_date=due_date,
            items=[_parse_item(raw) for raw in item]
        )
    except ValidationError as e:
        _fail(str(e))

    store = get_store(app_config.storage.db_path)
    initialize_schema(app_config.storage.db_path)
    store.create(INVOICES, invoice_to_document(invoice), document_id=invoice.id)
    console.print(f"[green]✓[/] Invoice {invoice.id} created")
    console.print(f"Total: {format_currency(invoice.amount)}")
    console.print(f"Due: {invoice.due_date.isoformat()}")


@invoice_app.command("list")
def invoice_list(
    ctx: typer.Context,
    client_id: Optional[str] = typer.Option(None, "--client", help="Filter by client id"),
    case_id: Optional[str] = typer.Option(None, "--case", help="Filter by case id"),
    status: Optional[str] = typer.Option(
        None,
        "--status",
        help="Filter by status: pending, paid, overdue or cancelled"
    )
):
    """List invoices with their current status."""
    status_filter = None
    if status:
        try:
            status_filter = InvoiceStatus(status.lower())
        except ValueError:
            _fail(f"Unknown status: {status}")

    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    invoices = [invoice_from_document(doc) for doc in get_store(db_path).list(INVOICES)]
    today = date.today()
    invoices = filter_invoices(invoices, client_id, case_id, status_filter, today)

    if not invoices:
        console.print("\n[dim]No invoices found.[/]")
        return

    table = Table(title="Invoices")
    table.add_column("Id")
    table.add_column("Client")
    table.add_column("Case")
    table.add_column("Amount", justify="right")
    table.add_column("Status")
    table.add_column("Due")
    for invoice in invoices:
        table.add_row(
            invoice.id,
            invoice.client_id,
            invoice.case_id,
            format_currency(invoice.amount),
            effective_status(invoice, today).value,
            invoice.due_date.isoformat()
        )
    console.print(table)
    console.print(f"Outstanding balance: {format_currency(outstanding_balance(invoices))}")


def _update_invoice(ctx: typer.Context, invoice_id: str, transition, verb: str) -> None:
    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    store = get_store(db_path)
    document = store.get(INVOICES, invoice_id)
    if document is None:
        _fail(f"Invoice {invoice_id} not found")

    try:
        updated = transition(invoice_from_document(document))
        store.update(
            INVOICES,
            invoice_id,
            invoice_to_document(updated),
            expected_updated_at=document.updated_at
        )
    except (InvalidStateError, ConcurrencyError) as e:
        _fail(str(e))
    console.print(f"[green]✓[/] Invoice {invoice_id} {verb}")


@invoice_app.command("pay")
def invoice_pay(ctx: typer.Context, invoice_id: str = typer.Argument(..., help="Invoice id")):
    """Mark an invoice as paid."""
    _update_invoice(ctx, invoice_id, mark_invoice_paid, "marked as paid")


@invoice_app.command("cancel")
def invoice_cancel(ctx: typer.Context, invoice_id: str = typer.Argument(..., help="Invoice id")):
    """Cancel an open invoice."""
    _update_invoice(ctx, invoice_id, cancel_invoice, "cancelled")


@settlement_app.command("create")
def settlement_create(
    ctx: typer.Context,
    client_id: str = typer.Option(..., "--client", help="Client id"),
    case_id: str = typer.Option(..., "--case", help="Case id"),
    total: str = typer.Option(..., "--total", help="Total settlement amount"),
    attorney_fees: str = typer.Option(..., "--attorney-fees", help="Attorney fees"),
    medical_liens: str = typer.Option("", "--medical-liens", help="Medical liens"),
    expenses: str = typer.Option("", "--expenses", help="Case expenses")
):
    """Propose a settlement and show the client's share."""
    try:
        settlement = create_settlement(
            client_id=client_id,
            case_id=case_id,
            total_amount=parse_amount(total),
            attorney_fees=parse_amount(attorney_fees),
            medical_liens=parse_amount(medical_liens),
            expenses=parse_amount(expenses)
        )
    except ValidationError as e:
        _fail(str(e))

    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    get_store(db_path).create(
        SETTLEMENTS, settlement_to_document(settlement), document_id=settlement.id
    )
    console.print(f"[green]✓[/] Settlement {settlement.id} proposed")
    console.print(f"Client amount: {format_currency(settlement.client_amount)}")


def _move_settlement(ctx: typer.Context, settlement_id: str, status: SettlementStatus) -> None:
    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    store = get_store(db_path)
    document = store.get(SETTLEMENTS, settlement_id)
    if document is None:
        _fail(f"Settlement {settlement_id} not found")

    try:
        updated = transition_settlement(settlement_from_document(document), status)
        store.update(
            SETTLEMENTS,
            settlement_id,
            settlement_to_document(updated),
            expected_updated_at=document.updated_at
        )
    except (InvalidStateError, ConcurrencyError) as e:
        _fail(str(e))
    console.print(f"[green]✓[/] Settlement {settlement_id} {status.value}")


@settlement_app.command("accept")
def settlement_accept(ctx: typer.Context, settlement_id: str = typer.Argument(...)):
    """Accept a proposed settlement."""
    _move_settlement(ctx, settlement_id, SettlementStatus.ACCEPTED)


@settlement_app.command("reject")
def settlement_reject(ctx: typer.Context, settlement_id: str = typer.Argument(...)):
    """Reject a proposed settlement."""
    _move_settlement(ctx, settlement_id, SettlementStatus.REJECTED)


@settlement_app.command("finalize")
def settlement_finalize(ctx: typer.Context, settlement_id: str = typer.Argument(...)):
    """Finalize a proposed or accepted settlement."""
    _move_settlement(ctx, settlement_id, SettlementStatus.FINALIZED)


@settlement_app.command("list")
def settlement_list(ctx: typer.Context):
    """List settlements."""
    db_path = _config(ctx).storage.db_path
    initialize_schema(db_path)
    settlements = [
        settlement_from_document(doc) for doc in get_store(db_path).list(SETTLEMENTS)
    ]
    if not settlements:
        console.print("\n[dim]No settlements found.[/]")
        return

    table = Table(title="Settlements")
    table.add_column("Id")
    table.add_column("Case")
    table.add_column("Total", justify="right")
    table.add_column("Client", justify="right")
    table.add_column("Status")
    for settlement in settlements:
        table.add_row(
            settlement.id,
            settlement.case_id,
            format_currency(settlement.total_amount),
            format_currency(settlement.client_amount),
            settlement.status.value
        )
    console.print(table)


if __name__ == "__main__":
    app()
