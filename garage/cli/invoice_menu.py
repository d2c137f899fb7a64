from __future__ import annotations

import questionary
from rich.console import Console
from rich.table import Table

from garage.errors import GarageError
from garage.models import format_money
from garage.models.invoice import Invoice
from garage.models.sync import SyncOptions
from garage.services.invoice_service import InvoiceService

console = Console()

TYPE_LABELS = {"labor": "Labor", "part": "Part", "custom": "Custom"}


def _show_invoice_detail(invoice: Invoice) -> None:
    """Display an invoice's line items and totals."""
    detail_table = Table()
    detail_table.add_column("Description")
    detail_table.add_column("Type", justify="center")
    detail_table.add_column("Qty", justify="right")
    detail_table.add_column("Rate", justify="right")
    detail_table.add_column("Amount", justify="right")
    detail_table.add_column("Locked", justify="center")

    for item in invoice.line_items:
        detail_table.add_row(
            item.description,
            TYPE_LABELS.get(item.type.value, item.type.value),
            f"{item.quantity.normalize():f}",
            format_money(item.rate),
            format_money(item.amount),
            "yes" if item.is_locked else "",
        )

    console.print(detail_table)
    console.print(f"  Subtotal: {format_money(invoice.subtotal)}")
    if invoice.discount_amount:
        console.print(f"  Discount: -{format_money(invoice.discount_amount)}")
    console.print(f"  Tax ({invoice.tax_rate.normalize():f}%): {format_money(invoice.tax_amount)}")
    console.print(f"  [bold]Total: {format_money(invoice.amount)}[/bold]")
    console.print(
        f"  Revision {invoice.revision_number} | auto-sync {'on' if invoice.auto_sync_enabled else 'off'}"
    )
    if invoice.notes:
        console.print(f"  Notes: {invoice.notes}")


def create_invoice_menu(invoice_service: InvoiceService) -> None:
    console.print()
    console.print("[bold]New Invoice[/bold]", style="cyan")

    job_id = questionary.text("Job id:").ask()
    if not job_id:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    tax_rate = questionary.text("Tax rate % (e.g. 8.25, optional):").ask() or "0"
    notes = questionary.text("Notes (optional):").ask() or ""

    try:
        invoice = invoice_service.create_invoice_from_job(job_id, tax_rate=tax_rate, notes=notes, changed_by="cli")
    except GarageError as exc:
        console.print(f"[red]{exc}[/red]")
        return

    console.print()
    console.print(f"[green bold]Invoice {invoice.id} created![/green bold]")
    _show_invoice_detail(invoice)


def sync_invoice_menu(invoice: Invoice, invoice_service: InvoiceService) -> Invoice:
    console.print()
    console.print("[bold]Sync From Job[/bold]", style="cyan")

    force_sync = False
    if not invoice.auto_sync_enabled:
        force_sync = questionary.confirm("Auto-sync is off for this invoice. Force sync?", default=False).ask()
        if not force_sync:
            console.print("[yellow]Sync skipped.[/yellow]")
            return invoice

    options = SyncOptions(
        force_sync=bool(force_sync),
        preserve_custom_items=bool(questionary.confirm("Keep custom items?", default=True).ask()),
        lock_modified_items=bool(questionary.confirm("Keep locked items?", default=False).ask()),
    )

    try:
        result = invoice_service.sync_invoice(invoice.id, options=options, changed_by="cli")
    except GarageError as exc:
        console.print(f"[red]{exc}[/red]")
        return invoice

    if not result.success or result.invoice is None:
        console.print(f"[yellow]{result.message}[/yellow]")
        return invoice

    console.print(f"[green]{result.message}[/green]")
    if result.changes is not None:
        console.print(
            f"  {result.changes.labor_hours.normalize():f} labor hrs, "
            f"{result.changes.parts_count} parts, new total {format_money(result.changes.new_total)}"
        )
    return result.invoice


def toggle_auto_sync_menu(invoice: Invoice, invoice_service: InvoiceService) -> Invoice:
    enabled = not invoice.auto_sync_enabled
    try:
        updated = invoice_service.update_invoice(invoice.id, {"auto_sync_enabled": enabled}, changed_by="cli")
    except GarageError as exc:
        console.print(f"[red]{exc}[/red]")
        return invoice
    console.print(f"[green]Auto-sync {'enabled' if enabled else 'disabled'}.[/green]")
    return updated


def show_changes_menu(invoice: Invoice, invoice_service: InvoiceService) -> None:
    entries = invoice_service.list_changes(invoice.id)
    if not entries:
        console.print("[yellow]No changes recorded.[/yellow]")
        return

    table = Table(title="Change history")
    table.add_column("When")
    table.add_column("Type")
    table.add_column("By")
    for entry in entries:
        when = entry.created_at.strftime("%Y-%m-%d %H:%M") if entry.created_at else ""
        table.add_row(when, entry.change_type, entry.changed_by)
    console.print(table)


def invoice_actions_menu(invoice: Invoice, invoice_service: InvoiceService) -> None:
    while True:
        console.print()
        console.print(f"[bold]{invoice.id}[/bold] | job {invoice.job_id} | {invoice.status.value}", style="cyan")
        _show_invoice_detail(invoice)

        toggle_label = "Disable Auto-Sync" if invoice.auto_sync_enabled else "Enable Auto-Sync"
        action = questionary.select(
            "Action:",
            choices=["Sync From Job", toggle_label, "Change History", "Delete", "Back"],
        ).ask()

        if action is None or action == "Back":
            return
        elif action == "Sync From Job":
            invoice = sync_invoice_menu(invoice, invoice_service)
        elif action == toggle_label:
            invoice = toggle_auto_sync_menu(invoice, invoice_service)
        elif action == "Change History":
            show_changes_menu(invoice, invoice_service)
        elif action == "Delete":
            if questionary.confirm(f"Delete invoice {invoice.id}?", default=False).ask():
                try:
                    invoice_service.delete_invoice(invoice.id)
                except GarageError as exc:
                    console.print(f"[red]{exc}[/red]")
                    return
                console.print("[green]Invoice deleted.[/green]")
                return


def list_invoices_menu(invoice_service: InvoiceService) -> None:
    invoices = invoice_service.list_invoices()
    if not invoices:
        console.print("[yellow]No invoices found.[/yellow]")
        return

    table = Table(title="Invoices")
    table.add_column("#", justify="right")
    table.add_column("Id")
    table.add_column("Job")
    table.add_column("Status")
    table.add_column("Total", justify="right")
    table.add_column("Auto-sync", justify="center")

    for i, invoice in enumerate(invoices, 1):
        table.add_row(
            str(i),
            invoice.id,
            invoice.job_id or "",
            invoice.status.value,
            format_money(invoice.amount),
            "on" if invoice.auto_sync_enabled else "off",
        )

    console.print(table)

    choices = [f"{i}. {invoice.id}" for i, invoice in enumerate(invoices, 1)]
    choices.append("Back")
    choice = questionary.select("Select an invoice:", choices=choices).ask()
    if choice is None or choice == "Back":
        return

    idx = int(choice.split(".")[0]) - 1
    invoice_actions_menu(invoices[idx], invoice_service)
