import questionary
from rich.console import Console

from garage.cli.invoice_menu import create_invoice_menu, list_invoices_menu
from garage.repositories.factory import get_invoice_repository, get_job_repository
from garage.services.invoice_service import InvoiceService

console = Console()


def _build_services() -> InvoiceService:
    return InvoiceService(get_invoice_repository(), get_job_repository())


def main_menu() -> None:
    invoice_service = _build_services()

    console.print()
    console.print("[bold]Garage Invoices[/bold]", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Main Menu",
            choices=[
                "List Invoices",
                "New Invoice From Job",
                "Exit",
            ],
        ).ask()

        if choice is None or choice == "Exit":
            console.print("[bold]Goodbye![/bold]")
            break
        elif choice == "List Invoices":
            list_invoices_menu(invoice_service)
        elif choice == "New Invoice From Job":
            create_invoice_menu(invoice_service)
