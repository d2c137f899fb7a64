from decimal import Decimal
from unittest.mock import MagicMock, patch

from garage.errors import NotFoundError
from garage.models.invoice import LineItemType, SourceType
from garage.models.sync import SYNC_SUCCESS_MESSAGE, SyncChanges, SyncResult
from tests.conftest import _item, _sample_invoice


def _invoice(**overrides):
    defaults = dict(
        subtotal="265",
        amount="265",
        line_items=[
            _item("L1", SourceType.JOB_LABOR, LineItemType.LABOR, "250"),
            _item("F1", SourceType.FEE, LineItemType.CUSTOM, "15", is_locked=True),
        ],
    )
    defaults.update(overrides)
    return _sample_invoice(**defaults)


class TestListInvoicesMenu:
    @patch("garage.cli.invoice_menu.questionary")
    def test_empty_list(self, mock_q):
        from garage.cli.invoice_menu import list_invoices_menu

        service = MagicMock()
        service.list_invoices.return_value = []
        list_invoices_menu(service)
        mock_q.select.assert_not_called()

    @patch("garage.cli.invoice_menu.questionary")
    def test_select_back(self, mock_q):
        from garage.cli.invoice_menu import list_invoices_menu

        service = MagicMock()
        service.list_invoices.return_value = [_invoice()]
        mock_q.select.return_value.ask.return_value = "Back"
        list_invoices_menu(service)

    @patch("garage.cli.invoice_menu.questionary")
    def test_select_invoice_then_back(self, mock_q):
        from garage.cli.invoice_menu import list_invoices_menu

        service = MagicMock()
        service.list_invoices.return_value = [_invoice()]
        mock_q.select.return_value.ask.side_effect = ["1. INV-1", "Back"]
        list_invoices_menu(service)


class TestSyncInvoiceMenu:
    @patch("garage.cli.invoice_menu.questionary")
    def test_sync_with_options(self, mock_q):
        from garage.cli.invoice_menu import sync_invoice_menu

        invoice = _invoice()
        synced = _invoice(revision_number=2)
        service = MagicMock()
        service.sync_invoice.return_value = SyncResult(
            success=True,
            message=SYNC_SUCCESS_MESSAGE,
            changes=SyncChanges(labor_hours=Decimal("2.5"), parts_count=0, new_subtotal=250, new_total=250),
            invoice=synced,
        )
        mock_q.confirm.return_value.ask.side_effect = [True, True]

        result = sync_invoice_menu(invoice, service)

        assert result is synced
        options = service.sync_invoice.call_args.kwargs["options"]
        assert options.force_sync is False
        assert options.preserve_custom_items is True
        assert options.lock_modified_items is True

    @patch("garage.cli.invoice_menu.questionary")
    def test_disabled_and_not_forced(self, mock_q):
        from garage.cli.invoice_menu import sync_invoice_menu

        invoice = _invoice(auto_sync_enabled=False)
        service = MagicMock()
        mock_q.confirm.return_value.ask.return_value = False

        assert sync_invoice_menu(invoice, service) is invoice
        service.sync_invoice.assert_not_called()

    @patch("garage.cli.invoice_menu.questionary")
    def test_disabled_and_forced(self, mock_q):
        from garage.cli.invoice_menu import sync_invoice_menu

        invoice = _invoice(auto_sync_enabled=False)
        service = MagicMock()
        service.sync_invoice.return_value = SyncResult(success=True, message=SYNC_SUCCESS_MESSAGE, invoice=invoice)
        mock_q.confirm.return_value.ask.side_effect = [True, True, False]

        sync_invoice_menu(invoice, service)
        assert service.sync_invoice.call_args.kwargs["options"].force_sync is True

    @patch("garage.cli.invoice_menu.questionary")
    def test_error_is_reported(self, mock_q):
        from garage.cli.invoice_menu import sync_invoice_menu

        invoice = _invoice()
        service = MagicMock()
        service.sync_invoice.side_effect = NotFoundError("job", "JOB1")
        mock_q.confirm.return_value.ask.side_effect = [True, False]

        assert sync_invoice_menu(invoice, service) is invoice


class TestInvoiceActionsMenu:
    @patch("garage.cli.invoice_menu.questionary")
    def test_toggle_auto_sync(self, mock_q):
        from garage.cli.invoice_menu import invoice_actions_menu

        invoice = _invoice()
        service = MagicMock()
        service.update_invoice.return_value = _invoice(auto_sync_enabled=False, revision_number=2)
        mock_q.select.return_value.ask.side_effect = ["Disable Auto-Sync", "Back"]

        invoice_actions_menu(invoice, service)

        service.update_invoice.assert_called_once_with("INV-1", {"auto_sync_enabled": False}, changed_by="cli")

    @patch("garage.cli.invoice_menu.questionary")
    def test_history_then_back(self, mock_q):
        from garage.cli.invoice_menu import invoice_actions_menu

        service = MagicMock()
        service.list_changes.return_value = []
        mock_q.select.return_value.ask.side_effect = ["Change History", "Back"]

        invoice_actions_menu(_invoice(), service)
        service.list_changes.assert_called_once_with("INV-1")

    @patch("garage.cli.invoice_menu.questionary")
    def test_delete_confirmed(self, mock_q):
        from garage.cli.invoice_menu import invoice_actions_menu

        service = MagicMock()
        mock_q.select.return_value.ask.return_value = "Delete"
        mock_q.confirm.return_value.ask.return_value = True

        invoice_actions_menu(_invoice(), service)
        service.delete_invoice.assert_called_once_with("INV-1")

    @patch("garage.cli.invoice_menu.console")
    @patch("garage.cli.invoice_menu.questionary")
    def test_delete_error_is_reported(self, mock_q, mock_console):
        from garage.cli.invoice_menu import invoice_actions_menu

        service = MagicMock()
        service.delete_invoice.side_effect = NotFoundError("Invoice", "INV-1")
        mock_q.select.return_value.ask.return_value = "Delete"
        mock_q.confirm.return_value.ask.return_value = True

        invoice_actions_menu(_invoice(), service)

        calls = mock_console.print.call_args_list
        printed = [call.args[0] for call in calls if call.args and isinstance(call.args[0], str)]
        assert any("not found" in line for line in printed)
        assert not any("Invoice deleted" in line for line in printed)


class TestCreateInvoiceMenu:
    @patch("garage.cli.invoice_menu.questionary")
    def test_cancel_without_job(self, mock_q):
        from garage.cli.invoice_menu import create_invoice_menu

        service = MagicMock()
        mock_q.text.return_value.ask.return_value = ""
        create_invoice_menu(service)
        service.create_invoice_from_job.assert_not_called()

    @patch("garage.cli.invoice_menu.questionary")
    def test_create(self, mock_q):
        from garage.cli.invoice_menu import create_invoice_menu

        service = MagicMock()
        service.create_invoice_from_job.return_value = _invoice()
        mock_q.text.return_value.ask.side_effect = ["JOB1", "8.25", ""]
        create_invoice_menu(service)
        service.create_invoice_from_job.assert_called_once_with("JOB1", tax_rate="8.25", notes="", changed_by="cli")
