from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from garage.models.change_log import InvoiceChangeLog
from garage.models.invoice import Invoice, InvoiceLineItem, InvoiceTotals
from garage.models.job import Job


class JobRepository(ABC):
    @abstractmethod
    def get_by_id(self, job_id: str) -> Job | None: ...


class InvoiceRepository(ABC):
    """Invoice store. Write methods do not commit on their own.

    Callers group writes inside ``transaction()``, which commits on success and
    rolls back every write on failure.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]: ...

    @abstractmethod
    def get_by_id(self, invoice_id: str) -> Invoice | None: ...

    @abstractmethod
    def list_all(self, limit: int = 50, offset: int = 0) -> list[Invoice]: ...

    @abstractmethod
    def list_by_job(self, job_id: str) -> list[Invoice]: ...

    @abstractmethod
    def create(self, invoice: Invoice) -> None: ...

    @abstractmethod
    def line_item_owners(self, item_ids: list[str]) -> dict[str, str]: ...

    @abstractmethod
    def replace_line_items(self, invoice_id: str, items: list[InvoiceLineItem]) -> None: ...

    @abstractmethod
    def update_totals(self, invoice_id: str, totals: InvoiceTotals, expected_revision: int) -> None: ...

    @abstractmethod
    def update_fields(self, invoice_id: str, fields: dict[str, object], expected_revision: int) -> None: ...

    @abstractmethod
    def delete(self, invoice_id: str) -> None: ...

    @abstractmethod
    def append_change_log(self, entry: InvoiceChangeLog) -> None: ...

    @abstractmethod
    def list_change_logs(self, invoice_id: str) -> list[InvoiceChangeLog]: ...
