from garage.repositories.base import InvoiceRepository, JobRepository


def get_invoice_repository() -> InvoiceRepository:
    from garage.db import get_connection
    from garage.repositories.sqlalchemy import SQLAlchemyInvoiceRepository

    return SQLAlchemyInvoiceRepository(get_connection())


def get_job_repository() -> JobRepository:
    from garage.db import get_connection
    from garage.repositories.sqlalchemy import SQLAlchemyJobRepository

    return SQLAlchemyJobRepository(get_connection())
