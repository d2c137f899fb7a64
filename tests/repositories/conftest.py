import pytest
from sqlalchemy import Connection

from garage.repositories.sqlalchemy import SQLAlchemyInvoiceRepository, SQLAlchemyJobRepository
from tests.conftest import _sample_job, insert_job


@pytest.fixture()
def invoice_repo(db_connection: Connection) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_connection)


@pytest.fixture()
def job_repo(db_connection: Connection) -> SQLAlchemyJobRepository:
    return SQLAlchemyJobRepository(db_connection)


@pytest.fixture()
def stored_job(db_connection: Connection):
    return insert_job(db_connection, _sample_job())
