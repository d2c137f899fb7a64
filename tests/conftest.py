"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from garage.models.invoice import Invoice, InvoiceLineItem, LineItemType, SourceType
from garage.models.job import Job, JobStep, LaborSettings, Part

# Matches Alembic head: 8b4e6d1f0a23 (create invoices)
SCHEMA_DDL = """
CREATE TABLE jobs (
    id VARCHAR(32) PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE job_steps (
    id VARCHAR(32) PRIMARY KEY,
    job_id VARCHAR(32) NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    title TEXT NOT NULL DEFAULT '',
    actual_hours NUMERIC,
    estimated_hours NUMERIC,
    step_order INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE parts (
    id VARCHAR(32) PRIMARY KEY,
    job_id VARCHAR(32) NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    name TEXT NOT NULL DEFAULT '',
    part_number TEXT NOT NULL DEFAULT '',
    quantity NUMERIC,
    price NUMERIC
);

CREATE TABLE invoices (
    id VARCHAR(32) PRIMARY KEY,
    date DATE,
    due_date DATE,
    paid_date DATE,
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    customer_id VARCHAR(32),
    job_id VARCHAR(32) REFERENCES jobs(id),
    subtotal NUMERIC NOT NULL DEFAULT 0,
    tax_rate NUMERIC NOT NULL DEFAULT 0,
    tax_amount NUMERIC NOT NULL DEFAULT 0,
    discount_amount NUMERIC NOT NULL DEFAULT 0,
    amount NUMERIC NOT NULL DEFAULT 0,
    amount_paid NUMERIC NOT NULL DEFAULT 0,
    notes TEXT NOT NULL DEFAULT '',
    revision_number INTEGER NOT NULL DEFAULT 1,
    auto_sync_enabled BOOLEAN NOT NULL DEFAULT 1,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE TABLE invoice_line_items (
    id VARCHAR(32) PRIMARY KEY,
    invoice_id VARCHAR(32) NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    source_type VARCHAR(20),
    source_id VARCHAR(32),
    type VARCHAR(20) NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    quantity NUMERIC NOT NULL DEFAULT 0,
    rate NUMERIC NOT NULL DEFAULT 0,
    amount NUMERIC NOT NULL DEFAULT 0,
    taxable BOOLEAN NOT NULL DEFAULT 1,
    is_locked BOOLEAN NOT NULL DEFAULT 0
);

CREATE TABLE invoice_change_logs (
    id VARCHAR(32) PRIMARY KEY,
    invoice_id VARCHAR(32) NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    change_type VARCHAR(20) NOT NULL,
    changed_by VARCHAR(255) NOT NULL DEFAULT 'system',
    changes TEXT NOT NULL DEFAULT '{}',
    created_at DATETIME NOT NULL
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


def insert_job(conn: Connection, job: Job) -> Job:
    """Write a job with its steps and parts straight into the test DB."""
    conn.execute(text("INSERT INTO jobs (id, title) VALUES (:id, :title)"), {"id": job.id, "title": job.title})
    for order, step in enumerate(job.job_steps):
        conn.execute(
            text(
                "INSERT INTO job_steps (id, job_id, title, actual_hours, estimated_hours, step_order) "
                "VALUES (:id, :job_id, :title, :actual_hours, :estimated_hours, :step_order)"
            ),
            {
                "id": step.id,
                "job_id": job.id,
                "title": step.title,
                "actual_hours": str(step.actual_hours),
                "estimated_hours": str(step.estimated_hours),
                "step_order": order,
            },
        )
    for part in job.parts:
        conn.execute(
            text(
                "INSERT INTO parts (id, job_id, name, part_number, quantity, price) "
                "VALUES (:id, :job_id, :name, :part_number, :quantity, :price)"
            ),
            {
                "id": part.id,
                "job_id": job.id,
                "name": part.name,
                "part_number": part.part_number,
                "quantity": str(part.quantity),
                "price": str(part.price),
            },
        )
    conn.commit()
    return job


def _sample_job(**overrides) -> Job:
    defaults = dict(
        id="JOB1",
        title="Brake job",
        job_steps=[
            JobStep(id="S1", title="Pads", actual_hours=Decimal("1.5")),
            JobStep(id="S2", title="Rotors", actual_hours=Decimal("1")),
        ],
        parts=[
            Part(id="P1", name="Pads", part_number="BP-1", quantity=2, price=Decimal("40")),
            Part(id="P2", name="Rotor", part_number="", quantity=1, price=Decimal("90")),
        ],
    )
    defaults.update(overrides)
    return Job(**defaults)


def _hourly(rate: str = "100", **overrides) -> LaborSettings:
    defaults = dict(hourly_rate=Decimal(rate), description="Labor", consolidate_labor=True)
    defaults.update(overrides)
    return LaborSettings(**defaults)


def _item(item_id: str, source_type: SourceType | None, item_type: LineItemType, amount: str, **overrides):
    defaults = dict(
        id=item_id,
        source_type=source_type,
        type=item_type,
        description=item_id,
        quantity=Decimal(1),
        rate=Decimal(amount),
        amount=Decimal(amount),
    )
    defaults.update(overrides)
    return InvoiceLineItem(**defaults)


def _sample_invoice(**overrides) -> Invoice:
    defaults = dict(
        id="INV-1",
        job_id="JOB1",
        revision_number=1,
        auto_sync_enabled=True,
        line_items=[],
    )
    defaults.update(overrides)
    return Invoice(**defaults)
