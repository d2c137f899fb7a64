from __future__ import annotations

import logging

from fastapi import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from garage.db import get_engine
from garage.repositories.sqlalchemy import SQLAlchemyInvoiceRepository, SQLAlchemyJobRepository
from garage.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


class DBConnectionMiddleware:
    """Pure ASGI middleware: creates a single DB connection per request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request.state.db_conn = None
        try:
            await self.app(scope, receive, send)
        finally:
            conn = getattr(request.state, "db_conn", None)
            if conn is not None:
                conn.close()
                logger.debug("DB connection closed for %s %s", request.method, request.url.path)


def _get_conn(request: Request):
    """Lazy per-request connection: created on first use, closed by middleware."""
    if request.state.db_conn is None:
        logger.debug("Creating DB connection for %s %s", request.method, request.url.path)
        request.state.db_conn = get_engine().connect()
    return request.state.db_conn


def get_invoice_service(request: Request) -> InvoiceService:
    conn = _get_conn(request)
    return InvoiceService(SQLAlchemyInvoiceRepository(conn), SQLAlchemyJobRepository(conn))
