from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from garage.db import initialize_db
from garage.errors import ConcurrentModificationError, InvalidInputError, NotFoundError, PersistenceError
from garage.logging import configure_logging, reconfigure
from web.deps import DBConnectionMiddleware
from web.routes.invoice import router as invoice_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    initialize_db()
    # Alembic's fileConfig replaces the root handlers.
    reconfigure()
    logger.info("Application started")
    yield


app = FastAPI(title="Garage invoices", lifespan=lifespan)

app.add_middleware(DBConnectionMiddleware)

app.include_router(invoice_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse({"detail": str(exc)}, status_code=404)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": str(exc)}, status_code=400)


@app.exception_handler(ConcurrentModificationError)
async def conflict_handler(request: Request, exc: ConcurrentModificationError):
    return JSONResponse({"detail": str(exc)}, status_code=409)


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": "Failed to save invoice"}, status_code=500)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


@app.get("/health")
async def health():
    return {"status": "ok"}
