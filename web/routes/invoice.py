from __future__ import annotations

import datetime as dt
import json
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from garage.errors import InvalidInputError
from garage.models.job import LaborSettings
from garage.models.sync import SyncRequest
from web.deps import get_invoice_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices")


class CreateInvoiceRequest(BaseModel):
    job_id: str
    customer_id: str | None = None
    date: dt.date | None = None
    due_date: dt.date | None = None
    tax_rate: float | str | None = 0
    discount_amount: float | str | None = 0
    notes: str = ""
    auto_sync_enabled: bool = True
    labor_settings: LaborSettings | None = None
    line_items: list[dict] = []


async def _json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise InvalidInputError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


@router.get("")
async def list_invoices(request: Request, job_id: str | None = None, limit: int = 50, offset: int = 0):
    service = get_invoice_service(request)
    invoices = service.list_invoices(job_id=job_id, limit=limit, offset=offset)
    return [invoice.model_dump(mode="json") for invoice in invoices]


@router.post("", status_code=201)
async def create_invoice(request: Request, payload: CreateInvoiceRequest):
    logger.info("POST /api/invoices: job=%s", payload.job_id)
    service = get_invoice_service(request)
    invoice = service.create_invoice_from_job(
        job_id=payload.job_id,
        customer_id=payload.customer_id,
        date=payload.date,
        due_date=payload.due_date,
        tax_rate=payload.tax_rate,
        discount_amount=payload.discount_amount,
        notes=payload.notes,
        auto_sync_enabled=payload.auto_sync_enabled,
        labor_settings=payload.labor_settings,
        extra_items=payload.line_items,
    )
    return invoice.model_dump(mode="json")


@router.get("/{invoice_id}")
async def get_invoice(request: Request, invoice_id: str):
    service = get_invoice_service(request)
    return service.get_invoice(invoice_id).model_dump(mode="json")


@router.put("/{invoice_id}")
async def update_invoice(request: Request, invoice_id: str):
    body = await _json_object(request)
    line_items = body.pop("line_items", None)
    if line_items is not None and not isinstance(line_items, list):
        raise InvalidInputError("line_items must be a list")
    logger.info("PUT /api/invoices/%s: fields=%s items=%s", invoice_id, sorted(body), line_items is not None)
    service = get_invoice_service(request)
    invoice = service.update_invoice(invoice_id, patch=body or None, line_items=line_items)
    return invoice.model_dump(mode="json")


@router.delete("/{invoice_id}")
async def delete_invoice(request: Request, invoice_id: str):
    service = get_invoice_service(request)
    service.delete_invoice(invoice_id)
    return {"message": "Invoice deleted successfully"}


@router.post("/{invoice_id}/sync")
async def sync_invoice(request: Request, invoice_id: str, payload: SyncRequest | None = None):
    payload = payload or SyncRequest()
    logger.info(
        "POST /api/invoices/%s/sync: force=%s preserve_custom=%s lock_modified=%s",
        invoice_id,
        payload.force_sync,
        payload.preserve_custom_items,
        payload.lock_modified_items,
    )
    service = get_invoice_service(request)
    result = service.sync_invoice(invoice_id, options=payload, labor_settings=payload.labor_settings)
    if result.skipped:
        return {"success": False, "message": result.message}
    body = result.model_dump(mode="json", include={"success", "message", "changes"})
    if result.invoice is not None:
        body["revision_number"] = result.invoice.revision_number
    return body


@router.post("/{invoice_id}/labor")
async def change_labor_settings(request: Request, invoice_id: str, labor_settings: LaborSettings):
    service = get_invoice_service(request)
    invoice = service.resync_labor(invoice_id, labor_settings)
    return invoice.model_dump(mode="json")


@router.get("/{invoice_id}/sync-status")
async def sync_status(request: Request, invoice_id: str):
    service = get_invoice_service(request)
    return service.sync_status(invoice_id).model_dump(mode="json")


@router.get("/{invoice_id}/changes")
async def list_changes(request: Request, invoice_id: str):
    service = get_invoice_service(request)
    return [entry.model_dump(mode="json") for entry in service.list_changes(invoice_id)]
