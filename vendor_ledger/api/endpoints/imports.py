"""Vendor document import endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query

from vendor_ledger.api.dependencies import get_import_history_service, get_ingestion_service
from vendor_ledger.api.errors import map_service_error
from vendor_ledger.schemas.import_batch import (
    ImportBatchDetail,
    ImportBatchRead,
    InvoiceHeaderRead,
    InvoiceVerifyPayload,
    SweepResponse,
)
from vendor_ledger.schemas.ingest import ImportUploadPayload, IngestResult
from vendor_ledger.services.exceptions import ServiceError
from vendor_ledger.services.import_history_service import ImportHistoryService
from vendor_ledger.services.ingestion_service import IngestionService

router = APIRouter(prefix="/organizations/{organization_id}", tags=["imports"])


@router.post("/vendors/{vendor_id}/imports", response_model=IngestResult)
def ingest_document(
    vendor_id: str,
    payload: ImportUploadPayload,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestResult:
    """Ingest a vendor document; a failed pipeline run is reported in the body."""

    try:
        return service.ingest(payload.to_request(vendor_id), idempotency_key=idempotency_key)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.get("/vendors/{vendor_id}/imports", response_model=list[ImportBatchRead])
def list_vendor_imports(
    vendor_id: str,
    match_key: str | None = Query(default=None, description="Invoice number or file name"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    service: ImportHistoryService = Depends(get_import_history_service),
) -> list[ImportBatchRead]:
    """List a vendor's import batches, newest version first."""

    return service.list_batches_for_vendor(vendor_id, match_key=match_key, offset=offset, limit=limit)


@router.post("/imports/sweep", response_model=SweepResponse)
def sweep_stale_imports(
    service: ImportHistoryService = Depends(get_import_history_service),
) -> SweepResponse:
    """Fail batches left in processing past the configured age."""

    return SweepResponse(failed_batch_ids=service.sweep_stale_batches())


@router.get("/imports/{batch_id}", response_model=ImportBatchDetail)
def get_import(
    batch_id: str,
    service: ImportHistoryService = Depends(get_import_history_service),
) -> ImportBatchDetail:
    try:
        return service.get_batch(batch_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.get("/imports/{batch_id}/chain", response_model=list[ImportBatchRead])
def get_import_chain(
    batch_id: str,
    service: ImportHistoryService = Depends(get_import_history_service),
) -> list[ImportBatchRead]:
    """Return the version chain ending at this batch, oldest first."""

    try:
        return service.version_chain(batch_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.post("/invoices/{invoice_id}/verify", response_model=InvoiceHeaderRead)
def verify_invoice(
    invoice_id: str,
    payload: InvoiceVerifyPayload,
    service: ImportHistoryService = Depends(get_import_history_service),
) -> InvoiceHeaderRead:
    """Mark a completed invoice as checked by a person."""

    try:
        return service.verify_invoice(invoice_id, payload.verified_by)
    except ServiceError as exc:
        raise map_service_error(exc) from exc
