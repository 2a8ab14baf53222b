"""Read models for import batches, invoice headers and line items."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from vendor_ledger.db.models import (
    DiscrepancyType,
    HeaderStatus,
    ImportBatchStatus,
    MatchBasis,
    SourceKind,
)


class ImportBatchRead(BaseModel):
    """Import batch as listed in version history views."""

    id: str
    organization_id: str
    vendor_id: str
    source_kind: SourceKind
    file_name: str
    file_ref: str | None
    document_hash: str
    invoice_number: str
    invoice_date: date
    match_basis: MatchBasis
    match_key: str
    version: int
    supersedes_id: str | None
    superseded_at: datetime | None
    superseded_by: str | None
    status: ImportBatchStatus
    item_count: int
    price_change_count: int
    new_item_count: int
    created_by: str | None
    error_message: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LineItemRead(BaseModel):
    """Matched invoice line."""

    id: str
    catalog_item_id: str
    vendor_code: str
    description: str | None
    quantity_ordered: float
    quantity_received: float
    unit_price: float
    total_price: float
    previous_unit_price: float | None
    match_confidence: float | None
    discrepancy_type: DiscrepancyType
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class InvoiceHeaderRead(BaseModel):
    """Invoice header owned by a batch."""

    id: str
    import_batch_id: str
    vendor_id: str
    invoice_date: date
    invoice_number: str
    total_amount: float
    document_hash: str
    status: HeaderStatus
    verified_by: str | None = None
    verified_at: datetime | None = None
    line_items: list[LineItemRead]

    model_config = ConfigDict(from_attributes=True)


class ImportBatchDetail(ImportBatchRead):
    """Batch together with its invoice header and lines."""

    header: InvoiceHeaderRead | None


class SweepResponse(BaseModel):
    """Batches moved out of ``processing`` by the stale sweep."""

    failed_batch_ids: list[str]


class InvoiceVerifyPayload(BaseModel):
    """Who checked the invoice."""

    verified_by: str = Field(..., min_length=1, max_length=64)
