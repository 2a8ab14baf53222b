"""Schemas for the price ledger projections."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from vendor_ledger.db.models import HeaderStatus, ImportBatchStatus, SourceKind


class PriceHistoryRead(BaseModel):
    """One ledger observation."""

    id: str
    catalog_item_id: str
    vendor_id: str | None
    price: float
    previous_price: float | None
    sequence: int
    effective_date: datetime
    invoice_date: date | None
    source_kind: SourceKind
    line_item_id: str | None
    import_batch_id: str | None

    model_config = ConfigDict(from_attributes=True)


class PriceAuditSummary(BaseModel):
    """How well the organization's price history is tied back to documents."""

    total_records: int
    fully_documented: int
    batch_linked_only: int
    unlinked: int
    documentation_rate: float


class PriceAuditTrail(BaseModel):
    """Provenance of one ledger observation: the batch, invoice and line behind it."""

    price_history_id: str
    catalog_item_id: str
    item_name: str
    item_code: str | None
    vendor_id: str | None
    price: float
    previous_price: float | None
    change_percent: float | None
    sequence: int
    effective_date: datetime
    source_kind: SourceKind
    documentation: str
    import_batch_id: str | None = None
    import_file_name: str | None = None
    import_version: int | None = None
    import_status: ImportBatchStatus | None = None
    imported_at: datetime | None = None
    imported_by: str | None = None
    invoice_header_id: str | None = None
    invoice_number: str | None = None
    invoice_date: date | None = None
    document_hash: str | None = None
    invoice_status: HeaderStatus | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    line_item_id: str | None = None
    quantity_received: float | None = None
    invoice_unit_price: float | None = None
    match_confidence: float | None = None
