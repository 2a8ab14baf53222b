"""Schemas describing an ingestion request and its outcome."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import Base64Bytes, BaseModel, ConfigDict, Field, field_validator, model_validator

from vendor_ledger.db.models import SourceKind


class CandidateLineItem(BaseModel):
    """Line extracted from a vendor document before reconciliation."""

    item_code: str | None = Field(default=None, max_length=64)
    description: str = Field(..., min_length=1, max_length=500)
    quantity_ordered: Decimal = Field(..., ge=0)
    quantity_received: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    unit_of_measure: str | None = Field(default=None, max_length=32)
    matched_catalog_id: str | None = Field(default=None, max_length=36)
    match_confidence: float | None = Field(default=None, ge=0, le=1)
    discrepancy_notes: str | None = Field(default=None, max_length=1000)

    @field_validator("item_code", "matched_catalog_id", "unit_of_measure")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class IngestRequest(BaseModel):
    """Everything the pipeline needs to ingest one vendor document."""

    vendor_id: str = Field(..., min_length=1, max_length=36)
    vendor_name: str = Field(..., min_length=1, max_length=255)
    document_bytes: bytes
    file_name: str = Field(..., min_length=1, max_length=255)
    file_ref: str | None = Field(default=None, max_length=500)
    invoice_number: str | None = Field(default=None, max_length=64)
    invoice_date: date
    source_kind: SourceKind | None = None
    user_id: str | None = Field(default=None, max_length=64)
    candidate_line_items: list[CandidateLineItem] = Field(default_factory=list)

    @field_validator("invoice_number")
    @classmethod
    def _normalize_invoice_number(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @model_validator(mode="after")
    def _decide_source_kind(self) -> "IngestRequest":
        if self.source_kind is None:
            self.source_kind = SourceKind.from_file_name(self.file_name)
        return self


class ImportUploadPayload(BaseModel):
    """REST body for an upload; the document travels base64 encoded."""

    vendor_name: str = Field(..., min_length=1, max_length=255)
    document_base64: Base64Bytes
    file_name: str = Field(..., min_length=1, max_length=255)
    file_ref: str | None = Field(default=None, max_length=500)
    invoice_number: str | None = Field(default=None, max_length=64)
    invoice_date: date
    source_kind: SourceKind | None = None
    user_id: str | None = Field(default=None, max_length=64)
    candidate_line_items: list[CandidateLineItem] = Field(default_factory=list)

    def to_request(self, vendor_id: str) -> IngestRequest:
        return IngestRequest(
            vendor_id=vendor_id,
            vendor_name=self.vendor_name,
            document_bytes=self.document_base64,
            file_name=self.file_name,
            file_ref=self.file_ref,
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            source_kind=self.source_kind,
            user_id=self.user_id,
            candidate_line_items=self.candidate_line_items,
        )


class IngestResult(BaseModel):
    """Single structured outcome handed back to the caller."""

    import_batch_id: str
    version: int
    is_correction: bool
    invoice_number: str
    matched_count: int = 0
    unmatched_count: int = 0
    price_change_count: int = 0
    shortage_item_count: int = 0
    shortage_value: float = 0.0
    status: Literal["completed", "failed"]
    error_message: str | None = None
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
