"""Schemas for the triage queue."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from vendor_ledger.db.models import TriageStatus


class TriageItemRead(BaseModel):
    """Queue entry awaiting, or past, human matching."""

    id: str
    vendor_id: str
    item_code: str
    description: str | None
    unit_price: float | None
    unit_of_measure: str | None
    status: TriageStatus
    originating_batch_id: str | None
    resolved_catalog_item_id: str | None
    resolved_at: datetime | None
    resolved_by: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TriageResolveRequest(BaseModel):
    """Link a triage item to an existing catalog item or create one from it."""

    catalog_item_id: str | None = Field(default=None, max_length=36)
    user_id: str | None = Field(default=None, max_length=64)


class TriageDismissRequest(BaseModel):
    user_id: str | None = Field(default=None, max_length=64)
