"""Pydantic schemas for organization operations."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    """Payload to create a new organization."""

    name: str = Field(..., min_length=1, max_length=255)


class OrganizationRead(BaseModel):
    """Organization representation returned by APIs."""

    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class VendorRead(BaseModel):
    """Vendor registered under an organization by its first upload."""

    id: str
    organization_id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
