"""Triage queue endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query

from vendor_ledger.api.dependencies import get_triage_service
from vendor_ledger.api.errors import map_service_error
from vendor_ledger.db.models import TriageStatus
from vendor_ledger.schemas.triage import TriageDismissRequest, TriageItemRead, TriageResolveRequest
from vendor_ledger.services.exceptions import ServiceError
from vendor_ledger.services.triage_service import TriageService

router = APIRouter(prefix="/organizations/{organization_id}/triage", tags=["triage"])


@router.get("", response_model=list[TriageItemRead])
def list_triage(
    status: TriageStatus | None = Query(default=TriageStatus.PENDING),
    vendor_id: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    service: TriageService = Depends(get_triage_service),
) -> list[TriageItemRead]:
    """List triage items, pending ones by default."""

    return service.list(status=status, vendor_id=vendor_id, offset=offset, limit=limit)


@router.post("/{triage_id}/resolve", response_model=TriageItemRead)
def resolve_triage_item(
    triage_id: str,
    payload: TriageResolveRequest = Body(default_factory=TriageResolveRequest),
    service: TriageService = Depends(get_triage_service),
) -> TriageItemRead:
    """Link a pending item to a catalog entry, creating one when none is given."""

    try:
        return service.resolve(triage_id, catalog_item_id=payload.catalog_item_id, user_id=payload.user_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.post("/{triage_id}/dismiss", response_model=TriageItemRead)
def dismiss_triage_item(
    triage_id: str,
    payload: TriageDismissRequest = Body(default_factory=TriageDismissRequest),
    service: TriageService = Depends(get_triage_service),
) -> TriageItemRead:
    try:
        return service.dismiss(triage_id, user_id=payload.user_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc
