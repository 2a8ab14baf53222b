"""Catalog price ledger endpoints."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from vendor_ledger.api.dependencies import get_price_history_service
from vendor_ledger.api.errors import map_service_error
from vendor_ledger.schemas.price_history import PriceAuditSummary, PriceAuditTrail, PriceHistoryRead
from vendor_ledger.services.exceptions import ServiceError
from vendor_ledger.services.price_history_service import PriceHistoryService

router = APIRouter(prefix="/organizations/{organization_id}", tags=["price-history"])


@router.get("/catalog-items/{catalog_item_id}/price-history", response_model=list[PriceHistoryRead])
def list_price_history(
    catalog_item_id: str,
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    service: PriceHistoryService = Depends(get_price_history_service),
) -> list[PriceHistoryRead]:
    """List ledger rows for a catalog item, optionally within a date range."""

    try:
        return service.list_price_history(catalog_item_id, start=start, end=end)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.get("/price-audit", response_model=PriceAuditSummary)
def price_audit(
    service: PriceHistoryService = Depends(get_price_history_service),
) -> PriceAuditSummary:
    return service.price_audit_summary()


@router.get("/price-history/{record_id}/audit-trail", response_model=PriceAuditTrail)
def price_audit_trail(
    record_id: str,
    service: PriceHistoryService = Depends(get_price_history_service),
) -> PriceAuditTrail:
    """Show the import batch, invoice and line behind one ledger row."""

    try:
        return service.price_audit_trail(record_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc
