"""Organization REST endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from vendor_ledger.api.dependencies import get_organization_context, get_organization_service
from vendor_ledger.api.errors import map_service_error
from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.schemas.organization import OrganizationCreate, OrganizationRead, VendorRead
from vendor_ledger.services.exceptions import ServiceError
from vendor_ledger.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationRead, status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreate,
    service: OrganizationService = Depends(get_organization_service),
) -> OrganizationRead:
    """Create a new organization."""

    try:
        return service.create(payload)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.get("", response_model=list[OrganizationRead])
def list_organizations(
    service: OrganizationService = Depends(get_organization_service),
) -> list[OrganizationRead]:
    """List available organizations."""

    return service.list()


@router.get("/{organization_id}", response_model=OrganizationRead)
def get_organization(
    organization_id: str,
    service: OrganizationService = Depends(get_organization_service),
) -> OrganizationRead:
    try:
        return service.get(organization_id)
    except ServiceError as exc:
        raise map_service_error(exc) from exc


@router.get("/{organization_id}/vendors", response_model=list[VendorRead])
def list_vendors(
    organization: OrganizationContext = Depends(get_organization_context),
    service: OrganizationService = Depends(get_organization_service),
) -> list[VendorRead]:
    """List vendors registered under the organization."""

    return service.list_vendors(organization)
