"""FastAPI dependency utilities for organization-scoped access."""
from __future__ import annotations

from uuid import UUID

from fastapi import Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from vendor_ledger.core.database import get_db_session
from vendor_ledger.core.organization import (
    OrganizationContext,
    OrganizationNotFoundError,
    load_organization_context,
)
from vendor_ledger.core.settings import Settings, get_settings
from vendor_ledger.services.import_history_service import ImportHistoryService
from vendor_ledger.services.ingestion_service import IngestionService
from vendor_ledger.services.organization_service import OrganizationService
from vendor_ledger.services.price_history_service import PriceHistoryService
from vendor_ledger.services.triage_service import TriageService


def organization_id_path(
    organization_id: UUID = Path(..., description="Organization identifier"),
) -> str:
    """Validate organization identifier extracted from path."""

    return str(organization_id)


def get_organization_context(
    organization_id: str = Depends(organization_id_path),
    session: Session = Depends(get_db_session),
) -> OrganizationContext:
    """Resolve an organization context for the request."""

    try:
        return load_organization_context(session, organization_id)
    except OrganizationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def get_organization_service(session: Session = Depends(get_db_session)) -> OrganizationService:
    """Provide organization service with database session."""

    return OrganizationService(session)


def get_ingestion_service(
    organization: OrganizationContext = Depends(get_organization_context),
    session: Session = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> IngestionService:
    """Provide the ingestion pipeline bound to the organization."""

    return IngestionService(session, organization, settings=settings)


def get_import_history_service(
    organization: OrganizationContext = Depends(get_organization_context),
    session: Session = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> ImportHistoryService:
    return ImportHistoryService(session, organization, settings=settings)


def get_price_history_service(
    organization: OrganizationContext = Depends(get_organization_context),
    session: Session = Depends(get_db_session),
) -> PriceHistoryService:
    return PriceHistoryService(session, organization)


def get_triage_service(
    organization: OrganizationContext = Depends(get_organization_context),
    session: Session = Depends(get_db_session),
) -> TriageService:
    return TriageService(session, organization)
