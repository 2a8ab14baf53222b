"""Organization service handling CRUD operations."""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.repositories.organization import OrganizationRepository
from vendor_ledger.repositories.vendor import VendorRepository
from vendor_ledger.schemas.organization import OrganizationCreate, OrganizationRead, VendorRead

from .exceptions import ConflictError, NotFoundError


class OrganizationService:
    """Service responsible for organization lifecycle actions."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.organizations = OrganizationRepository(session)
        self.vendors = VendorRepository(session)

    def create(self, payload: OrganizationCreate) -> OrganizationRead:
        if self.organizations.get_by_name(payload.name) is not None:
            raise ConflictError("Organization name already exists")
        organization = self.organizations.model(name=payload.name)
        self.session.add(organization)
        try:
            self.session.commit()
        except IntegrityError as exc:  # pragma: no cover - DB constraint enforcement
            self.session.rollback()
            raise ConflictError("Organization name already exists") from exc
        self.session.refresh(organization)
        return OrganizationRead.model_validate(organization)

    def list(self) -> list[OrganizationRead]:
        results = self.organizations.list()
        return [OrganizationRead.model_validate(row) for row in results]

    def get(self, organization_id: str) -> OrganizationRead:
        organization = self.organizations.get(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        return OrganizationRead.model_validate(organization)

    def list_vendors(self, organization: OrganizationContext) -> list[VendorRead]:
        """Vendors the organization has received documents from, by name."""

        results = self.vendors.list_for_organization(organization)
        return [VendorRead.model_validate(row) for row in results]
