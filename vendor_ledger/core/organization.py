"""Organization context utilities and multi-tenancy guardrails."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from vendor_ledger.db.models import Organization


class OrganizationAccessError(RuntimeError):
    """Base error for organization access violations."""


class OrganizationNotFoundError(OrganizationAccessError):
    """Raised when an organization cannot be located."""


class OrganizationMismatchError(OrganizationAccessError):
    """Raised when data access crosses organization boundaries."""


@dataclass(slots=True, frozen=True)
class OrganizationContext:
    """Runtime context binding operations to a specific organization."""

    organization_id: str
    organization_name: str

    def ensure_matches(self, organization_id: str | None) -> None:
        """Assert that the provided organization_id matches the current context."""

        if organization_id is None or organization_id != self.organization_id:
            raise OrganizationMismatchError(
                f"Organization mismatch: expected {self.organization_id}, received {organization_id}"
            )

    def ensure_entity_belongs(self, entity: Any) -> None:
        """Ensure the given ORM entity belongs to the current organization."""

        entity_organization_id = getattr(entity, "organization_id", None)
        if entity_organization_id is not None:
            entity_organization_id = str(entity_organization_id)
        if entity_organization_id != self.organization_id:
            raise OrganizationMismatchError(
                f"{type(entity).__name__} {getattr(entity, 'id', None)} belongs to organization "
                f"{entity_organization_id}, not {self.organization_id}"
            )


def load_organization_context(session: Session, organization_id: str) -> OrganizationContext:
    """Load an organization from persistence and return a context wrapper."""

    organization = session.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFoundError(f"Organization {organization_id} not found")
    return OrganizationContext(organization_id=str(organization.id), organization_name=organization.name)
