"""Repository for vendor entities."""
from __future__ import annotations

from typing import Sequence

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import Vendor

from .base import OrganizationScopedRepository


class VendorRepository(OrganizationScopedRepository[Vendor]):
    """Vendor repository with organization-scoped helpers."""

    model = Vendor

    def list_for_organization(self, organization: OrganizationContext) -> Sequence[Vendor]:
        return self.session.scalars(self._scoped(organization).order_by(self.model.name)).all()

    def get_by_name(self, organization: OrganizationContext, name: str) -> Vendor | None:
        statement = self._scoped(organization).where(self.model.name == name)
        return self.session.scalar(statement)

    def ensure(self, organization: OrganizationContext, vendor_id: str, name: str) -> Vendor:
        """Return the vendor, registering it on first sight.

        Vendor ids are global; an id already registered by another
        organization raises ``OrganizationMismatchError``.
        """

        vendor = self.get(vendor_id)
        if vendor is not None:
            organization.ensure_entity_belongs(vendor)
            return vendor
        vendor = Vendor(id=vendor_id, organization_id=organization.organization_id, name=name)
        self.add(vendor)
        self.session.flush()
        return vendor
