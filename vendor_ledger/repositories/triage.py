"""Repository for triage queue entries."""
from __future__ import annotations

from typing import Sequence

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import TriageItem, TriageStatus

from .base import OrganizationScopedRepository


class TriageRepository(OrganizationScopedRepository[TriageItem]):
    """Queue lookups by the (organization, vendor, code, status) key."""

    model = TriageItem

    def get_by_key(
        self,
        organization: OrganizationContext,
        vendor_id: str,
        item_code: str,
        status: TriageStatus = TriageStatus.PENDING,
    ) -> TriageItem | None:
        statement = (
            self._scoped(organization)
            .where(self.model.vendor_id == vendor_id)
            .where(self.model.item_code == item_code)
            .where(self.model.status == status)
        )
        return self.session.scalar(statement)

    def list_by_status(
        self,
        organization: OrganizationContext,
        status: TriageStatus | None = TriageStatus.PENDING,
        vendor_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[TriageItem]:
        statement = self._scoped(organization)
        if status is not None:
            statement = statement.where(self.model.status == status)
        if vendor_id:
            statement = statement.where(self.model.vendor_id == vendor_id)
        statement = statement.order_by(self.model.updated_at.desc()).offset(offset).limit(limit)
        return self.session.scalars(statement).all()
