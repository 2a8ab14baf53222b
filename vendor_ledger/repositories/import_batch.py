"""Repository for import batches and their version chains."""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import Select, update

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import ImportBatch, ImportBatchStatus, MatchBasis

from .base import OrganizationScopedRepository


class ImportBatchRepository(OrganizationScopedRepository[ImportBatch]):
    """Import batch queries keyed on (organization, vendor, match key)."""

    model = ImportBatch

    def _for_key(
        self,
        organization: OrganizationContext,
        vendor_id: str,
        match_basis: MatchBasis,
        match_key: str,
    ) -> Select[tuple[ImportBatch]]:
        return (
            self._scoped(organization)
            .where(self.model.vendor_id == vendor_id)
            .where(self.model.match_basis == match_basis)
            .where(self.model.match_key == match_key)
        )

    def list_active_for_key(
        self,
        organization: OrganizationContext,
        vendor_id: str,
        match_basis: MatchBasis,
        match_key: str,
        lock: bool = False,
    ) -> Sequence[ImportBatch]:
        """Return every non-superseded batch for the key, newest version first."""

        statement = (
            self._for_key(organization, vendor_id, match_basis, match_key)
            .where(self.model.status != ImportBatchStatus.SUPERSEDED)
            .order_by(self.model.version.desc())
        )
        if lock:
            statement = statement.with_for_update()
        return self.session.scalars(statement).all()

    def mark_superseded(
        self,
        organization: OrganizationContext,
        batch_ids: Sequence[str],
        superseded_by: str | None,
        at: datetime,
    ) -> int:
        if not batch_ids:
            return 0
        statement = (
            update(self.model)
            .where(self.model.organization_id == organization.organization_id)
            .where(self.model.id.in_(list(batch_ids)))
            .where(self.model.status != ImportBatchStatus.SUPERSEDED)
            .values(
                status=ImportBatchStatus.SUPERSEDED,
                superseded_at=at,
                superseded_by=superseded_by,
                updated_at=at,
            )
            .execution_options(synchronize_session="evaluate")
        )
        result = self.session.execute(statement)
        return result.rowcount or 0

    def list_for_vendor(
        self,
        organization: OrganizationContext,
        vendor_id: str,
        match_key: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[ImportBatch]:
        statement = self._scoped(organization).where(self.model.vendor_id == vendor_id)
        if match_key:
            statement = statement.where(self.model.match_key == match_key)
        statement = (
            statement.order_by(self.model.version.desc(), self.model.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return self.session.scalars(statement).all()

    def list_processing_before(
        self, organization: OrganizationContext, cutoff: datetime
    ) -> Sequence[ImportBatch]:
        statement = (
            self._scoped(organization)
            .where(self.model.status == ImportBatchStatus.PROCESSING)
            .where(self.model.updated_at < cutoff)
            .order_by(self.model.created_at)
        )
        return self.session.scalars(statement).all()
