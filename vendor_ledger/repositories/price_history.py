"""Repository for the append-only price ledger."""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import Row, case, func, select

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import CatalogItem, ImportBatch, InvoiceHeader, LineItem, PriceHistoryRecord

from .base import OrganizationScopedRepository


class PriceHistoryRepository(OrganizationScopedRepository[PriceHistoryRecord]):
    """Reads and appends; the ORM refuses updates and deletes on this model."""

    model = PriceHistoryRecord

    def latest_for_item(self, catalog_item_id: str) -> PriceHistoryRecord | None:
        statement = (
            self._base_query()
            .where(self.model.catalog_item_id == catalog_item_id)
            .order_by(self.model.sequence.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def list_for_item(
        self,
        organization: OrganizationContext,
        catalog_item_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[PriceHistoryRecord]:
        statement = self._scoped(organization).where(self.model.catalog_item_id == catalog_item_id)
        if start is not None:
            statement = statement.where(self.model.effective_date >= start)
        if end is not None:
            statement = statement.where(self.model.effective_date < end)
        return self.session.scalars(statement.order_by(self.model.sequence)).all()

    def documentation_counts(self, organization: OrganizationContext) -> tuple[int, int, int]:
        """Return (total, linked to line item and batch, linked to batch only)."""

        statement = select(
            func.count(self.model.id),
            func.sum(
                case(
                    (
                        self.model.line_item_id.is_not(None) & self.model.import_batch_id.is_not(None),
                        1,
                    ),
                    else_=0,
                )
            ),
            func.sum(
                case(
                    (
                        self.model.line_item_id.is_(None) & self.model.import_batch_id.is_not(None),
                        1,
                    ),
                    else_=0,
                )
            ),
        ).where(self.model.organization_id == organization.organization_id)
        total, documented, batch_only = self.session.execute(statement).one()
        return int(total or 0), int(documented or 0), int(batch_only or 0)

    def audit_trail(self, organization: OrganizationContext, record_id: str) -> Row | None:
        """One ledger row joined to the catalog item and whatever document produced it."""

        statement = (
            select(self.model, CatalogItem, ImportBatch, InvoiceHeader, LineItem)
            .join(CatalogItem, CatalogItem.id == self.model.catalog_item_id)
            .outerjoin(ImportBatch, ImportBatch.id == self.model.import_batch_id)
            .outerjoin(InvoiceHeader, InvoiceHeader.import_batch_id == self.model.import_batch_id)
            .outerjoin(LineItem, LineItem.id == self.model.line_item_id)
            .where(self.model.organization_id == organization.organization_id)
            .where(self.model.id == record_id)
        )
        return self.session.execute(statement).one_or_none()
