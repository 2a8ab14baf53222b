"""Repository for catalog items."""
from __future__ import annotations

from typing import Iterable

from sqlalchemy import update

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import CatalogItem

from .base import OrganizationScopedRepository


class CatalogItemRepository(OrganizationScopedRepository[CatalogItem]):
    """Catalog lookups plus the guarded current-price write."""

    model = CatalogItem

    def lookup(self, organization: OrganizationContext, item_ids: Iterable[str]) -> dict[str, CatalogItem]:
        ids = {item_id for item_id in item_ids if item_id}
        if not ids:
            return {}
        statement = self._scoped(organization).where(self.model.id.in_(ids))
        return {item.id: item for item in self.session.scalars(statement)}

    def get_for_update(self, organization: OrganizationContext, item_id: str) -> CatalogItem | None:
        """Read the row under a lock, refreshing any copy already in the session."""

        statement = (
            self._scoped(organization)
            .where(self.model.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.scalar(statement)

    def compare_and_set_price(
        self,
        item: CatalogItem,
        expected_version: int,
        **values: object,
    ) -> bool:
        """Write price fields only if nobody bumped ``price_version`` since it was read."""

        statement = (
            update(self.model)
            .where(self.model.id == item.id)
            .where(self.model.price_version == expected_version)
            .values(price_version=expected_version + 1, **values)
            .execution_options(synchronize_session="evaluate")
        )
        result = self.session.execute(statement)
        return (result.rowcount or 0) == 1
