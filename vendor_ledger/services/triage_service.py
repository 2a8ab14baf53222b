"""Triage queue for lines that could not be matched to the catalog."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.base import utcnow
from vendor_ledger.db.models import CatalogItem, TriageItem, TriageStatus
from vendor_ledger.repositories.catalog import CatalogItemRepository
from vendor_ledger.repositories.triage import TriageRepository
from vendor_ledger.schemas.reconciliation import TriageCandidate
from vendor_ledger.schemas.triage import TriageItemRead

from .exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class TriageService:
    """Organization-scoped triage queue operations."""

    def __init__(self, session: Session, organization: OrganizationContext) -> None:
        self.session = session
        self.organization = organization
        self.items = TriageRepository(session)
        self.catalog = CatalogItemRepository(session)

    def upsert(
        self,
        vendor_id: str,
        candidates: Sequence[TriageCandidate],
        originating_batch_id: str | None,
    ) -> list[TriageItem]:
        """Insert or refresh pending rows keyed by (vendor, item code).

        Runs inside a savepoint and flushes but does not commit; a failure
        rolls back only the triage writes.
        """

        latest: dict[str, TriageCandidate] = {}
        for candidate in candidates:
            latest[candidate.item_code] = candidate
        if not latest:
            return []

        rows: list[TriageItem] = []
        with self.session.begin_nested():
            for code, candidate in latest.items():
                row = self.items.get_by_key(self.organization, vendor_id, code)
                if row is None:
                    row = TriageItem(
                        organization_id=self.organization.organization_id,
                        vendor_id=vendor_id,
                        item_code=code,
                        status=TriageStatus.PENDING,
                    )
                    self.session.add(row)
                row.description = candidate.description
                row.unit_price = candidate.unit_price
                row.unit_of_measure = candidate.unit_of_measure
                row.originating_batch_id = originating_batch_id
                rows.append(row)
            self.session.flush()
        logger.debug("Upserted %d triage item(s) for vendor %s", len(rows), vendor_id)
        return rows

    def list(
        self,
        status: TriageStatus | None = TriageStatus.PENDING,
        vendor_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[TriageItemRead]:
        rows = self.items.list_by_status(self.organization, status, vendor_id, offset=offset, limit=limit)
        return [TriageItemRead.model_validate(row) for row in rows]

    def resolve(
        self,
        triage_id: str,
        catalog_item_id: str | None = None,
        user_id: str | None = None,
    ) -> TriageItemRead:
        """Link a pending item to a catalog entry, creating the entry when none is given."""

        item = self._pending(triage_id)
        if catalog_item_id is not None:
            catalog_item = self.catalog.get_for_organization(self.organization, catalog_item_id)
            if catalog_item is None:
                raise NotFoundError("Catalog item not found")
        else:
            catalog_item = CatalogItem(
                organization_id=self.organization.organization_id,
                item_code=item.item_code,
                name=item.description or item.item_code,
                unit_of_measure=item.unit_of_measure,
                current_price=item.unit_price,
            )
            self.session.add(catalog_item)
            self.session.flush()

        self._transition(item, TriageStatus.RESOLVED, user_id)
        item.resolved_catalog_item_id = catalog_item.id
        self.session.commit()
        self.session.refresh(item)
        return TriageItemRead.model_validate(item)

    def dismiss(self, triage_id: str, user_id: str | None = None) -> TriageItemRead:
        item = self._pending(triage_id)
        self._transition(item, TriageStatus.DISMISSED, user_id)
        self.session.commit()
        self.session.refresh(item)
        return TriageItemRead.model_validate(item)

    def _pending(self, triage_id: str) -> TriageItem:
        item = self.items.get_for_organization(self.organization, triage_id)
        if item is None:
            raise NotFoundError("Triage item not found")
        if item.status is not TriageStatus.PENDING:
            raise ConflictError(f"Triage item is already {item.status.value}")
        return item

    def _transition(self, item: TriageItem, status: TriageStatus, user_id: str | None) -> None:
        # the key includes status, so an older row already holding it must go first
        previous = self.items.get_by_key(self.organization, item.vendor_id, item.item_code, status)
        if previous is not None:
            self.session.delete(previous)
            self.session.flush()
        item.status = status
        item.resolved_at = utcnow()
        item.resolved_by = user_id
