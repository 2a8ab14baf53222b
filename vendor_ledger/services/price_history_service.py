"""Price ledger projections."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.repositories.catalog import CatalogItemRepository
from vendor_ledger.repositories.price_history import PriceHistoryRepository
from vendor_ledger.schemas.price_history import PriceAuditSummary, PriceAuditTrail, PriceHistoryRead

from .exceptions import NotFoundError, ValidationError


FULLY_DOCUMENTED = "fully_documented"
BATCH_LINKED = "batch_linked"
UNLINKED = "unlinked"


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _optional_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _change_percent(price: Decimal, previous: Decimal | None) -> float | None:
    if previous is None or previous <= 0:
        return None
    return round(float((price - previous) / previous * 100), 2)


class PriceHistoryService:
    def __init__(self, session: Session, organization: OrganizationContext) -> None:
        self.session = session
        self.organization = organization
        self.catalog = CatalogItemRepository(session)
        self.ledger = PriceHistoryRepository(session)

    def list_price_history(
        self,
        catalog_item_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PriceHistoryRead]:
        """Ledger rows for one item whose effective date falls within [start, end]."""

        if start is not None and end is not None and end < start:
            raise ValidationError("end must not be before start")
        if self.catalog.get_for_organization(self.organization, catalog_item_id) is None:
            raise NotFoundError("Catalog item not found")

        rows = self.ledger.list_for_item(
            self.organization,
            catalog_item_id,
            start=_start_of(start) if start is not None else None,
            end=_start_of(end + timedelta(days=1)) if end is not None else None,
        )
        return [PriceHistoryRead.model_validate(row) for row in rows]

    def price_audit_summary(self) -> PriceAuditSummary:
        total, documented, batch_only = self.ledger.documentation_counts(self.organization)
        rate = round(documented / total * 100, 1) if total else 0.0
        return PriceAuditSummary(
            total_records=total,
            fully_documented=documented,
            batch_linked_only=batch_only,
            unlinked=total - documented - batch_only,
            documentation_rate=rate,
        )

    def price_audit_trail(self, record_id: str) -> PriceAuditTrail:
        """Trace one ledger row back to the import batch, invoice and line that produced it."""

        row = self.ledger.audit_trail(self.organization, record_id)
        if row is None:
            raise NotFoundError("Price history record not found")
        record, item, batch, header, line = row

        if record.line_item_id is not None and record.import_batch_id is not None:
            documentation = FULLY_DOCUMENTED
        elif record.import_batch_id is not None:
            documentation = BATCH_LINKED
        else:
            documentation = UNLINKED

        trail = PriceAuditTrail(
            price_history_id=record.id,
            catalog_item_id=item.id,
            item_name=item.name,
            item_code=item.item_code,
            vendor_id=record.vendor_id,
            price=float(record.price),
            previous_price=_optional_float(record.previous_price),
            change_percent=_change_percent(record.price, record.previous_price),
            sequence=record.sequence,
            effective_date=record.effective_date,
            source_kind=record.source_kind,
            documentation=documentation,
        )
        if batch is not None:
            trail.import_batch_id = batch.id
            trail.import_file_name = batch.file_name
            trail.import_version = batch.version
            trail.import_status = batch.status
            trail.imported_at = batch.created_at
            trail.imported_by = batch.created_by
        if header is not None:
            trail.invoice_header_id = header.id
            trail.invoice_number = header.invoice_number
            trail.invoice_date = header.invoice_date
            trail.document_hash = header.document_hash
            trail.invoice_status = header.status
            trail.verified_by = header.verified_by
            trail.verified_at = header.verified_at
        if line is not None:
            trail.line_item_id = line.id
            trail.quantity_received = float(line.quantity_received)
            trail.invoice_unit_price = float(line.unit_price)
            trail.match_confidence = _optional_float(line.match_confidence)
        return trail
