"""Batch history projections, invoice verification and the stale-batch sweep."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.core.settings import Settings, get_settings
from vendor_ledger.db.base import utcnow
from vendor_ledger.db.models import HeaderStatus, ImportBatchStatus
from vendor_ledger.repositories.import_batch import ImportBatchRepository
from vendor_ledger.repositories.invoice import InvoiceHeaderRepository
from vendor_ledger.schemas.import_batch import ImportBatchDetail, ImportBatchRead, InvoiceHeaderRead

from .exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STALE_MESSAGE = "Import abandoned while processing; marked failed by stale-batch sweep"


class ImportHistoryService:
    """Organization-scoped batch history lookups."""

    def __init__(
        self,
        session: Session,
        organization: OrganizationContext,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.organization = organization
        self.settings = settings or get_settings()
        self.batches = ImportBatchRepository(session)
        self.headers = InvoiceHeaderRepository(session)

    def list_batches_for_vendor(
        self,
        vendor_id: str,
        match_key: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[ImportBatchRead]:
        rows = self.batches.list_for_vendor(self.organization, vendor_id, match_key, offset=offset, limit=limit)
        return [ImportBatchRead.model_validate(row) for row in rows]

    def get_batch(self, batch_id: str) -> ImportBatchDetail:
        batch = self.batches.get_for_organization(self.organization, batch_id)
        if batch is None:
            raise NotFoundError("Import batch not found")
        return ImportBatchDetail.model_validate(batch)

    def version_chain(self, batch_id: str) -> list[ImportBatchRead]:
        """Follow ``supersedes_id`` back to version 1; returned oldest first."""

        batch = self.batches.get_for_organization(self.organization, batch_id)
        if batch is None:
            raise NotFoundError("Import batch not found")

        chain = []
        seen: set[str] = set()
        while batch is not None and batch.id not in seen:
            seen.add(batch.id)
            chain.append(batch)
            if batch.supersedes_id is None:
                break
            batch = self.batches.get_for_organization(self.organization, batch.supersedes_id)
        return [ImportBatchRead.model_validate(row) for row in reversed(chain)]

    def verify_invoice(self, invoice_id: str, verified_by: str) -> InvoiceHeaderRead:
        """Record that a person checked a completed invoice against the paper copy."""

        header = self.headers.get_for_organization(self.organization, invoice_id)
        if header is None:
            raise NotFoundError("Invoice not found")
        if header.status is not HeaderStatus.COMPLETED:
            raise ValidationError("Only completed invoices can be verified")
        if header.import_batch.status is ImportBatchStatus.SUPERSEDED:
            raise ConflictError("Invoice was superseded by a newer version")
        if header.verified_at is not None:
            raise ConflictError("Invoice already verified")

        header.verified_by = verified_by
        header.verified_at = utcnow()
        self.session.commit()
        self.session.refresh(header)
        logger.info("Invoice %s verified by %s", header.id, verified_by)
        return InvoiceHeaderRead.model_validate(header)

    def sweep_stale_batches(self, older_than: timedelta | None = None) -> list[str]:
        """Fail batches stuck in ``processing`` longer than the configured age."""

        age = older_than if older_than is not None else timedelta(minutes=self.settings.stale_batch_minutes)
        cutoff = utcnow() - age
        stale = self.batches.list_processing_before(self.organization, cutoff)
        if not stale:
            return []

        for batch in stale:
            batch.status = ImportBatchStatus.FAILED
            batch.error_message = STALE_MESSAGE
        ids = [batch.id for batch in stale]
        self.session.commit()
        logger.warning("Stale-batch sweep failed %d batch(es): %s", len(ids), ", ".join(ids))
        return ids
