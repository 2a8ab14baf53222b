"""Version lineage for re-uploaded vendor documents.

A document is keyed by (organization, vendor, match basis, match key). The
vendor's invoice number is preferred as the key; the file name stands in for
photographed receipts that carry no number. Every ingestion creates a new
version and supersedes all non-superseded batches already holding the key.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Sequence

from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import ImportBatch, MatchBasis
from vendor_ledger.repositories.import_batch import ImportBatchRepository
from vendor_ledger.utils.friendly_id import generate_invoice_reference

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class VersionResolution:
    """Where a new ingestion lands in its version chain."""

    match_basis: MatchBasis
    match_key: str
    prior_batches: Sequence[ImportBatch] = field(default_factory=tuple)
    next_version: int = 1

    @property
    def is_correction(self) -> bool:
        return self.next_version > 1

    @property
    def latest_prior(self) -> ImportBatch | None:
        if not self.prior_batches:
            return None
        return max(self.prior_batches, key=lambda batch: batch.version)

    @property
    def prior_ids(self) -> list[str]:
        return [batch.id for batch in self.prior_batches]


def match_key_for(invoice_number: str | None, file_name: str) -> tuple[MatchBasis, str]:
    """Pick the key a document versions on."""

    if invoice_number and invoice_number.strip():
        return MatchBasis.INVOICE_NUMBER, invoice_number.strip()
    if not file_name or not file_name.strip():
        raise ValidationError("A file name is required when the document carries no invoice number")
    return MatchBasis.FILE_NAME, file_name.strip()


def display_invoice_number(invoice_number: str | None, invoice_date: date) -> str:
    """Return the vendor's number, or a synthesized reference when there is none.

    The synthesized reference is for display only and never used as a match key.
    """

    if invoice_number and invoice_number.strip():
        return invoice_number.strip()
    return generate_invoice_reference(invoice_date)


class VersionResolver:
    """Find the live batches for a key and compute the next version number."""

    def __init__(self, session: Session, organization: OrganizationContext) -> None:
        self.organization = organization
        self.batches = ImportBatchRepository(session)

    def resolve(self, vendor_id: str, invoice_number: str | None, file_name: str) -> VersionResolution:
        match_basis, match_key = match_key_for(invoice_number, file_name)
        prior = self.batches.list_active_for_key(
            self.organization, vendor_id, match_basis, match_key, lock=True
        )
        next_version = max((batch.version for batch in prior), default=0) + 1
        if len(prior) > 1:
            logger.warning(
                "Found %d live batches for %s=%r (vendor %s); all will be superseded",
                len(prior),
                match_basis.value,
                match_key,
                vendor_id,
            )
        return VersionResolution(
            match_basis=match_basis,
            match_key=match_key,
            prior_batches=tuple(prior),
            next_version=next_version,
        )


class SupersessionEngine:
    """Bulk-transition prior batches to ``superseded``.

    Callers run this in the same transaction that inserts the new batch and
    commit once, so the key never ends up with zero live batches.
    """

    def __init__(self, session: Session, organization: OrganizationContext) -> None:
        self.organization = organization
        self.batches = ImportBatchRepository(session)

    def supersede(self, batch_ids: Sequence[str], superseded_by: str | None, at: datetime) -> int:
        count = self.batches.mark_superseded(self.organization, batch_ids, superseded_by, at)
        if count:
            logger.info("Superseded %d batch(es): %s", count, ", ".join(batch_ids))
        return count
