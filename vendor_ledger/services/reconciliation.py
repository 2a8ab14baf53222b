"""Split candidate lines into matched line items and triage candidates."""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal

from vendor_ledger.db.base import utcnow
from vendor_ledger.db.models import CatalogItem, DiscrepancyType
from vendor_ledger.schemas.ingest import CandidateLineItem
from vendor_ledger.schemas.reconciliation import (
    Discrepancy,
    ReconciledLine,
    ReconciliationOutcome,
    TriageCandidate,
)

PLACEHOLDER_PREFIX = "NOCODE"


def classify_discrepancy(ordered: Decimal, received: Decimal) -> DiscrepancyType:
    if received < ordered:
        return DiscrepancyType.SHORT
    if received > ordered:
        return DiscrepancyType.OVER
    return DiscrepancyType.NONE


def document_total(candidates: Sequence[CandidateLineItem]) -> Decimal:
    """Sum of received quantity times unit price over every line on the document."""

    return sum(
        (candidate.quantity_received * candidate.unit_price for candidate in candidates),
        Decimal("0"),
    )


class ReconciliationEngine:
    """Stateless reconciliation of extracted lines against a catalog lookup.

    A line is matched only when it names a catalog item present in the lookup;
    anything else goes to triage. Lines without a vendor code get a
    timestamp-derived placeholder so they still have a triage key.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def reconcile(
        self,
        candidates: Sequence[CandidateLineItem],
        catalog: Mapping[str, CatalogItem],
    ) -> ReconciliationOutcome:
        stamp = self._clock()
        outcome = ReconciliationOutcome()

        for index, candidate in enumerate(candidates):
            code = candidate.item_code or self.placeholder_code(stamp, index)
            catalog_item = catalog.get(candidate.matched_catalog_id) if candidate.matched_catalog_id else None

            if catalog_item is None:
                outcome.unmatched.append(
                    TriageCandidate(
                        item_code=code,
                        description=candidate.description,
                        unit_price=candidate.unit_price,
                        unit_of_measure=candidate.unit_of_measure,
                    )
                )
                continue

            discrepancy_type = classify_discrepancy(candidate.quantity_ordered, candidate.quantity_received)
            outcome.matched.append(
                ReconciledLine(
                    catalog_item_id=catalog_item.id,
                    vendor_code=code,
                    description=candidate.description,
                    quantity_ordered=candidate.quantity_ordered,
                    quantity_received=candidate.quantity_received,
                    unit_price=candidate.unit_price,
                    total_price=candidate.quantity_received * candidate.unit_price,
                    match_confidence=candidate.match_confidence,
                    discrepancy_type=discrepancy_type,
                    notes=candidate.discrepancy_notes,
                )
            )
            if discrepancy_type is not DiscrepancyType.NONE:
                difference = candidate.quantity_ordered - candidate.quantity_received
                outcome.discrepancies.append(
                    Discrepancy(
                        item_code=code,
                        description=candidate.description,
                        discrepancy_type=discrepancy_type,
                        quantity_ordered=candidate.quantity_ordered,
                        quantity_received=candidate.quantity_received,
                        difference=difference,
                        unit_price=candidate.unit_price,
                        value=difference * candidate.unit_price,
                        notes=candidate.discrepancy_notes,
                    )
                )

        return outcome

    @staticmethod
    def placeholder_code(stamp: datetime, index: int) -> str:
        return f"{PLACEHOLDER_PREFIX}-{stamp:%Y%m%d%H%M%S%f}-{index:03d}"
