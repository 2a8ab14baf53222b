"""Value types produced by the reconciliation engine."""
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from vendor_ledger.db.models import DiscrepancyType


class ReconciledLine(BaseModel):
    """A candidate linked to a catalog entry, ready to become a line item.

    ``catalog_item_id`` is mandatory; a line without one cannot be built.
    """

    catalog_item_id: str = Field(..., min_length=1)
    vendor_code: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    quantity_ordered: Decimal
    quantity_received: Decimal
    unit_price: Decimal
    total_price: Decimal
    match_confidence: float | None = None
    discrepancy_type: DiscrepancyType = DiscrepancyType.NONE
    notes: str | None = None

    model_config = ConfigDict(frozen=True)


class TriageCandidate(BaseModel):
    """Unmatched line carrying enough detail for a person to resolve it later."""

    item_code: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    unit_price: Decimal
    unit_of_measure: str | None = None

    model_config = ConfigDict(frozen=True)


class Discrepancy(BaseModel):
    """Quantity mismatch recorded for a matched line."""

    item_code: str
    description: str | None = None
    discrepancy_type: DiscrepancyType
    quantity_ordered: Decimal
    quantity_received: Decimal
    difference: Decimal
    unit_price: Decimal
    value: Decimal
    notes: str | None = None

    model_config = ConfigDict(frozen=True)


class ReconciliationOutcome(BaseModel):
    """Split of candidate lines into matched, unmatched and discrepancies."""

    matched: list[ReconciledLine] = Field(default_factory=list)
    unmatched: list[TriageCandidate] = Field(default_factory=list)
    discrepancies: list[Discrepancy] = Field(default_factory=list)

    @property
    def shortages(self) -> list[Discrepancy]:
        return [item for item in self.discrepancies if item.discrepancy_type is DiscrepancyType.SHORT]

    @property
    def shortage_value(self) -> Decimal:
        return sum((item.value for item in self.shortages), Decimal("0"))
