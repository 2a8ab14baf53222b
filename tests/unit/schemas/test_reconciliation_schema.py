from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from vendor_ledger.db.models import DiscrepancyType
from vendor_ledger.schemas.reconciliation import Discrepancy, ReconciledLine, ReconciliationOutcome


def _discrepancy(kind: DiscrepancyType, difference: str, value: str) -> Discrepancy:
    return Discrepancy(
        item_code="X",
        discrepancy_type=kind,
        quantity_ordered=Decimal("10"),
        quantity_received=Decimal("10") - Decimal(difference),
        difference=Decimal(difference),
        unit_price=Decimal("1"),
        value=Decimal(value),
    )


def test_reconciled_line_requires_catalog_item() -> None:
    with pytest.raises(ValidationError):
        ReconciledLine(
            catalog_item_id="",
            vendor_code="A1",
            quantity_ordered=Decimal("1"),
            quantity_received=Decimal("1"),
            unit_price=Decimal("1"),
            total_price=Decimal("1"),
        )


def test_outcome_shortage_totals_ignore_overages() -> None:
    outcome = ReconciliationOutcome(
        discrepancies=[
            _discrepancy(DiscrepancyType.SHORT, "2", "9.00"),
            _discrepancy(DiscrepancyType.OVER, "-1", "-4.50"),
            _discrepancy(DiscrepancyType.SHORT, "1", "1.25"),
        ]
    )

    assert len(outcome.shortages) == 2
    assert outcome.shortage_value == Decimal("10.25")


def test_empty_outcome_has_zero_shortage() -> None:
    assert ReconciliationOutcome().shortage_value == Decimal("0")
