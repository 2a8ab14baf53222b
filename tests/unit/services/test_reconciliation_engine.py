"""Tests for the reconciliation engine."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from vendor_ledger.db.models import DiscrepancyType
from vendor_ledger.schemas.ingest import CandidateLineItem
from vendor_ledger.services.reconciliation import (
    ReconciliationEngine,
    classify_discrepancy,
    document_total,
)

FIXED = datetime(2026, 3, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)


def _engine() -> ReconciliationEngine:
    return ReconciliationEngine(clock=lambda: FIXED)


def _line(**overrides) -> CandidateLineItem:
    payload = {
        "item_code": "A1",
        "description": "Roma tomatoes",
        "quantity_ordered": "10",
        "quantity_received": "10",
        "unit_price": "4.50",
    }
    payload.update(overrides)
    return CandidateLineItem(**payload)


CATALOG = {"cat-1": SimpleNamespace(id="cat-1"), "cat-2": SimpleNamespace(id="cat-2")}


@pytest.mark.parametrize(
    ("ordered", "received", "expected"),
    [("10", "8", DiscrepancyType.SHORT), ("10", "12", DiscrepancyType.OVER), ("5", "5", DiscrepancyType.NONE)],
)
def test_classify_discrepancy(ordered: str, received: str, expected: DiscrepancyType) -> None:
    assert classify_discrepancy(Decimal(ordered), Decimal(received)) is expected


def test_matched_and_unmatched_partition_the_input() -> None:
    lines = [
        _line(matched_catalog_id="cat-1"),
        _line(item_code="B2", matched_catalog_id=None),
        _line(item_code="C3", matched_catalog_id="unknown"),
        _line(item_code="D4", matched_catalog_id="cat-2"),
    ]

    outcome = _engine().reconcile(lines, CATALOG)

    assert [line.catalog_item_id for line in outcome.matched] == ["cat-1", "cat-2"]
    assert [candidate.item_code for candidate in outcome.unmatched] == ["B2", "C3"]
    assert len(outcome.matched) + len(outcome.unmatched) == len(lines)


def test_short_delivery_records_discrepancy_value() -> None:
    outcome = _engine().reconcile(
        [_line(matched_catalog_id="cat-1", quantity_ordered="10", quantity_received="8", discrepancy_notes="2 crushed")],
        CATALOG,
    )

    (line,) = outcome.matched
    assert line.discrepancy_type is DiscrepancyType.SHORT
    assert line.total_price == Decimal("36.00")
    (discrepancy,) = outcome.discrepancies
    assert discrepancy.difference == Decimal("2")
    assert discrepancy.value == Decimal("9.00")
    assert discrepancy.notes == "2 crushed"
    assert outcome.shortage_value == Decimal("9.00")


def test_over_delivery_is_recorded_but_not_a_shortage() -> None:
    outcome = _engine().reconcile(
        [_line(matched_catalog_id="cat-1", quantity_ordered="10", quantity_received="12")],
        CATALOG,
    )

    (discrepancy,) = outcome.discrepancies
    assert discrepancy.discrepancy_type is DiscrepancyType.OVER
    assert discrepancy.difference == Decimal("-2")
    assert outcome.shortages == []


def test_missing_item_code_gets_placeholder() -> None:
    outcome = _engine().reconcile(
        [_line(item_code=None), _line(item_code="", matched_catalog_id="cat-1")],
        CATALOG,
    )

    assert outcome.unmatched[0].item_code == "NOCODE-20260301093015123456-000"
    assert outcome.matched[0].vendor_code == "NOCODE-20260301093015123456-001"


def test_document_total_covers_every_line() -> None:
    lines = [_line(quantity_received="2", unit_price="1.50"), _line(quantity_received="3", unit_price="2")]

    assert document_total(lines) == Decimal("9.00")
    assert document_total([]) == Decimal("0")
