"""Tests for line item aggregates."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm import Session

from vendor_ledger.db.models import InvoiceHeader, LineItem
from vendor_ledger.repositories.invoice import InvoiceHeaderRepository, LineItemRepository
from vendor_ledger.services.price_ledger import PriceMove


def _header_with_lines(session: Session, organization, vendor, item, prices, batch_id: str = "batch-1") -> InvoiceHeader:
    header = InvoiceHeader(
        id=str(uuid4()),
        organization_id=organization.organization_id,
        import_batch_id=batch_id,
        vendor_id=vendor.id,
        invoice_date=date(2026, 3, 1),
        invoice_number="INV-1",
        total_amount=Decimal("0"),
        document_hash="h",
    )
    session.add(header)
    for unit_price, previous in prices:
        session.add(
            LineItem(
                organization_id=organization.organization_id,
                invoice_header_id=header.id,
                catalog_item_id=item.id,
                vendor_code="A1",
                quantity_ordered=Decimal("1"),
                quantity_received=Decimal("1"),
                unit_price=Decimal(unit_price),
                total_price=Decimal(unit_price),
                previous_unit_price=Decimal(previous) if previous is not None else None,
            )
        )
    session.commit()
    return header


def test_aggregates_count_changes_and_new_items(session: Session, organization, vendor, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    header = _header_with_lines(
        session, organization, vendor, item, (("4.50", "4.00"), ("4.0004", "4.00"), ("3.00", None))
    )

    aggregates = LineItemRepository(session).aggregates_for_header(header.id)

    assert aggregates.item_count == 3
    assert aggregates.price_change_count == 1
    assert aggregates.new_item_count == 1
    assert InvoiceHeaderRepository(session).get_for_batch("batch-1").id == header.id


def test_change_count_agrees_with_price_move_threshold(
    session: Session, organization, vendor, make_catalog_item
) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    prices = (("4.0009", "4.00"), ("4.0011", "4.00"), ("3.99", "4.00"))
    header = _header_with_lines(session, organization, vendor, item, prices)

    aggregates = LineItemRepository(session).aggregates_for_header(header.id)

    expected = sum(PriceMove(Decimal(previous), Decimal(price)).changed for price, previous in prices)
    assert aggregates.price_change_count == expected == 2


def test_aggregates_for_empty_header(session: Session) -> None:
    aggregates = LineItemRepository(session).aggregates_for_header("nothing")

    assert (aggregates.item_count, aggregates.price_change_count, aggregates.new_item_count) == (0, 0, 0)
