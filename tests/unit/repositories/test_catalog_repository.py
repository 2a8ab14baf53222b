"""Tests for catalog item lookups and the compare-and-swap write."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.repositories.catalog import CatalogItemRepository


def test_lookup_is_organization_scoped(session: Session, organization, make_catalog_item) -> None:
    mine = make_catalog_item("Tomatoes", "A1")
    repository = CatalogItemRepository(session)
    stranger = OrganizationContext(organization_id="other", organization_name="Other")

    assert set(repository.lookup(organization, [mine.id, None, "missing"])) == {mine.id}
    assert repository.lookup(stranger, [mine.id]) == {}
    assert repository.lookup(organization, []) == {}


def test_compare_and_set_price_bumps_version(session: Session, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1", current_price="4.00")
    repository = CatalogItemRepository(session)

    assert repository.compare_and_set_price(item, 0, current_price=Decimal("4.50"))
    session.commit()
    session.refresh(item)

    assert item.price_version == 1
    assert item.current_price == Decimal("4.50")


def test_compare_and_set_price_rejects_stale_version(session: Session, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1", current_price="4.00")
    repository = CatalogItemRepository(session)
    repository.compare_and_set_price(item, 0, current_price=Decimal("4.50"))

    assert not repository.compare_and_set_price(item, 0, current_price=Decimal("9.99"))
    session.commit()
    session.refresh(item)
    assert item.current_price == Decimal("4.50")


def test_get_for_update_refreshes_session_copy(session: Session, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    repository = CatalogItemRepository(session)

    locked = repository.get_for_update(organization, item.id)

    assert locked is item
    assert repository.get_for_update(OrganizationContext("other", "Other"), item.id) is None
