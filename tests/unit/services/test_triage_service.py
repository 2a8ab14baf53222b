"""Tests for the triage queue service."""
from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import CatalogItem, TriageItem, TriageStatus
from vendor_ledger.schemas.reconciliation import TriageCandidate
from vendor_ledger.services.exceptions import ConflictError, NotFoundError
from vendor_ledger.services.triage_service import TriageService


def _candidate(code: str, price: str = "3.25", description: str = "Basil") -> TriageCandidate:
    return TriageCandidate(item_code=code, description=description, unit_price=Decimal(price), unit_of_measure="bunch")


def _count(session: Session, **filters) -> int:
    statement = select(func.count(TriageItem.id))
    for column, value in filters.items():
        statement = statement.where(getattr(TriageItem, column) == value)
    return session.scalar(statement)


@pytest.fixture()
def service(session: Session, organization) -> TriageService:
    return TriageService(session, organization)


def test_upsert_is_idempotent_per_key(service: TriageService, session: Session, vendor) -> None:
    service.upsert(vendor.id, [_candidate("B7", "3.25")], originating_batch_id=None)
    session.commit()
    service.upsert(vendor.id, [_candidate("B7", "3.60", "Fresh basil")], originating_batch_id=None)
    session.commit()

    assert _count(session, vendor_id=vendor.id, item_code="B7") == 1
    row = session.scalar(select(TriageItem).where(TriageItem.item_code == "B7"))
    assert row.unit_price == Decimal("3.60")
    assert row.description == "Fresh basil"
    assert row.status is TriageStatus.PENDING


def test_upsert_last_duplicate_in_batch_wins(service: TriageService, session: Session, vendor) -> None:
    rows = service.upsert(vendor.id, [_candidate("B7", "1.00"), _candidate("B7", "2.00")], None)
    session.commit()

    assert len(rows) == 1
    assert _count(session, item_code="B7") == 1
    assert rows[0].unit_price == Decimal("2.00")


def test_upsert_without_candidates_writes_nothing(service: TriageService, vendor) -> None:
    assert service.upsert(vendor.id, [], None) == []


def test_list_defaults_to_pending(service: TriageService, session: Session, vendor) -> None:
    rows = service.upsert(vendor.id, [_candidate("B7"), _candidate("C8")], None)
    session.commit()
    service.dismiss(rows[0].id)

    pending = service.list()

    assert [item.item_code for item in pending] == ["C8"]
    assert len(service.list(status=None)) == 2


def test_resolve_with_existing_catalog_item(service: TriageService, session: Session, vendor, make_catalog_item) -> None:
    catalog_item = make_catalog_item("Basil", "B7")
    (row,) = service.upsert(vendor.id, [_candidate("B7")], None)
    session.commit()

    resolved = service.resolve(row.id, catalog_item_id=catalog_item.id, user_id="chef")

    assert resolved.status is TriageStatus.RESOLVED
    assert resolved.resolved_catalog_item_id == catalog_item.id
    assert resolved.resolved_by == "chef"
    assert resolved.resolved_at is not None


def test_resolve_creates_catalog_item_from_triage_data(service: TriageService, session: Session, vendor) -> None:
    (row,) = service.upsert(vendor.id, [_candidate("B7", "3.25", "Basil")], None)
    session.commit()

    resolved = service.resolve(row.id)

    created = session.get(CatalogItem, resolved.resolved_catalog_item_id)
    assert created.item_code == "B7"
    assert created.name == "Basil"
    assert created.unit_of_measure == "bunch"
    assert created.current_price == Decimal("3.25")


def test_resolve_unknown_catalog_item(service: TriageService, session: Session, vendor) -> None:
    (row,) = service.upsert(vendor.id, [_candidate("B7")], None)
    session.commit()

    with pytest.raises(NotFoundError):
        service.resolve(row.id, catalog_item_id="missing")


def test_resolved_items_cannot_be_resolved_again(service: TriageService, session: Session, vendor) -> None:
    (row,) = service.upsert(vendor.id, [_candidate("B7")], None)
    session.commit()
    service.dismiss(row.id)

    with pytest.raises(ConflictError):
        service.resolve(row.id)
    with pytest.raises(NotFoundError):
        service.dismiss("missing")


def test_dismissing_same_code_twice_keeps_key_unique(service: TriageService, session: Session, vendor) -> None:
    (first,) = service.upsert(vendor.id, [_candidate("B7")], None)
    session.commit()
    service.dismiss(first.id)
    (second,) = service.upsert(vendor.id, [_candidate("B7")], None)
    session.commit()

    dismissed = service.dismiss(second.id)

    assert dismissed.id == second.id
    assert _count(session, item_code="B7", status=TriageStatus.DISMISSED) == 1
    assert _count(session, item_code="B7") == 1


def test_other_organizations_cannot_see_items(session: Session, vendor, organization) -> None:
    rows = TriageService(session, organization).upsert(vendor.id, [_candidate("B7")], None)
    session.commit()
    stranger = TriageService(session, OrganizationContext(organization_id="other", organization_name="Other"))

    assert stranger.list() == []
    with pytest.raises(NotFoundError):
        stranger.dismiss(rows[0].id)
