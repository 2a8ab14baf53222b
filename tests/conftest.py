"""Shared pytest fixtures for vendor ledger tests."""
from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vendor_ledger.core.database import enable_sqlite_savepoints, get_db_session
from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.core.settings import Settings
from vendor_ledger.db.base import Base
from vendor_ledger.db.models import CatalogItem, Organization, Vendor
from vendor_ledger.main import create_app
from vendor_ledger.schemas.ingest import CandidateLineItem, IngestRequest


@pytest.fixture()
def engine() -> Generator:
    # one shared connection so TestClient worker threads see the same in-memory database
    engine = enable_sqlite_savepoints(
        create_engine(
            "sqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False)


@pytest.fixture()
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    db_session = session_factory()
    try:
        yield db_session
    finally:
        db_session.close()


@pytest.fixture()
def organization_row(session: Session) -> Organization:
    organization = Organization(name="Test Kitchen")
    session.add(organization)
    session.commit()
    session.refresh(organization)
    return organization


@pytest.fixture()
def organization(organization_row: Organization) -> OrganizationContext:
    return OrganizationContext(
        organization_id=organization_row.id,
        organization_name=organization_row.name,
    )


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        environment="test",
        activity_webhook_url=None,
        price_policy="latest_ingested",
    )


@pytest.fixture()
def vendor(session: Session, organization: OrganizationContext) -> Vendor:
    vendor = Vendor(id=str(uuid4()), organization_id=organization.organization_id, name="Sysco")
    session.add(vendor)
    session.commit()
    session.refresh(vendor)
    return vendor


@pytest.fixture()
def make_catalog_item(session: Session, organization: OrganizationContext) -> Callable[..., CatalogItem]:
    def _make(
        name: str,
        item_code: str | None = None,
        current_price: str | None = None,
        organization_id: str | None = None,
    ) -> CatalogItem:
        item = CatalogItem(
            organization_id=organization_id or organization.organization_id,
            name=name,
            item_code=item_code,
            unit_of_measure="case",
            current_price=Decimal(current_price) if current_price is not None else None,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make


@pytest.fixture()
def make_request(vendor: Vendor) -> Callable[..., IngestRequest]:
    def _make(
        lines: list[dict] | None = None,
        invoice_number: str | None = "INV-100",
        file_name: str = "INV-100.csv",
        document: bytes = b"vendor,document\n",
        invoice_date: date = date(2026, 3, 1),
        **overrides,
    ) -> IngestRequest:
        payload = {
            "vendor_id": vendor.id,
            "vendor_name": vendor.name,
            "document_bytes": document,
            "file_name": file_name,
            "invoice_number": invoice_number,
            "invoice_date": invoice_date,
            "candidate_line_items": [CandidateLineItem(**line) for line in (lines or [])],
        }
        payload.update(overrides)
        return IngestRequest(**payload)

    return _make


@pytest.fixture()
def client(session: Session, session_factory: sessionmaker[Session]) -> Generator[TestClient, None, None]:
    application = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        try:
            yield session
        finally:
            session.rollback()

    application.dependency_overrides[get_db_session] = override_get_db_session
    application.state.session_factory = session_factory

    test_client = TestClient(application)
    try:
        yield test_client
    finally:
        test_client.close()
        application.dependency_overrides.clear()
