"""Tests for stored upload outcomes."""
from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.repositories.idempotency import IdempotencyRepository


def test_record_then_get_key(session: Session, organization) -> None:
    repository = IdempotencyRepository(session)

    repository.record(organization, "vendor_document_ingest", "upload-1", "hash-1", {"status": "completed"})
    session.commit()

    stored = repository.get_key(organization, "vendor_document_ingest", "upload-1")
    assert stored.payload_hash == "hash-1"
    assert stored.response_status == 200
    assert stored.response_body == {"status": "completed"}
    assert repository.get_key(organization, "other_endpoint", "upload-1") is None


def test_keys_are_scoped_to_organization(session: Session, organization) -> None:
    repository = IdempotencyRepository(session)
    repository.record(organization, "vendor_document_ingest", "upload-1", "hash-1", {})
    session.commit()
    stranger = OrganizationContext(organization_id="other", organization_name="Other")

    assert repository.get_key(stranger, "vendor_document_ingest", "upload-1") is None


def test_duplicate_key_is_rejected(session: Session, organization) -> None:
    repository = IdempotencyRepository(session)
    repository.record(organization, "vendor_document_ingest", "upload-1", "hash-1", {})
    session.commit()

    repository.record(organization, "vendor_document_ingest", "upload-1", "hash-2", {})
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()
