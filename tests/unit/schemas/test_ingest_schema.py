"""Tests for ingestion request and result schemas."""
from __future__ import annotations

import base64
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from vendor_ledger.db.models import SourceKind
from vendor_ledger.schemas.ingest import CandidateLineItem, ImportUploadPayload, IngestRequest, IngestResult


def _request(**overrides) -> IngestRequest:
    payload = {
        "vendor_id": "vendor-1",
        "vendor_name": "Sysco",
        "document_bytes": b"doc",
        "file_name": "INV-100.csv",
        "invoice_number": "INV-100",
        "invoice_date": date(2026, 3, 1),
    }
    payload.update(overrides)
    return IngestRequest(**payload)


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("INV-100.csv", SourceKind.STRUCTURED_FILE),
        ("export.XLSX", SourceKind.STRUCTURED_FILE),
        ("feed.json", SourceKind.STRUCTURED_FILE),
        ("receipt.jpg", SourceKind.SCANNED_DOCUMENT),
        ("scan.pdf", SourceKind.SCANNED_DOCUMENT),
        ("no_extension", SourceKind.SCANNED_DOCUMENT),
    ],
)
def test_source_kind_derived_from_extension(file_name: str, expected: SourceKind) -> None:
    assert _request(file_name=file_name).source_kind is expected


def test_explicit_source_kind_wins() -> None:
    request = _request(file_name="INV-100.csv", source_kind="scanned_document")

    assert request.source_kind is SourceKind.SCANNED_DOCUMENT


def test_blank_invoice_number_becomes_none() -> None:
    assert _request(invoice_number="   ").invoice_number is None
    assert _request(invoice_number=" INV-7 ").invoice_number == "INV-7"


def test_candidate_line_item_normalizes_blanks_and_decimals() -> None:
    line = CandidateLineItem(
        item_code="  ",
        description="Tomatoes",
        quantity_ordered="10",
        quantity_received=8,
        unit_price="4.50",
        matched_catalog_id="",
    )

    assert line.item_code is None
    assert line.matched_catalog_id is None
    assert line.quantity_received == Decimal("8")
    assert line.unit_price == Decimal("4.50")


def test_candidate_line_item_rejects_negative_quantities() -> None:
    with pytest.raises(ValidationError):
        CandidateLineItem(description="Eggs", quantity_ordered=-1, quantity_received=0, unit_price=1)


def test_upload_payload_decodes_base64() -> None:
    payload = ImportUploadPayload(
        vendor_name="Sysco",
        document_base64=base64.b64encode(b"raw bytes").decode(),
        file_name="INV-100.csv",
        invoice_date=date(2026, 3, 1),
    )

    request = payload.to_request("vendor-1")

    assert request.document_bytes == b"raw bytes"
    assert request.vendor_id == "vendor-1"
    assert request.source_kind is SourceKind.STRUCTURED_FILE


def test_ingest_result_is_frozen() -> None:
    result = IngestResult(import_batch_id="b", version=1, is_correction=False, invoice_number="INV", status="completed")

    with pytest.raises(ValidationError):
        result.version = 2  # type: ignore[misc]
