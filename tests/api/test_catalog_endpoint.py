"""Tests for price ledger endpoints."""
from __future__ import annotations

import base64

from fastapi import status
from fastapi.testclient import TestClient


def _ingest(client: TestClient, organization_id: str, catalog_item_id: str, price: str, document: bytes) -> None:
    response = client.post(
        f"/api/organizations/{organization_id}/vendors/sysco/imports",
        json={
            "vendor_name": "Sysco",
            "document_base64": base64.b64encode(document).decode(),
            "file_name": f"{document.decode()}.pdf",
            "invoice_date": "2026-03-01",
            "candidate_line_items": [
                {
                    "item_code": "A1",
                    "description": "Tomatoes",
                    "quantity_ordered": "1",
                    "quantity_received": "1",
                    "unit_price": price,
                    "matched_catalog_id": catalog_item_id,
                }
            ],
        },
    )
    assert response.json()["status"] == "completed"


def test_price_history_lists_ledger(client: TestClient, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    _ingest(client, organization.organization_id, item.id, "4.00", b"first")
    _ingest(client, organization.organization_id, item.id, "4.40", b"second")

    response = client.get(f"/api/organizations/{organization.organization_id}/catalog-items/{item.id}/price-history")

    assert response.status_code == status.HTTP_200_OK
    rows = response.json()
    assert [(row["sequence"], row["price"], row["previous_price"]) for row in rows] == [
        (1, 4.0, None),
        (2, 4.4, 4.0),
    ]
    assert {row["source_kind"] for row in rows} == {"scanned_document"}


def test_price_history_rejects_inverted_range(client: TestClient, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")

    response = client.get(
        f"/api/organizations/{organization.organization_id}/catalog-items/{item.id}/price-history",
        params={"start": "2026-03-10", "end": "2026-03-01"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_price_history_unknown_item(client: TestClient, organization) -> None:
    response = client.get(f"/api/organizations/{organization.organization_id}/catalog-items/missing/price-history")

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_price_audit(client: TestClient, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    _ingest(client, organization.organization_id, item.id, "4.00", b"first")

    response = client.get(f"/api/organizations/{organization.organization_id}/price-audit")

    assert response.json() == {
        "total_records": 1,
        "fully_documented": 1,
        "batch_linked_only": 0,
        "unlinked": 0,
        "documentation_rate": 100.0,
    }


def test_price_audit_trail(client: TestClient, organization, make_catalog_item) -> None:
    item = make_catalog_item("Tomatoes", "A1")
    base = f"/api/organizations/{organization.organization_id}"
    _ingest(client, organization.organization_id, item.id, "4.00", b"first")
    _ingest(client, organization.organization_id, item.id, "5.00", b"second")
    latest = client.get(f"{base}/catalog-items/{item.id}/price-history").json()[-1]

    response = client.get(f"{base}/price-history/{latest['id']}/audit-trail")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["price_history_id"] == latest["id"]
    assert body["documentation"] == "fully_documented"
    assert body["change_percent"] == 25.0
    assert body["import_batch_id"] == latest["import_batch_id"]
    assert body["import_file_name"] == "second.pdf"
    assert body["invoice_status"] == "completed"
    assert body["invoice_unit_price"] == 5.0


def test_price_audit_trail_unknown_record(client: TestClient, organization) -> None:
    response = client.get(f"/api/organizations/{organization.organization_id}/price-history/missing/audit-trail")

    assert response.status_code == status.HTTP_404_NOT_FOUND
