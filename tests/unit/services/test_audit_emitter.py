"""Tests for audit event construction and fan-out."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest

from vendor_ledger.activity.emitter import (
    IMPORT_VERSION_CREATED,
    INVOICE_DISCREPANCY_RECORDED,
    PRICE_CHANGE_DETECTED,
    AuditEmitter,
)
from vendor_ledger.activity.sinks import AuditEvent
from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import ActivitySeverity, SourceKind

ORGANIZATION = OrganizationContext(organization_id="org-1", organization_name="Bistro")


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def publish(self, event: AuditEvent) -> None:
        self.events.append(event)


class FailingSink:
    def publish(self, event: AuditEvent) -> None:
        raise ConnectionError("webhook down")


def test_build_derives_category_and_default_severity() -> None:
    emitter = AuditEmitter(ORGANIZATION, [], user_id="chef")

    event = emitter.build(INVOICE_DISCREPANCY_RECORDED, "short", {"value": Decimal("9.50")})

    assert event.organization_id == "org-1"
    assert event.user_id == "chef"
    assert event.category == "vendor_invoice"
    assert event.severity is ActivitySeverity.WARNING
    assert event.details == {"value": 9.5}


def test_build_accepts_explicit_severity_string() -> None:
    event = AuditEmitter(ORGANIZATION, []).build(PRICE_CHANGE_DETECTED, "moved", severity="warning")

    assert event.category == "pricing"
    assert event.severity is ActivitySeverity.WARNING


def test_build_makes_details_json_friendly() -> None:
    event = AuditEmitter(ORGANIZATION, []).build(
        IMPORT_VERSION_CREATED,
        "v2",
        {"when": date(2026, 3, 1), "kind": SourceKind.SCANNED_DOCUMENT, "ids": ("a", "b")},
    )

    assert event.details == {"when": "2026-03-01", "kind": "scanned_document", "ids": ["a", "b"]}
    assert event.to_payload()["severity"] == "info"


def test_emit_fans_out_and_swallows_sink_errors(caplog: pytest.LogCaptureFixture) -> None:
    recorder = RecordingSink()
    emitter = AuditEmitter(ORGANIZATION, [FailingSink(), recorder])

    with caplog.at_level(logging.WARNING, logger="vendor_ledger.activity.emitter"):
        event = emitter.emit(IMPORT_VERSION_CREATED, "v2", {"new_version": 2})

    assert event is not None
    assert recorder.events == [event]
    assert "FailingSink" in caplog.text


def test_emit_returns_none_when_event_cannot_be_built() -> None:
    recorder = RecordingSink()

    assert AuditEmitter(ORGANIZATION, [recorder]).emit(PRICE_CHANGE_DETECTED, "x", severity="catastrophic") is None
    assert recorder.events == []
