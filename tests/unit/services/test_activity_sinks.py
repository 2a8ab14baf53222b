"""Tests for audit sinks."""
from __future__ import annotations

import json

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from vendor_ledger.activity.sinks import (
    AuditEvent,
    DatabaseActivitySink,
    WebhookActivitySink,
    resolve_activity_sinks,
)
from vendor_ledger.core.settings import Settings
from vendor_ledger.db.models import ActivityLog, ActivitySeverity


def _event(organization_id: str = "org-1") -> AuditEvent:
    return AuditEvent(
        organization_id=organization_id,
        activity_type="invoice_imported",
        category="vendor_invoice",
        severity=ActivitySeverity.INFO,
        message="Imported invoice INV-100",
        user_id="chef",
        details={"item_count": 3},
    )


def test_database_sink_persists_activity_log(session: Session, organization) -> None:
    DatabaseActivitySink(session).publish(_event(organization.organization_id))

    row = session.scalar(select(ActivityLog))
    assert row.activity_type == "invoice_imported"
    assert row.severity is ActivitySeverity.INFO
    assert row.details == {"item_count": 3}
    assert row.user_id == "chef"


def test_webhook_sink_posts_json() -> None:
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    sink = WebhookActivitySink("https://hooks.example.test/activity", transport=httpx.MockTransport(handler))

    sink.publish(_event())

    (request,) = received
    assert request.method == "POST"
    assert str(request.url) == "https://hooks.example.test/activity"
    body = json.loads(request.content)
    assert body["activity_type"] == "invoice_imported"
    assert body["severity"] == "info"
    assert body["details"] == {"item_count": 3}


def test_webhook_sink_raises_on_error_status() -> None:
    sink = WebhookActivitySink(
        "https://hooks.example.test/activity",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        sink.publish(_event())


def test_resolve_activity_sinks(session: Session) -> None:
    assert [type(s) for s in resolve_activity_sinks(Settings(activity_webhook_url=None), session)] == [
        DatabaseActivitySink
    ]

    sinks = resolve_activity_sinks(
        Settings(activity_webhook_url="https://hooks.example.test", activity_webhook_timeout=2.5), session
    )

    assert [type(s) for s in sinks] == [DatabaseActivitySink, WebhookActivitySink]
    assert sinks[1].timeout == 2.5
