"""Destinations for audit events and their factory."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vendor_ledger.core.settings import Settings
from vendor_ledger.db.models import ActivityLog, ActivitySeverity


@dataclass(slots=True)
class AuditEvent:
    """Structured activity record, self-describing without the primary tables."""

    organization_id: str
    activity_type: str
    category: str
    severity: ActivitySeverity
    message: str
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["severity"] = self.severity.value
        return payload


class ActivitySink(Protocol):
    """Protocol for anything that can receive an audit event."""

    def publish(self, event: AuditEvent) -> None:
        ...


class DatabaseActivitySink:
    """Persist events as ``ActivityLog`` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def publish(self, event: AuditEvent) -> None:
        with self.session.begin_nested():
            self.session.add(
                ActivityLog(
                    organization_id=event.organization_id,
                    user_id=event.user_id,
                    activity_type=event.activity_type,
                    category=event.category,
                    severity=event.severity,
                    message=event.message,
                    details=event.details,
                )
            )
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise


class WebhookActivitySink:
    """POST events as JSON to an external activity stream."""

    def __init__(self, url: str, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def publish(self, event: AuditEvent) -> None:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.url, json=event.to_payload())
        response.raise_for_status()


def resolve_activity_sinks(settings: Settings, session: Session) -> list[ActivitySink]:
    """Return the database sink plus the webhook sink when one is configured."""

    sinks: list[ActivitySink] = [DatabaseActivitySink(session)]
    if settings.activity_webhook_url:
        sinks.append(
            WebhookActivitySink(settings.activity_webhook_url, timeout=settings.activity_webhook_timeout)
        )
    return sinks
