"""Fire-and-forget audit emission for the import pipeline."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import ActivitySeverity

from .sinks import ActivitySink, AuditEvent

logger = logging.getLogger(__name__)

IMPORT_VERSION_CREATED = "import_version_created"
INVOICE_IMPORTED = "invoice_imported"
PRICE_CHANGE_DETECTED = "price_change_detected"
INVOICE_DISCREPANCY_RECORDED = "invoice_discrepancy_recorded"

CATEGORIES = {
    IMPORT_VERSION_CREATED: "vendor_invoice",
    INVOICE_IMPORTED: "vendor_invoice",
    PRICE_CHANGE_DETECTED: "pricing",
    INVOICE_DISCREPANCY_RECORDED: "vendor_invoice",
}

DEFAULT_SEVERITY = {
    INVOICE_DISCREPANCY_RECORDED: ActivitySeverity.WARNING,
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return value


class AuditEmitter:
    """Build audit events and fan them out; sink failures never reach the caller."""

    def __init__(
        self,
        organization: OrganizationContext,
        sinks: Sequence[ActivitySink],
        user_id: str | None = None,
    ) -> None:
        self.organization = organization
        self.sinks = list(sinks)
        self.user_id = user_id

    def build(
        self,
        activity_type: str,
        message: str,
        details: dict[str, Any] | None = None,
        severity: ActivitySeverity | str | None = None,
    ) -> AuditEvent:
        if severity is None:
            resolved = DEFAULT_SEVERITY.get(activity_type, ActivitySeverity.INFO)
        else:
            resolved = ActivitySeverity(severity)
        return AuditEvent(
            organization_id=self.organization.organization_id,
            user_id=self.user_id,
            activity_type=activity_type,
            category=CATEGORIES.get(activity_type, "general"),
            severity=resolved,
            message=message,
            details=_jsonable(details or {}),
        )

    def emit(
        self,
        activity_type: str,
        message: str,
        details: dict[str, Any] | None = None,
        severity: ActivitySeverity | str | None = None,
    ) -> AuditEvent | None:
        try:
            event = self.build(activity_type, message, details, severity)
        except Exception:  # noqa: BLE001 - audit must never break the pipeline
            logger.warning("Could not build %s audit event", activity_type, exc_info=True)
            return None

        for sink in self.sinks:
            try:
                sink.publish(event)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Audit sink %s failed for %s", sink.__class__.__name__, activity_type, exc_info=True
                )
        return event
