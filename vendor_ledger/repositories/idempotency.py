"""Repository handling idempotency key persistence."""
from __future__ import annotations

from typing import Any

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import IdempotencyKey

from .base import OrganizationScopedRepository


class IdempotencyRepository(OrganizationScopedRepository[IdempotencyKey]):
    """Persist and retrieve the stored outcome of keyed uploads."""

    model = IdempotencyKey

    def get_key(self, organization: OrganizationContext, endpoint: str, key: str) -> IdempotencyKey | None:
        statement = (
            self._scoped(organization)
            .where(self.model.endpoint == endpoint)
            .where(self.model.key == key)
        )
        return self.session.scalar(statement)

    def record(
        self,
        organization: OrganizationContext,
        endpoint: str,
        key: str,
        payload_hash: str,
        response_body: dict[str, Any],
        response_status: int = 200,
    ) -> IdempotencyKey:
        """Stage a completed result for replay; the caller commits."""

        entry = self.model(
            organization_id=organization.organization_id,
            endpoint=endpoint,
            key=key,
            payload_hash=payload_hash,
            response_status=response_status,
            response_body=response_body,
        )
        self.add(entry)
        return entry
