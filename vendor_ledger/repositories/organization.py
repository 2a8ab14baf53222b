"""Repository for organization records."""
from __future__ import annotations

from vendor_ledger.db.models import Organization

from .base import Repository


class OrganizationRepository(Repository[Organization]):
    """Access helpers for organizations."""

    model = Organization

    def get_by_name(self, name: str) -> Organization | None:
        statement = self._base_query().where(self.model.name == name)
        return self.session.scalar(statement)
