"""GraphQL context utilities for organization-aware operations."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker
from strawberry.fastapi import BaseContext

from vendor_ledger.core.database import SessionLocal
from vendor_ledger.core.organization import (
    OrganizationContext,
    OrganizationNotFoundError,
    load_organization_context,
)

ORGANIZATION_HEADER = "x-organization-id"


@dataclass(slots=True)
class GraphQLContext(BaseContext):
    """GraphQL-specific request context containing organization and DB session."""

    organization: OrganizationContext | None
    session_factory: sessionmaker[Session]

    def get_session(self) -> Session:
        """Return a new SQLAlchemy session for resolver use."""

        return self.session_factory()


def build_context(
    organization_id: str | None,
    session_factory: sessionmaker[Session] = SessionLocal,
) -> GraphQLContext:
    """Construct a GraphQL context, resolving the organization when one is named."""

    if organization_id is None:
        return GraphQLContext(organization=None, session_factory=session_factory)
    with session_factory() as session:
        organization = load_organization_context(session, organization_id)
    return GraphQLContext(organization=organization, session_factory=session_factory)


def context_getter(request: Request) -> GraphQLContext:
    """FastAPI-compatible context getter for Strawberry GraphQL router.

    Organization-level fields need the ``x-organization-id`` header; the
    organization directory itself can be queried without it.
    """

    organization_id = request.headers.get(ORGANIZATION_HEADER) or None
    session_factory = getattr(request.app.state, "session_factory", SessionLocal)
    try:
        return build_context(organization_id, session_factory)
    except OrganizationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
