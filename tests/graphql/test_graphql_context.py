"""Tests for GraphQL context utilities."""
from __future__ import annotations

import asyncio
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import Request

from vendor_ledger.core.organization import OrganizationContext, OrganizationNotFoundError
from vendor_ledger.graphql import context as graphql_context


async def _empty_receive() -> dict[str, str]:
    await asyncio.sleep(0)
    return {"type": "http.request"}


def _make_request(headers: dict[str, str], app: FastAPI | None = None) -> Request:
    raw_headers = [
        (key.lower().encode("latin-1"), value.encode("latin-1"))
        for key, value in headers.items()
    ]
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/graphql",
        "headers": raw_headers,
        "app": app or FastAPI(),
    }
    return Request(scope, _empty_receive)


def test_context_without_organization(session_factory: sessionmaker[Session]) -> None:
    context = graphql_context.build_context(None, session_factory)

    assert context.organization is None
    assert context.session_factory is session_factory


def test_get_session_uses_session_factory() -> None:
    sessions = [object(), object()]
    session_factory = MagicMock(side_effect=sessions)
    context = graphql_context.GraphQLContext(organization=None, session_factory=session_factory)

    assert context.get_session() is sessions[0]
    assert context.get_session() is sessions[1]
    assert session_factory.call_count == 2


def test_build_context_resolves_organization(
    session: Session,
    session_factory: sessionmaker[Session],
    organization: OrganizationContext,
) -> None:
    session.commit()

    context = graphql_context.build_context(organization.organization_id, session_factory)

    assert context.organization == organization


def test_build_context_unknown_organization(session_factory: sessionmaker[Session]) -> None:
    with pytest.raises(OrganizationNotFoundError):
        graphql_context.build_context(str(uuid4()), session_factory)


def test_context_getter_uses_app_session_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    expected_context = object()
    build_mock = MagicMock(return_value=expected_context)
    monkeypatch.setattr(graphql_context, "build_context", build_mock)
    app = FastAPI()
    factory = MagicMock()
    app.state.session_factory = factory

    result = graphql_context.context_getter(_make_request({"x-organization-id": "org-xyz"}, app))

    assert result is expected_context
    build_mock.assert_called_once_with("org-xyz", factory)


def test_context_getter_without_header_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    build_mock = MagicMock()
    monkeypatch.setattr(graphql_context, "build_context", build_mock)

    graphql_context.context_getter(_make_request({}))

    build_mock.assert_called_once_with(None, graphql_context.SessionLocal)


def test_context_getter_unknown_organization_raises_http_exception(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(organization_id, session_factory):
        raise OrganizationNotFoundError(f"Organization {organization_id} not found")

    monkeypatch.setattr(graphql_context, "build_context", missing)

    with pytest.raises(HTTPException) as exc_info:
        graphql_context.context_getter(_make_request({"x-organization-id": "nope"}))

    assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND


def test_unknown_organization_header_is_not_found(client) -> None:
    response = client.post(
        "/graphql",
        json={"query": "{ health { status } }"},
        headers={"x-organization-id": str(uuid4())},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
