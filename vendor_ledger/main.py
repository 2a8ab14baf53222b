"""Application entrypoint and FastAPI factory."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from strawberry.fastapi import GraphQLRouter

from vendor_ledger.api.router import router as api_router
from vendor_ledger.core.database import ENGINE, create_database_schema
from vendor_ledger.core.logging_config import configure_logging
from vendor_ledger.core.settings import BASE_DIR, Settings, get_settings
from vendor_ledger.graphql.context import context_getter
from vendor_ledger.graphql.schema import schema

logger = logging.getLogger(__name__)

ALEMBIC_INI = BASE_DIR / "alembic.ini"


def _run_migrations() -> None:
    """Execute Alembic migrations; fallback to metadata create_all on failure."""

    config = Config(str(ALEMBIC_INI))
    try:
        command.upgrade(config, "head")
    except Exception:
        logger.warning("Alembic upgrade failed; creating schema from metadata", exc_info=True)
        create_database_schema()


def _ensure_sqlite_directory(settings: Settings) -> None:
    """If using SQLite file storage, ensure parent directory exists."""

    url = settings.database_url
    if url.startswith("sqlite") and ":memory:" not in url:
        database_path = url.removeprefix("sqlite:///")
        db_file = Path(database_path).expanduser().resolve()
        db_file.parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan, ensuring shared resources are initialized/closed."""

    settings = get_settings()
    configure_logging(settings)
    _ensure_sqlite_directory(settings)
    _run_migrations()
    app.state.settings = settings
    logger.info("%s started (%s, price policy %s)", settings.app_name, settings.environment, settings.price_policy)
    try:
        yield
    finally:
        ENGINE.dispose()


def create_app() -> FastAPI:
    """Application factory used by ASGI servers."""

    settings = get_settings()
    graphql_app = GraphQLRouter(schema, path="/graphql", context_getter=context_getter)

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.include_router(api_router, prefix="/api")
    application.include_router(graphql_app, prefix="")

    return application


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("vendor_ledger.main:app", host="0.0.0.0", port=8000, reload=True)
