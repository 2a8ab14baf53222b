"""Database engine and session management utilities."""
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from vendor_ledger.db import Base, models  # noqa: F401  # Ensure models are imported for metadata registration

from .settings import get_settings


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let pysqlite honour SAVEPOINT by handing transaction control to SQLAlchemy."""

    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")

    return engine


_settings = get_settings()

ENGINE = enable_sqlite_savepoints(create_engine(_settings.database_url, future=True))
SessionLocal = sessionmaker(bind=ENGINE, class_=Session, autoflush=False, autocommit=False)


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session and ensure closure."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_database_schema() -> None:
    """Create database tables based on ORM metadata."""

    Base.metadata.create_all(bind=ENGINE)
