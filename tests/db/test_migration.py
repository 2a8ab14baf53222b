"""The initial migration builds the same tables as the ORM metadata."""
from __future__ import annotations

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from vendor_ledger.core.settings import BASE_DIR, get_settings
from vendor_ledger.db import Base, models  # noqa: F401


def test_migration_creates_every_mapped_table(tmp_path, monkeypatch) -> None:
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    get_settings.cache_clear()
    try:
        command.upgrade(Config(str(BASE_DIR / "alembic.ini")), "head")
    finally:
        get_settings.cache_clear()

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names()) - {"alembic_version"}
        assert tables == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == {column.name for column in table.columns}, name

        unique_names = {constraint["name"] for constraint in inspector.get_unique_constraints("importbatch")}
        assert "uq_importbatch_key_version" in unique_names
        ledger_rules = {
            tuple(foreign_key["constrained_columns"]): foreign_key["options"].get("ondelete")
            for foreign_key in inspector.get_foreign_keys("pricehistoryrecord")
        }
        assert ledger_rules[("line_item_id",)] == "RESTRICT"
        assert ledger_rules[("import_batch_id",)] == "RESTRICT"
    finally:
        engine.dispose()
