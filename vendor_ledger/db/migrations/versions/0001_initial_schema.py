"""Initial schema for the vendor import ledger.

Revision ID: 0001_initial_schema
Revises: 
Create Date: 2026-10-16
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None

# SQLAlchemy persists enum member names, so the labels are the upper-case names.
source_kind_enum = sa.Enum("STRUCTURED_FILE", "SCANNED_DOCUMENT", name="source_kind")
match_basis_enum = sa.Enum("INVOICE_NUMBER", "FILE_NAME", name="match_basis")
import_batch_status_enum = sa.Enum("PROCESSING", "COMPLETED", "FAILED", "SUPERSEDED", name="import_batch_status")
header_status_enum = sa.Enum("PENDING", "COMPLETED", name="header_status")
discrepancy_type_enum = sa.Enum("NONE", "SHORT", "OVER", "SUBSTITUTION", name="discrepancy_type")
triage_status_enum = sa.Enum("PENDING", "RESOLVED", "DISMISSED", name="triage_status")
activity_severity_enum = sa.Enum("INFO", "WARNING", "CRITICAL", name="activity_severity")

ALL_ENUMS = (
    source_kind_enum,
    match_basis_enum,
    import_batch_status_enum,
    header_status_enum,
    discrepancy_type_enum,
    triage_status_enum,
    activity_severity_enum,
)

ORGANIZATION_PK = "organization.id"
SCOPED_TABLES = (
    "vendor",
    "catalogitem",
    "importbatch",
    "invoiceheader",
    "lineitem",
    "triageitem",
    "pricehistoryrecord",
    "activitylog",
    "idempotencykey",
)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True, nullable=False)


def _organization_id() -> sa.Column:
    return sa.Column("organization_id", sa.String(length=36), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")
    )


def _organization_fk() -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(["organization_id"], [ORGANIZATION_PK], ondelete="CASCADE")


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ALL_ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "organization",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        "vendor",
        _id(),
        _organization_id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _created_at(),
        _organization_fk(),
        sa.UniqueConstraint("organization_id", "name", name="uq_vendor_name_per_organization"),
    )

    op.create_table(
        "catalogitem",
        _id(),
        _organization_id(),
        sa.Column("item_code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("unit_of_measure", sa.String(length=32), nullable=True),
        sa.Column("current_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("price_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price_effective_date", sa.Date(), nullable=True),
        _created_at(),
        _updated_at(),
        _organization_fk(),
    )

    op.create_table(
        "importbatch",
        _id(),
        _organization_id(),
        sa.Column("vendor_id", sa.String(length=36), nullable=False),
        sa.Column("source_kind", source_kind_enum, nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_ref", sa.String(length=500), nullable=True),
        sa.Column("document_hash", sa.String(length=64), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("match_basis", match_basis_enum, nullable=False),
        sa.Column("match_key", sa.String(length=255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("supersedes_id", sa.String(length=36), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_by", sa.String(length=64), nullable=True),
        sa.Column("status", import_batch_status_enum, nullable=False, server_default="PROCESSING"),
        sa.Column("item_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price_change_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("new_item_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        _created_at(),
        _updated_at(),
        _organization_fk(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendor.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supersedes_id"], ["importbatch.id"], ondelete="SET NULL"),
        sa.CheckConstraint("version >= 1", name="ck_importbatch_version_positive"),
        sa.UniqueConstraint(
            "organization_id",
            "vendor_id",
            "match_basis",
            "match_key",
            "version",
            name="uq_importbatch_key_version",
        ),
    )

    op.create_table(
        "invoiceheader",
        _id(),
        _organization_id(),
        sa.Column("import_batch_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("vendor_id", sa.String(length=36), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("document_hash", sa.String(length=64), nullable=False),
        sa.Column("status", header_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("verified_by", sa.String(length=64), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _organization_fk(),
        sa.ForeignKeyConstraint(["import_batch_id"], ["importbatch.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendor.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "lineitem",
        _id(),
        _organization_id(),
        sa.Column("invoice_header_id", sa.String(length=36), nullable=False),
        sa.Column("catalog_item_id", sa.String(length=36), nullable=False),
        sa.Column("vendor_code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("quantity_ordered", sa.Numeric(12, 3), nullable=False),
        sa.Column("quantity_received", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 4), nullable=False),
        sa.Column("total_price", sa.Numeric(14, 4), nullable=False),
        sa.Column("previous_unit_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("match_confidence", sa.Numeric(5, 4), nullable=True),
        sa.Column("discrepancy_type", discrepancy_type_enum, nullable=False, server_default="NONE"),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        _created_at(),
        _organization_fk(),
        sa.ForeignKeyConstraint(["invoice_header_id"], ["invoiceheader.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalogitem.id"], ondelete="RESTRICT"),
    )

    op.create_table(
        "triageitem",
        _id(),
        _organization_id(),
        sa.Column("vendor_id", sa.String(length=36), nullable=False),
        sa.Column("item_code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("unit_of_measure", sa.String(length=32), nullable=True),
        sa.Column("status", triage_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("originating_batch_id", sa.String(length=36), nullable=True),
        sa.Column("resolved_catalog_item_id", sa.String(length=36), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(length=64), nullable=True),
        _created_at(),
        _updated_at(),
        _organization_fk(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendor.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["originating_batch_id"], ["importbatch.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["resolved_catalog_item_id"], ["catalogitem.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("organization_id", "vendor_id", "item_code", "status", name="uq_triage_key"),
    )

    op.create_table(
        "pricehistoryrecord",
        _id(),
        _organization_id(),
        sa.Column("catalog_item_id", sa.String(length=36), nullable=False),
        sa.Column("vendor_id", sa.String(length=36), nullable=True),
        sa.Column("price", sa.Numeric(12, 4), nullable=False),
        sa.Column("previous_price", sa.Numeric(12, 4), nullable=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("effective_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("source_kind", source_kind_enum, nullable=False),
        sa.Column("line_item_id", sa.String(length=36), nullable=True),
        sa.Column("import_batch_id", sa.String(length=36), nullable=True),
        _created_at(),
        _organization_fk(),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalogitem.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendor.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["line_item_id"], ["lineitem.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["import_batch_id"], ["importbatch.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("catalog_item_id", "sequence", name="uq_price_history_sequence"),
    )

    op.create_table(
        "activitylog",
        _id(),
        _organization_id(),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("severity", activity_severity_enum, nullable=False, server_default="INFO"),
        sa.Column("message", sa.String(length=500), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        _created_at(),
        _organization_fk(),
    )

    op.create_table(
        "idempotencykey",
        _id(),
        _organization_id(),
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("endpoint", sa.String(length=128), nullable=False),
        sa.Column("payload_hash", sa.String(length=128), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=False),
        sa.Column("response_body", sa.JSON(), nullable=True),
        _created_at(),
        _organization_fk(),
        sa.UniqueConstraint("organization_id", "endpoint", "key", name="uq_idempotency_key"),
    )

    for table in SCOPED_TABLES:
        op.create_index(f"ix_{table}_organization_id", table, ["organization_id"])
    op.create_index("ix_catalogitem_code", "catalogitem", ["organization_id", "item_code"])
    op.create_index(
        "ix_importbatch_match",
        "importbatch",
        ["organization_id", "vendor_id", "match_basis", "match_key", "status"],
    )
    op.create_index("ix_importbatch_status", "importbatch", ["organization_id", "status"])
    op.create_index("ix_lineitem_invoice_header_id", "lineitem", ["invoice_header_id"])
    op.create_index("ix_lineitem_catalog_item_id", "lineitem", ["catalog_item_id"])
    op.create_index("ix_triage_status", "triageitem", ["organization_id", "status"])
    op.create_index("ix_price_history_effective", "pricehistoryrecord", ["catalog_item_id", "effective_date"])
    op.create_index("ix_activitylog_type", "activitylog", ["organization_id", "activity_type"])


def downgrade() -> None:
    op.drop_index("ix_activitylog_type", table_name="activitylog")
    op.drop_index("ix_price_history_effective", table_name="pricehistoryrecord")
    op.drop_index("ix_triage_status", table_name="triageitem")
    op.drop_index("ix_lineitem_catalog_item_id", table_name="lineitem")
    op.drop_index("ix_lineitem_invoice_header_id", table_name="lineitem")
    op.drop_index("ix_importbatch_status", table_name="importbatch")
    op.drop_index("ix_importbatch_match", table_name="importbatch")
    op.drop_index("ix_catalogitem_code", table_name="catalogitem")
    for table in reversed(SCOPED_TABLES):
        op.drop_index(f"ix_{table}_organization_id", table_name=table)

    op.drop_table("idempotencykey")
    op.drop_table("activitylog")
    op.drop_table("pricehistoryrecord")
    op.drop_table("triageitem")
    op.drop_table("lineitem")
    op.drop_table("invoiceheader")
    op.drop_table("importbatch")
    op.drop_table("catalogitem")
    op.drop_table("vendor")
    op.drop_table("organization")

    bind = op.get_bind()
    for enum in reversed(ALL_ENUMS):
        enum.drop(bind, checkfirst=True)
