"""ORM model definitions for the vendor import ledger."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from vendor_ledger.services.exceptions import ImmutableRecordError, ValidationError

from .base import Base, TimestampMixin, UpdatedAtMixin

DELETE_CASCADE = "all, delete-orphan"

UUID_STR = String(36)
ITEM_CODE = String(64)
USER_REF = String(64)
PRICE = Numeric(12, 4)
QUANTITY = Numeric(12, 3)
AMOUNT = Numeric(14, 4)

STRUCTURED_EXTENSIONS = frozenset({".csv", ".tsv", ".xlsx", ".xls", ".json", ".xml"})


class ImportBatchStatus(str, Enum):
    """Lifecycle state for import batches."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SUPERSEDED = "superseded"


class HeaderStatus(str, Enum):
    """Lifecycle state for invoice headers."""

    PENDING = "pending"
    COMPLETED = "completed"


class DiscrepancyType(str, Enum):
    """Delivery outcome of a line item."""

    NONE = "none"
    SHORT = "short"
    OVER = "over"
    SUBSTITUTION = "substitution"


class TriageStatus(str, Enum):
    """Queue states for unmatched items."""

    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class MatchBasis(str, Enum):
    """Which document attribute a version chain is keyed on."""

    INVOICE_NUMBER = "invoice_number"
    FILE_NAME = "file_name"


class ActivitySeverity(str, Enum):
    """Severity attached to activity log entries."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SourceKind(str, Enum):
    """How the vendor document arrived."""

    STRUCTURED_FILE = "structured_file"
    SCANNED_DOCUMENT = "scanned_document"

    @classmethod
    def from_file_name(cls, file_name: str) -> "SourceKind":
        if PurePath(file_name).suffix.lower() in STRUCTURED_EXTENSIONS:
            return cls.STRUCTURED_FILE
        return cls.SCANNED_DOCUMENT


class Organization(Base, TimestampMixin):
    """Organization represents an isolated tenant of the ledger."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    vendors: Mapped[list["Vendor"]] = relationship("Vendor", back_populates="organization", cascade=DELETE_CASCADE)
    catalog_items: Mapped[list["CatalogItem"]] = relationship(
        "CatalogItem", back_populates="organization", cascade=DELETE_CASCADE
    )
    import_batches: Mapped[list["ImportBatch"]] = relationship(
        "ImportBatch", back_populates="organization", cascade=DELETE_CASCADE
    )


class OrganizationScopedMixin(TimestampMixin):
    """Mixin for organization-scoped entities."""

    organization_id: Mapped[str] = mapped_column(
        UUID_STR, ForeignKey("organization.id", ondelete="cascade"), nullable=False, index=True
    )


class Vendor(OrganizationScopedMixin, Base):
    """Supplier issuing invoices to an organization."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    organization: Mapped[Organization] = relationship("Organization", back_populates="vendors")
    import_batches: Mapped[list["ImportBatch"]] = relationship("ImportBatch", back_populates="vendor")

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_vendor_name_per_organization"),
    )


class CatalogItem(OrganizationScopedMixin, UpdatedAtMixin, Base):
    """Known catalog entry whose current price is maintained by imports."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    item_code: Mapped[str | None] = mapped_column(ITEM_CODE, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_of_measure: Mapped[str | None] = mapped_column(String(32), nullable=True)
    current_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    price_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    organization: Mapped[Organization] = relationship("Organization", back_populates="catalog_items")
    price_history: Mapped[list["PriceHistoryRecord"]] = relationship(
        "PriceHistoryRecord", back_populates="catalog_item", order_by="PriceHistoryRecord.sequence"
    )

    __table_args__ = (
        Index("ix_catalogitem_code", "organization_id", "item_code"),
    )


class ImportBatch(OrganizationScopedMixin, UpdatedAtMixin, Base):
    """One ingestion attempt of a vendor document."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    vendor_id: Mapped[str] = mapped_column(UUID_STR, ForeignKey("vendor.id", ondelete="cascade"), nullable=False)
    source_kind: Mapped[SourceKind] = mapped_column(SQLEnum(SourceKind, name="source_kind"), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    document_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    match_basis: Mapped[MatchBasis] = mapped_column(SQLEnum(MatchBasis, name="match_basis"), nullable=False)
    match_key: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    supersedes_id: Mapped[str | None] = mapped_column(
        UUID_STR, ForeignKey("importbatch.id", ondelete="set null"), nullable=True
    )
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    superseded_by: Mapped[str | None] = mapped_column(USER_REF, nullable=True)
    status: Mapped[ImportBatchStatus] = mapped_column(
        SQLEnum(ImportBatchStatus, name="import_batch_status"),
        default=ImportBatchStatus.PROCESSING,
        nullable=False,
    )
    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_change_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(USER_REF, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    organization: Mapped[Organization] = relationship("Organization", back_populates="import_batches")
    vendor: Mapped[Vendor] = relationship("Vendor", back_populates="import_batches")
    supersedes: Mapped["ImportBatch | None"] = relationship("ImportBatch", remote_side=[id])
    header: Mapped["InvoiceHeader | None"] = relationship(
        "InvoiceHeader", back_populates="import_batch", uselist=False, cascade=DELETE_CASCADE
    )

    __table_args__ = (
        CheckConstraint("version >= 1", name="ck_importbatch_version_positive"),
        UniqueConstraint(
            "organization_id", "vendor_id", "match_basis", "match_key", "version", name="uq_importbatch_key_version"
        ),
        Index("ix_importbatch_match", "organization_id", "vendor_id", "match_basis", "match_key", "status"),
        Index("ix_importbatch_status", "organization_id", "status"),
    )


class InvoiceHeader(OrganizationScopedMixin, Base):
    """Financial document derived from an import batch."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    import_batch_id: Mapped[str] = mapped_column(
        UUID_STR, ForeignKey("importbatch.id", ondelete="cascade"), nullable=False, unique=True
    )
    vendor_id: Mapped[str] = mapped_column(UUID_STR, ForeignKey("vendor.id", ondelete="cascade"), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    document_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[HeaderStatus] = mapped_column(
        SQLEnum(HeaderStatus, name="header_status"), default=HeaderStatus.PENDING, nullable=False
    )
    verified_by: Mapped[str | None] = mapped_column(USER_REF, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    import_batch: Mapped[ImportBatch] = relationship("ImportBatch", back_populates="header")
    line_items: Mapped[list["LineItem"]] = relationship(
        "LineItem", back_populates="invoice_header", cascade=DELETE_CASCADE
    )


class LineItem(OrganizationScopedMixin, Base):
    """Reconciled invoice line linked to a catalog item."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    invoice_header_id: Mapped[str] = mapped_column(
        UUID_STR, ForeignKey("invoiceheader.id", ondelete="cascade"), nullable=False, index=True
    )
    catalog_item_id: Mapped[str] = mapped_column(
        UUID_STR, ForeignKey("catalogitem.id", ondelete="restrict"), nullable=False, index=True
    )
    vendor_code: Mapped[str] = mapped_column(ITEM_CODE, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    quantity_ordered: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    quantity_received: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    previous_unit_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    match_confidence: Mapped[Decimal | None] = mapped_column(Numeric(5, 4), nullable=True)
    discrepancy_type: Mapped[DiscrepancyType] = mapped_column(
        SQLEnum(DiscrepancyType, name="discrepancy_type"), default=DiscrepancyType.NONE, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    invoice_header: Mapped[InvoiceHeader] = relationship("InvoiceHeader", back_populates="line_items")
    catalog_item: Mapped[CatalogItem] = relationship("CatalogItem")

    @validates("catalog_item_id")
    def _require_catalog_item(self, _key: str, value: str | None) -> str:
        if not value:
            raise ValidationError("Line items must reference a catalog item")
        return value


class TriageItem(OrganizationScopedMixin, UpdatedAtMixin, Base):
    """Unmatched candidate waiting for a person to link or dismiss it."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    vendor_id: Mapped[str] = mapped_column(UUID_STR, ForeignKey("vendor.id", ondelete="cascade"), nullable=False)
    item_code: Mapped[str] = mapped_column(ITEM_CODE, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    unit_of_measure: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[TriageStatus] = mapped_column(
        SQLEnum(TriageStatus, name="triage_status"), default=TriageStatus.PENDING, nullable=False
    )
    originating_batch_id: Mapped[str | None] = mapped_column(
        UUID_STR, ForeignKey("importbatch.id", ondelete="set null"), nullable=True
    )
    resolved_catalog_item_id: Mapped[str | None] = mapped_column(
        UUID_STR, ForeignKey("catalogitem.id", ondelete="set null"), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(USER_REF, nullable=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "vendor_id", "item_code", "status", name="uq_triage_key"),
        Index("ix_triage_status", "organization_id", "status"),
    )


class PriceHistoryRecord(OrganizationScopedMixin, Base):
    """Append-only ledger entry recording a catalog price observation."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    catalog_item_id: Mapped[str] = mapped_column(
        UUID_STR, ForeignKey("catalogitem.id", ondelete="restrict"), nullable=False
    )
    vendor_id: Mapped[str | None] = mapped_column(UUID_STR, ForeignKey("vendor.id", ondelete="restrict"), nullable=True)
    price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    previous_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    effective_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    source_kind: Mapped[SourceKind] = mapped_column(SQLEnum(SourceKind, name="source_kind"), nullable=False)
    line_item_id: Mapped[str | None] = mapped_column(
        UUID_STR, ForeignKey("lineitem.id", ondelete="restrict"), nullable=True
    )
    import_batch_id: Mapped[str | None] = mapped_column(
        UUID_STR, ForeignKey("importbatch.id", ondelete="restrict"), nullable=True
    )

    catalog_item: Mapped[CatalogItem] = relationship("CatalogItem", back_populates="price_history")

    __table_args__ = (
        UniqueConstraint("catalog_item_id", "sequence", name="uq_price_history_sequence"),
        Index("ix_price_history_effective", "catalog_item_id", "effective_date"),
    )


class ActivityLog(OrganizationScopedMixin, Base):
    """Persisted audit event."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str | None] = mapped_column(USER_REF, nullable=True)
    activity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    severity: Mapped[ActivitySeverity] = mapped_column(
        SQLEnum(ActivitySeverity, name="activity_severity"), default=ActivitySeverity.INFO, nullable=False
    )
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_activitylog_type", "organization_id", "activity_type"),
    )


class IdempotencyKey(OrganizationScopedMixin, Base):
    """Persisted idempotency key usage for POST operations."""

    id: Mapped[str] = mapped_column(UUID_STR, primary_key=True, default=lambda: str(uuid4()))
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    response_status: Mapped[int] = mapped_column(nullable=False)
    response_body: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "endpoint", "key", name="uq_idempotency_key"),
    )


@event.listens_for(PriceHistoryRecord, "before_update")
def _reject_price_history_update(_mapper, _connection, target: PriceHistoryRecord) -> None:
    raise ImmutableRecordError(f"Price history record {target.id} is append-only")


@event.listens_for(PriceHistoryRecord, "before_delete")
def _reject_price_history_delete(_mapper, _connection, target: PriceHistoryRecord) -> None:
    raise ImmutableRecordError(f"Price history record {target.id} cannot be deleted")


__all__ = [
    "Organization",
    "Vendor",
    "CatalogItem",
    "ImportBatch",
    "InvoiceHeader",
    "LineItem",
    "TriageItem",
    "PriceHistoryRecord",
    "ActivityLog",
    "IdempotencyKey",
    "ImportBatchStatus",
    "HeaderStatus",
    "DiscrepancyType",
    "TriageStatus",
    "MatchBasis",
    "ActivitySeverity",
    "SourceKind",
]
