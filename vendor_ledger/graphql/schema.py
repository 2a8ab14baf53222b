"""Strawberry GraphQL schema definition."""
from __future__ import annotations

from collections.abc import Callable
from contextlib import contextmanager
from datetime import date, datetime
from typing import TypeVar

import strawberry
from graphql import GraphQLError
from sqlalchemy.orm import Session
from strawberry.types import Info

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.db.models import HeaderStatus, ImportBatchStatus, MatchBasis, SourceKind, TriageStatus
from vendor_ledger.graphql.context import ORGANIZATION_HEADER, GraphQLContext
from vendor_ledger.schemas.import_batch import ImportBatchRead, InvoiceHeaderRead
from vendor_ledger.schemas.organization import OrganizationCreate, OrganizationRead
from vendor_ledger.schemas.price_history import PriceAuditSummary, PriceAuditTrail, PriceHistoryRead
from vendor_ledger.schemas.triage import TriageItemRead
from vendor_ledger.services.exceptions import ServiceError
from vendor_ledger.services.import_history_service import ImportHistoryService
from vendor_ledger.services.organization_service import OrganizationService
from vendor_ledger.services.price_history_service import PriceHistoryService
from vendor_ledger.services.triage_service import TriageService


ServiceType = TypeVar("ServiceType")
ResultType = TypeVar("ResultType")


HeaderStatusEnum = strawberry.enum(HeaderStatus, name="HeaderStatus")
ImportBatchStatusEnum = strawberry.enum(ImportBatchStatus, name="ImportBatchStatus")
MatchBasisEnum = strawberry.enum(MatchBasis, name="MatchBasis")
SourceKindEnum = strawberry.enum(SourceKind, name="SourceKind")
TriageStatusEnum = strawberry.enum(TriageStatus, name="TriageStatus")


@contextmanager
def _session_scope(context: GraphQLContext):
    session = context.get_session()
    try:
        yield session
    finally:
        session.close()


def _require_organization(context: GraphQLContext) -> OrganizationContext:
    if context.organization is None:
        raise GraphQLError(f"Missing {ORGANIZATION_HEADER} header")
    return context.organization


def _execute_with_service(
    info: Info[GraphQLContext, None],
    builder: Callable[[Session, GraphQLContext], ServiceType],
    executor: Callable[[ServiceType], ResultType],
) -> ResultType:
    context = info.context
    with _session_scope(context) as session:
        service = builder(session, context)
        try:
            return executor(service)
        except ServiceError as exc:
            raise GraphQLError(str(exc)) from exc


@strawberry.type
class HealthCheck:
    status: str


@strawberry.type
class OrganizationType:
    id: strawberry.ID
    name: str
    created_at: datetime


@strawberry.type
class ImportBatchType:
    id: strawberry.ID
    vendor_id: strawberry.ID
    source_kind: SourceKindEnum
    file_name: str
    invoice_number: str
    invoice_date: date
    match_basis: MatchBasisEnum
    match_key: str
    version: int
    supersedes_id: strawberry.ID | None
    superseded_by: strawberry.ID | None
    superseded_at: datetime | None
    status: ImportBatchStatusEnum
    item_count: int
    price_change_count: int
    new_item_count: int
    error_message: str | None
    created_at: datetime


@strawberry.type
class PriceHistoryType:
    id: strawberry.ID
    catalog_item_id: strawberry.ID
    vendor_id: strawberry.ID | None
    price: float
    previous_price: float | None
    sequence: int
    effective_date: datetime
    invoice_date: date | None
    source_kind: SourceKindEnum
    line_item_id: strawberry.ID | None
    import_batch_id: strawberry.ID | None


@strawberry.type
class TriageItemType:
    id: strawberry.ID
    vendor_id: strawberry.ID
    item_code: str
    description: str | None
    unit_price: float | None
    unit_of_measure: str | None
    status: TriageStatusEnum
    originating_batch_id: strawberry.ID | None
    resolved_catalog_item_id: strawberry.ID | None
    resolved_at: datetime | None
    created_at: datetime


@strawberry.type
class PriceAuditType:
    total_records: int
    fully_documented: int
    batch_linked_only: int
    unlinked: int
    documentation_rate: float


@strawberry.type
class PriceAuditTrailType:
    price_history_id: strawberry.ID
    catalog_item_id: strawberry.ID
    item_name: str
    item_code: str | None
    vendor_id: strawberry.ID | None
    price: float
    previous_price: float | None
    change_percent: float | None
    sequence: int
    effective_date: datetime
    source_kind: SourceKindEnum
    documentation: str
    import_batch_id: strawberry.ID | None
    import_file_name: str | None
    import_version: int | None
    import_status: ImportBatchStatusEnum | None
    imported_at: datetime | None
    imported_by: str | None
    invoice_header_id: strawberry.ID | None
    invoice_number: str | None
    invoice_date: date | None
    document_hash: str | None
    invoice_status: HeaderStatusEnum | None
    verified_by: str | None
    verified_at: datetime | None
    line_item_id: strawberry.ID | None
    quantity_received: float | None
    invoice_unit_price: float | None
    match_confidence: float | None


@strawberry.type
class InvoiceType:
    id: strawberry.ID
    import_batch_id: strawberry.ID
    vendor_id: strawberry.ID
    invoice_number: str
    invoice_date: date
    total_amount: float
    document_hash: str
    status: HeaderStatusEnum
    verified_by: str | None
    verified_at: datetime | None


@strawberry.type
class SweepResult:
    failed_batch_ids: list[strawberry.ID]


def _to_organization_type(organization: OrganizationRead) -> OrganizationType:
    return OrganizationType(id=organization.id, name=organization.name, created_at=organization.created_at)


def _to_import_batch_type(batch: ImportBatchRead) -> ImportBatchType:
    return ImportBatchType(
        id=batch.id,
        vendor_id=batch.vendor_id,
        source_kind=SourceKindEnum(batch.source_kind),
        file_name=batch.file_name,
        invoice_number=batch.invoice_number,
        invoice_date=batch.invoice_date,
        match_basis=MatchBasisEnum(batch.match_basis),
        match_key=batch.match_key,
        version=batch.version,
        supersedes_id=batch.supersedes_id,
        superseded_by=batch.superseded_by,
        superseded_at=batch.superseded_at,
        status=ImportBatchStatusEnum(batch.status),
        item_count=batch.item_count,
        price_change_count=batch.price_change_count,
        new_item_count=batch.new_item_count,
        error_message=batch.error_message,
        created_at=batch.created_at,
    )


def _to_price_history_type(record: PriceHistoryRead) -> PriceHistoryType:
    return PriceHistoryType(
        id=record.id,
        catalog_item_id=record.catalog_item_id,
        vendor_id=record.vendor_id,
        price=record.price,
        previous_price=record.previous_price,
        sequence=record.sequence,
        effective_date=record.effective_date,
        invoice_date=record.invoice_date,
        source_kind=SourceKindEnum(record.source_kind),
        line_item_id=record.line_item_id,
        import_batch_id=record.import_batch_id,
    )


def _to_triage_item_type(item: TriageItemRead) -> TriageItemType:
    return TriageItemType(
        id=item.id,
        vendor_id=item.vendor_id,
        item_code=item.item_code,
        description=item.description,
        unit_price=item.unit_price,
        unit_of_measure=item.unit_of_measure,
        status=TriageStatusEnum(item.status),
        originating_batch_id=item.originating_batch_id,
        resolved_catalog_item_id=item.resolved_catalog_item_id,
        resolved_at=item.resolved_at,
        created_at=item.created_at,
    )


def _to_price_audit_type(summary: PriceAuditSummary) -> PriceAuditType:
    return PriceAuditType(
        total_records=summary.total_records,
        fully_documented=summary.fully_documented,
        batch_linked_only=summary.batch_linked_only,
        unlinked=summary.unlinked,
        documentation_rate=summary.documentation_rate,
    )


def _to_price_audit_trail_type(trail: PriceAuditTrail) -> PriceAuditTrailType:
    return PriceAuditTrailType(**trail.model_dump())


def _to_invoice_type(header: InvoiceHeaderRead) -> InvoiceType:
    return InvoiceType(
        id=header.id,
        import_batch_id=header.import_batch_id,
        vendor_id=header.vendor_id,
        invoice_number=header.invoice_number,
        invoice_date=header.invoice_date,
        total_amount=header.total_amount,
        document_hash=header.document_hash,
        status=HeaderStatusEnum(header.status),
        verified_by=header.verified_by,
        verified_at=header.verified_at,
    )


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field(description="Basic service liveness check")
    def health(self) -> HealthCheck:
        return HealthCheck(status="ok")

    @strawberry.field(description="List all organizations")
    def organizations(self, info: Info[GraphQLContext, None]) -> list[OrganizationType]:
        result = _execute_with_service(
            info,
            lambda session, _context: OrganizationService(session),
            lambda service: service.list(),
        )
        return [_to_organization_type(item) for item in result]

    @strawberry.field(description="List a vendor's import batches, newest version first")
    def import_batches(
        self,
        info: Info[GraphQLContext, None],
        vendor_id: strawberry.ID,
        match_key: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[ImportBatchType]:
        rows = _execute_with_service(
            info,
            lambda session, context: ImportHistoryService(session, _require_organization(context)),
            lambda service: service.list_batches_for_vendor(
                str(vendor_id), match_key=match_key, offset=offset, limit=limit
            ),
        )
        return [_to_import_batch_type(item) for item in rows]

    @strawberry.field(description="Price ledger for one catalog item")
    def price_history(
        self,
        info: Info[GraphQLContext, None],
        catalog_item_id: strawberry.ID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PriceHistoryType]:
        rows = _execute_with_service(
            info,
            lambda session, context: PriceHistoryService(session, _require_organization(context)),
            lambda service: service.list_price_history(str(catalog_item_id), start=start, end=end),
        )
        return [_to_price_history_type(item) for item in rows]

    @strawberry.field(description="List triage items, pending ones by default")
    def triage_items(
        self,
        info: Info[GraphQLContext, None],
        status: TriageStatusEnum | None = TriageStatus.PENDING,
        vendor_id: strawberry.ID | None = None,
    ) -> list[TriageItemType]:
        status_filter = status if status is None else TriageStatus(status.value)
        rows = _execute_with_service(
            info,
            lambda session, context: TriageService(session, _require_organization(context)),
            lambda service: service.list(
                status=status_filter,
                vendor_id=str(vendor_id) if vendor_id is not None else None,
            ),
        )
        return [_to_triage_item_type(item) for item in rows]

    @strawberry.field(description="How much of the price history is tied back to documents")
    def price_audit(self, info: Info[GraphQLContext, None]) -> PriceAuditType:
        summary = _execute_with_service(
            info,
            lambda session, context: PriceHistoryService(session, _require_organization(context)),
            lambda service: service.price_audit_summary(),
        )
        return _to_price_audit_type(summary)

    @strawberry.field(description="Trace one price history record back to its source document")
    def price_audit_trail(self, info: Info[GraphQLContext, None], record_id: strawberry.ID) -> PriceAuditTrailType:
        trail = _execute_with_service(
            info,
            lambda session, context: PriceHistoryService(session, _require_organization(context)),
            lambda service: service.price_audit_trail(str(record_id)),
        )
        return _to_price_audit_trail_type(trail)


@strawberry.type
class Mutation:
    """Root GraphQL mutation type."""

    @strawberry.mutation(description="Create a new organization")
    def create_organization(self, info: Info[GraphQLContext, None], name: str) -> OrganizationType:
        organization = _execute_with_service(
            info,
            lambda session, _context: OrganizationService(session),
            lambda service: service.create(OrganizationCreate(name=name)),
        )
        return _to_organization_type(organization)

    @strawberry.mutation(description="Link a triage item to a catalog item, creating one when omitted")
    def resolve_triage_item(
        self,
        info: Info[GraphQLContext, None],
        triage_id: strawberry.ID,
        catalog_item_id: strawberry.ID | None = None,
        user_id: str | None = None,
    ) -> TriageItemType:
        item = _execute_with_service(
            info,
            lambda session, context: TriageService(session, _require_organization(context)),
            lambda service: service.resolve(
                str(triage_id),
                catalog_item_id=str(catalog_item_id) if catalog_item_id is not None else None,
                user_id=user_id,
            ),
        )
        return _to_triage_item_type(item)

    @strawberry.mutation(description="Dismiss a pending triage item")
    def dismiss_triage_item(
        self,
        info: Info[GraphQLContext, None],
        triage_id: strawberry.ID,
        user_id: str | None = None,
    ) -> TriageItemType:
        item = _execute_with_service(
            info,
            lambda session, context: TriageService(session, _require_organization(context)),
            lambda service: service.dismiss(str(triage_id), user_id=user_id),
        )
        return _to_triage_item_type(item)

    @strawberry.mutation(description="Mark a completed invoice as verified")
    def verify_invoice(
        self,
        info: Info[GraphQLContext, None],
        invoice_id: strawberry.ID,
        verified_by: str,
    ) -> InvoiceType:
        header = _execute_with_service(
            info,
            lambda session, context: ImportHistoryService(session, _require_organization(context)),
            lambda service: service.verify_invoice(str(invoice_id), verified_by),
        )
        return _to_invoice_type(header)

    @strawberry.mutation(description="Fail import batches stuck in processing")
    def sweep_stale_batches(self, info: Info[GraphQLContext, None]) -> SweepResult:
        ids = _execute_with_service(
            info,
            lambda session, context: ImportHistoryService(session, _require_organization(context)),
            lambda service: service.sweep_stale_batches(),
        )
        return SweepResult(failed_batch_ids=ids)


schema = strawberry.Schema(query=Query, mutation=Mutation)
