"""Vendor document ingestion: version lineage, reconciliation, price ledger and triage.

The run is split into two database transactions around an explicit
``PipelineRun`` state machine:

1. Resolving, Superseding and CreatingBatch commit together. If anything
   fails here nothing is persisted and the error is raised.
2. CreatingHeader through Finalizing commit together. A fatal error
   rolls this transaction back and the batch is marked ``failed`` in its own
   commit; the caller gets a failed ``IngestResult`` instead of an exception.

Finalizing recomputes the batch aggregates from the flushed line items and
marks the batch completed in the same commit as the ledger rows, so a batch
never reads ``failed`` while its prices are in place. Audit events go out
only after the data they describe has been committed.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vendor_ledger.activity.emitter import (
    IMPORT_VERSION_CREATED,
    INVOICE_DISCREPANCY_RECORDED,
    INVOICE_IMPORTED,
    PRICE_CHANGE_DETECTED,
    AuditEmitter,
)
from vendor_ledger.activity.sinks import ActivitySink, resolve_activity_sinks
from vendor_ledger.core.organization import OrganizationContext, OrganizationMismatchError
from vendor_ledger.core.settings import Settings, get_settings
from vendor_ledger.db.base import utcnow
from vendor_ledger.db.models import (
    HeaderStatus,
    ImportBatch,
    ImportBatchStatus,
    InvoiceHeader,
    LineItem,
)
from vendor_ledger.repositories.catalog import CatalogItemRepository
from vendor_ledger.repositories.idempotency import IdempotencyRepository
from vendor_ledger.repositories.import_batch import ImportBatchRepository
from vendor_ledger.repositories.invoice import InvoiceHeaderRepository, LineItemRepository
from vendor_ledger.repositories.vendor import VendorRepository
from vendor_ledger.schemas.ingest import IngestRequest, IngestResult
from vendor_ledger.schemas.reconciliation import ReconciledLine, ReconciliationOutcome
from vendor_ledger.utils.hash import document_digest, stable_hash

from .exceptions import ConflictError, DocumentHashError, NotFoundError, ServiceError
from .pipeline import PipelineRun, PipelineState
from .price_ledger import PriceApplication, PriceLedgerWriter
from .reconciliation import ReconciliationEngine, document_total
from .triage_service import TriageService
from .versioning import (
    SupersessionEngine,
    VersionResolution,
    VersionResolver,
    display_invoice_number,
)

logger = logging.getLogger(__name__)

ERROR_MESSAGE_LIMIT = 1000


@dataclass(slots=True)
class _DocumentOutcome:
    header_id: str
    total_amount: float
    reconciliation: ReconciliationOutcome
    applications: list[PriceApplication] = field(default_factory=list)


class IngestionService:
    """Run the import pipeline for one vendor document."""

    IDEMPOTENCY_ENDPOINT = "vendor_document_ingest"

    def __init__(
        self,
        session: Session,
        organization: OrganizationContext,
        settings: Settings | None = None,
        sinks: Sequence[ActivitySink] | None = None,
        reconciler: ReconciliationEngine | None = None,
    ) -> None:
        self.session = session
        self.organization = organization
        self.settings = settings or get_settings()
        self.vendors = VendorRepository(session)
        self.batches = ImportBatchRepository(session)
        self.catalog = CatalogItemRepository(session)
        self.headers = InvoiceHeaderRepository(session)
        self.line_items = LineItemRepository(session)
        self.idempotency = IdempotencyRepository(session)
        self.resolver = VersionResolver(session, organization)
        self.supersession = SupersessionEngine(session, organization)
        self.reconciler = reconciler or ReconciliationEngine()
        self.ledger = PriceLedgerWriter(session, organization, self.settings)
        self.triage = TriageService(session, organization)
        self.sinks = list(sinks) if sinks is not None else resolve_activity_sinks(self.settings, session)

    def ingest(self, request: IngestRequest, idempotency_key: str | None = None) -> IngestResult:
        if idempotency_key is None:
            return self._run(request)

        payload_hash = stable_hash(self._fingerprint(request))
        existing = self.idempotency.get_key(self.organization, self.IDEMPOTENCY_ENDPOINT, idempotency_key)
        if existing:
            if existing.payload_hash != payload_hash:
                raise ConflictError("Idempotency key re-used with different payload")
            return IngestResult.model_validate(existing.response_body or {})

        result = self._run(request)
        if result.status != "completed":
            return result

        self.idempotency.record(
            self.organization,
            self.IDEMPOTENCY_ENDPOINT,
            idempotency_key,
            payload_hash,
            result.model_dump(mode="json"),
        )
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Idempotency key was claimed by a concurrent request") from exc
        return result

    def _run(self, request: IngestRequest) -> IngestResult:
        run = PipelineRun()
        emitter = AuditEmitter(self.organization, self.sinks, user_id=request.user_id)

        try:
            digest = document_digest(request.document_bytes)
        except DocumentHashError as exc:
            run.fail(str(exc))
            raise

        batch, resolution = self._open_batch(run, request, digest)
        batch_id = batch.id
        if resolution.prior_batches:
            self._emit_version_created(emitter, request, batch, resolution)

        try:
            document = self._process_document(run, batch, request)
            self._finalize(run, batch, document)
        except Exception as exc:  # noqa: BLE001 - any failure here fails the batch, not the caller
            logger.exception("Ingestion of batch %s failed in %s", batch_id, run.state.value)
            message = self._mark_failed(run, batch_id, exc)
            return IngestResult(
                import_batch_id=batch_id,
                version=resolution.next_version,
                is_correction=resolution.is_correction,
                invoice_number=batch.invoice_number,
                status="failed",
                error_message=message,
                warnings=list(run.warnings),
            )
        except BaseException as exc:
            # interrupted mid-run: never leave the batch in processing
            self._mark_failed(run, batch_id, exc)
            raise

        outcome = document.reconciliation
        result = IngestResult(
            import_batch_id=batch_id,
            version=batch.version,
            is_correction=resolution.is_correction,
            invoice_number=batch.invoice_number,
            matched_count=len(outcome.matched),
            unmatched_count=len(outcome.unmatched),
            price_change_count=batch.price_change_count,
            shortage_item_count=len(outcome.shortages),
            shortage_value=float(outcome.shortage_value),
            status="completed",
            warnings=list(run.warnings),
        )
        self._emit_completion(emitter, request, batch, document, result)
        return result

    def _open_batch(
        self,
        run: PipelineRun,
        request: IngestRequest,
        digest: str,
    ) -> tuple[ImportBatch, VersionResolution]:
        try:
            run.advance(PipelineState.RESOLVING)
            vendor = self.vendors.ensure(self.organization, request.vendor_id, request.vendor_name)
            resolution = self.resolver.resolve(vendor.id, request.invoice_number, request.file_name)

            run.advance(PipelineState.SUPERSEDING)
            self.supersession.supersede(resolution.prior_ids, request.user_id, utcnow())

            run.advance(PipelineState.CREATING_BATCH)
            latest = resolution.latest_prior
            batch = ImportBatch(
                organization_id=self.organization.organization_id,
                vendor_id=vendor.id,
                source_kind=request.source_kind,
                file_name=request.file_name,
                file_ref=request.file_ref,
                document_hash=digest,
                invoice_number=display_invoice_number(request.invoice_number, request.invoice_date),
                invoice_date=request.invoice_date,
                match_basis=resolution.match_basis,
                match_key=resolution.match_key,
                version=resolution.next_version,
                supersedes_id=latest.id if latest is not None else None,
                status=ImportBatchStatus.PROCESSING,
                created_by=request.user_id,
            )
            self.session.add(batch)
            self.session.commit()
        except OrganizationMismatchError as exc:
            self.session.rollback()
            run.fail(str(exc))
            raise NotFoundError("Vendor not found") from exc
        except IntegrityError as exc:
            self.session.rollback()
            run.fail(str(exc))
            raise ConflictError("Could not create the import batch due to a database constraint") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            run.fail(str(exc))
            raise ServiceError("Could not create the import batch") from exc
        except ServiceError as exc:
            self.session.rollback()
            run.fail(str(exc))
            raise

        logger.info(
            "Opened batch %s: %s=%r version %d (superseding %d)",
            batch.id,
            resolution.match_basis.value,
            resolution.match_key,
            resolution.next_version,
            len(resolution.prior_batches),
        )
        return batch, resolution

    def _process_document(self, run: PipelineRun, batch: ImportBatch, request: IngestRequest) -> _DocumentOutcome:
        candidates = request.candidate_line_items

        run.advance(PipelineState.CREATING_HEADER)
        total_amount = document_total(candidates)
        header = InvoiceHeader(
            organization_id=self.organization.organization_id,
            import_batch_id=batch.id,
            vendor_id=batch.vendor_id,
            invoice_date=batch.invoice_date,
            invoice_number=batch.invoice_number,
            total_amount=total_amount,
            document_hash=batch.document_hash,
            status=HeaderStatus.PENDING,
        )
        self.session.add(header)
        self.session.flush()

        run.advance(PipelineState.RECONCILING)
        catalog = self.catalog.lookup(self.organization, (c.matched_catalog_id for c in candidates))
        reconciliation = self.reconciler.reconcile(candidates, catalog)

        run.advance(PipelineState.WRITING_LINE_ITEMS)
        line_items = [self._line_item(header, line) for line in reconciliation.matched]
        self.session.add_all(line_items)
        self.session.flush()

        run.advance(PipelineState.UPSERTING_TRIAGE)
        try:
            self.triage.upsert(batch.vendor_id, reconciliation.unmatched, batch.id)
        except Exception as exc:  # noqa: BLE001 - triage bookkeeping must not fail the import
            logger.warning("Triage upsert failed for batch %s; continuing", batch.id, exc_info=True)
            run.warn(f"Triage upsert failed: {exc}")

        run.advance(PipelineState.UPDATING_PRICES)
        document = _DocumentOutcome(
            header_id=header.id,
            total_amount=float(total_amount),
            reconciliation=reconciliation,
        )
        for line_item in line_items:
            application = self.ledger.apply_price(
                line_item.catalog_item_id,
                line_item.unit_price,
                invoice_date=batch.invoice_date,
                source_kind=batch.source_kind,
                vendor_id=batch.vendor_id,
                line_item_id=line_item.id,
                import_batch_id=batch.id,
            )
            line_item.previous_unit_price = application.baseline_price
            document.applications.append(application)
        return document

    def _finalize(self, run: PipelineRun, batch: ImportBatch, document: _DocumentOutcome) -> None:
        run.advance(PipelineState.FINALIZING)
        self.session.flush()
        aggregates = self.line_items.aggregates_for_header(document.header_id)
        header = self.headers.get_for_batch(batch.id)
        batch.item_count = aggregates.item_count
        batch.price_change_count = aggregates.price_change_count
        batch.new_item_count = aggregates.new_item_count
        batch.status = ImportBatchStatus.COMPLETED
        batch.error_message = None
        if header is not None:
            header.status = HeaderStatus.COMPLETED
        self.session.commit()
        run.advance(PipelineState.COMPLETED)

    def _mark_failed(self, run: PipelineRun, batch_id: str, exc: BaseException) -> str:
        message = (str(exc) or exc.__class__.__name__)[:ERROR_MESSAGE_LIMIT]
        self.session.rollback()
        if run.can_advance(PipelineState.FAILED):
            run.fail(message)
        batch = self.batches.get_for_organization(self.organization, batch_id)
        if batch is not None and batch.status is ImportBatchStatus.PROCESSING:
            batch.status = ImportBatchStatus.FAILED
            batch.error_message = message
            self.session.commit()
        return message

    def _line_item(self, header: InvoiceHeader, line: ReconciledLine) -> LineItem:
        return LineItem(
            organization_id=self.organization.organization_id,
            invoice_header_id=header.id,
            catalog_item_id=line.catalog_item_id,
            vendor_code=line.vendor_code,
            description=line.description,
            quantity_ordered=line.quantity_ordered,
            quantity_received=line.quantity_received,
            unit_price=line.unit_price,
            total_price=line.total_price,
            match_confidence=line.match_confidence,
            discrepancy_type=line.discrepancy_type,
            notes=line.notes,
        )

    @staticmethod
    def _fingerprint(request: IngestRequest) -> dict[str, object]:
        payload = request.model_dump(mode="json", exclude={"document_bytes"})
        payload["document_hash"] = document_digest(request.document_bytes)
        return payload

    def _emit_version_created(
        self,
        emitter: AuditEmitter,
        request: IngestRequest,
        batch: ImportBatch,
        resolution: VersionResolution,
    ) -> None:
        superseded = len(resolution.prior_batches)
        emitter.emit(
            IMPORT_VERSION_CREATED,
            f"Version {batch.version} of {resolution.match_key} from {request.vendor_name} "
            f"superseded {superseded} earlier import(s)",
            {
                "vendor": request.vendor_name,
                "vendor_id": batch.vendor_id,
                "invoice_number": batch.invoice_number,
                "file_name": batch.file_name,
                "superseded_count": superseded,
                "new_version": batch.version,
                "superseded_ids": resolution.prior_ids,
            },
        )

    def _emit_completion(
        self,
        emitter: AuditEmitter,
        request: IngestRequest,
        batch: ImportBatch,
        document: _DocumentOutcome,
        result: IngestResult,
    ) -> None:
        outcome = document.reconciliation
        emitter.emit(
            INVOICE_IMPORTED,
            f"Imported invoice {result.invoice_number} from {request.vendor_name}: "
            f"{result.matched_count} matched, {result.unmatched_count} sent to triage",
            {
                "invoice_number": result.invoice_number,
                "item_count": batch.item_count,
                "matched_count": result.matched_count,
                "unmatched_count": result.unmatched_count,
                "total_amount": document.total_amount,
                "price_changes": result.price_change_count,
                "version": result.version,
                "is_correction": result.is_correction,
                "discrepancy_count": len(outcome.discrepancies),
                "discrepancy_value": result.shortage_value,
            },
        )

        for application in document.applications:
            move = application.move
            if move is None or not move.changed or not move.is_significant:
                continue
            item = application.catalog_item
            emitter.emit(
                PRICE_CHANGE_DETECTED,
                f"{item.name} {move.direction} {move.change_percent:.1f}% "
                f"({move.previous_price:.2f} -> {move.new_price:.2f})",
                {
                    "item": item.name,
                    "item_code": item.item_code,
                    "previous_price": move.previous_price,
                    "new_price": move.new_price,
                    "change_amount": move.change_amount,
                    "change_percent": round(float(move.change_percent), 2),
                    "direction": move.direction,
                    "backdated": application.backdated,
                },
                severity=move.severity,
            )

        shortages = outcome.shortages
        if shortages:
            emitter.emit(
                INVOICE_DISCREPANCY_RECORDED,
                f"Invoice {result.invoice_number} from {request.vendor_name} was short on "
                f"{len(shortages)} item(s) worth {result.shortage_value:.2f}",
                {
                    "invoice_number": result.invoice_number,
                    "vendor": request.vendor_name,
                    "items": [
                        {
                            "item": shortage.description,
                            "item_code": shortage.item_code,
                            "ordered": shortage.quantity_ordered,
                            "received": shortage.quantity_received,
                            "short": shortage.difference,
                            "value": shortage.value,
                            "notes": shortage.notes,
                        }
                        for shortage in shortages
                    ],
                    "shortage_item_count": result.shortage_item_count,
                    "shortage_value": result.shortage_value,
                },
            )
