"""Pydantic schemas exposed by the API layer."""
from .organization import OrganizationCreate, OrganizationRead
from .ingest import CandidateLineItem, ImportUploadPayload, IngestRequest, IngestResult
from .import_batch import (
    ImportBatchDetail,
    ImportBatchRead,
    InvoiceHeaderRead,
    LineItemRead,
    SweepResponse,
)
from .price_history import PriceAuditSummary, PriceHistoryRead
from .reconciliation import Discrepancy, ReconciledLine, ReconciliationOutcome, TriageCandidate
from .triage import TriageDismissRequest, TriageItemRead, TriageResolveRequest

__all__ = [
    "OrganizationCreate",
    "OrganizationRead",
    "CandidateLineItem",
    "ImportUploadPayload",
    "IngestRequest",
    "IngestResult",
    "ImportBatchDetail",
    "ImportBatchRead",
    "InvoiceHeaderRead",
    "LineItemRead",
    "SweepResponse",
    "PriceAuditSummary",
    "PriceHistoryRead",
    "Discrepancy",
    "ReconciledLine",
    "ReconciliationOutcome",
    "TriageCandidate",
    "TriageDismissRequest",
    "TriageItemRead",
    "TriageResolveRequest",
]
