"""Service-layer exception hierarchy."""
from __future__ import annotations


class ServiceError(Exception):
    """Base service error."""


class NotFoundError(ServiceError):
    """Raised when an entity is not found."""


class ConflictError(ServiceError):
    """Raised when a domain conflict occurs."""


class ValidationError(ServiceError):
    """Raised when business validation fails."""


class DocumentHashError(ServiceError):
    """Raised when the uploaded document cannot be read for hashing."""


class PriceConflictError(ConflictError):
    """Raised when a catalog price keeps changing underneath an update."""


class InvalidTransitionError(ServiceError):
    """Raised when the ingestion pipeline is driven out of order."""


class ImmutableRecordError(ServiceError):
    """Raised on any attempt to rewrite or remove an append-only ledger row."""
