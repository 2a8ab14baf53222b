"""Root API router for REST endpoints."""
from fastapi import APIRouter

from vendor_ledger.api.endpoints import catalog, imports, organizations, triage

router = APIRouter()


@router.get("/health", tags=["health"], summary="Health check")
def health_check() -> dict[str, str]:
    """Return basic service health information."""

    return {"status": "ok"}


router.include_router(organizations.router)
router.include_router(imports.router)
router.include_router(catalog.router)
router.include_router(triage.router)
