"""REST endpoint routers exposed by the API."""
from . import catalog, imports, organizations, triage

__all__ = [
    "catalog",
    "imports",
    "organizations",
    "triage",
]
