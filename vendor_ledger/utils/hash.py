"""Hashing utilities for document integrity and idempotency."""
from __future__ import annotations

import hashlib
import json
from typing import Any, BinaryIO

from vendor_ledger.services.exceptions import DocumentHashError

CHUNK_SIZE = 64 * 1024


def stable_hash(data: Any) -> str:
    """Return a SHA-256 hash for the provided data structure."""

    serialized = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def document_digest(document: bytes | bytearray | memoryview | BinaryIO) -> str:
    """Return the hex SHA-256 of a document given as bytes or a readable binary stream.

    Any failure to read the content raises ``DocumentHashError``; an ingestion
    must not proceed without a digest.
    """

    digest = hashlib.sha256()
    if isinstance(document, (bytes, bytearray, memoryview)):
        digest.update(document)
        return digest.hexdigest()

    try:
        while True:
            chunk = document.read(CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    except (OSError, ValueError) as exc:
        raise DocumentHashError(f"Unable to read document for hashing: {exc}") from exc
    return digest.hexdigest()
