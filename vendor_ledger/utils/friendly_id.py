"""Short human-friendly identifiers for display references."""
from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

# Base58 without the lookalikes 0/O and I/l.
ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
DEFAULT_LENGTH = 8


def to_friendly_id(value: UUID | int, length: int = DEFAULT_LENGTH) -> str:
    """Encode an integer or UUID in base58, keeping the ``length`` least significant digits."""

    number = value.int if isinstance(value, UUID) else int(value)
    if number < 0:
        raise ValueError("friendly ids require a non-negative value")

    base = len(ALPHABET)
    digits: list[str] = []
    while number and len(digits) < length:
        number, remainder = divmod(number, base)
        digits.append(ALPHABET[remainder])
    encoded = "".join(reversed(digits))
    return encoded.rjust(length, ALPHABET[0])


def generate_invoice_reference(on: date, seed: UUID | None = None) -> str:
    """Build a display reference such as ``REF-20240105-3kQz9WbA`` for documents without a number."""

    return f"REF-{on:%Y%m%d}-{to_friendly_id(seed or uuid4())}"
