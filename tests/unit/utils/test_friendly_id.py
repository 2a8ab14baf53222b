from __future__ import annotations

import re
from datetime import date
from uuid import UUID

import pytest

from vendor_ledger.utils.friendly_id import ALPHABET, generate_invoice_reference, to_friendly_id


def test_alphabet_has_no_lookalikes() -> None:
    assert len(ALPHABET) == 58
    assert not set("0OIl") & set(ALPHABET)


def test_to_friendly_id_pads_small_values() -> None:
    assert to_friendly_id(0) == "11111111"
    assert to_friendly_id(57) == "1111111z"
    assert to_friendly_id(58) == "11111121"


def test_to_friendly_id_rejects_negative_values() -> None:
    with pytest.raises(ValueError):
        to_friendly_id(-1)


def test_generate_invoice_reference_is_deterministic_with_seed() -> None:
    assert generate_invoice_reference(date(2024, 1, 5), seed=UUID(int=57)) == "REF-20240105-1111111z"


def test_generate_invoice_reference_format() -> None:
    reference = generate_invoice_reference(date(2026, 3, 1))

    assert re.fullmatch(r"REF-20260301-[1-9A-HJ-NP-Za-km-z]{8}", reference)
