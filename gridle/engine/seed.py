from __future__ import annotations

from gridle.common.constants import FNV_OFFSET_BASIS, FNV_PRIME, SEED_PREFIX, UINT32_MASK
from gridle.common.dates import validate_date_string


def fnv1a_32(text: str) -> int:
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & UINT32_MASK
    return h


def derive_seed(date_str: str) -> int:
    """Map a ``YYYY-MM-DD`` date to the challenge seed for that day."""
    validate_date_string(date_str)
    return fnv1a_32(SEED_PREFIX + date_str)
