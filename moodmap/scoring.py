"""Synthetic rating for providers without native ratings.

Values are derived from the place name only, so a venue keeps the same
pseudo-rating across searches, processes and client implementations. The
hash is the classic 32-bit ``h = h * 31 + code_unit`` string hash over
UTF-16 code units, with signed 32-bit wraparound.
"""
from __future__ import annotations

import math

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def string_hash32(text: str) -> int:
    h = 0
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & _INT32_MASK
    if h & _INT32_SIGN:
        h -= 1 << 32
    return h


def synthetic_rating(name: str) -> float:
    """Stable pseudo-rating in [3.0, 5.0], one decimal."""
    bucket = abs(string_hash32(name)) % 21
    return round(3.0 + bucket / 10, 1)


def synthetic_rating_count(rating: float) -> int:
    return int(math.floor(10 + abs(rating * 100) % 200))
