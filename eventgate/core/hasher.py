"""Canonical hashing helpers for stable sampling decisions and sink output.

Python's built-in ``hash()`` is salted per process, so anything that must
give the same answer across processes (sampling by user, bucket
assignment) goes through SHA-256 of the UTF-8 key instead.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

# A double carries 53 bits of mantissa; wider numerators can round up to 1.0
_FRACTION_BITS = 53
_FRACTION_SCALE = float(1 << _FRACTION_BITS)


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding

    Values that JSON cannot represent natively (datetimes, frozensets)
    are rendered with ``str``.
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    ).encode("utf-8")


def _digest_prefix(key: str) -> int:
    return int.from_bytes(hashlib.sha256(key.encode("utf-8")).digest()[:8], "big")


def stable_fraction(key: str) -> float:
    """Map *key* to a stable float in ``[0, 1)``.

    The same key yields the same fraction in every process and on every
    platform.
    """
    return (_digest_prefix(key) >> (64 - _FRACTION_BITS)) / _FRACTION_SCALE


def stable_bucket(key: str, bucket_count: int) -> int:
    """Assign *key* to one of ``bucket_count`` buckets, stably."""
    if bucket_count <= 0:
        return 0
    return _digest_prefix(key) % bucket_count
