"""Content hashing of ledger values and blocks."""

from __future__ import annotations

import hashlib
from typing import Any, Optional, Sequence

from .values import Int


def _grouped(number: int) -> str:
    """Decimal digits grouped in threes with underscores, e.g. ``1_000``."""
    digits = str(abs(number))
    head = len(digits) % 3 or 3
    parts = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    sign = "-" if number < 0 else ""
    return sign + "_".join(parts)


def hash_value(value: Any) -> bytes:
    """Return the SHA-256 digest of a ledger value.

    Natural numbers hash their underscore-grouped decimal form, text its
    UTF-8 bytes, blobs their raw bytes. Maps hash each key followed by the
    digest of its value in sorted key order; arrays hash the digests of
    their elements in order. Signed integers hash their ``Int(...)`` form.
    """
    hasher = hashlib.sha256()
    if isinstance(value, bool):
        raise TypeError("booleans are not ledger values")
    if isinstance(value, int):
        hasher.update(_grouped(value).encode())
    elif isinstance(value, str):
        hasher.update(value.encode("utf-8"))
    elif isinstance(value, (bytes, bytearray)):
        hasher.update(value)
    elif isinstance(value, dict):
        for key in sorted(value):
            hasher.update(key.encode("utf-8"))
            hasher.update(hash_value(value[key]))
    elif isinstance(value, list):
        for element in value:
            hasher.update(hash_value(element))
    elif isinstance(value, Int):
        hasher.update(f"Int({_grouped(value.value)})".encode())
    else:
        raise TypeError(f"unsupported ledger value type: {type(value).__name__}")
    return hasher.digest()


def calculate_block_hash(block: Any) -> bytes:
    """Return the hash of a block."""
    return hash_value(block)


def calculate_previous_hash(blocks: Sequence[Any]) -> bytes:
    """Return the hash of the last block, or empty bytes for no blocks."""
    if not blocks:
        return b""
    return calculate_block_hash(blocks[-1])


def extract_text(value: Optional[Any]) -> str:
    """Return ``value`` if it is text, otherwise an empty string."""
    return value if isinstance(value, str) else ""