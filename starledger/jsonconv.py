"""Conversion of ledger values to JSON."""

from __future__ import annotations

import json
from typing import Any, Iterable

from .values import Int

_U64_LIMIT = 2 ** 64
_I64_MIN = -(2 ** 63)
_I64_MAX = 2 ** 63 - 1


def _nat_to_json(number: int) -> Any:
    digits = str(number)
    if len(digits) > 16:
        # Likely a nanosecond timestamp: keep whole seconds.
        seconds = int(digits[:-9])
        return seconds if seconds < _U64_LIMIT else digits
    return number if number < _U64_LIMIT else digits


def icrc3_to_json(value: Any) -> Any:
    """Return a JSON-compatible Python object for a ledger value.

    Natural numbers with more than 16 digits are read as nanosecond
    timestamps and reduced to seconds. Numbers that do not fit the 64-bit
    range become strings, empty blobs become ``None`` and other blobs hex.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not ledger values")
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return _nat_to_json(value)
    if isinstance(value, Int):
        number = value.value
        return number if _I64_MIN <= number <= _I64_MAX else str(number)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex() if value else None
    if isinstance(value, dict):
        return {key: icrc3_to_json(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [icrc3_to_json(item) for item in value]
    raise TypeError(f"unsupported ledger value type: {type(value).__name__}")


def get_json_string(value: Any) -> str:
    """Return a ledger value as pretty-printed JSON."""
    return json.dumps(icrc3_to_json(value), indent=2, ensure_ascii=False)


def get_json_string_from_vec(values: Iterable[Any]) -> str:
    """Return each value as pretty JSON, joined by ``", "``."""
    return ", ".join(get_json_string(value) for value in values)