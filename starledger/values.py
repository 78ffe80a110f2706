"""Ledger value model and the records that travel with it.

A ledger value is one of:

* ``int`` (non-negative): a natural number (Nat)
* :class:`Int`: a signed integer
* ``str``: text
* ``bytes``: a blob
* ``dict`` mapping ``str`` keys to values: a map
* ``list`` of values: an array
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union


@dataclass(frozen=True, order=True)
class Int:
    """A signed integer value, kept apart from natural numbers."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Int requires an int, got {type(self.value).__name__}")


Value = Union[int, Int, str, bytes, Dict[str, Any], List[Any]]


@dataclass(frozen=True)
class AddBlockInfo:
    """Request to append a block of a given kind carrying free-form data."""

    kind: str
    block_data: str


@dataclass(frozen=True)
class BlockInfo:
    """Summary of a stored block."""

    block_number: int
    transaction_type: str
    timestamp: int


@dataclass(frozen=True)
class BlockType:
    """A supported block type and the location of its documentation."""

    block_type: str
    url: str


def validate_value(value: Any) -> Any:
    """Check that ``value`` is a well-formed ledger value and return it.

    Raises ``TypeError`` for unsupported types and ``ValueError`` for
    negative natural numbers.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not ledger values")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"natural number cannot be negative: {value}")
        return value
    if isinstance(value, (Int, str, bytes, bytearray)):
        return value
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"map keys must be text, got {type(key).__name__}")
            validate_value(item)
        return value
    if isinstance(value, list):
        for item in value:
            validate_value(item)
        return value
    raise TypeError(f"unsupported ledger value type: {type(value).__name__}")