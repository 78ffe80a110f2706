"""Ethereum account addresses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from Crypto.Hash import keccak

_LENGTH = 20


@dataclass(frozen=True, order=True)
class Address:
    """A 20-byte Ethereum address; its text form is EIP-55 checksummed."""

    data: bytes

    ZERO: ClassVar["Address"]

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray)):
            raise TypeError(f"address data must be bytes, got {type(self.data).__name__}")
        if len(self.data) != _LENGTH:
            raise ValueError(f"address must be {_LENGTH} bytes, got {len(self.data)}")
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def parse(cls, text: str) -> "Address":
        """Parse 40 hex digits, with or without a ``0x`` prefix."""
        digits = text.strip()
        if digits[:2] in ("0x", "0X"):
            digits = digits[2:]
        if len(digits) != 2 * _LENGTH:
            raise ValueError(f"invalid address {text!r}: expected {2 * _LENGTH} hex digits")
        try:
            return cls(bytes.fromhex(digits))
        except ValueError:
            raise ValueError(f"invalid address {text!r}: not hexadecimal") from None

    @classmethod
    def from_bytes(cls, data: bytes) -> "Address":
        """Build an address from exactly 20 bytes."""
        return cls(bytes(data))

    def to_bytes(self) -> bytes:
        return self.data

    def to_checksum(self) -> str:
        """Return the ``0x``-prefixed mixed-case EIP-55 form."""
        lower = self.data.hex()
        digest = keccak.new(digest_bits=256, data=lower.encode("ascii")).hexdigest()
        return "0x" + "".join(
            char.upper() if int(nibble, 16) >= 8 else char
            for char, nibble in zip(lower, digest)
        )

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.to_checksum()


Address.ZERO = Address(bytes(_LENGTH))