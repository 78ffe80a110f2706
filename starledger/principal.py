"""Textual principal identifiers and the well-known canister ids."""

from __future__ import annotations

import base64
import binascii
import zlib
from dataclasses import dataclass

_MAX_LENGTH = 29
_CHECKSUM_LENGTH = 4
_GROUP = 5


@dataclass(frozen=True, order=True)
class Principal:
    """An opaque identifier of up to 29 bytes with a checksummed text form."""

    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray)):
            raise TypeError(f"principal data must be bytes, got {type(self.data).__name__}")
        if len(self.data) > _MAX_LENGTH:
            raise ValueError(
                f"principal cannot be longer than {_MAX_LENGTH} bytes, got {len(self.data)}"
            )
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Principal":
        """Build a principal from its raw bytes."""
        return cls(bytes(data))

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """Parse the dash-grouped base32 text form, checking its checksum.

        Raises ``ValueError`` for malformed text, a wrong checksum or a
        grouping that differs from the canonical one.
        """
        compact = text.replace("-", "").upper()
        padded = compact + "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(padded)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"invalid principal text {text!r}: {exc}") from None
        if len(decoded) < _CHECKSUM_LENGTH:
            raise ValueError(f"principal text {text!r} is too short")
        checksum, data = decoded[:_CHECKSUM_LENGTH], decoded[_CHECKSUM_LENGTH:]
        principal = cls(data)
        if checksum != _checksum(data):
            raise ValueError(f"principal text {text!r} has a wrong checksum")
        if principal.to_text() != text.lower():
            raise ValueError(f"principal text {text!r} is not in canonical form")
        return principal

    def to_text(self) -> str:
        """Return the canonical dash-grouped text form."""
        encoded = base64.b32encode(_checksum(self.data) + self.data)
        letters = encoded.decode("ascii").rstrip("=").lower()
        return "-".join(
            letters[start:start + _GROUP] for start in range(0, len(letters), _GROUP)
        )

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.to_text()


def _checksum(data: bytes) -> bytes:
    return zlib.crc32(data).to_bytes(_CHECKSUM_LENGTH, "big")


@dataclass(frozen=True)
class CanisterIds:
    """Identifiers of the canisters a constellation talks to."""

    ic_siwe_provider: Principal
    galaxy: Principal

    @classmethod
    def local(cls) -> "CanisterIds":
        return cls(
            ic_siwe_provider=Principal.from_text("u6s2n-gx777-77774-qaaba-cai"),
            galaxy=Principal.from_text("gdh4h-lyaaa-aaaal-ar2ba-cai"),
        )

    @classmethod
    def production(cls) -> "CanisterIds":
        return cls(
            ic_siwe_provider=Principal.from_text("cpmcr-yeaaa-aaaaa-qaala-cai"),
            galaxy=Principal.from_text("gdh4h-lyaaa-aaaal-ar2ba-cai"),
        )

    @classmethod
    def current(cls) -> "CanisterIds":
        """The ids in use; the local set for now."""
        return cls.local()