"""Records exchanged by the galaxy and the storage form of asset mappings."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .address import Address
from .principal import Principal

_ASSET_MAPPING_MAX_SIZE = 4096
_WASM_MAX_SIZE = 1024 * 1024
_LENGTH = struct.Struct(">I")


@dataclass(frozen=True)
class AddEthBlockArgs:
    """Ethereum side of a block addition: who receives which token and how many."""

    eth_address: str
    token_id: str
    amount: str
    eth_metadata_url: str


@dataclass(frozen=True)
class AddIcrcBlockArgs:
    """Ledger side of a block addition; ``block_data`` is usually JSON."""

    kind: str
    block_data: str


@dataclass(frozen=True)
class DeployAssetContractArgs:
    """Arguments for deploying an asset's token contract."""

    name: str
    symbol: str
    initial_uri: str


@dataclass(frozen=True)
class EthereumContractArgs:
    """Contract deployment arguments bound to a canister."""

    name: str
    symbol: str
    initial_uri: str
    canister_id: str


@dataclass(frozen=True)
class MintArgs:
    """Arguments for a simple mint."""

    contract_address: str
    to: str
    content_hash: str


@dataclass(frozen=True)
class DeploymentResult:
    """Where a deployed asset lives on both chains."""

    eth_address: str
    canister_id: Principal


@dataclass(frozen=True)
class AssetMetadata:
    """Descriptive data stored with an asset mapping."""

    name: str
    symbol: str


@dataclass(frozen=True)
class AssetMappingDisplay:
    """An asset mapping with its contract address as ``0x`` hex text."""

    canister_id: Principal
    contract_address: str
    metadata: AssetMetadata


@dataclass(frozen=True)
class AssetMapping:
    """Links a ledger canister to its token contract and metadata."""

    canister_id: Principal
    contract_address: bytes
    metadata: AssetMetadata

    def __post_init__(self) -> None:
        address = self.contract_address
        if isinstance(address, Address):
            address = address.to_bytes()
        object.__setattr__(self, "contract_address", bytes(address))

    def get_address(self) -> Address:
        """The stored contract address; raises ``ValueError`` if not 20 bytes."""
        return Address.from_bytes(self.contract_address)

    def to_bytes(self) -> bytes:
        """Length-prefixed principal, address and encoded metadata.

        Raises ``ValueError`` when the result exceeds 4096 bytes.
        """
        metadata = _encode_text_record(
            {"name": self.metadata.name, "symbol": self.metadata.symbol}
        )
        data = b"".join(
            _LENGTH.pack(len(part)) + part
            for part in (self.canister_id.data, self.contract_address, metadata)
        )
        if len(data) > _ASSET_MAPPING_MAX_SIZE:
            raise ValueError(
                f"asset mapping takes {len(data)} bytes, "
                f"more than {_ASSET_MAPPING_MAX_SIZE}"
            )
        return data

    @classmethod
    def from_bytes(cls, data: bytes) -> "AssetMapping":
        """Read a mapping written by :meth:`to_bytes`.

        Metadata in the older single-field form reads as a legacy asset;
        unreadable metadata reads as an unknown asset. Truncated data
        raises ``ValueError``.
        """
        principal_bytes, address_bytes, metadata_bytes = _split_prefixed(bytes(data), 3)
        return cls(
            canister_id=Principal.from_bytes(principal_bytes),
            contract_address=address_bytes,
            metadata=_decode_metadata(metadata_bytes),
        )


@dataclass(frozen=True)
class WasmBytes:
    """A module's raw bytes as stored; at most 1 MiB."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def to_bytes(self) -> bytes:
        if len(self.data) > _WASM_MAX_SIZE:
            raise ValueError(
                f"module takes {len(self.data)} bytes, more than {_WASM_MAX_SIZE}"
            )
        return self.data

    @classmethod
    def from_bytes(cls, data: bytes) -> "WasmBytes":
        return cls(bytes(data))

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DeployEthereumContractArgs:
    """Arguments for deploying the token contract of a canister."""

    name: str
    symbol: str
    initial_uri: str
    canister_id: str


@dataclass(frozen=True)
class MintTokenArgs:
    """Arguments for minting tokens; the optional parts may be left out."""

    contract_address: str
    to: str
    content_hash: str
    token_id: Optional[str] = None
    amount: Optional[str] = None
    metadata_url: Optional[str] = None


@dataclass(frozen=True)
class MintUniqueTokenArgs:
    """Arguments for minting a single unique token."""

    contract_address: str
    to: str
    token_id: str
    metadata_url: str
    content_hash: str


@dataclass(frozen=True)
class RegisterPublicNFTArgs:
    """Registration of a public token with its contract."""

    contract_address: str
    token_id: int
    eth_contract_address: str


@dataclass(frozen=True)
class TransferOwnershipArgs:
    """Hand a contract over to a new owner."""

    contract_address: str
    new_owner: str


# Length-prefixed framing


def _split_prefixed(data: bytes, count: int) -> Tuple[bytes, ...]:
    parts: List[bytes] = []
    pos = 0
    for _ in range(count):
        if pos + _LENGTH.size > len(data):
            raise ValueError("asset mapping data is truncated")
        (length,) = _LENGTH.unpack_from(data, pos)
        pos += _LENGTH.size
        if pos + length > len(data):
            raise ValueError("asset mapping data is truncated")
        parts.append(data[pos:pos + length])
        pos += length
    return tuple(parts)


# Self-describing encoding of records whose fields are all text

_MAGIC = b"DIDL"
_RECORD = -20
_TEXT = -15


class _DecodeError(ValueError):
    pass


def _field_hash(name: str) -> int:
    result = 0
    for byte in name.encode("utf-8"):
        result = (result * 223 + byte) % 2 ** 32
    return result


def _leb(number: int) -> bytes:
    out = bytearray()
    while True:
        byte = number & 0x7F
        number >>= 7
        if number:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _sleb(number: int) -> bytes:
    out = bytearray()
    while True:
        byte = number & 0x7F
        number >>= 7
        done = (number == 0 and not byte & 0x40) or (number == -1 and byte & 0x40)
        out.append(byte if done else byte | 0x80)
        if done:
            return bytes(out)


def _encode_text_record(fields: Dict[str, str]) -> bytes:
    ordered = sorted(fields.items(), key=lambda item: _field_hash(item[0]))
    types = b"".join(_leb(_field_hash(name)) + _sleb(_TEXT) for name, _ in ordered)
    values = b"".join(
        _leb(len(encoded)) + encoded
        for encoded in (value.encode("utf-8") for _, value in ordered)
    )
    return (
        _MAGIC
        + _leb(1) + _sleb(_RECORD) + _leb(len(ordered)) + types
        + _leb(1) + _sleb(0)
        + values
    )


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, size: int) -> bytes:
        if self._pos + size > len(self._data):
            raise _DecodeError("unexpected end of data")
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def leb(self) -> int:
        result = shift = 0
        while True:
            byte = self.byte()
            result |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80:
                return result

    def sleb(self) -> int:
        result = shift = 0
        while True:
            byte = self.byte()
            result |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80:
                if byte & 0x40:
                    result -= 1 << shift
                return result

    @property
    def exhausted(self) -> bool:
        return self._pos == len(self._data)


def _decode_text_record(data: bytes) -> Dict[int, str]:
    reader = _Reader(data)
    if reader.take(len(_MAGIC)) != _MAGIC:
        raise _DecodeError("missing magic")
    table: List[List[Tuple[int, int]]] = []
    for _ in range(reader.leb()):
        if reader.sleb() != _RECORD:
            raise _DecodeError("only records are supported")
        table.append([(reader.leb(), reader.sleb()) for _ in range(reader.leb())])
    arg_types = [reader.sleb() for _ in range(reader.leb())]
    if len(arg_types) != 1 or not 0 <= arg_types[0] < len(table):
        raise _DecodeError("expected a single record argument")
    result: Dict[int, str] = {}
    for field_hash, field_type in table[arg_types[0]]:
        if field_type != _TEXT:
            raise _DecodeError("only text fields are supported")
        raw = reader.take(reader.leb())
        try:
            result[field_hash] = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _DecodeError(str(exc)) from None
    if not reader.exhausted:
        raise _DecodeError("trailing bytes")
    return result


def _decode_metadata(data: bytes) -> AssetMetadata:
    try:
        fields = _decode_text_record(data)
    except _DecodeError:
        return AssetMetadata(name="Unknown Asset", symbol="Unknown")
    name_hash, symbol_hash = _field_hash("name"), _field_hash("symbol")
    if name_hash in fields and symbol_hash in fields:
        return AssetMetadata(name=fields[name_hash], symbol=fields[symbol_hash])
    if _field_hash("metadata") in fields:
        return AssetMetadata(name="Legacy Asset", symbol="Unknown")
    return AssetMetadata(name="Unknown Asset", symbol="Unknown")


def _names(items: Iterable[str]) -> List[int]:
    return [_field_hash(item) for item in items]


AddressLike = Union[bytes, Address]