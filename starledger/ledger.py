"""An append-only, hash-linked ledger of blocks."""

from __future__ import annotations

import binascii
import copy
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .hashing import calculate_block_hash
from .jsonconv import get_json_string, get_json_string_from_vec
from .values import AddBlockInfo, BlockType

_NANOS_PER_SECOND = 1_000_000_000


class LedgerError(Exception):
    """Raised when a ledger operation cannot be carried out."""


@dataclass(frozen=True)
class DataCertificate:
    """A certificate over the ledger tip together with the tip's hash."""

    certificate: Optional[bytes]
    hash_tree: bytes


class Ledger:
    """Blocks stored by index, each holding the hash of its predecessor.

    ``clock`` returns the current time in nanoseconds.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or time.time_ns
        self._blocks: List[Dict[str, Any]] = []
        self._hash_index: Dict[bytes, int] = {}
        self._type_by_index: Dict[int, str] = {}
        self._numbers_by_type: Dict[str, List[int]] = {}

    def __len__(self) -> int:
        return len(self._blocks)

    # Writing

    def initialize(self, init_data: str) -> str:
        """Store the genesis block; fails if the ledger already has blocks."""
        if self._blocks:
            raise LedgerError("Blockchain already initialized")
        now = self._clock()
        transaction = {
            "kind": "genesis",
            "timestamp": now // _NANOS_PER_SECOND,
            "data": {"init_data": init_data},
        }
        self._blocks.append({
            "btype": "genesis",
            "phash": b"",
            "timestamp": now,
            "transaction": transaction,
        })
        return "Ledger initialized successfully"

    def add_block(self, block_info: AddBlockInfo) -> str:
        """Append a block and return a message holding its hex hash."""
        current_index = len(self._blocks)
        now = self._clock()
        prev_hash = calculate_block_hash(self._blocks[-1]) if self._blocks else b""
        transaction = {
            "data": {"block_data": block_info.block_data},
            "kind": block_info.kind,
            "timestamp": now // _NANOS_PER_SECOND,
        }
        block = {
            "btype": block_info.kind,
            "phash": prev_hash,
            "timestamp": now,
            "transaction": transaction,
        }
        block_hash = calculate_block_hash(block)
        self._blocks.append(block)
        self._hash_index[block_hash] = current_index
        self._type_by_index[current_index] = block_info.kind
        self._numbers_by_type.setdefault(block_info.kind, []).append(current_index)
        return (
            "Block Addition recorded successfully. ICRC3 transaction hash: "
            + block_hash.hex()
        )

    # Single blocks

    def get_block(self, index: int) -> Optional[Dict[str, Any]]:
        """Return the block at ``index``, or ``None`` if there is none."""
        if 0 <= index < len(self._blocks):
            return copy.deepcopy(self._blocks[index])
        return None

    def json_get_block(self, index: int) -> str:
        return get_json_string(self._require(self.get_block(index), f"no block at index {index}"))

    def get_block_by_hash(self, hash: str) -> Optional[Dict[str, Any]]:
        """Return the block with the given hex hash.

        Returns ``None`` for malformed hex; raises ``LedgerError`` when no
        block is indexed under the hash.
        """
        try:
            target = binascii.unhexlify(hash)
        except (binascii.Error, ValueError):
            return None
        index = self._hash_index.get(target)
        block = self.get_block(index) if index is not None else None
        block = self._require(block, f"no block with hash {hash}")
        return block if calculate_block_hash(block) == target else None

    def json_get_block_by_hash(self, hash: str) -> str:
        return get_json_string(
            self._require(self.get_block_by_hash(hash), f"no block with hash {hash}")
        )

    def get_genesis_block(self) -> Optional[Dict[str, Any]]:
        return self.get_block(0)

    def json_get_genesis_block(self) -> str:
        return get_json_string(self._require(self.get_genesis_block(), "no genesis block"))

    # Collections

    def get_latest_blocks(self, count: int) -> List[Dict[str, Any]]:
        """Return up to ``count`` most recent blocks, oldest first."""
        if count < 0:
            raise ValueError("count cannot be negative")
        start = max(len(self._blocks) - count, 0)
        return copy.deepcopy(self._blocks[start:])

    def json_get_latest_blocks(self, count: int) -> str:
        return get_json_string_from_vec(self.get_latest_blocks(count))

    def get_blocks_by_type(self, block_type: str) -> List[Dict[str, Any]]:
        numbers = self._numbers_by_type.get(block_type, [])
        return [copy.deepcopy(self._blocks[n]) for n in numbers if n < len(self._blocks)]

    def json_get_blocks_by_type(self, block_type: str) -> str:
        return get_json_string_from_vec(self.get_blocks_by_type(block_type))

    def get_all_block_types(self) -> List[str]:
        """Return the block types added with ``add_block``, sorted."""
        return sorted(self._numbers_by_type)

    def get_block_type_counts(self) -> List[Tuple[str, int]]:
        return [(kind, len(self._numbers_by_type[kind])) for kind in sorted(self._numbers_by_type)]

    def get_entire_chain(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._blocks)

    def json_get_entire_chain(self) -> str:
        return get_json_string_from_vec(self.get_entire_chain())

    def chain_info(self) -> str:
        length = len(self._blocks)
        first = "true" if length > 0 else "false"
        return (
            f"Number of blocks: {length}\n"
            f"First block exists: {first}\n"
            f"Last block exists: {first}"
        )

    def get_chain_length(self) -> int:
        return len(self._blocks)

    def verify_chain_integrity(self) -> bool:
        """Check that every block after the first links to its predecessor."""
        for previous, block in zip(self._blocks, self._blocks[1:]):
            if not isinstance(block, dict):
                return False
            stored = block.get("phash")
            if not isinstance(stored, (bytes, bytearray)):
                return False
            if bytes(stored) != calculate_block_hash(previous):
                return False
        return True

    # Standard queries

    def get_archives(self, args: Any) -> list:
        """Archives are not supported; always empty."""
        return []

    def get_tip_certificate(self, certificate: Optional[bytes]) -> Optional[DataCertificate]:
        """Pair ``certificate`` with the hash of the latest block.

        Returns ``None`` when the ledger is empty or no certificate is given.
        """
        if not self._blocks or certificate is None:
            return None
        return DataCertificate(
            certificate=bytes(certificate),
            hash_tree=calculate_block_hash(self._blocks[-1]),
        )

    def supported_block_types(self) -> List[BlockType]:
        return [
            BlockType("researcher_addition", "https://example.com/docs"),
            BlockType("mint", "https://icrc3-standard/docs/mint"),
            BlockType("transfer", "https://icrc3-standard/docs/transfer"),
            BlockType("burn", "https://icrc3-standard/docs/burn"),
        ]

    @staticmethod
    def _require(block: Optional[Dict[str, Any]], message: str) -> Dict[str, Any]:
        if block is None:
            raise LedgerError(message)
        return block