"""The galaxy: maps ledger canisters to token contracts and coordinates both sides."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .address import Address
from .constellation import RemoteError
from .galaxy_types import (
    AddEthBlockArgs,
    AddIcrcBlockArgs,
    AssetMapping,
    AssetMappingDisplay,
    AssetMetadata,
    DeployAssetContractArgs,
    MintTokenArgs,
)
from .principal import Principal
from .values import AddBlockInfo

logger = logging.getLogger(__name__)

CHAIN_ID = 84532
CHUNK_SIZE = 1024 * 1024
DEFAULT_CONTRACT_ADDRESS = "0x3A43bFD1dCc4370C5d48d653c834d16e7E671313"
_CONTENT_HASH_PLACEHOLDER = "someHash"

TokenMinter = Callable[[MintTokenArgs], str]
CanisterCaller = Callable[[Principal, str, Tuple[Any, ...]], Any]

_KEY_NAMES = {
    "local": "dfx_test_key",
    "ic": "key_1",
}


def get_ecdsa_key_name(network: Optional[str]) -> str:
    """The threshold signing key used on ``network``.

    Raises ``ValueError`` for an unknown or missing network.
    """
    try:
        return _KEY_NAMES[network]  # type: ignore[index]
    except KeyError:
        raise ValueError("Unsupported network.") from None


@dataclass
class _StoredWasm:
    chunks: List[bytes] = field(default_factory=list)
    total_size: int = 0

    def combined(self) -> bytes:
        return b"".join(self.chunks)


def _hex_address(data: bytes) -> str:
    return "0x" + data.hex()


def _metadata_dict(metadata: AssetMetadata) -> Dict[str, str]:
    return {"name": metadata.name, "symbol": metadata.symbol}


class Galaxy:
    """Keeps asset mappings and stored modules, and drives minting and ledger calls.

    ``token_minter`` mints tokens and returns the transaction hash, raising on
    failure. ``canister_caller`` calls ``method`` on a canister with a tuple of
    arguments and returns its answer, raising on failure.
    """

    def __init__(self, token_minter: TokenMinter, canister_caller: CanisterCaller) -> None:
        self._token_minter = token_minter
        self._canister_caller = canister_caller
        self._mappings: Dict[Principal, AssetMapping] = {}
        self._wasm: Dict[Principal, _StoredWasm] = {}

    # Asset mappings

    def add_asset_mapping(
        self,
        asset_id: Principal,
        eth_address: str,
        args: DeployAssetContractArgs,
    ) -> AssetMapping:
        """Bind ``asset_id`` to a contract; raises ``ValueError`` for a bad address."""
        try:
            contract_address = Address.parse(eth_address)
        except ValueError as exc:
            raise ValueError(f"Invalid Ethereum address: {exc}") from None
        mapping = AssetMapping(
            canister_id=asset_id,
            contract_address=contract_address.to_bytes(),
            metadata=AssetMetadata(name=args.name, symbol=args.symbol),
        )
        mapping.to_bytes()  # enforce the storage bound before storing
        self._mappings[asset_id] = mapping
        return mapping

    def get_asset_contract_address(self, canister_id: Principal) -> Optional[str]:
        """The mapped contract address as lowercase ``0x`` hex, if any."""
        mapping = self._mappings.get(canister_id)
        return None if mapping is None else _hex_address(mapping.contract_address)

    def has_asset_mapping(self, asset_id: Principal) -> bool:
        return asset_id in self._mappings

    def get_all_mappings(self) -> List[AssetMappingDisplay]:
        """All mappings in principal order, with hex contract addresses."""
        return [
            AssetMappingDisplay(
                canister_id=mapping.canister_id,
                contract_address=_hex_address(mapping.contract_address),
                metadata=mapping.metadata,
            )
            for _, mapping in sorted(self._mappings.items())
        ]

    def get_asset_metadata(self, canister_id: Principal) -> Optional[AssetMetadata]:
        mapping = self._mappings.get(canister_id)
        return None if mapping is None else mapping.metadata

    def get_asset_metadata_json(self, canister_id: Principal) -> Optional[str]:
        metadata = self.get_asset_metadata(canister_id)
        if metadata is None:
            return None
        return json.dumps(_metadata_dict(metadata), separators=(",", ":"), ensure_ascii=False)

    def json_get_all_mappings(self) -> str:
        return json.dumps(
            [
                {
                    "canister_id": display.canister_id.to_text(),
                    "contract_address": display.contract_address,
                    "metadata": _metadata_dict(display.metadata),
                }
                for display in self.get_all_mappings()
            ],
            separators=(",", ":"),
            ensure_ascii=False,
        )

    # Module storage

    def upload_wasm(self, caller: Principal, wasm_bytes: bytes) -> None:
        """Store a module for ``caller`` in 1 MiB chunks; empty input is refused."""
        data = bytes(wasm_bytes)
        if not data:
            raise ValueError("WASM bytes cannot be empty")
        chunks = [data[start:start + CHUNK_SIZE] for start in range(0, len(data), CHUNK_SIZE)]
        self._wasm[caller] = _StoredWasm(chunks=chunks, total_size=len(data))

    def get_stored_wasm(self, caller: Principal) -> Optional[bytes]:
        stored = self._wasm.get(caller)
        return None if stored is None else stored.combined()

    # Block addition

    def add_block(
        self,
        principal: Principal,
        eth_args: AddEthBlockArgs,
        icrc_args: AddIcrcBlockArgs,
    ) -> str:
        """Mint the token and append the ledger block; returns the mint result.

        Both calls are made. Raises ``RemoteError`` naming the side that failed,
        the token side first.
        """
        contract_address = self.get_asset_contract_address(principal) or DEFAULT_CONTRACT_ADDRESS
        eth_error: Optional[BaseException] = None
        eth_message = ""
        try:
            eth_message = self._token_minter(
                MintTokenArgs(
                    contract_address=contract_address,
                    to=eth_args.eth_address,
                    content_hash=_CONTENT_HASH_PLACEHOLDER,
                    token_id=eth_args.token_id,
                    amount=eth_args.amount,
                    metadata_url=eth_args.eth_metadata_url,
                )
            )
        except Exception as exc:
            eth_error = exc

        icrc_error: Optional[BaseException] = None
        try:
            self._canister_caller(
                principal,
                "add_block",
                (AddBlockInfo(kind=icrc_args.kind, block_data=icrc_args.block_data),),
            )
        except Exception as exc:
            icrc_error = exc

        if eth_error is not None:
            raise RemoteError(f"Ethereum error: {eth_error}") from eth_error
        if icrc_error is not None:
            raise RemoteError(f"ICRC error: {icrc_error!r}") from icrc_error
        return eth_message

    # Ledger queries

    def _call_asset_function(self, principal: Principal, method: str, *args: Any) -> str:
        try:
            return self._canister_caller(principal, method, tuple(args))
        except Exception as exc:
            raise RemoteError(f"Error calling {method}: {exc!r}") from exc

    def get_genesis_block(self, principal: Principal) -> str:
        return self._call_asset_function(principal, "json_get_genesis_block")

    def get_block(self, principal: Principal, block_number: str) -> str:
        return self._call_asset_function(principal, "json_get_block", block_number)

    def get_entire_chain(self, principal: Principal) -> str:
        return self._call_asset_function(principal, "json_get_entire_chain")

    def get_block_by_hash(self, principal: Principal, hash: str) -> str:
        return self._call_asset_function(principal, "json_get_block_by_hash", hash)

    def get_metadata_value(self, principal: Principal, key: str) -> str:
        return self._call_asset_function(principal, "json_get_metadata_value", key)