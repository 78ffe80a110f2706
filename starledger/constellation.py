"""A constellation: a ledger with certified HTTP endpoints, image assets and token checks."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .address import Address
from .http import (
    HttpRequest,
    HttpResponse,
    Params,
    ResponseCache,
    RouteNotFound,
    Router,
    create_response,
    extract_path_and_query,
)
from .ledger import Ledger
from .principal import Principal

logger = logging.getLogger(__name__)

PUBLIC_METADATA_PATH = "/metadata"
_METADATA_KEY = "current"

PUBLIC_METADATA_CEL_EXPR = (
    "default_certification(ValidationArgs{no_request_certification:Empty{},"
    "response_certification:ResponseCertification{certified_response_headers:"
    'ResponseHeaderList{headers:["content-type","content-length",'
    '"strict-transport-security","x-content-type-options","referrer-policy",'
    '"cache-control","pragma"]}}})'
)

IC_CERTIFICATE_HEADER_NAME = "IC-Certificate"

_IMAGE_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}
_IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"

SiweProvider = Callable[[bytes], str]
BalanceSource = Callable[[str, int], int]


class RemoteError(Exception):
    """Raised when a call to another canister fails or reports an error.

    A remote callable raises this to report an error answer; any other
    exception it raises counts as a failed call.
    """


@dataclass(frozen=True)
class _Asset:
    content_type: str
    data: bytes


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class Constellation:
    """One asset's ledger, its public HTTP interface and its token checks.

    ``siwe_provider`` maps a principal's raw bytes to its Ethereum address;
    ``galaxy`` returns the balance of a wallet for a token id. ``clock``
    returns the time in nanoseconds and drives the ledger.
    """

    def __init__(
        self,
        siwe_provider: SiweProvider,
        galaxy: BalanceSource,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._siwe_provider = siwe_provider
        self._galaxy = galaxy
        self.ledger = Ledger(clock)
        self._responses = ResponseCache()
        self._public_metadata: Dict[str, str] = {}
        self._contract_address = Address.ZERO
        self._assets: Dict[str, _Asset] = {}
        self._router = Router(fallback=self._serve_asset)
        self._router.insert("GET", PUBLIC_METADATA_PATH, self.public_metadata_handler)

    # HTTP

    def http_request(self, request: HttpRequest) -> HttpResponse:
        """Answer a request through the routes, falling back to assets."""
        logger.debug("HTTP request received: %r", request)
        response = self._router.match(request)
        logger.debug("HTTP response: %r", response)
        return response

    def _serve_asset(self, request: HttpRequest) -> HttpResponse:
        path = request.get_path()
        asset = self._assets.get(path)
        if asset is None:
            raise RouteNotFound(f"no asset at {path}")
        return HttpResponse(
            status_code=200,
            headers=(
                ("content-type", asset.content_type),
                ("content-length", str(len(asset.data))),
                ("cache-control", _IMAGE_CACHE_CONTROL),
            ),
            body=asset.data,
        )

    # Public metadata

    def set_public_metadata(self, metadata_json: str) -> None:
        """Store the public metadata JSON and certify its response."""
        self._public_metadata[_METADATA_KEY] = metadata_json
        self.certify_public_metadata_response()

    def create_public_metadata_response(self) -> HttpResponse:
        body = self._public_metadata.get(_METADATA_KEY, "").encode("utf-8")
        headers = [
            ("content-type", "application/json"),
            ("content-length", str(len(body))),
        ]
        return create_response(200, body, headers, PUBLIC_METADATA_CEL_EXPR)

    def certify_public_metadata_response(self) -> bytes:
        """Certify the current metadata response; returns its certification."""
        response = self.create_public_metadata_response()
        return self._responses.certify(PUBLIC_METADATA_PATH, response)

    def public_metadata_handler(self, request: HttpRequest, params: Params) -> HttpResponse:
        """Serve the certified metadata response with its certificate header.

        Raises ``LookupError`` when no response is certified for the path.
        """
        key = extract_path_and_query(request)
        certified = self._responses.get(key)
        if certified is None:
            raise LookupError(f"no certified response for {key}")
        header_value = (
            f"certificate=:{_b64(self._responses.root_hash)}:, "
            f"tree=:{_b64(certified.certification)}:, "
            f"expr_path=:{_b64(PUBLIC_METADATA_PATH.encode('utf-8'))}:, "
            "version=2"
        )
        response = certified.response
        return HttpResponse(
            status_code=response.status_code,
            headers=(*response.headers, (IC_CERTIFICATE_HEADER_NAME, header_value)),
            body=response.body,
        )

    # Contract address

    def set_contract_address(self, contract_address: str) -> str:
        """Store the token contract address; raises ``ValueError`` if malformed."""
        self._contract_address = Address.parse(contract_address)
        return "Contract address set successfully"

    def get_contract_address(self) -> str:
        address = self._contract_address.to_checksum()
        logger.debug("Contract address: %s", address)
        return address

    # Images

    def add_image(self, image_name: str, image_type: str, image_data: bytes) -> str:
        """Store an image to be served at ``/<name>.<type>``.

        Raises ``ValueError`` for an unsupported type or empty data.
        """
        content_type = _IMAGE_CONTENT_TYPES.get(image_type.lower())
        if content_type is None:
            raise ValueError(
                "Unsupported image type. Supported types are: png, jpg, jpeg, gif, webp"
            )
        if not image_data:
            raise ValueError("Image data cannot be empty")
        filename = f"{image_name}.{image_type}"
        self._assets["/" + filename] = _Asset(content_type, bytes(image_data))
        logger.debug("Stored asset %s (%d bytes)", filename, len(image_data))
        return f"Image {filename} uploaded successfully"

    # Remote lookups

    def get_siwe_principal_eth_address(self, principal: Principal) -> str:
        """Ask the sign-in provider for the principal's Ethereum address."""
        try:
            return self._siwe_provider(bytes(principal))
        except RemoteError as exc:
            raise RemoteError(f"SIWE provider error: {exc}") from exc
        except Exception as exc:
            raise RemoteError(f"Failed to get ETH address: {exc!r}") from exc

    def get_balance_of(self, wallet_address: str, token_id: int) -> int:
        """Ask the galaxy for the wallet's balance of ``token_id``."""
        try:
            return self._galaxy(wallet_address, token_id)
        except RemoteError as exc:
            raise RemoteError(f"Galaxy error: {exc}") from exc
        except Exception as exc:
            raise RemoteError(f"Failed to get balance: {exc!r}") from exc

    def is_token_owner(self, wallet_address: str, token_id: int) -> bool:
        """True when the wallet holds the token; a failed lookup counts as zero."""
        try:
            balance = self.get_balance_of(wallet_address, token_id)
        except RemoteError as exc:
            logger.debug("Error: %s", exc)
            balance = 0
        return balance > 0

    def caller_is_token_owner(self, caller: Principal, token_id: int) -> bool:
        """Check ownership for ``caller``.

        When the address lookup fails its error message is checked in place
        of an address.
        """
        try:
            wallet_address = self.get_siwe_principal_eth_address(caller)
        except RemoteError as exc:
            wallet_address = str(exc)
        return self.is_token_owner(wallet_address, token_id)

    def get_siwe_principal_eth_address_service(self, caller: Principal) -> str:
        """The caller's Ethereum address, or an empty string on failure."""
        try:
            return self.get_siwe_principal_eth_address(caller)
        except RemoteError as exc:
            logger.debug("Error: %s", exc)
            return ""

    def is_token_owner_service(self, caller: Principal, token_id: int) -> bool:
        """True when the caller's wallet holds ``token_id``; failures give False."""
        eth_address = self.get_siwe_principal_eth_address_service(caller)
        return self.is_token_owner(eth_address, token_id)

    @property
    def asset_paths(self) -> Tuple[str, ...]:
        """Paths of the stored assets, sorted."""
        return tuple(sorted(self._assets))