# starledger

`starledger` keeps an append-only, hash-chained ledger of blocks. Each block
holds the hash of the block before it, so the chain can be checked for
tampering. Around the ledger the package provides:

- `starledger.values`: the ledger value model. A value is a natural number
  (`int`), a signed `Int`, text (`str`), a blob (`bytes`), a map (`dict` with
  `str` keys) or an array (`list`). `validate_value` checks a value. The
  module also holds the `AddBlockInfo`, `BlockInfo` and `BlockType` records.
- `starledger.hashing`: SHA-256 hashing of values and blocks.
- `starledger.jsonconv`: conversion of values to JSON.
- `starledger.ledger`: the `Ledger` itself, with `LedgerError` and
  `DataCertificate`.
- `starledger.principal`: `Principal` identifiers with their checksummed,
  dash-grouped text form, and `CanisterIds`.
- `starledger.address`: 20-byte Ethereum `Address` values with EIP-55
  checksummed text.
- `starledger.http`: `HttpRequest`, `HttpResponse`, `ApiResponse`, a
  `ResponseCache` of certified responses and a method and path `Router`.
- `starledger.constellation`: `Constellation`, one asset's ledger together
  with its HTTP interface, image store, contract address and token ownership
  checks.
- `starledger.galaxy_types` and `starledger.galaxy`: the `Galaxy` registry,
  which maps ledger principals to token contracts and forwards block
  additions and queries.

## Installation

```
pip install starledger
```

To run the tests:

```
pip install "starledger[test]"
pytest
```

## The ledger

```python
from starledger.ledger import Ledger
from starledger.values import AddBlockInfo

ledger = Ledger()  # the clock defaults to time.time_ns
ledger.initialize('{"name": "Orion"}')

message = ledger.add_block(
    AddBlockInfo(kind="researcher_addition", block_data='{"who": "Ada"}')
)
block_hash = message.rsplit(" ", 1)[-1]

ledger.get_block_by_hash(block_hash)     # the block just added
ledger.get_all_block_types()             # ['researcher_addition']
ledger.get_block_type_counts()           # [('researcher_addition', 1)]
ledger.get_chain_length()                # 2
ledger.verify_chain_integrity()          # True
print(ledger.json_get_latest_blocks(2))
```

- `initialize(init_data)` stores the genesis block. It raises `LedgerError`
  if the ledger already has blocks.
- `add_block(block_info)` appends a block of kind `block_info.kind` and
  returns a message that ends with the block's hex hash.
- `get_block`, `get_genesis_block` and `get_block_by_hash` return a copy of
  the block, or `None` when there is none. `get_block_by_hash` also returns
  `None` for malformed hex, and raises `LedgerError` when no block is
  indexed under the hash.
- `get_latest_blocks(count)`, `get_blocks_by_type(block_type)` and
  `get_entire_chain()` return lists of blocks, oldest first.
- Every `json_get_*` method gives the same data as pretty-printed JSON. The
  ones that return lists join their blocks with `", "`. The single-block
  forms raise `LedgerError` when the block is missing.
- `chain_info()` returns a three-line text summary.
- `get_tip_certificate(certificate)` pairs the given certificate bytes with
  the hash of the latest block. It returns `None` when the ledger is empty or
  no certificate is given.
- `supported_block_types()` lists the known block types as `BlockType`
  records. `get_archives(args)` always returns an empty list.

## Hashing and JSON

`hash_value` hashes each kind of value as follows:

- natural numbers: their underscore-grouped decimal form, such as `1_000`
- text: its UTF-8 bytes
- blobs: their raw bytes
- maps: each key, followed by the digest of its value, in sorted key order
- arrays: the digests of their elements, in order

`calculate_block_hash` applies `hash_value` to a block.
`calculate_previous_hash` gives the hash of the last block in a sequence, or
`b""` when the sequence is empty. `extract_text` returns text values and
`""` for anything else.

`icrc3_to_json` turns a value into plain JSON data. Empty blobs become
`None`, and other blobs become hex strings. Natural numbers with more than 16
digits are read as nanosecond timestamps and reduced to seconds. Numbers
outside the 64-bit range become strings. `get_json_string` returns the same
data as indented JSON text, and `get_json_string_from_vec` joins several of
these with `", "`.

## HTTP

```python
from starledger.http import HttpRequest, HttpResponse, Router

def fallback(request):
    return HttpResponse(404, body=b"not found")

router = Router(fallback=fallback)
router.insert("GET", "/items/{id}", lambda request, params: HttpResponse(200, body=params["id"].encode()))
router.match(HttpRequest("GET", "/items/42")).body   # b'42'
```

Route patterns can use `{name}` to match one segment and `{*name}` as a final
catch-all. Static segments win over parameters, and parameters win over
catch-alls. Two routes of the same shape for the same method raise
`ValueError`. When nothing matches and the router has no fallback, `match`
raises `RouteNotFound`.

`create_response` builds an `HttpResponse`. It appends the
`IC-CertificateExpression` header and then the standard security headers:
strict transport security, `nosniff`, no referrer and no caching.
`extract_path_and_query` returns a request's path followed by `?query`
when the request has a query. `ApiResponse.ok(data)` and
`ApiResponse.err(code, message)` build JSON envelopes, and `encode()`
serialises them to compact JSON bytes.

## Constellation

```python
from starledger.constellation import Constellation
from starledger.http import HttpRequest
from starledger.principal import Principal

constellation = Constellation(
    siwe_provider=lambda principal_bytes: "0x" + "11" * 20,
    galaxy=lambda wallet_address, token_id: 1,
)
constellation.ledger.initialize('{"name": "Orion"}')

constellation.set_public_metadata('{"name": "Orion"}')
response = constellation.http_request(HttpRequest("GET", "/metadata"))
response.status_code               # 200
response.header("IC-Certificate")  # certificate, tree and expr_path fields

constellation.add_image("logo", "png", b"\x89PNG...")
constellation.http_request(HttpRequest("GET", "/logo.png")).header("content-type")  # 'image/png'

constellation.is_token_owner_service(Principal.from_bytes(b"\x01"), 7)  # True
```

- `set_contract_address` and `get_contract_address` store the token
  contract and return it in checksummed form. The default is the zero
  address.
- `add_image` accepts `png`, `jpg`, `jpeg`, `gif` and `webp`. It raises
  `ValueError` for other types or for empty data.
- Ownership checks call the two functions passed in. A provider reports an
  error answer by raising `RemoteError`. Other exceptions count as failed
  calls, and these are also re-raised as `RemoteError`. The `*_service`
  methods and `is_token_owner` turn failures into `""` or `False`.

## Galaxy

```python
from starledger.galaxy import Galaxy
from starledger.galaxy_types import AddEthBlockArgs, AddIcrcBlockArgs, DeployAssetContractArgs
from starledger.principal import Principal

galaxy = Galaxy(
    token_minter=lambda mint_args: "0xabc",
    canister_caller=lambda principal, method, args: "ok",
)
asset = Principal.from_bytes(b"\x02")
galaxy.add_asset_mapping(asset, "0x" + "22" * 20, DeployAssetContractArgs("Orion", "ORI", "ipfs://example"))
galaxy.get_asset_contract_address(asset)   # '0x2222...'
galaxy.json_get_all_mappings()

galaxy.add_block(
    asset,
    AddEthBlockArgs(eth_address="0x" + "33" * 20, token_id="1", amount="1", eth_metadata_url="https://example.com/1.json"),
    AddIcrcBlockArgs(kind="mint", block_data="{}"),
)                                          # '0xabc'
```

- `upload_wasm` stores a module for each caller in 1 MiB chunks, and
  `get_stored_wasm` returns it joined back together.
- `get_genesis_block`, `get_block`, `get_entire_chain`, `get_block_by_hash`
  and `get_metadata_value` forward to the ledger's `json_*` methods through
  `canister_caller`.
- `get_ecdsa_key_name(network)` returns `"dfx_test_key"` for `"local"` and
  `"key_1"` for `"ic"`. It raises `ValueError` for any other network.
- `AssetMapping.to_bytes` and `AssetMapping.from_bytes` give the
  length-prefixed storage form of a mapping, which is limited to 4096 bytes.

## What the package does not do

- Everything is kept in memory. Ledgers, mappings, images and uploaded
  modules are not persisted.
- Response certification is a plain SHA-256 digest kept by `ResponseCache`,
  not a verifiable network certificate.
- There are no network clients. Sign-in lookups, balances, token minting
  and calls into other ledgers come only from the callables you pass in.
- The package cannot create or delete ledger instances, deploy or transfer
  token contracts, or query a chain by itself.
- There is no command-line program.