import pytest

from starledger.constellation import Constellation, RemoteError
from starledger.http import HttpRequest, RouteNotFound
from starledger.principal import Principal

CALLER = Principal.from_text("gdh4h-lyaaa-aaaal-ar2ba-cai")
WALLET = "0x3A43bFD1dCc4370C5d48d653c834d16e7E671313"


class FakeSiwe:
    def __init__(self, result=WALLET, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, principal_bytes):
        self.calls.append(principal_bytes)
        if self.error is not None:
            raise self.error
        return self.result


class FakeGalaxy:
    def __init__(self, balance=0, error=None):
        self.balance = balance
        self.error = error
        self.calls = []

    def __call__(self, wallet_address, token_id):
        self.calls.append((wallet_address, token_id))
        if self.error is not None:
            raise self.error
        return self.balance


def make(siwe=None, galaxy=None):
    return Constellation(siwe or FakeSiwe(), galaxy or FakeGalaxy(), clock=lambda: 5_000_000_000)


def get(url):
    return HttpRequest(method="GET", url=url)


def test_contract_address_defaults_to_zero():
    assert make().get_contract_address() == "0x" + "0" * 40


def test_contract_address_round_trip():
    c = make()
    assert c.set_contract_address(WALLET.lower()) == "Contract address set successfully"
    assert c.get_contract_address().lower() == WALLET.lower()


def test_contract_address_invalid():
    with pytest.raises(ValueError):
        make().set_contract_address("not-an-address")


def test_add_image_and_serve():
    c = make()
    data = b"\x89PNG-bytes"
    assert c.add_image("cat", "png", data) == "Image cat.png uploaded successfully"
    response = c.http_request(get("/cat.png"))
    assert response.status_code == 200
    assert response.body == data
    assert response.header("content-type") == "image/png"
    assert response.header("cache-control") == "public, max-age=31536000, immutable"


def test_add_image_type_case_insensitive():
    c = make()
    assert c.add_image("dog", "JPG", b"x") == "Image dog.JPG uploaded successfully"
    assert c.http_request(get("/dog.JPG")).header("content-type") == "image/jpeg"
    assert c.asset_paths == ("/dog.JPG",)


def test_add_image_unsupported_type():
    with pytest.raises(ValueError, match="Unsupported image type"):
        make().add_image("doc", "pdf", b"x")


def test_add_image_empty_data():
    with pytest.raises(ValueError, match="Image data cannot be empty"):
        make().add_image("cat", "png", b"")


def test_unknown_path_raises():
    with pytest.raises(RouteNotFound):
        make().http_request(get("/missing.png"))


def test_metadata_served_with_headers():
    c = make()
    metadata = '{"name": "Star"}'
    c.set_public_metadata(metadata)
    response = c.http_request(get("/metadata"))
    assert response.status_code == 200
    assert response.body == metadata.encode()
    assert response.header("content-type") == "application/json"
    assert response.header("content-length") == str(len(metadata))
    assert response.header("pragma") == "no-cache"
    assert response.header("IC-Certificate").endswith("version=2")


def test_metadata_response_reflects_update():
    c = make()
    c.set_public_metadata('{"v": 1}')
    c.set_public_metadata('{"v": 2}')
    assert c.http_request(get("/metadata")).body == b'{"v": 2}'


def test_metadata_uncertified_raises():
    with pytest.raises(LookupError):
        make().http_request(get("/metadata"))


def test_empty_metadata_response():
    response = make().create_public_metadata_response()
    assert response.body == b""
    assert response.header("content-length") == "0"


def test_siwe_address_passes_principal_bytes():
    siwe = FakeSiwe()
    c = make(siwe=siwe)
    assert c.get_siwe_principal_eth_address(CALLER) == WALLET
    assert siwe.calls == [bytes(CALLER)]


def test_siwe_provider_error_wrapped():
    c = make(siwe=FakeSiwe(error=RemoteError("nope")))
    with pytest.raises(RemoteError, match="^SIWE provider error: nope$"):
        c.get_siwe_principal_eth_address(CALLER)


def test_siwe_call_failure_wrapped():
    c = make(siwe=FakeSiwe(error=ConnectionError("down")))
    with pytest.raises(RemoteError, match="^Failed to get ETH address"):
        c.get_siwe_principal_eth_address(CALLER)


def test_siwe_service_returns_empty_on_error():
    c = make(siwe=FakeSiwe(error=RemoteError("nope")))
    assert c.get_siwe_principal_eth_address_service(CALLER) == ""


def test_balance_errors_wrapped():
    c = make(galaxy=FakeGalaxy(error=RemoteError("Constellation not found")))
    with pytest.raises(RemoteError, match="^Galaxy error: Constellation not found$"):
        c.get_balance_of(WALLET, 1)
    c2 = make(galaxy=FakeGalaxy(error=TimeoutError()))
    with pytest.raises(RemoteError, match="^Failed to get balance"):
        c2.get_balance_of(WALLET, 1)


def test_is_token_owner():
    assert make(galaxy=FakeGalaxy(balance=3)).is_token_owner(WALLET, 7) is True
    assert make(galaxy=FakeGalaxy(balance=0)).is_token_owner(WALLET, 7) is False
    assert make(galaxy=FakeGalaxy(error=RemoteError("x"))).is_token_owner(WALLET, 7) is False


def test_is_token_owner_service():
    galaxy = FakeGalaxy(balance=1)
    c = make(galaxy=galaxy)
    assert c.is_token_owner_service(CALLER, 4) is True
    assert galaxy.calls == [(WALLET, 4)]


def test_is_token_owner_service_uses_empty_address_on_error():
    galaxy = FakeGalaxy(balance=1)
    c = make(siwe=FakeSiwe(error=RemoteError("nope")), galaxy=galaxy)
    assert c.is_token_owner_service(CALLER, 2) is True
    assert galaxy.calls == [("", 2)]


def test_caller_is_token_owner_uses_error_message_as_address():
    galaxy = FakeGalaxy(balance=0)
    c = make(siwe=FakeSiwe(error=RemoteError("nope")), galaxy=galaxy)
    assert c.caller_is_token_owner(CALLER, 9) is False
    assert galaxy.calls == [("SIWE provider error: nope", 9)]


def test_ledger_uses_clock():
    c = make()
    c.ledger.initialize("{}")
    genesis = c.ledger.get_genesis_block()
    assert genesis["timestamp"] == 5_000_000_000
    assert genesis["transaction"]["timestamp"] == 5