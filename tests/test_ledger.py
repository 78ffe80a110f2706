import json

import pytest

from starledger.hashing import calculate_block_hash
from starledger.ledger import DataCertificate, Ledger, LedgerError
from starledger.values import AddBlockInfo

NOW = 1_700_000_000_123_456_789


@pytest.fixture
def ledger():
    return Ledger(clock=lambda: NOW)


@pytest.fixture
def chain(ledger):
    ledger.initialize('{"name": "asset"}')
    ledger.add_block(AddBlockInfo("mint", "m1"))
    ledger.add_block(AddBlockInfo("transfer", "t1"))
    ledger.add_block(AddBlockInfo("mint", "m2"))
    return ledger


def test_initialize_message(ledger):
    assert ledger.initialize("data") == "Ledger initialized successfully"
    assert len(ledger) == 1


def test_initialize_twice_fails(ledger):
    ledger.initialize("data")
    with pytest.raises(LedgerError):
        ledger.initialize("again")


def test_genesis_block_contents(ledger):
    ledger.initialize("data")
    genesis = ledger.get_genesis_block()
    assert genesis["btype"] == "genesis"
    assert genesis["phash"] == b""
    assert genesis["timestamp"] == NOW
    assert genesis["transaction"]["data"] == {"init_data": "data"}
    assert genesis["transaction"]["timestamp"] == NOW // 1_000_000_000


def test_add_block_reports_hash(ledger):
    ledger.initialize("data")
    message = ledger.add_block(AddBlockInfo("mint", "payload"))
    prefix = "Block Addition recorded successfully. ICRC3 transaction hash: "
    assert message == prefix + calculate_block_hash(ledger.get_block(1)).hex()


def test_blocks_link_to_predecessor(chain):
    for index in range(1, chain.get_chain_length()):
        assert chain.get_block(index)["phash"] == calculate_block_hash(chain.get_block(index - 1))
    assert chain.verify_chain_integrity() is True


def test_returned_blocks_are_copies(chain):
    block = chain.get_block(1)
    block["phash"] = b"tampered"
    assert chain.get_block(1)["phash"] == calculate_block_hash(chain.get_block(0))
    assert chain.verify_chain_integrity() is True


def test_add_without_initialize_starts_at_zero(ledger):
    ledger.add_block(AddBlockInfo("mint", "x"))
    assert ledger.get_block(0)["phash"] == b""
    with pytest.raises(LedgerError):
        ledger.initialize("late")


def test_get_block_out_of_range(chain):
    assert chain.get_block(99) is None
    assert chain.get_block(-1) is None
    with pytest.raises(LedgerError):
        chain.json_get_block(99)


def test_get_block_by_hash_round_trip(chain):
    block = chain.get_block(2)
    found = chain.get_block_by_hash(calculate_block_hash(block).hex())
    assert found == block


def test_get_block_by_hash_malformed(chain):
    assert chain.get_block_by_hash("zz") is None
    assert chain.get_block_by_hash("abc") is None


def test_get_block_by_hash_unknown(chain):
    with pytest.raises(LedgerError):
        chain.get_block_by_hash("00" * 32)


def test_genesis_is_not_hash_indexed(chain):
    with pytest.raises(LedgerError):
        chain.get_block_by_hash(calculate_block_hash(chain.get_genesis_block()).hex())


def test_json_get_block_by_hash(chain):
    block = chain.get_block(1)
    text = chain.json_get_block_by_hash(calculate_block_hash(block).hex())
    assert json.loads(text)["transaction"]["data"]["block_data"] == "m1"


def test_json_genesis_timestamps_in_seconds(chain):
    data = json.loads(chain.json_get_genesis_block())
    assert data["timestamp"] == NOW // 1_000_000_000
    assert data["phash"] is None


def test_json_genesis_missing(ledger):
    with pytest.raises(LedgerError):
        ledger.json_get_genesis_block()


def test_latest_blocks(chain):
    latest = chain.get_latest_blocks(2)
    assert latest == [chain.get_block(2), chain.get_block(3)]
    assert chain.get_latest_blocks(100) == chain.get_entire_chain()
    assert chain.get_latest_blocks(0) == []


def test_latest_blocks_negative_count(chain):
    with pytest.raises(ValueError):
        chain.get_latest_blocks(-1)


def test_json_latest_blocks_joined(chain):
    text = chain.json_get_latest_blocks(2)
    assert json.loads("[" + text + "]")[1]["btype"] == "mint"


def test_blocks_by_type(chain):
    mints = chain.get_blocks_by_type("mint")
    assert [b["transaction"]["data"]["block_data"] for b in mints] == ["m1", "m2"]
    assert chain.get_blocks_by_type("burn") == []
    assert chain.json_get_blocks_by_type("burn") == ""


def test_block_types_and_counts(chain):
    assert chain.get_all_block_types() == ["mint", "transfer"]
    assert chain.get_block_type_counts() == [("mint", 2), ("transfer", 1)]


def test_entire_chain_json(chain):
    parsed = json.loads("[" + chain.json_get_entire_chain() + "]")
    assert len(parsed) == chain.get_chain_length()
    assert [b["btype"] for b in parsed] == ["genesis", "mint", "transfer", "mint"]


def test_chain_info_empty(ledger):
    assert ledger.chain_info() == (
        "Number of blocks: 0\nFirst block exists: false\nLast block exists: false"
    )


def test_chain_info_populated(chain):
    assert chain.chain_info() == (
        "Number of blocks: 4\nFirst block exists: true\nLast block exists: true"
    )


def test_tip_certificate(chain):
    cert = chain.get_tip_certificate(b"cert")
    assert cert == DataCertificate(b"cert", calculate_block_hash(chain.get_block(3)))


def test_tip_certificate_absent(chain, ledger):
    assert chain.get_tip_certificate(None) is None
    assert ledger.get_tip_certificate(b"cert") is None


def test_archives_empty(chain):
    assert chain.get_archives({"from": None}) == []


def test_supported_block_types(ledger):
    kinds = [t.block_type for t in ledger.supported_block_types()]
    assert kinds == ["researcher_addition", "mint", "transfer", "burn"]
    assert ledger.supported_block_types()[1].url == "https://icrc3-standard/docs/mint"


def test_empty_chain_verifies(ledger):
    assert ledger.verify_chain_integrity() is True
    assert ledger.get_chain_length() == 0