import hashlib

import pytest

from starledger.hashing import (
    calculate_block_hash,
    calculate_previous_hash,
    extract_text,
    hash_value,
)
from starledger.values import Int


def sha(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def test_text_hashes_utf8_bytes():
    assert hash_value("abc") == sha("abc".encode())


def test_blob_hashes_raw_bytes():
    assert hash_value(b"\x00\x01") == sha(b"\x00\x01")


def test_small_nat_hashes_decimal():
    assert hash_value(7) == sha(b"7")


def test_large_nat_uses_grouped_digits():
    assert hash_value(1234567) == sha(b"1_234_567")


def test_int_uses_tagged_grouped_form():
    assert hash_value(Int(-1000)) == sha(b"Int(-1_000)")


def test_empty_map_hashes_nothing():
    assert hash_value({}) == sha(b"")


def test_map_is_key_order_independent():
    assert hash_value({"a": 1, "b": "x"}) == hash_value({"b": "x", "a": 1})


def test_map_composition():
    expected = sha(b"a" + hash_value(1) + b"b" + hash_value("x"))
    assert hash_value({"b": "x", "a": 1}) == expected


def test_array_composition_is_ordered():
    assert hash_value(["x", "y"]) == sha(hash_value("x") + hash_value("y"))
    assert hash_value(["x", "y"]) != hash_value(["y", "x"])


def test_digest_length():
    assert len(hash_value({"k": [1, b"", Int(2)]})) == 32


def test_block_hash_matches_value_hash():
    block = {"phash": b"", "btype": "mint"}
    assert calculate_block_hash(block) == hash_value(block)


def test_previous_hash_of_empty_chain():
    assert calculate_previous_hash([]) == b""


def test_previous_hash_uses_last_block():
    blocks = [{"n": 0}, {"n": 1}]
    assert calculate_previous_hash(blocks) == calculate_block_hash(blocks[1])


@pytest.mark.parametrize("value, expected", [("hello", "hello"), (None, ""), (5, ""), (b"x", "")])
def test_extract_text(value, expected):
    assert extract_text(value) == expected


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        hash_value(1.0)