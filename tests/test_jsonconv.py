import json

import pytest

from starledger.jsonconv import get_json_string, get_json_string_from_vec, icrc3_to_json
from starledger.values import Int


def test_text_passes_through():
    assert icrc3_to_json("hello") == "hello"


def test_small_nat_is_number():
    assert icrc3_to_json(42) == 42


def test_nanosecond_timestamp_becomes_seconds():
    assert icrc3_to_json(1_700_000_000_123_456_789) == 1700000000


def test_huge_nat_becomes_string():
    assert icrc3_to_json(10 ** 40) == str(10 ** 40)


def test_int_in_range_is_number():
    assert icrc3_to_json(Int(-5)) == -5


def test_int_out_of_range_becomes_string():
    assert icrc3_to_json(Int(-(2 ** 70))) == str(-(2 ** 70))


def test_empty_blob_is_null():
    assert icrc3_to_json(b"") is None


def test_blob_is_hex():
    assert icrc3_to_json(b"\x01\xff") == "01ff"


def test_map_and_array_recurse():
    result = icrc3_to_json({"list": [1, "a", b""], "inner": {"x": Int(3)}})
    assert result == {"list": [1, "a", None], "inner": {"x": 3}}


def test_pretty_string_layout():
    assert get_json_string({"b": 1, "a": "x"}) == '{\n  "a": "x",\n  "b": 1\n}'


def test_pretty_string_round_trips():
    value = {"k": ["é", 3]}
    assert json.loads(get_json_string(value)) == icrc3_to_json(value)


def test_vec_joined_with_comma():
    out = get_json_string_from_vec(["a", 1])
    assert out == get_json_string("a") + ", " + get_json_string(1)


def test_empty_vec_is_empty_string():
    assert get_json_string_from_vec([]) == ""


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        icrc3_to_json(None)