from __future__ import annotations

import base64
import json
from decimal import Decimal

import pytest
from boto3.dynamodb.types import Binary

from dynamapper_py.query import QueryResult, decode_page_key, encode_page_key


def _token(payload: object) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii").rstrip("=")


def test_page_key_token_round_trip_with_context() -> None:
    token = encode_page_key({"SK": "N#2", "PK": "U#1", "n": 7}, index="ByEmail", sort="DESC")

    assert "=" not in token
    cursor = decode_page_key(token)
    assert cursor.page_key == {"PK": "U#1", "SK": "N#2", "n": Decimal("7")}
    assert cursor.index == "ByEmail"
    assert cursor.sort == "DESC"


def test_page_key_token_encodes_binary_values() -> None:
    token = encode_page_key({"PK": b"\x00\x01", "SK": Binary(b"hi")})
    assert decode_page_key(token).page_key == {"PK": b"\x00\x01", "SK": b"hi"}


def test_page_key_token_is_stable_across_key_order() -> None:
    assert encode_page_key({"a": "1", "b": "2"}) == encode_page_key({"b": "2", "a": "1"})


def test_encode_page_key_empty_returns_empty_string() -> None:
    assert encode_page_key(None) == ""
    assert encode_page_key({}) == ""


def test_encode_page_key_rejects_unsupported_values() -> None:
    with pytest.raises(ValueError, match="unsupported key type bool"):
        encode_page_key({"PK": True})
    with pytest.raises(ValueError, match="unsupported key type list"):
        encode_page_key({"PK": ["x"]})
    with pytest.raises(ValueError, match="must be a map"):
        encode_page_key([("PK", "x")])  # type: ignore[arg-type]


def test_decode_page_key_empty_raises() -> None:
    with pytest.raises(ValueError, match="page key token is empty"):
        decode_page_key("  ")


def test_decode_page_key_invalid_payloads_raise() -> None:
    with pytest.raises(ValueError):
        decode_page_key("bm90LWpzb24")  # base64url("not-json")
    with pytest.raises(ValueError, match="must decode to an object"):
        decode_page_key(_token(["x"]))
    with pytest.raises(ValueError, match="has no key attributes"):
        decode_page_key(_token({"pageKey": {}}))
    with pytest.raises(ValueError, match="single-key map"):
        decode_page_key(_token({"pageKey": {"PK": {"S": "a", "N": "1"}}}))
    with pytest.raises(ValueError, match="unsupported attribute type BOOL"):
        decode_page_key(_token({"pageKey": {"PK": {"BOOL": "true"}}}))
    with pytest.raises(ValueError, match="invalid number 'abc'"):
        decode_page_key(_token({"pageKey": {"PK": {"N": "abc"}}}))


def test_decode_page_key_drops_unknown_sort_direction() -> None:
    cursor = decode_page_key(_token({"pageKey": {"PK": {"S": "a"}}, "sort": "sideways", "index": 3}))
    assert cursor.sort is None
    assert cursor.index is None


def test_query_result_defaults_to_no_page_key() -> None:
    result = QueryResult(items=[1, 2])
    assert result.page_key is None
