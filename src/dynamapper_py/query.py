from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, TypeAlias, TypeVar

from boto3.dynamodb.types import Binary

T = TypeVar("T")

# Key attribute name -> key value of the last item a query returned.
PageKey: TypeAlias = dict[str, Any]


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    items: list[T]
    page_key: PageKey | None = None


@dataclass(frozen=True)
class Cursor:
    page_key: PageKey
    index: str | None = None
    sort: str | None = None


def _key_value_to_json(name: str, value: Any) -> dict[str, str]:
    if isinstance(value, bool):
        raise ValueError(f"page key {name}: unsupported key type bool")
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, (int, float, Decimal)):
        return {"N": str(value)}
    if isinstance(value, Binary):
        value = value.value
    if isinstance(value, (bytes, bytearray)):
        return {"B": base64.b64encode(bytes(value)).decode("ascii")}
    raise ValueError(f"page key {name}: unsupported key type {type(value).__name__}")


def _key_value_from_json(name: str, enc: Any) -> Any:
    if not isinstance(enc, dict) or len(enc) != 1:
        raise ValueError(f"page key {name}: value must be a single-key map")
    (kind, value), *_ = enc.items()
    if not isinstance(value, str):
        raise ValueError(f"page key {name}: {kind} value must be a string")

    if kind == "S":
        return value
    if kind == "N":
        try:
            return Decimal(value)
        except InvalidOperation as err:
            raise ValueError(f"page key {name}: invalid number {value!r}") from err
    if kind == "B":
        return base64.b64decode(value)
    raise ValueError(f"page key {name}: unsupported attribute type {kind}")


def encode_page_key(page_key: PageKey | None, *, index: str | None = None, sort: str | None = None) -> str:
    """Turn a page key into an opaque url-safe token."""
    if not page_key:
        return ""
    if not isinstance(page_key, dict):
        raise ValueError("page_key must be a map")

    payload: dict[str, Any] = {
        "pageKey": {str(k): _key_value_to_json(str(k), page_key[k]) for k in sorted(page_key)},
    }
    if index is not None:
        payload["index"] = index
    if sort is not None:
        payload["sort"] = sort

    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_page_key(token: str) -> Cursor:
    raw = str(token or "").strip()
    if not raw:
        raise ValueError("page key token is empty")

    padding = "=" * (-len(raw) % 4)
    parsed = json.loads(base64.urlsafe_b64decode(raw + padding).decode("utf-8"))
    if not isinstance(parsed, dict):
        raise ValueError("page key token must decode to an object")

    key_raw = parsed.get("pageKey")
    if not isinstance(key_raw, dict) or not key_raw:
        raise ValueError("page key token has no key attributes")

    index = parsed.get("index")
    sort = parsed.get("sort")
    return Cursor(
        page_key={str(k): _key_value_from_json(str(k), v) for k, v in key_raw.items()},
        index=index if isinstance(index, str) else None,
        sort=sort if sort in {"ASC", "DESC"} else None,
    )
