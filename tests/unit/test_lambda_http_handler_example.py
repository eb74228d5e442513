from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest

from dynamapper_py import Entity, ModelDefinition
from dynamapper_py.store import DynamoDBStore
from dynamapper_py.testkit import FakeDynamoDBClient


def _load_handler(client: FakeDynamoDBClient, monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    path = Path(__file__).resolve().parents[2] / "examples" / "lambda_http_handler.py"
    spec = importlib.util.spec_from_file_location("lambda_http_handler", path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, module)
    spec.loader.exec_module(module)

    model = ModelDefinition.from_dataclass(module.Message, table_name="messages")
    module._messages = Entity(model, store=DynamoDBStore(client))
    return module


def _get(module: ModuleType, params: dict[str, Any]) -> dict[str, Any]:
    event = {"requestContext": {"http": {"method": "GET"}}, "queryStringParameters": params}
    return module.handler(event, None)


@pytest.mark.parametrize(
    ("params", "error"),
    [
        ({"room": "R#1", "limit": "ten"}, "limit must be an integer"),
        ({"room": "R#1", "cursor": "eyJwYWdlS2V5Ijp7IlBLIjp7Ik4iOiJhYmMifX19"}, "invalid number"),
    ],
)
def test_list_rejects_bad_client_input_with_400(
    params: dict[str, Any], error: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = FakeDynamoDBClient()
    module = _load_handler(client, monkeypatch)

    resp = _get(module, params)

    assert resp["statusCode"] == 400
    assert error in json.loads(resp["body"])["error"]
    assert client.calls == []


def test_list_returns_items_and_cursor(monkeypatch: pytest.MonkeyPatch) -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "query",
        {"Limit": 5, "ScanIndexForward": False},
        response={
            "Items": [{"PK": {"S": "R#1"}, "SK": {"S": "2"}, "body": {"S": "hi"}}],
            "LastEvaluatedKey": {"PK": {"S": "R#1"}, "SK": {"S": "2"}},
        },
    )
    module = _load_handler(client, monkeypatch)

    resp = _get(module, {"room": "R#1", "limit": "5"})

    body = json.loads(resp["body"])
    assert resp["statusCode"] == 200
    assert body["items"][0]["body"] == "hi"
    assert body["cursor"]
    client.assert_no_pending()
