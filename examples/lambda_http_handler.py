from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass
from typing import Any

from dynamapper_py import (
    Entity,
    MapperConfig,
    ModelDefinition,
    NotFoundError,
    ValidationError,
    decode_page_key,
    encode_page_key,
    mapper_field,
)


@dataclass
class Message:
    room: str = mapper_field(name="PK", roles=["pk"], default="")
    sent: str = mapper_field(name="SK", roles=["sk"], default="")
    author: str = mapper_field(default="")
    body: str = mapper_field(default="")
    created_at: int = mapper_field(name="createdAt", default=-1)
    updated_at: int = mapper_field(name="updatedAt", default=-1)


_messages: Entity[Message] | None = None


def _get_messages() -> Entity[Message]:
    global _messages
    if _messages is not None:
        return _messages

    settings = MapperConfig.from_env()
    if not settings.table_name:
        raise RuntimeError("TABLE_NAME is required")

    _messages = Entity(ModelDefinition.from_dataclass(Message, table_name=settings.table_name))
    return _messages


def _json_response(status_code: int, body: Any) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(body, separators=(",", ":"), sort_keys=True),
    }


async def _list(room: str, cursor: str, limit_raw: Any) -> dict[str, Any]:
    try:
        limit = int(limit_raw or 20)
    except (TypeError, ValueError):
        return _json_response(400, {"error": "limit must be an integer"})

    builder = _get_messages().query_builder().partition_key_equals(room).sort("DESC").limit(limit)
    if cursor:
        try:
            builder.page_key(decode_page_key(cursor).page_key)
        except ValueError as err:
            return _json_response(400, {"error": str(err)})

    page = await builder.query()
    return _json_response(
        200,
        {
            "items": [asdict(m) for m in page.items],
            "cursor": encode_page_key(page.page_key, sort="DESC"),
        },
    )


async def _handle(method: str, params: dict[str, Any]) -> dict[str, Any]:
    room = str(params.get("room") or "")
    sent = str(params.get("sent") or "")
    messages = _get_messages()

    try:
        if method == "GET" and not sent:
            return await _list(room, str(params.get("cursor") or ""), params.get("limit"))
        if method == "GET":
            return _json_response(200, asdict(await messages.find(room, sent)))
        if method == "DELETE":
            await messages.delete_key(room, sent)
            return _json_response(200, {"ok": True})

        message = Message(
            room=room,
            sent=sent,
            author=str(params.get("author") or ""),
            body=str(params.get("body") or ""),
        )
        await messages.save(message)
        return _json_response(200, asdict(message))
    except NotFoundError:
        return _json_response(404, {"error": "not found"})
    except ValidationError as err:
        return _json_response(400, {"error": str(err)})


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    _ = context
    method = ((event.get("requestContext") or {}).get("http") or {}).get("method") or "GET"
    params = dict(event.get("queryStringParameters") or {})

    body_raw = event.get("body") or ""
    if body_raw:
        try:
            params.update(json.loads(body_raw))
        except json.JSONDecodeError:
            return _json_response(400, {"error": "body must be JSON"})

    return asyncio.run(_handle(method, params))
