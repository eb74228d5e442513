from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .query import PageKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryRequest:
    table_name: str
    key_condition_expression: str
    attribute_names: Mapping[str, str]
    attribute_values: Mapping[str, Any]
    index_name: str | None = None
    projection_expression: str | None = None
    scan_forward: bool = True
    limit: int | None = None
    exclusive_start_key: PageKey | None = None


@dataclass(frozen=True)
class QueryResponse:
    items: list[dict[str, Any]] = field(default_factory=list)
    last_evaluated_key: PageKey | None = None


def _dynamo_safe(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {k: _dynamo_safe(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return {_dynamo_safe(v) for v in value}
    if isinstance(value, (list, tuple)):
        return [_dynamo_safe(v) for v in value]
    return value


class DynamoDBStore:
    """Async facade over a boto3 DynamoDB client speaking plain Python values.

    Blocking client calls run in a worker thread. Client errors propagate
    unchanged.
    """

    def __init__(self, client: Any | None = None) -> None:
        if client is None:
            from .runtime import get_lambda_dynamodb_client

            client = get_lambda_dynamodb_client()
        self._client: Any = client
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @property
    def client(self) -> Any:
        return self._client

    async def get_item(self, table_name: str, key: Mapping[str, Any]) -> dict[str, Any] | None:
        resp = await asyncio.to_thread(
            self._client.get_item, TableName=table_name, Key=self._serialize_map(key)
        )
        item = resp.get("Item")
        if not item:
            return None
        return self._deserialize_map(item)

    async def put_item(self, table_name: str, item: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._client.put_item, TableName=table_name, Item=self._serialize_map(item))

    async def delete_item(self, table_name: str, key: Mapping[str, Any]) -> None:
        await asyncio.to_thread(
            self._client.delete_item, TableName=table_name, Key=self._serialize_map(key)
        )

    async def query(self, request: QueryRequest) -> QueryResponse:
        req: dict[str, Any] = {
            "TableName": request.table_name,
            "KeyConditionExpression": request.key_condition_expression,
            "ExpressionAttributeNames": dict(request.attribute_names),
            "ExpressionAttributeValues": self._serialize_map(request.attribute_values),
        }
        if request.index_name:
            req["IndexName"] = request.index_name
        if not request.scan_forward:
            req["ScanIndexForward"] = False
        if request.projection_expression:
            req["ProjectionExpression"] = request.projection_expression
        if request.exclusive_start_key:
            req["ExclusiveStartKey"] = self._serialize_map(request.exclusive_start_key)
        if request.limit is not None and request.limit > 0:
            req["Limit"] = request.limit

        resp = await asyncio.to_thread(self._client.query, **req)

        items = [self._deserialize_map(item) for item in resp.get("Items", [])]
        last = resp.get("LastEvaluatedKey")
        logger.debug(
            "query %s (index=%s): %d items, more=%s",
            request.table_name,
            request.index_name,
            len(items),
            bool(last),
        )
        return QueryResponse(items=items, last_evaluated_key=self._deserialize_map(last) if last else None)

    def _serialize_map(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(_dynamo_safe(v)) for k, v in values.items()}

    def _deserialize_map(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self._deserializer.deserialize(v) for k, v in values.items()}
