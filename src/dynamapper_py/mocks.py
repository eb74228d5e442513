from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ExpectedCall:
    method: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted client: each call must match the next expectation in order."""

    def __init__(self) -> None:
        self._expected: list[ExpectedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._expected.append(ExpectedCall(method=method, expected=expected, response=response, error=error))

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def _handle(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, dict(req)))
        if not self._expected:
            raise AssertionError(f"unexpected call: {method}")

        call = self._expected.pop(0)
        if call.method != method:
            raise AssertionError(f"expected {call.method}, got {method}")

        if callable(call.expected):
            call.expected(req)
        elif call.expected is not None:
            _assert_match(dict(call.expected), req, path=method)

        if call.error is not None:
            raise call.error

        return dict(call.response or {})

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("put_item", kwargs)

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("get_item", kwargs)

    def delete_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("delete_item", kwargs)

    def query(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("query", kwargs)


def _validation_error(operation: str, message: str) -> ClientError:
    return ClientError({"Error": {"Code": "ValidationException", "Message": message}}, operation)


_CONDITION = re.compile(
    r"\s*(?:"
    r"(?P<between_name>#\w+)\s+BETWEEN\s+(?P<low>:\w+)\s+AND\s+(?P<high>:\w+)"
    r"|begins_with\(\s*(?P<prefix_name>#\w+)\s*,\s*(?P<prefix>:\w+)\s*\)"
    r"|(?P<name>#\w+)\s*(?P<op><=|>=|=|<|>)\s*(?P<value>:\w+)"
    r")\s*(?:AND\b|$)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class _KeyCondition:
    attribute: str
    op: str
    values: tuple[Any, ...]

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        try:
            if self.op == "=":
                return bool(value == self.values[0])
            if self.op == "<":
                return bool(value < self.values[0])
            if self.op == "<=":
                return bool(value <= self.values[0])
            if self.op == ">":
                return bool(value > self.values[0])
            if self.op == ">=":
                return bool(value >= self.values[0])
            if self.op == "between":
                return bool(self.values[0] <= value <= self.values[1])
            return isinstance(value, str) and value.startswith(self.values[0])
        except TypeError:
            return False


@dataclass
class _MemoryTable:
    partition_key: str
    sort_key: str | None
    indexes: dict[str, tuple[str, str | None]] = field(default_factory=dict)
    items: dict[tuple[Any, ...], dict[str, Any]] = field(default_factory=dict)

    def key_of(self, item: Mapping[str, Any]) -> tuple[Any, ...]:
        names = (self.partition_key,) if self.sort_key is None else (self.partition_key, self.sort_key)
        try:
            return tuple(repr(item[n]) for n in names)
        except KeyError as err:
            raise _validation_error("PutItem", f"missing key attribute {err}") from err


class MemoryDynamoDBClient:
    """In-memory stand-in for the low-level DynamoDB client.

    Supports the key-condition grammar produced by the query builder, key
    ordering, ``Limit``, ``ExclusiveStartKey``, ``ScanIndexForward`` and
    ``ProjectionExpression``. ``page_size`` caps items per response to
    exercise pagination without a ``Limit``.
    """

    def __init__(self, *, page_size: int | None = None) -> None:
        self._tables: dict[str, _MemoryTable] = {}
        self._deserializer = TypeDeserializer()
        self._page_size = page_size
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def add_table(
        self,
        table_name: str,
        *,
        partition_key: str,
        sort_key: str | None = None,
        indexes: Mapping[str, tuple[str, str | None]] | None = None,
    ) -> None:
        self._tables[table_name] = _MemoryTable(
            partition_key=partition_key, sort_key=sort_key, indexes=dict(indexes or {})
        )

    def items(self, table_name: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(item) for item in self._table("Scan", table_name).items.values()]

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        self.calls.append(("put_item", dict(kwargs)))
        table = self._table("PutItem", kwargs["TableName"])
        item = copy.deepcopy(dict(kwargs["Item"]))
        table.items[table.key_of(item)] = item
        return {}

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        self.calls.append(("get_item", dict(kwargs)))
        table = self._table("GetItem", kwargs["TableName"])
        item = table.items.get(table.key_of(kwargs["Key"]))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, **kwargs: Any) -> Mapping[str, Any]:
        self.calls.append(("delete_item", dict(kwargs)))
        table = self._table("DeleteItem", kwargs["TableName"])
        table.items.pop(table.key_of(kwargs["Key"]), None)
        return {}

    def query(self, **kwargs: Any) -> Mapping[str, Any]:
        self.calls.append(("query", dict(kwargs)))
        table = self._table("Query", kwargs["TableName"])

        index_name = kwargs.get("IndexName")
        if index_name is None:
            partition_attr, sort_attr = table.partition_key, table.sort_key
        elif index_name in table.indexes:
            partition_attr, sort_attr = table.indexes[index_name]
        else:
            raise _validation_error("Query", f"unknown index: {index_name}")

        conditions = self._parse_key_conditions(
            kwargs["KeyConditionExpression"],
            kwargs.get("ExpressionAttributeNames") or {},
            kwargs.get("ExpressionAttributeValues") or {},
        )
        by_attr: dict[str, list[_KeyCondition]] = {}
        for cond in conditions:
            if cond.attribute not in (partition_attr, sort_attr):
                raise _validation_error("Query", f"condition on non-key attribute: {cond.attribute}")
            by_attr.setdefault(cond.attribute, []).append(cond)
        partition_conds = by_attr.get(partition_attr, [])
        if len(partition_conds) != 1 or partition_conds[0].op != "=":
            raise _validation_error("Query", "query must specify exactly one partition key equality")
        if sort_attr is not None and len(by_attr.get(sort_attr, [])) > 1:
            raise _validation_error("Query", "only one condition per key is allowed")

        matched: list[dict[str, Any]] = []
        for item in table.items.values():
            plain = {k: self._deserializer.deserialize(v) for k, v in item.items()}
            if all(cond.matches(plain.get(cond.attribute)) for cond in conditions):
                if sort_attr is None or sort_attr in plain:
                    matched.append(item)

        if sort_attr is not None:
            matched.sort(key=lambda i: self._deserializer.deserialize(i[sort_attr]))
        if kwargs.get("ScanIndexForward") is False:
            matched.reverse()

        start = kwargs.get("ExclusiveStartKey")
        if start:
            start_key = table.key_of(start)
            positions = [n for n, i in enumerate(matched) if table.key_of(i) == start_key]
            matched = matched[positions[0] + 1 :] if positions else []

        limit = kwargs.get("Limit")
        if self._page_size is not None:
            limit = min(limit, self._page_size) if limit else self._page_size

        page = matched[:limit] if limit else matched
        resp: dict[str, Any] = {
            "Items": [self._project(i, kwargs) for i in page],
            "Count": len(page),
        }
        if limit and len(matched) > len(page):
            last = page[-1]
            key_attrs = {table.partition_key, partition_attr}
            for attr in (table.sort_key, sort_attr):
                if attr is not None:
                    key_attrs.add(attr)
            resp["LastEvaluatedKey"] = {k: copy.deepcopy(last[k]) for k in key_attrs if k in last}
        return resp

    def _table(self, operation: str, table_name: str) -> _MemoryTable:
        table = self._tables.get(table_name)
        if table is None:
            raise ClientError(
                {"Error": {"Code": "ResourceNotFoundException", "Message": f"table not found: {table_name}"}},
                operation,
            )
        return table

    def _parse_key_conditions(
        self,
        expression: str,
        names: Mapping[str, str],
        values: Mapping[str, Any],
    ) -> list[_KeyCondition]:
        def name(ref: str) -> str:
            if ref not in names:
                raise _validation_error("Query", f"unresolved attribute name: {ref}")
            return names[ref]

        def value(ref: str) -> Any:
            if ref not in values:
                raise _validation_error("Query", f"unresolved attribute value: {ref}")
            return self._deserializer.deserialize(values[ref])

        out: list[_KeyCondition] = []
        pos = 0
        while pos < len(expression):
            match = _CONDITION.match(expression, pos)
            if match is None or match.end() == pos:
                raise _validation_error("Query", f"invalid key condition expression: {expression}")
            if match.group("between_name"):
                out.append(
                    _KeyCondition(
                        name(match.group("between_name")),
                        "between",
                        (value(match.group("low")), value(match.group("high"))),
                    )
                )
            elif match.group("prefix_name"):
                prefix = value(match.group("prefix"))
                out.append(_KeyCondition(name(match.group("prefix_name")), "begins_with", (prefix,)))
            else:
                operand = value(match.group("value"))
                out.append(_KeyCondition(name(match.group("name")), match.group("op"), (operand,)))
            pos = match.end()
        return out

    def _project(self, item: Mapping[str, Any], req: Mapping[str, Any]) -> dict[str, Any]:
        projection = req.get("ProjectionExpression")
        if not projection:
            return copy.deepcopy(dict(item))
        names = req.get("ExpressionAttributeNames") or {}
        wanted = {names.get(p.strip(), p.strip()) for p in projection.split(",")}
        return {k: copy.deepcopy(v) for k, v in item.items() if k in wanted}
