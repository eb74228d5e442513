from __future__ import annotations

import logging
import time
from collections.abc import Callable
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .errors import (
    MissingPartitionKeyError,
    MissingPartitionKeyValueError,
    MissingSortKeyError,
    MissingTableNameError,
    NotFoundError,
    ReadOnlyIndexEntityError,
    SortKeyRequiredError,
)
from .model import UNSET_TIMESTAMP, AttributeDefinition, ModelDefinition
from .store import DynamoDBStore
from .values import fill_item, is_empty

T = TypeVar("T")

if TYPE_CHECKING:
    from .query_builder import QueryBuilder

logger = logging.getLogger(__name__)


def _now_millis() -> int:
    return int(time.time() * 1000)


def _is_key_value(value: Any) -> bool:
    if isinstance(value, bool) or is_empty(value):
        return False
    return isinstance(value, (str, int, float, Decimal))


def _is_unset_timestamp(value: Any) -> bool:
    return value is None or value <= UNSET_TIMESTAMP


class Entity(Generic[T]):
    """CRUD and lookups for one model over a document store.

    ``save`` is an unconditional overwrite. Models bound to a secondary index
    are read-only.
    """

    def __init__(
        self,
        model: ModelDefinition[T],
        *,
        store: DynamoDBStore | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._model = model
        self._store = store or DynamoDBStore()
        self._clock = clock or _now_millis

    @property
    def model(self) -> ModelDefinition[T]:
        return self._model

    @property
    def store(self) -> DynamoDBStore:
        return self._store

    async def save(self, item: T) -> None:
        table_name = self._writable_table()
        record, now = self._build_item(item)

        await self._store.put_item(table_name, record)
        logger.debug("%s: saved item to %s", self._model.name, table_name)

        created, updated = self._model.created_at, self._model.updated_at
        if created is not None and created.attribute_name in record:
            setattr(item, created.python_name, record[created.attribute_name])
        if updated is not None:
            setattr(item, updated.python_name, now)

    async def delete(self, item: T) -> None:
        table_name = self._writable_table()

        pk_value = getattr(item, self._model.pk.python_name)
        if is_empty(pk_value):
            raise MissingPartitionKeyError(f"{self._model.name}: partition key value is required")
        key = {self._model.pk.attribute_name: pk_value}

        sk = self._model.sk
        if sk is not None:
            sk_value = getattr(item, sk.python_name)
            if is_empty(sk_value):
                raise MissingSortKeyError(f"{self._model.name}: sort key value is required")
            key[sk.attribute_name] = sk_value

        await self._store.delete_item(table_name, key)
        logger.debug("%s: deleted item from %s", self._model.name, table_name)

    async def delete_key(self, partition_key_value: Any, sort_key_value: Any = "") -> None:
        item = self.new_instance()
        setattr(item, self._model.pk.python_name, partition_key_value)
        if self._model.sk is not None:
            setattr(item, self._model.sk.python_name, sort_key_value)
        await self.delete(item)

    async def find(
        self,
        partition_key_value: Any,
        sort_key_value: Any = "",
        *,
        strip_non_data_fields: bool = True,
    ) -> T:
        sk = self._model.sk
        if sk is not None and is_empty(sort_key_value):
            raise SortKeyRequiredError(f"{self._model.name}: sort key value is required")

        if self._model.read_only:
            builder = self.query_builder().partition_key_equals(partition_key_value)
            if sk is not None:
                builder.sort_key_equals(sort_key_value)
            result = await builder.query(strip_non_data_fields)
            if result.items:
                return result.items[0]
            raise NotFoundError(f"{self._model.name}: item not found")

        if is_empty(partition_key_value):
            raise MissingPartitionKeyValueError(f"{self._model.name}: partition key value is required")
        if not self._model.table_name:
            raise MissingTableNameError(self._model.name)

        key = {self._model.pk.attribute_name: partition_key_value}
        if sk is not None:
            key[sk.attribute_name] = sort_key_value

        raw = await self._store.get_item(self._model.table_name, key)
        if raw is None:
            raise NotFoundError(f"{self._model.name}: item not found")

        item = self.new_instance()
        fill_item(raw, item, self._model, strip_non_data_fields=strip_non_data_fields, direction="from_store")
        return item

    async def find_or_default(
        self,
        partition_key_value: Any,
        sort_key_value: Any = "",
        default: T | None = None,
        *,
        strip_non_data_fields: bool = True,
    ) -> T | None:
        try:
            return await self.find(
                partition_key_value,
                sort_key_value,
                strip_non_data_fields=strip_non_data_fields,
            )
        except NotFoundError:
            return default

    def new_instance(self) -> T:
        return self._model.new_instance()

    def clone(self, item: T) -> T:
        copy = self.new_instance()
        fill_item(item, copy, self._model)
        return copy

    def query_builder(self) -> QueryBuilder[T]:
        from .query_builder import QueryBuilder

        return QueryBuilder(self)

    def _writable_table(self) -> str:
        if self._model.index_name:
            raise ReadOnlyIndexEntityError(self._model.name, self._model.index_name)
        if not self._model.table_name:
            raise MissingTableNameError(self._model.name)
        return self._model.table_name

    def _require_key(self, attr: AttributeDefinition, value: Any, error: type[Exception]) -> None:
        if not _is_key_value(value):
            raise error(
                f"{self._model.name}: {attr.python_name} must be a non-empty string or number "
                f"(got {type(value).__name__})"
            )

    def _build_item(self, item: T) -> tuple[dict[str, Any], int]:
        self._require_key(self._model.pk, getattr(item, self._model.pk.python_name), MissingPartitionKeyError)
        if self._model.sk is not None:
            self._require_key(self._model.sk, getattr(item, self._model.sk.python_name), MissingSortKeyError)

        record: dict[str, Any] = {}
        fill_item(item, record, self._model, strip_non_data_fields=True, direction="to_store")

        now = self._clock()
        created, updated = self._model.created_at, self._model.updated_at
        if created is not None and _is_unset_timestamp(getattr(item, created.python_name)):
            record[created.attribute_name] = now
        if updated is not None:
            record[updated.attribute_name] = now
        return record, now
