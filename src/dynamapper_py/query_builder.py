from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

from .errors import (
    MissingPartitionKeyValueError,
    MissingTableNameError,
    NotFoundError,
    UnsupportedKeyTypeError,
    ValidationError,
)
from .query import PageKey, QueryResult
from .store import QueryRequest
from .values import fill_item, is_empty

T = TypeVar("T")

if TYPE_CHECKING:
    from .entity import Entity

logger = logging.getLogger(__name__)

PARTITION_KEY_REF = "#partitionKey"
SORT_KEY_REF = "#sortKey"


class QueryBuilder(Generic[T]):
    """Fluent, single-use query over one entity's partition.

    Setters return the builder. Sort-key range conditions are ANDed in a
    fixed order (<, <=, >, >=, BETWEEN, begins_with); an equality condition
    replaces all of them. Contradictory combinations are left for the store
    to reject.
    """

    def __init__(self, entity: Entity[T]) -> None:
        self._entity = entity
        self._model = entity.model
        self._partition_key_value: Any = None
        self._sort_key_equals: Any = None
        self._sort_key_less_than: Any = None
        self._sort_key_less_than_or_equals: Any = None
        self._sort_key_greater_than: Any = None
        self._sort_key_greater_than_or_equals: Any = None
        self._sort_key_between: tuple[Any, Any] | None = None
        self._sort_key_begins_with: str | None = None
        self._page_key: PageKey | None = None
        self._limit: int | None = None
        self._scan_forward = True
        self._selected: list[str] = []

    def partition_key_equals(self, value: Any) -> QueryBuilder[T]:
        self._partition_key_value = value
        return self

    def sort_key_equals(self, value: Any) -> QueryBuilder[T]:
        self._sort_key_equals = value
        return self

    def sort_key_less_than(self, value: Any) -> QueryBuilder[T]:
        self._sort_key_less_than = value
        return self

    def sort_key_less_than_or_equals(self, value: Any) -> QueryBuilder[T]:
        self._sort_key_less_than_or_equals = value
        return self

    def sort_key_greater_than(self, value: Any) -> QueryBuilder[T]:
        self._sort_key_greater_than = value
        return self

    def sort_key_greater_than_or_equals(self, value: Any) -> QueryBuilder[T]:
        self._sort_key_greater_than_or_equals = value
        return self

    def sort_key_between(self, lower: Any, upper: Any) -> QueryBuilder[T]:
        self._sort_key_between = (lower, upper)
        return self

    def sort_key_begins_with(self, value: str) -> QueryBuilder[T]:
        for role, attr in (("partition", self._model.pk), ("sort", self._model.sk)):
            if attr is not None and attr.key_type != "S":
                raise UnsupportedKeyTypeError(
                    f"{self._model.name}: begins_with requires a string {role} key ({attr.python_name})"
                )
        self._sort_key_begins_with = value or None
        return self

    def page_key(self, value: PageKey | None) -> QueryBuilder[T]:
        self._page_key = value or None
        return self

    def skip(self, value: PageKey | None) -> QueryBuilder[T]:
        return self.page_key(value)

    def limit(self, value: int | None) -> QueryBuilder[T]:
        self._limit = value if value is not None and value > 0 else None
        return self

    def take(self, value: int | None) -> QueryBuilder[T]:
        return self.limit(value)

    def sort(self, value: Literal["ASC", "DESC"]) -> QueryBuilder[T]:
        if value not in {"ASC", "DESC"}:
            raise ValidationError(f"sort must be ASC or DESC (got {value!r})")
        self._scan_forward = value == "ASC"
        return self

    def select(self, field_names: Sequence[str]) -> QueryBuilder[T]:
        self._selected = list(field_names)
        return self

    async def query(self, strip_non_data_fields: bool = True) -> QueryResult[T]:
        request = self.build_request()
        response = await self._entity.store.query(request)

        items: list[T] = []
        for raw in response.items:
            item = self._model.new_instance()
            fill_item(
                raw,
                item,
                self._model,
                strip_non_data_fields=strip_non_data_fields,
                direction="from_store",
            )
            items.append(item)

        return QueryResult(items=items, page_key=response.last_evaluated_key or None)

    async def all(self, strip_non_data_fields: bool = True) -> list[T]:
        self._page_key = None
        self._limit = None

        items: list[T] = []
        pages = 0
        while True:
            result = await self.query(strip_non_data_fields)
            pages += 1
            items.extend(result.items)
            if result.page_key is None:
                break
            self._page_key = result.page_key

        logger.debug("%s: collected %d items over %d pages", self._model.name, len(items), pages)
        return items

    async def first(self, strip_non_data_fields: bool = True) -> T:
        self._require_partition_key()
        self.limit(1)

        result = await self.query(strip_non_data_fields)
        if not result.items:
            raise NotFoundError(f"{self._model.name}: item not found")
        return result.items[0]

    async def first_or_default(
        self, default: T | None = None, strip_non_data_fields: bool = True
    ) -> T | None:
        try:
            return await self.first(strip_non_data_fields)
        except NotFoundError:
            return default

    def build_request(self) -> QueryRequest:
        self._require_partition_key()
        if not self._model.table_name:
            raise MissingTableNameError(self._model.name)

        values: list[Any] = []

        def value_ref(value: Any) -> str:
            values.append(value)
            return f":val{len(values)}"

        expression = f"{PARTITION_KEY_REF} = {value_ref(self._partition_key_value)}"
        if self._sort_key_equals is not None:
            expression += f" AND {SORT_KEY_REF} = {value_ref(self._sort_key_equals)}"
        else:
            for op, value in (
                ("<", self._sort_key_less_than),
                ("<=", self._sort_key_less_than_or_equals),
                (">", self._sort_key_greater_than),
                (">=", self._sort_key_greater_than_or_equals),
            ):
                if value is not None:
                    expression += f" AND {SORT_KEY_REF} {op} {value_ref(value)}"
            if self._sort_key_between is not None:
                lower, upper = self._sort_key_between
                expression += f" AND {SORT_KEY_REF} BETWEEN {value_ref(lower)} AND {value_ref(upper)}"
            if self._sort_key_begins_with is not None:
                expression += f" AND begins_with({SORT_KEY_REF}, {value_ref(self._sort_key_begins_with)})"

        names = {PARTITION_KEY_REF: self._model.pk.attribute_name}
        if self._has_sort_key_condition() and self._model.sk is not None:
            names[SORT_KEY_REF] = self._model.sk.attribute_name

        return QueryRequest(
            table_name=self._model.table_name,
            key_condition_expression=expression,
            attribute_names=names,
            attribute_values={f":val{i}": v for i, v in enumerate(values, start=1)},
            index_name=self._model.index_name,
            projection_expression=self._projection_expression(),
            scan_forward=self._scan_forward,
            limit=self._limit,
            exclusive_start_key=self._page_key,
        )

    def _require_partition_key(self) -> None:
        if is_empty(self._partition_key_value):
            raise MissingPartitionKeyValueError(f"{self._model.name}: partition key value is required")

    def _has_sort_key_condition(self) -> bool:
        return any(
            v is not None
            for v in (
                self._sort_key_equals,
                self._sort_key_less_than,
                self._sort_key_less_than_or_equals,
                self._sort_key_greater_than,
                self._sort_key_greater_than_or_equals,
                self._sort_key_between,
                self._sort_key_begins_with,
            )
        )

    def _projection_expression(self) -> str | None:
        if not self._selected:
            return None

        names = [self._model.attribute_name_for(f) for f in self._selected]
        for attr in (self._model.created_at, self._model.updated_at):
            if attr is not None and attr.attribute_name not in names:
                names.append(attr.attribute_name)
        return ",".join(names)
