from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from decimal import Decimal
from typing import Any, Generic, Literal, TypeAlias, TypeVar, cast, get_type_hints, overload

T = TypeVar("T")

FieldKind: TypeAlias = Literal["scalar", "set", "map"]
KeyType: TypeAlias = Literal["S", "N"]

FIELD_KINDS: frozenset[str] = frozenset({"scalar", "set", "map"})

# Schema metadata names; never stored as item data.
NON_DATA_FIELDS: frozenset[str] = frozenset({"tableName", "indexName", "partitionKeyName", "sortKeyName"})

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"

# Timestamp sentinel meaning "never written".
UNSET_TIMESTAMP = -1


class ModelDefinitionError(ValueError):
    pass


@dataclass(frozen=True)
class AttributeDefinition:
    python_name: str
    attribute_name: str
    roles: tuple[str, ...]
    kind: FieldKind
    value_type: Any
    default_factory: Callable[[], Any]

    def template_default(self) -> Any:
        return self.default_factory()

    @property
    def key_type(self) -> KeyType | None:
        if self.value_type is str:
            return "S"
        if self.value_type in (int, float, Decimal):
            return "N"
        return None


@overload
def mapper_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    kind: FieldKind = "scalar",
    ignore: bool = False,
    default: Any,
) -> Any: ...


@overload
def mapper_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    kind: FieldKind = "scalar",
    ignore: bool = False,
    default_factory: Any,
) -> Any: ...


def mapper_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    kind: FieldKind = "scalar",
    ignore: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("mapper_field: cannot set both default and default_factory")
    if kind not in FIELD_KINDS:
        raise ValueError(f"mapper_field: unsupported kind: {kind}")

    opts: dict[str, Any] = {"kind": kind, "ignore": ignore}
    if name is not None:
        opts["name"] = name
    if roles is not None:
        opts["roles"] = list(roles)

    return field(default=default, default_factory=default_factory, metadata={"dynamapper": opts})


def _template_factory(dc_field: Any) -> Callable[[], Any]:
    if dc_field.default_factory is not MISSING:
        return cast(Callable[[], Any], dc_field.default_factory)
    if dc_field.default is not MISSING:
        value = dc_field.default
        return lambda: value
    raise ModelDefinitionError(f"field must declare a default: {dc_field.name}")


@dataclass(frozen=True)
class ModelDefinition(Generic[T]):
    model_type: type[T]
    table_name: str | None
    index_name: str | None
    pk: AttributeDefinition
    sk: AttributeDefinition | None
    attributes: Mapping[str, AttributeDefinition]
    created_at: AttributeDefinition | None = None
    updated_at: AttributeDefinition | None = None

    @property
    def name(self) -> str:
        return self.model_type.__name__

    @property
    def read_only(self) -> bool:
        return bool(self.index_name)

    def new_instance(self) -> T:
        return self.model_type()

    def attribute_name_for(self, field_name: str) -> str:
        attr = self.attributes.get(field_name)
        return attr.attribute_name if attr is not None else field_name

    @classmethod
    def from_dataclass(
        cls,
        model_type: type[T],
        *,
        table_name: str | None = None,
        index_name: str | None = None,
    ) -> ModelDefinition[T]:
        if not is_dataclass(model_type):
            raise ModelDefinitionError("model_type must be a dataclass")
        if model_type.__dataclass_params__.frozen:  # type: ignore[attr-defined]
            raise ModelDefinitionError("model_type must not be frozen")

        try:
            hints = get_type_hints(model_type)
        except NameError as err:
            raise ModelDefinitionError(f"cannot resolve type hints: {err}") from err

        attributes: dict[str, AttributeDefinition] = {}
        by_role: dict[str, list[str]] = {"pk": [], "sk": [], "created_at": [], "updated_at": []}

        for dc_field in fields(model_type):
            opts = cast(dict[str, Any], dc_field.metadata.get("dynamapper", {}))
            if opts.get("ignore", False) or not dc_field.init:
                continue

            attribute_name = cast(str, opts.get("name", dc_field.name))
            if dc_field.name in NON_DATA_FIELDS or attribute_name in NON_DATA_FIELDS:
                raise ModelDefinitionError(f"field name is reserved for schema metadata: {dc_field.name}")

            roles = list(cast(list[str], opts.get("roles", [])))
            if attribute_name == CREATED_AT and "created_at" not in roles:
                roles.append("created_at")
            if attribute_name == UPDATED_AT and "updated_at" not in roles:
                roles.append("updated_at")

            kind = cast(FieldKind, opts.get("kind", "scalar"))
            if kind != "scalar" and ("pk" in roles or "sk" in roles):
                raise ModelDefinitionError(f"{kind} field cannot be a key: {dc_field.name}")

            hint = hints.get(dc_field.name, Any)
            attributes[dc_field.name] = AttributeDefinition(
                python_name=dc_field.name,
                attribute_name=attribute_name,
                roles=tuple(roles),
                kind=kind,
                value_type=hint,
                default_factory=_template_factory(dc_field),
            )
            for role in roles:
                if role in by_role:
                    by_role[role].append(dc_field.name)

        if len(by_role["pk"]) != 1:
            raise ModelDefinitionError(f"model must define exactly one pk field (found {len(by_role['pk'])})")
        for role in ("sk", "created_at", "updated_at"):
            if len(by_role[role]) > 1:
                raise ModelDefinitionError(
                    f"model must define at most one {role} field (found {len(by_role[role])})"
                )

        def single(role: str) -> AttributeDefinition | None:
            names = by_role[role]
            return attributes[names[0]] if names else None

        return cls(
            model_type=model_type,
            table_name=table_name or None,
            index_name=index_name or None,
            pk=attributes[by_role["pk"][0]],
            sk=single("sk"),
            attributes=attributes,
            created_at=single("created_at"),
            updated_at=single("updated_at"),
        )
