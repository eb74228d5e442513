from __future__ import annotations

import copy
import types
from collections.abc import Mapping, MutableMapping
from dataclasses import fields, is_dataclass
from decimal import Decimal
from typing import Any, Literal, TypeAlias, TypeVar, Union, get_args, get_origin

from .model import NON_DATA_FIELDS, AttributeDefinition, FieldKind, ModelDefinition

T = TypeVar("T")

Direction: TypeAlias = Literal["neutral", "to_store", "from_store"]


def is_empty(value: Any) -> bool:
    """Report whether ``value`` should be treated as "not set".

    ``None``, empty strings, empty sets, empty maps, empty sequences and
    objects without fields are empty. Numbers and booleans never are, so
    ``0`` and ``False`` are real values.
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    if isinstance(value, (set, frozenset, Mapping, list, tuple)):
        return len(value) == 0
    if isinstance(value, (int, float, Decimal)):
        return False
    if is_dataclass(value) and not isinstance(value, type):
        return len(fields(value)) == 0
    if hasattr(value, "__dict__"):
        return len(vars(value)) == 0
    return False


def to_store_value(value: Any, kind: FieldKind = "scalar") -> Any:
    if is_empty(value):
        return None
    if kind == "set" or isinstance(value, (set, frozenset)):
        return set(value)
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    return value


def _coerce_value(value: Any, annotation: Any) -> Any:
    if value is None:
        return None

    if annotation is int and isinstance(value, Decimal):
        return int(value)
    if annotation is float and isinstance(value, Decimal):
        return float(value)

    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        return _coerce_value(value, args[0]) if len(args) == 1 else value

    if origin in (set, frozenset) and isinstance(value, (set, frozenset)):
        (elem_type,) = get_args(annotation) or (Any,)
        return {_coerce_value(v, elem_type) for v in value}
    if origin is dict and isinstance(value, Mapping):
        args = get_args(annotation)
        value_type = args[1] if len(args) == 2 else Any
        return {k: _coerce_value(v, value_type) for k, v in value.items()}
    if origin in (list, tuple) and isinstance(value, (list, tuple)):
        args = get_args(annotation)
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            return value
        elem_type = args[0] if args else Any
        return origin(_coerce_value(v, elem_type) for v in value)

    return value


def from_store_value(
    raw: Any,
    template_default: Any,
    kind: FieldKind = "scalar",
    annotation: Any = Any,
) -> Any:
    if raw is None:
        return template_default

    if kind == "set" or isinstance(template_default, (set, frozenset)) or isinstance(raw, (set, frozenset)):
        return _coerce_value(set(raw), annotation)

    if kind == "map" or isinstance(template_default, Mapping):
        if not isinstance(raw, Mapping):
            return raw
        return _coerce_value(dict(raw.items()), annotation)

    return _coerce_value(raw, annotation)


def _read(source: Any, key: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _write(target: Any, key: str, value: Any) -> None:
    if isinstance(target, MutableMapping):
        if value is None:
            target.pop(key, None)
        else:
            target[key] = value
        return
    setattr(target, key, value)


def _strip_non_data_fields(target: Any) -> None:
    if isinstance(target, MutableMapping):
        for name in NON_DATA_FIELDS:
            target.pop(name, None)
        return
    if hasattr(target, "__dict__"):
        for name in NON_DATA_FIELDS:
            vars(target).pop(name, None)


def _is_timestamp(attr: AttributeDefinition) -> bool:
    return "created_at" in attr.roles or "updated_at" in attr.roles


def fill_item(
    source: Any,
    target: Any,
    model: ModelDefinition[T],
    *,
    strip_non_data_fields: bool = True,
    direction: Direction = "neutral",
) -> None:
    """Copy every declared field of ``model`` from ``source`` to ``target``.

    ``to_store`` reads instance fields and writes store attribute names,
    omitting empty values. ``from_store`` reads store attribute names and
    rebuilds sets, maps and numbers, falling back to the field's template
    default when an attribute is absent. ``neutral`` copies between instances,
    deep-copying values and substituting template defaults for empty ones.

    Timestamp fields are copied verbatim in every direction.
    """
    for attr in model.attributes.values():
        read_key = attr.attribute_name if direction == "from_store" else attr.python_name
        write_key = attr.attribute_name if direction == "to_store" else attr.python_name
        value = _read(source, read_key)

        if direction == "to_store":
            out = value if _is_timestamp(attr) else to_store_value(value, attr.kind)
        elif direction == "from_store":
            out = from_store_value(value, attr.template_default(), attr.kind, attr.value_type)
        elif _is_timestamp(attr):
            out = value
        elif is_empty(value):
            out = attr.template_default()
        else:
            out = copy.deepcopy(value)

        _write(target, write_key, out)

    if strip_non_data_fields:
        _strip_non_data_fields(target)
