from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .errors import (
    DynamapperError,
    MissingPartitionKeyError,
    MissingPartitionKeyValueError,
    MissingSortKeyError,
    MissingTableNameError,
    NotFoundError,
    ReadOnlyIndexEntityError,
    SortKeyRequiredError,
    UnsupportedKeyTypeError,
    ValidationError,
)
from .model import AttributeDefinition, ModelDefinition, ModelDefinitionError, mapper_field
from .query import Cursor, PageKey, QueryResult, decode_page_key, encode_page_key
from .values import fill_item, from_store_value, is_empty, to_store_value

if TYPE_CHECKING:
    from .config import MapperConfig
    from .entity import Entity
    from .query_builder import QueryBuilder
    from .runtime import create_lambda_boto3_config, get_lambda_dynamodb_client, is_lambda_environment
    from .store import DynamoDBStore, QueryRequest, QueryResponse


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name == "Entity":
        from .entity import Entity

        return Entity
    if name == "QueryBuilder":
        from .query_builder import QueryBuilder

        return QueryBuilder
    if name in {"DynamoDBStore", "QueryRequest", "QueryResponse"}:
        from . import store

        return getattr(store, name)
    if name == "MapperConfig":
        from .config import MapperConfig

        return MapperConfig
    if name in {"create_lambda_boto3_config", "get_lambda_dynamodb_client", "is_lambda_environment"}:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeDefinition",
    "create_lambda_boto3_config",
    "Cursor",
    "decode_page_key",
    "DynamapperError",
    "DynamoDBStore",
    "encode_page_key",
    "Entity",
    "fill_item",
    "from_store_value",
    "get_lambda_dynamodb_client",
    "is_empty",
    "is_lambda_environment",
    "mapper_field",
    "MapperConfig",
    "MissingPartitionKeyError",
    "MissingPartitionKeyValueError",
    "MissingSortKeyError",
    "MissingTableNameError",
    "ModelDefinition",
    "ModelDefinitionError",
    "NotFoundError",
    "PageKey",
    "QueryBuilder",
    "QueryRequest",
    "QueryResponse",
    "QueryResult",
    "ReadOnlyIndexEntityError",
    "SortKeyRequiredError",
    "to_store_value",
    "UnsupportedKeyTypeError",
    "ValidationError",
    "__repo_version__",
    "__version__",
]
