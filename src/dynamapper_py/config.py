from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


def _env_str(environ: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _env_str(environ, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be a number (got {raw!r})") from err
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env_str(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from err
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


@dataclass(frozen=True)
class MapperConfig:
    table_name: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout: float = 1.0
    read_timeout: float = 3.0
    max_attempts: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> MapperConfig:
        return cls(
            table_name=_env_str(environ, "tableName", "TABLE_NAME"),
            region=_env_str(environ, "AWS_REGION", "AWS_DEFAULT_REGION"),
            endpoint_url=_env_str(environ, "DYNAMODB_ENDPOINT"),
            connect_timeout=_env_float(environ, "DYNAMAPPER_CONNECT_TIMEOUT", 1.0),
            read_timeout=_env_float(environ, "DYNAMAPPER_READ_TIMEOUT", 3.0),
            max_attempts=_env_int(environ, "DYNAMAPPER_MAX_ATTEMPTS", 3),
        )
