from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, cast

import boto3
from botocore.config import Config

from .config import MapperConfig

logger = logging.getLogger(__name__)


def is_lambda_environment(environ: Mapping[str, str] = os.environ) -> bool:
    return bool(
        environ.get("AWS_LAMBDA_FUNCTION_NAME") or "AWS_Lambda" in (environ.get("AWS_EXECUTION_ENV") or "")
    )


def create_lambda_boto3_config(
    *,
    connect_timeout: float = 1.0,
    read_timeout: float = 3.0,
    max_attempts: int = 3,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "adaptive"},
    )


_lambda_clients: dict[tuple[str, str | None, str | None], Any] = {}


def get_lambda_boto3_client(
    service: str,
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
    config: Config | None = None,
    session: Any | None = None,
) -> Any:
    key = (service, region, endpoint_url)
    existing = _lambda_clients.get(key)
    if existing is not None:
        return existing

    sess = session or boto3.session.Session(region_name=region)
    kwargs: dict[str, Any] = {"region_name": region, "config": config}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    client = cast(Any, sess).client(service, **kwargs)
    logger.debug("created %s client (region=%s, endpoint=%s)", service, region, endpoint_url)

    _lambda_clients[key] = client
    return client


def get_lambda_dynamodb_client(
    settings: MapperConfig | None = None,
    *,
    session: Any | None = None,
) -> Any:
    settings = settings or MapperConfig.from_env()
    return get_lambda_boto3_client(
        "dynamodb",
        region=settings.region,
        endpoint_url=settings.endpoint_url,
        config=create_lambda_boto3_config(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            max_attempts=settings.max_attempts,
        ),
        session=session,
    )


def _reset_lambda_clients_for_tests() -> None:
    _lambda_clients.clear()
