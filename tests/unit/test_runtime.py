from __future__ import annotations

from typing import Any

import pytest

from dynamapper_py.config import MapperConfig
from dynamapper_py.runtime import (
    _reset_lambda_clients_for_tests,
    create_lambda_boto3_config,
    get_lambda_boto3_client,
    get_lambda_dynamodb_client,
    is_lambda_environment,
)


class FakeSession:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def client(self, service_name: str, **kwargs: Any) -> object:
        self.calls.append((service_name, kwargs))
        return object()


@pytest.fixture(autouse=True)
def _clear_client_cache() -> None:
    _reset_lambda_clients_for_tests()


def test_is_lambda_environment() -> None:
    assert is_lambda_environment({}) is False
    assert is_lambda_environment({"AWS_LAMBDA_FUNCTION_NAME": "fn"}) is True
    assert is_lambda_environment({"AWS_EXECUTION_ENV": "AWS_Lambda_python3.12"}) is True
    assert is_lambda_environment({"AWS_EXECUTION_ENV": "AWS_ECS_FARGATE"}) is False


def test_create_lambda_boto3_config() -> None:
    cfg = create_lambda_boto3_config(connect_timeout=2.0, read_timeout=4.0, max_attempts=5)
    assert cfg.connect_timeout == 2.0
    assert cfg.read_timeout == 4.0
    assert cfg.retries["max_attempts"] == 5
    assert cfg.retries["mode"] == "adaptive"


def test_get_lambda_boto3_client_caches_per_region_and_endpoint() -> None:
    sess = FakeSession()
    c1 = get_lambda_boto3_client("dynamodb", region="us-east-1", session=sess)
    c2 = get_lambda_boto3_client("dynamodb", region="us-east-1", session=sess)
    c3 = get_lambda_boto3_client(
        "dynamodb", region="us-east-1", endpoint_url="http://localhost:8000", session=sess
    )

    assert c1 is c2
    assert c3 is not c1
    assert len(sess.calls) == 2
    assert "endpoint_url" not in sess.calls[0][1]
    assert sess.calls[1][1]["endpoint_url"] == "http://localhost:8000"


def test_get_lambda_dynamodb_client_uses_settings() -> None:
    sess = FakeSession()
    settings = MapperConfig(
        region="eu-west-1", endpoint_url="http://ddb:8000", read_timeout=9.0, max_attempts=2
    )

    get_lambda_dynamodb_client(settings, session=sess)

    ((service, kwargs),) = sess.calls
    assert service == "dynamodb"
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["endpoint_url"] == "http://ddb:8000"
    assert kwargs["config"].read_timeout == 9.0
    assert kwargs["config"].retries["max_attempts"] == 2
