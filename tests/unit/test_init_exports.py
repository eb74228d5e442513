from __future__ import annotations

import pytest

import dynamapper_py as dynamapper


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert callable(dynamapper.Entity)
    assert callable(dynamapper.QueryBuilder)
    assert callable(dynamapper.DynamoDBStore)
    assert callable(dynamapper.QueryRequest)
    assert callable(dynamapper.MapperConfig)
    assert callable(dynamapper.is_lambda_environment)
    assert callable(dynamapper.get_lambda_dynamodb_client)


def test_init_all_names_resolve() -> None:
    for name in dynamapper.__all__:
        assert getattr(dynamapper, name) is not None


def test_init_unknown_attribute_raises() -> None:
    with pytest.raises(AttributeError):
        _ = dynamapper.Table
