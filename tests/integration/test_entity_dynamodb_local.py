from __future__ import annotations

import os
import uuid
from collections.abc import Iterator
from dataclasses import dataclass

import boto3
import pytest

from dynamapper_py import Entity, ModelDefinition, NotFoundError, mapper_field
from dynamapper_py.store import DynamoDBStore

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.environ.get("DYNAMODB_ENDPOINT"), reason="DYNAMODB_ENDPOINT not set"),
]


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ["DYNAMODB_ENDPOINT"],
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


@dataclass
class Note:
    pk: str = mapper_field(name="PK", roles=["pk"], default="")
    sk: str = mapper_field(name="SK", roles=["sk"], default="")
    title: str = mapper_field(default="")
    owner: str = mapper_field(default="")
    tags: set[str] = mapper_field(kind="set", default_factory=set)
    views: int = mapper_field(default=0)
    created_at: int = mapper_field(name="createdAt", default=-1)
    updated_at: int = mapper_field(name="updatedAt", default=-1)


@dataclass
class NoteByOwner:
    owner: str = mapper_field(roles=["pk"], default="")
    sk: str = mapper_field(name="SK", roles=["sk"], default="")
    title: str = mapper_field(default="")


@pytest.fixture
def table_name() -> Iterator[str]:
    name = f"dynamapper_notes_{uuid.uuid4().hex[:12]}"
    client = _client()
    client.create_table(
        TableName=name,
        KeySchema=[{"AttributeName": "PK", "KeyType": "HASH"}, {"AttributeName": "SK", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
            {"AttributeName": "owner", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "ByOwner",
                "KeySchema": [
                    {"AttributeName": "owner", "KeyType": "HASH"},
                    {"AttributeName": "SK", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=name)
    try:
        yield name
    finally:
        client.delete_table(TableName=name)


@pytest.mark.asyncio
async def test_entity_crud_and_queries_round_trip(table_name: str) -> None:
    store = DynamoDBStore(_client())
    notes = Entity(ModelDefinition.from_dataclass(Note, table_name=table_name), store=store)

    for n in range(1, 6):
        await notes.save(Note(pk="U#1", sk=f"N#{n}", title=f"note {n}", owner="ann", tags={"t"}, views=n))

    loaded = await notes.find("U#1", "N#3")
    assert loaded.title == "note 3"
    assert loaded.tags == {"t"}
    assert loaded.views == 3
    assert loaded.created_at > 0

    page = await notes.query_builder().partition_key_equals("U#1").limit(2).query()
    assert [n.sk for n in page.items] == ["N#1", "N#2"]
    assert page.page_key is not None

    everything = await notes.query_builder().partition_key_equals("U#1").limit(2).all()
    assert [n.views for n in everything] == [1, 2, 3, 4, 5]

    newest = notes.query_builder().partition_key_equals("U#1").sort_key_begins_with("N#").sort("DESC")
    tail = await newest.first()
    assert tail.sk == "N#5"

    by_owner = Entity(
        ModelDefinition.from_dataclass(NoteByOwner, table_name=table_name, index_name="ByOwner"), store=store
    )
    found = await by_owner.find("ann", "N#2")
    assert found.title == "note 2"

    await notes.delete_key("U#1", "N#3")
    with pytest.raises(NotFoundError):
        await notes.find("U#1", "N#3")
