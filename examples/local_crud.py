from __future__ import annotations

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass

import boto3

from dynamapper_py import Entity, MapperConfig, ModelDefinition, get_lambda_dynamodb_client, mapper_field
from dynamapper_py.store import DynamoDBStore


@dataclass
class Note:
    pk: str = mapper_field(name="PK", roles=["pk"], default="")
    sk: str = mapper_field(name="SK", roles=["sk"], default="")
    value: int = mapper_field(default=0)
    tags: set[str] = mapper_field(kind="set", default_factory=set)
    created_at: int = mapper_field(name="createdAt", default=-1)
    updated_at: int = mapper_field(name="updatedAt", default=-1)


async def run(store: DynamoDBStore, table_name: str) -> None:
    notes = Entity(ModelDefinition.from_dataclass(Note, table_name=table_name), store=store)

    await notes.save(Note(pk="A", sk="001", value=1, tags={"x"}))
    await notes.save(Note(pk="A", sk="010", value=10))
    await notes.save(Note(pk="A", sk="100", value=100))

    print("find:", await notes.find("A", "010"))

    page = await notes.query_builder().partition_key_equals("A").sort_key_begins_with("0").query()
    print("query begins_with('0'):", page.items)

    print("all desc:", await notes.query_builder().partition_key_equals("A").sort("DESC").all())


def main() -> None:
    logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)

    settings = MapperConfig.from_env(
        {"DYNAMODB_ENDPOINT": "http://localhost:8000", "AWS_REGION": "us-east-1", **os.environ}
    )
    session = boto3.session.Session(
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
        region_name=settings.region,
    )
    client = get_lambda_dynamodb_client(settings, session=session)
    table_name = settings.table_name or f"dynamapper_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "PK", "KeyType": "HASH"}, {"AttributeName": "SK", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        asyncio.run(run(DynamoDBStore(client), table_name))
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
