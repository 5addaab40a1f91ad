# flagmirror/repositories/dynamodb_client.py
"""DynamoDB-backed store client for flagmirror.

Wraps a boto3 ``dynamodb`` service resource and exposes the operations the
feature store needs. Tables must use a single string hash key::

    AttributeDefinitions:
      - AttributeName: key
        AttributeType: S
    KeySchema:
      - AttributeName: key
        KeyType: HASH

Credentials and region come from the usual boto3 sources
(``AWS_ACCESS_KEY_ID``, ``AWS_SECRET_ACCESS_KEY``, ``AWS_REGION``, ...).
Request retries and timeouts are botocore's; this module only resubmits
the unprocessed part of a batch write.
"""


from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from flagmirror.errors.store_errors import ConditionCheckFailed, StoreTransportError
from flagmirror.repositories.store_client import (
    MAX_BATCH_SIZE,
    PRIMARY_KEY,
    VERSION_ATTRIBUTE,
    Item,
)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "Unknown")


@contextmanager
def _translate_errors(table: str, key: Optional[str] = None) -> Iterator[None]:
    """Re-raise botocore failures as ``StoreTransportError``."""
    try:
        yield
    except ClientError as exc:
        raise StoreTransportError(
            f"DynamoDB request failed with {_error_code(exc)}: {exc}",
            table=table,
            key=key,
        ) from exc
    except BotoCoreError as exc:
        raise StoreTransportError(
            f"DynamoDB request failed: {exc}", table=table, key=key
        ) from exc


def create_resource(
    region_name: Optional[str] = None,
    endpoint_url: Optional[str] = None,
) -> Any:
    """Create a boto3 DynamoDB resource with standard retry settings.

    Args:
        region_name: AWS region; boto3's default chain when ``None``.
        endpoint_url: Custom endpoint, e.g. DynamoDB Local.

    Returns:
        A ``boto3.resources.base.ServiceResource`` for DynamoDB.
    """
    cfg = Config(
        retries={"max_attempts": 10, "mode": "standard"},
        connect_timeout=5,
        read_timeout=10,
        user_agent_extra="flagmirror",
    )
    return boto3.resource(
        "dynamodb",
        region_name=region_name,
        endpoint_url=endpoint_url,
        config=cfg,
    )


class DynamoDBClient:
    """Store client talking to DynamoDB through a boto3 resource.

    Args:
        resource: DynamoDB service resource; one is created with
            :func:`create_resource` when omitted.
        max_unprocessed_retries: How many times unprocessed batch items
            are resubmitted before giving up.
        backoff_seconds: Initial delay between resubmissions, doubled
            after each attempt.
    """

    max_batch_size = MAX_BATCH_SIZE

    def __init__(
        self,
        resource: Any = None,
        max_unprocessed_retries: int = 5,
        backoff_seconds: float = 0.05,
    ) -> None:
        self._resource = resource if resource is not None else create_resource()
        self._max_unprocessed_retries = max_unprocessed_retries
        self._backoff_seconds = backoff_seconds

    def _table(self, table: str) -> Any:
        return self._resource.Table(table)

    def get_item(self, table: str, key: str) -> Optional[Item]:
        with _translate_errors(table, key):
            result = self._table(table).get_item(
                Key={PRIMARY_KEY: key},
                ConsistentRead=True,
            )
        item = result.get("Item")
        return item or None

    def put_item_if_newer(self, table: str, item: Item, version: int) -> None:
        key = item[PRIMARY_KEY]
        condition = Attr(PRIMARY_KEY).not_exists() | Attr(VERSION_ATTRIBUTE).lt(
            version
        )
        try:
            self._table(table).put_item(Item=item, ConditionExpression=condition)
        except ClientError as exc:
            if _error_code(exc) == CONDITIONAL_CHECK_FAILED:
                raise ConditionCheckFailed(
                    table=table, key=key, version=version
                ) from exc
            raise StoreTransportError(
                f"DynamoDB request failed with {_error_code(exc)}: {exc}",
                table=table,
                key=key,
            ) from exc
        except BotoCoreError as exc:
            raise StoreTransportError(
                f"DynamoDB request failed: {exc}", table=table, key=key
            ) from exc

    def scan_pages(self, table: str) -> Iterator[List[Item]]:
        kwargs: dict = {"ConsistentRead": True}
        while True:
            with _translate_errors(table):
                result = self._table(table).scan(**kwargs)
            yield result.get("Items", [])

            last_key = result.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    def batch_write(
        self,
        table: str,
        puts: Iterable[Item] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        requests = [{"PutRequest": {"Item": item}} for item in puts]
        requests += [
            {"DeleteRequest": {"Key": {PRIMARY_KEY: key}}} for key in deletes
        ]
        if len(requests) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(requests)} operations exceeds "
                f"the limit of {self.max_batch_size}."
            )

        attempt = 0
        while requests:
            with _translate_errors(table):
                result = self._resource.batch_write_item(
                    RequestItems={table: requests}
                )
            requests = result.get("UnprocessedItems", {}).get(table, [])
            if not requests:
                return
            if attempt >= self._max_unprocessed_retries:
                raise StoreTransportError(
                    f"{len(requests)} batch operations still unprocessed "
                    f"after {attempt + 1} attempts",
                    table=table,
                )
            time.sleep(self._backoff_seconds * (2 ** attempt))
            attempt += 1
