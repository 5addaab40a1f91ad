# flagmirror/tests/test_dynamodb_client.py
"""
Unit tests for the DynamoDB store client.

These tests stub the boto3 resource's underlying client with botocore's
Stubber, so no AWS access is needed. Expected request parameters are the
high-level (Python-typed) ones passed to the resource; stubbed responses
use DynamoDB's typed wire format, which boto3 deserializes.
"""


import copy
from decimal import Decimal

import boto3
import pytest
from boto3.dynamodb.conditions import Attr
from botocore.stub import ANY, Stubber

from flagmirror.errors.store_errors import ConditionCheckFailed, StoreTransportError
from flagmirror.repositories.dynamodb_client import DynamoDBClient


TABLE = "test-flags"


@pytest.fixture
def resource():
    return boto3.resource(
        "dynamodb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(resource):
    with Stubber(resource.meta.client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def client(resource):
    return DynamoDBClient(resource, backoff_seconds=0)


# ---------- get_item ----------


def test_get_item_uses_consistent_read(client, stubber):
    stubber.add_response(
        "get_item",
        {
            "Item": {
                "key": {"S": "a"},
                "version": {"N": "3"},
                "deleted": {"BOOL": False},
            }
        },
        {"TableName": TABLE, "Key": {"key": "a"}, "ConsistentRead": True},
    )

    item = client.get_item(TABLE, "a")

    assert item == {"key": "a", "version": Decimal("3"), "deleted": False}


def test_get_item_missing_returns_none(client, stubber):
    stubber.add_response(
        "get_item",
        {},
        {"TableName": TABLE, "Key": {"key": "nope"}, "ConsistentRead": True},
    )

    assert client.get_item(TABLE, "nope") is None


def test_get_item_error_becomes_transport_error(client, stubber):
    stubber.add_client_error(
        "get_item",
        service_error_code="ProvisionedThroughputExceededException",
        http_status_code=400,
    )

    with pytest.raises(StoreTransportError) as excinfo:
        client.get_item(TABLE, "a")

    assert excinfo.value.table == TABLE
    assert excinfo.value.key == "a"
    assert "ProvisionedThroughputExceededException" in str(excinfo.value)


# ---------- put_item_if_newer ----------


def test_put_item_if_newer_sends_version_condition(client, stubber):
    item = {"key": "a", "version": 3, "deleted": False}
    stubber.add_response(
        "put_item",
        {},
        {
            "TableName": TABLE,
            "Item": item,
            "ConditionExpression": Attr("key").not_exists()
            | Attr("version").lt(3),
        },
    )

    client.put_item_if_newer(TABLE, item, 3)


def test_put_item_condition_failure_raises_condition_check_failed(client, stubber):
    stubber.add_client_error(
        "put_item",
        service_error_code="ConditionalCheckFailedException",
        http_status_code=400,
    )

    with pytest.raises(ConditionCheckFailed) as excinfo:
        client.put_item_if_newer(TABLE, {"key": "a", "version": 1}, 1)

    assert excinfo.value.key == "a"
    assert excinfo.value.version == 1


def test_put_item_other_error_becomes_transport_error(client, stubber):
    stubber.add_client_error(
        "put_item",
        service_error_code="ResourceNotFoundException",
        http_status_code=400,
    )

    with pytest.raises(StoreTransportError):
        client.put_item_if_newer(TABLE, {"key": "a", "version": 1}, 1)


# ---------- scan_pages ----------


def test_scan_pages_follows_last_evaluated_key(client, stubber):
    stubber.add_response(
        "scan",
        {
            "Items": [{"key": {"S": "a"}, "version": {"N": "1"}}],
            "LastEvaluatedKey": {"key": {"S": "a"}},
        },
        {"TableName": TABLE, "ConsistentRead": True},
    )
    stubber.add_response(
        "scan",
        {"Items": [{"key": {"S": "b"}, "version": {"N": "2"}}]},
        {
            "TableName": TABLE,
            "ConsistentRead": True,
            "ExclusiveStartKey": {"key": "a"},
        },
    )

    pages = list(client.scan_pages(TABLE))

    assert pages == [
        [{"key": "a", "version": Decimal("1")}],
        [{"key": "b", "version": Decimal("2")}],
    ]


def test_scan_error_becomes_transport_error(client, stubber):
    stubber.add_client_error("scan", service_error_code="InternalServerError")

    with pytest.raises(StoreTransportError):
        list(client.scan_pages(TABLE))


# ---------- batch_write ----------


def test_batch_write_sends_puts_and_deletes(client, stubber):
    stubber.add_response(
        "batch_write_item",
        {},
        {
            "RequestItems": {
                TABLE: [
                    {"PutRequest": {"Item": {"key": "a", "version": 1}}},
                    {"DeleteRequest": {"Key": {"key": "b"}}},
                ]
            }
        },
    )

    client.batch_write(TABLE, puts=[{"key": "a", "version": 1}], deletes=["b"])


def test_batch_write_resubmits_unprocessed_items(client, stubber):
    stubber.add_response(
        "batch_write_item",
        {
            "UnprocessedItems": {
                TABLE: [
                    {
                        "PutRequest": {
                            "Item": {"key": {"S": "b"}, "version": {"N": "1"}}
                        }
                    }
                ]
            }
        },
        {"RequestItems": {TABLE: ANY}},
    )
    stubber.add_response(
        "batch_write_item",
        {},
        {
            "RequestItems": {
                TABLE: [
                    {"PutRequest": {"Item": {"key": "b", "version": Decimal("1")}}}
                ]
            }
        },
    )

    client.batch_write(
        TABLE, puts=[{"key": "a", "version": 1}, {"key": "b", "version": 1}]
    )


def test_batch_write_gives_up_after_retries(resource, stubber):
    client = DynamoDBClient(resource, max_unprocessed_retries=1, backoff_seconds=0)
    unprocessed = {
        "UnprocessedItems": {
            TABLE: [{"DeleteRequest": {"Key": {"key": {"S": "a"}}}}]
        }
    }
    stubber.add_response(
        "batch_write_item", copy.deepcopy(unprocessed), {"RequestItems": ANY}
    )
    stubber.add_response(
        "batch_write_item", copy.deepcopy(unprocessed), {"RequestItems": ANY}
    )

    with pytest.raises(StoreTransportError):
        client.batch_write(TABLE, deletes=["a"])


def test_batch_write_rejects_oversized_batch(client):
    with pytest.raises(ValueError):
        client.batch_write(TABLE, deletes=[f"k{i}" for i in range(26)])


def test_batch_write_with_nothing_to_do_makes_no_call(client, stubber):
    client.batch_write(TABLE)
