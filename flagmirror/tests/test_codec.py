# flagmirror/tests/test_codec.py
"""
Unit tests for the item codec.

These tests verify that records survive the trip to DynamoDB's number
representation, that stored attribute names follow the origin's JSON
field names, and that malformed items are reported as decode errors.
"""


from decimal import Decimal

import pytest

from flagmirror.errors.store_errors import ItemDecodeError, ItemEncodeError
from flagmirror.services.codec import (
    decode_item,
    encode_item,
    record_from_attributes,
    record_to_attributes,
)
from flagmirror.services.kinds import FLAGS, SEGMENTS, FeatureFlag, Segment


FULL_FLAG = FeatureFlag(
    key="checkout-v2",
    version=12,
    deleted=False,
    on=True,
    prerequisites=[{"key": "new-cart", "variation": 0}],
    salt="a1b2c3",
    targets=[{"values": ["user-1", "user-2"], "variation": 1}],
    rules=[
        {
            "id": "rule-1",
            "clauses": [
                {
                    "attribute": "country",
                    "op": "in",
                    "values": ["CA", "US"],
                    "negate": False,
                }
            ],
            "rollout": {
                "variations": [
                    {"variation": 0, "weight": 25000},
                    {"variation": 1, "weight": 75000},
                ]
            },
        }
    ],
    fallthrough={"variation": 0},
    off_variation=1,
    variations=[False, True, 0.25, "text", {"nested": [1.5, None]}],
    client_side=True,
    track_events=True,
    debug_events_until_date=1700000000000,
)

FULL_SEGMENT = Segment(
    key="beta-testers",
    version=3,
    included=["user-1"],
    excluded=["user-9"],
    salt="xyz",
    rules=[{"clauses": [{"attribute": "email", "op": "endsWith", "values": ["@example.com"]}]}],
)


# ---------- Round trips ----------


@pytest.mark.parametrize(
    "kind, record",
    [
        (FLAGS, FULL_FLAG),
        (SEGMENTS, FULL_SEGMENT),
        (FLAGS, FeatureFlag(key="minimal")),
        (FLAGS, FLAGS.make_deleted_item("gone", 9)),
        (SEGMENTS, SEGMENTS.make_deleted_item("gone", 2)),
    ],
)
def test_encode_then_decode_preserves_every_field(kind, record):
    assert decode_item(kind, encode_item(record)) == record


def test_attributes_round_trip_through_plain_dicts():
    attrs = record_to_attributes(FULL_SEGMENT)
    assert record_from_attributes(SEGMENTS, attrs) == FULL_SEGMENT


# ---------- Wire representation ----------


def test_attribute_names_follow_origin_json_fields():
    attrs = record_to_attributes(FULL_FLAG)

    assert attrs["offVariation"] == 1
    assert attrs["clientSide"] is True
    assert attrs["trackEvents"] is True
    assert attrs["debugEventsUntilDate"] == 1700000000000
    assert "off_variation" not in attrs


def test_encode_converts_floats_to_decimal():
    item = encode_item(FULL_FLAG)

    assert item["variations"][2] == Decimal("0.25")
    assert item["variations"][4]["nested"][0] == Decimal("1.5")
    # booleans and ints are left alone
    assert item["variations"][0] is False
    assert item["version"] == 12


def test_decode_turns_integral_decimals_into_ints():
    record = decode_item(
        FLAGS,
        {"key": "a", "version": Decimal("4"), "offVariation": Decimal("0")},
    )

    assert record.version == 4
    assert isinstance(record.version, int)
    assert record.off_variation == 0


def test_decode_ignores_unknown_attributes():
    record = decode_item(SEGMENTS, {"key": "s", "version": 1, "legacy": "x"})
    assert record == Segment(key="s", version=1)


# ---------- Decode errors ----------


@pytest.mark.parametrize(
    "item",
    [
        {"version": 1},
        {"key": "a"},
        {"key": "a", "version": "1"},
        {"key": "a", "version": True},
        {"key": "a", "version": 1, "deleted": 1},
        {"key": "a", "version": 1, "rules": "not-a-list"},
        {"key": 5, "version": 1},
    ],
)
def test_decode_rejects_malformed_items(item):
    with pytest.raises(ItemDecodeError):
        decode_item(FLAGS, item)


def test_decode_error_carries_key():
    with pytest.raises(ItemDecodeError) as excinfo:
        decode_item(FLAGS, {"key": "broken", "version": 1, "on": "yes"})

    assert excinfo.value.key == "broken"
    assert "on" in str(excinfo.value)


def test_decode_rejects_non_mapping():
    with pytest.raises(ItemDecodeError):
        record_from_attributes(FLAGS, ["key", "version"])


@pytest.mark.parametrize(
    "value",
    [Decimal("Infinity"), Decimal("-Infinity"), Decimal("NaN")],
)
def test_decode_rejects_non_finite_numbers(value):
    with pytest.raises(ItemDecodeError):
        decode_item(FLAGS, {"key": "a", "version": 1, "variations": [value]})


# ---------- Encode errors ----------


@pytest.mark.parametrize(
    "variations",
    [
        [float("nan")],
        [float("inf")],
        [{"nested": [float("-inf")]}],
        [1e300],
        [10 ** 40 + 1],
    ],
)
def test_encode_rejects_numbers_dynamodb_cannot_store(variations):
    with pytest.raises(ItemEncodeError) as excinfo:
        encode_item(FeatureFlag(key="bad", version=1, variations=variations))

    assert excinfo.value.key == "bad"
