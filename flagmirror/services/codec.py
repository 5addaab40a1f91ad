# flagmirror/services/codec.py
"""Conversion between records and their stored attribute maps.

Two layers are exposed:

- ``record_to_attributes`` / ``record_from_attributes`` work on plain
  JSON-compatible dictionaries using the stored attribute names. They are
  also used for pushed payloads and HTTP responses.
- ``encode_item`` / ``decode_item`` add the number handling DynamoDB
  needs: floats are written as ``Decimal`` and every ``Decimal`` read back
  becomes an ``int`` when integral, otherwise a ``float``. Numbers that
  DynamoDB cannot hold (NaN, infinities, more than 38 significant digits)
  raise ``ItemEncodeError`` on the way in and ``ItemDecodeError`` on the
  way out.
"""


from __future__ import annotations

from dataclasses import fields
from decimal import Decimal, DecimalException
from typing import Any, Dict, Mapping

from boto3.dynamodb.types import DYNAMODB_CONTEXT

from flagmirror.errors.store_errors import ItemDecodeError, ItemEncodeError
from flagmirror.services.kinds import DataKind, Record

REQUIRED_ATTRIBUTES = ("key", "version")


def record_to_attributes(record: Record) -> Dict[str, Any]:
    """Return the attribute map of ``record`` keyed by stored names."""
    return {
        f.metadata["attr"]: getattr(record, f.name) for f in fields(record)
    }


def _matches(value: Any, types: tuple) -> bool:
    # bool is a subclass of int; only accept it where bool is declared.
    if isinstance(value, bool):
        return bool in types
    return isinstance(value, types)


def record_from_attributes(kind: DataKind, attrs: Mapping[str, Any]) -> Record:
    """Build a record of ``kind`` from an attribute map.

    Unknown attributes are ignored. Missing optional attributes take the
    record type's defaults.

    Args:
        kind: The data kind the attributes belong to.
        attrs: Attribute map as stored or as pushed by the origin.

    Returns:
        The decoded record.

    Raises:
        ItemDecodeError: If a required attribute is missing or an
            attribute has an unexpected type.
    """
    if not isinstance(attrs, Mapping):
        raise ItemDecodeError(
            f"Expected an attribute map for {kind}, "
            f"got {type(attrs).__name__}"
        )

    key = attrs.get("key")
    for name in REQUIRED_ATTRIBUTES:
        if name not in attrs:
            raise ItemDecodeError(
                f"Missing required attribute '{name}' for {kind}", key=key
            )

    kwargs = {}
    for f in fields(kind.record_type):
        attr = f.metadata["attr"]
        if attr not in attrs:
            continue
        value = attrs[attr]
        if not _matches(value, f.metadata["types"]):
            raise ItemDecodeError(
                f"Attribute '{attr}' of {kind} has unexpected type "
                f"{type(value).__name__}",
                key=key if isinstance(key, str) else None,
            )
        kwargs[f.name] = value

    return kind.record_type(**kwargs)


def _to_number(value: Any) -> Decimal:
    # NaN, infinities and numbers outside DynamoDB's range or 38-digit
    # precision are refused before anything is written.
    number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    if not number.is_finite():
        raise ItemEncodeError(f"Cannot store non-finite number {value!r}")
    try:
        return DYNAMODB_CONTEXT.create_decimal(number)
    except DecimalException as exc:
        raise ItemEncodeError(
            f"Number {value!r} exceeds the storable range or precision"
        ) from exc


def _to_wire(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        _to_number(value)
        return value
    if isinstance(value, (float, Decimal)):
        return _to_number(value)
    if isinstance(value, dict):
        return {k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_wire(v) for v in value]
    return value


def _from_wire(value: Any) -> Any:
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ItemDecodeError(f"Stored number {value} is not finite")
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: _from_wire(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_wire(v) for v in value]
    return value


def encode_item(record: Record) -> Dict[str, Any]:
    """Encode ``record`` into an item ready to be written to DynamoDB.

    Raises:
        ItemEncodeError: If a number cannot be represented in DynamoDB.
    """
    try:
        return _to_wire(record_to_attributes(record))
    except ItemEncodeError as exc:
        exc.key = record.key
        raise


def decode_item(kind: DataKind, item: Mapping[str, Any]) -> Record:
    """Decode a stored DynamoDB item into a record of ``kind``.

    Raises:
        ItemDecodeError: If the item does not fit the kind's record shape.
    """
    return record_from_attributes(kind, _from_wire(item))
