# flagmirror/services/sync_service.py
"""Apply pushed change notifications to a feature store.

Three events are understood, mirroring the origin's streaming protocol:

- ``put``: the complete dataset, keyed by namespace then by record key.
  Replaces the stored data (``FeatureStore.init``).
- ``patch``: one record of one namespace (``FeatureStore.upsert``).
- ``delete``: a key and the version at which it was deleted
  (``FeatureStore.delete``).

Payloads are expected to have passed ``validate_sync_payload`` already.
"""


from __future__ import annotations

from typing import Any, Dict, Mapping

import structlog

from flagmirror.errors.store_errors import ItemDecodeError, ItemEncodeError
from flagmirror.repositories.feature_store import FeatureStore
from flagmirror.services.codec import encode_item, record_from_attributes
from flagmirror.services.kinds import DataKind, Record, kind_for_namespace

logger = structlog.get_logger(__name__)


class InvalidSyncPayload(ValueError):
    """Raised when a change notification cannot be turned into records."""
    pass


def resolve_kind(namespace: str) -> DataKind:
    """Return the kind for ``namespace``.

    Raises:
        InvalidSyncPayload: If no kind uses this namespace.
    """
    kind = kind_for_namespace(namespace)
    if kind is None:
        raise InvalidSyncPayload(f"Unknown namespace '{namespace}'.")
    return kind


def parse_record(kind: DataKind, attrs: Mapping[str, Any]) -> Record:
    """Build a record of ``kind`` from pushed attributes.

    Raises:
        InvalidSyncPayload: If the attributes do not fit the record shape
            or hold a number that cannot be stored.
    """
    try:
        record = record_from_attributes(kind, attrs)
        encode_item(record)
    except (ItemDecodeError, ItemEncodeError) as exc:
        raise InvalidSyncPayload(str(exc)) from exc
    return record


def parse_dataset(
    data: Mapping[str, Mapping[str, Mapping[str, Any]]]
) -> Dict[DataKind, Dict[str, Record]]:
    """Turn a ``put`` payload into the mapping ``FeatureStore.init`` takes.

    Args:
        data: ``{namespace: {key: attributes}}``.

    Returns:
        ``{kind: {key: record}}``.

    Raises:
        InvalidSyncPayload: On an unknown namespace, an invalid record or
            a record whose ``key`` differs from its map key.
    """
    all_data: Dict[DataKind, Dict[str, Record]] = {}

    for namespace, items in data.items():
        kind = resolve_kind(namespace)
        records: Dict[str, Record] = {}
        for key, attrs in items.items():
            record = parse_record(kind, attrs)
            if record.key != key:
                raise InvalidSyncPayload(
                    f"Record key '{record.key}' does not match "
                    f"'{key}' in namespace '{namespace}'."
                )
            records[key] = record
        all_data[kind] = records

    return all_data


def apply_event(store: FeatureStore, payload: Mapping[str, Any]) -> str:
    """Apply one validated change notification to ``store``.

    Args:
        store: Target feature store.
        payload: Validated SyncEvent body.

    Returns:
        str: The event name that was applied.

    Raises:
        InvalidSyncPayload: If the payload cannot be turned into records.
        FeatureStoreError: If the store operation fails.
    """
    event = payload["event"]

    if event == "put":
        all_data = parse_dataset(payload["data"])
        store.init(all_data)
        logger.info(
            "dataset_applied",
            counts={str(kind): len(items) for kind, items in all_data.items()},
        )
    elif event == "patch":
        kind = resolve_kind(payload["namespace"])
        record = parse_record(kind, payload["data"])
        store.upsert(kind, record)
        logger.info(
            "record_patched", kind=str(kind), key=record.key, version=record.version
        )
    elif event == "delete":
        kind = resolve_kind(payload["namespace"])
        store.delete(kind, payload["key"], int(payload["version"]))
        logger.info(
            "record_deleted",
            kind=str(kind),
            key=payload["key"],
            version=payload["version"],
        )
    else:
        raise InvalidSyncPayload(f"Unknown event '{event}'.")

    return event
