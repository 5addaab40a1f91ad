# flagmirror/repositories/feature_store.py
"""Versioned feature store mirroring flags and segments into tables.

Each data kind lives in its own table named ``<prefix><namespace>``. All
writes except a full ``init`` are conditional on the record's version,
which comes from the origin service:

- a write applies only if the key is absent or the stored version is
  strictly lower;
- a rejected write is a successful no-op, since losing a race to a newer
  version is expected when several publishers run concurrently;
- deletes write a tombstone through the same path, so a delete at
  version N also blocks every later write with a version <= N.

The store keeps no state besides the ``initialized`` flag and does no
locking or retrying of its own. Concurrent callers are safe because the
backend applies the version check and the write atomically.

Example::

    store = FeatureStore(DynamoDBClient(), table_prefix="flagmirror-prod-")
    store.init({FLAGS: {"new-ui": FeatureFlag(key="new-ui", version=3)}})
    flag = store.get(FLAGS, "new-ui")
"""


from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Mapping, Optional

import structlog

from flagmirror.errors.store_errors import (
    ConditionCheckFailed,
    FeatureStoreError,
)
from flagmirror.repositories.batching import submit_in_batches
from flagmirror.repositories.namespace import table_name, validate_prefix
from flagmirror.repositories.store_client import PRIMARY_KEY, Item, StoreClient
from flagmirror.services.codec import decode_item, encode_item
from flagmirror.services.kinds import DataKind, Record

logger = structlog.get_logger(__name__)


class FeatureStore:
    """Read/write/synchronize contract over a :class:`StoreClient`.

    Args:
        client: Backend client (DynamoDB or in-memory).
        table_prefix: Prefix prepended to every kind's namespace.

    Raises:
        ValueError: If ``table_prefix`` is empty or invalid.
    """

    def __init__(self, client: StoreClient, table_prefix: str) -> None:
        self.client = client
        self.table_prefix = validate_prefix(table_prefix)
        self._initialized = threading.Event()

    def table_name(self, kind: DataKind) -> str:
        return table_name(self.table_prefix, kind)

    # ---------- Full synchronization ----------

    def init(self, all_data: Mapping[DataKind, Mapping[str, Record]]) -> None:
        """Replace the contents of each kind's table with ``all_data``.

        For every kind in ``all_data``, all existing items are deleted
        first and the new items are written afterwards, both in batches
        of the client's maximum batch size. Readers may see an empty
        table while this runs. Kinds missing from ``all_data`` are left
        untouched.

        Every record is encoded before any table is touched, so a dataset
        that cannot be stored leaves all tables as they were. A failure
        after that aborts the whole call and may leave a table half
        rebuilt; calling ``init`` again with the same data converges.

        Raises:
            ItemEncodeError: If a record cannot be encoded.
            FeatureStoreError: If scanning or any batch write fails.
        """
        encoded_data: Dict[DataKind, List[Item]] = {}
        for kind, items in all_data.items():
            try:
                encoded_data[kind] = [encode_item(item) for item in items.values()]
            except FeatureStoreError as exc:
                logger.error(
                    "encode_failed",
                    key=exc.key,
                    table=self.table_name(kind),
                    error=str(exc),
                )
                raise

        for kind, items in all_data.items():
            table = self.table_name(kind)

            try:
                deleted = self._truncate_table(table)
            except FeatureStoreError as exc:
                logger.error("truncate_failed", table=table, error=str(exc))
                raise

            encoded = encoded_data[kind]
            try:
                written = submit_in_batches(
                    encoded,
                    self.client.max_batch_size,
                    lambda batch: self.client.batch_write(table, puts=batch),
                )
            except FeatureStoreError as exc:
                logger.error(
                    "batch_put_failed",
                    table=table,
                    count=len(items),
                    error=str(exc),
                )
                raise

            logger.info(
                "table_initialized",
                table=table,
                deleted=deleted,
                written=written,
            )

        self._initialized.set()

    def initialized(self) -> bool:
        """Return True once ``init`` has completed successfully."""
        return self._initialized.is_set()

    # ---------- Reads ----------

    def get(self, kind: DataKind, key: str) -> Optional[Record]:
        """Return the live record stored under ``key``.

        Returns:
            The record, or ``None`` if the key is absent or tombstoned.

        Raises:
            StoreTransportError: If the read fails.
            ItemDecodeError: If the stored item cannot be decoded.
        """
        table = self.table_name(kind)

        try:
            raw = self.client.get_item(table, key)
        except FeatureStoreError as exc:
            logger.error("get_failed", key=key, table=table, error=str(exc))
            raise

        if raw is None:
            logger.debug("item_not_found", key=key, table=table)
            return None

        item = self._decode(kind, raw, table)
        if item.deleted:
            logger.debug("item_deleted", key=key, table=table)
            return None

        return item

    def all(self, kind: DataKind) -> Dict[str, Record]:
        """Return every live record of ``kind`` keyed by record key.

        Tombstones are filtered out.

        Raises:
            StoreTransportError: If the scan fails.
            ItemDecodeError: If any stored item cannot be decoded.
        """
        table = self.table_name(kind)
        results: Dict[str, Record] = {}

        try:
            raw_items = list(self._all_items(table))
        except FeatureStoreError as exc:
            logger.error("scan_failed", table=table, error=str(exc))
            raise

        for raw in raw_items:
            item = self._decode(kind, raw, table)
            if not item.deleted:
                results[item.key] = item

        return results

    # ---------- Conditional writes ----------

    def upsert(self, kind: DataKind, item: Record) -> None:
        """Write ``item`` unless a record with an equal or higher version
        is already stored."""
        self._update_with_versioning(kind, item)

    def delete(self, kind: DataKind, key: str, version: int) -> None:
        """Mark ``key`` as deleted at ``version``.

        The tombstone stays in the table; it is never removed outside of
        ``init``.
        """
        self._update_with_versioning(kind, kind.make_deleted_item(key, version))

    def _update_with_versioning(self, kind: DataKind, item: Record) -> None:
        table = self.table_name(kind)

        try:
            self.client.put_item_if_newer(table, encode_item(item), item.version)
        except ConditionCheckFailed:
            logger.debug(
                "stale_write_skipped",
                key=item.key,
                version=item.version,
                table=table,
            )
        except FeatureStoreError as exc:
            logger.error(
                "put_failed", key=item.key, table=table, error=str(exc)
            )
            raise

    # ---------- Helpers ----------

    def _all_items(self, table: str) -> Iterator[Item]:
        for page in self.client.scan_pages(table):
            yield from page

    def _truncate_table(self, table: str) -> int:
        keys: List[str] = [raw[PRIMARY_KEY] for raw in self._all_items(table)]
        return submit_in_batches(
            keys,
            self.client.max_batch_size,
            lambda batch: self.client.batch_write(table, deletes=batch),
        )

    def _decode(self, kind: DataKind, raw: Item, table: str) -> Record:
        try:
            return decode_item(kind, raw)
        except FeatureStoreError as exc:
            exc.table = table
            if exc.key is None:
                exc.key = raw.get(PRIMARY_KEY)
            logger.error(
                "decode_failed", key=exc.key, table=table, error=str(exc)
            )
            raise
