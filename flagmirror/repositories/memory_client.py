# flagmirror/repositories/memory_client.py
"""In-memory store client for flagmirror.

Keeps tables in process memory behind a lock so that the conditional put
is atomic, like DynamoDB's. It is mainly useful for local experiments or
tests and is not persisted.
"""


from __future__ import annotations

import copy
import threading
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from flagmirror.errors.store_errors import ConditionCheckFailed
from flagmirror.repositories.store_client import (
    MAX_BATCH_SIZE,
    PRIMARY_KEY,
    VERSION_ATTRIBUTE,
    Item,
)


def _is_older(item: Item, version: int) -> bool:
    # A missing or non-numeric stored version fails the check, as in DynamoDB.
    stored = item.get(VERSION_ATTRIBUTE)
    if isinstance(stored, bool) or not isinstance(stored, (int, Decimal)):
        return False
    return version > stored


class MemoryStoreClient:
    """Store client backed by dictionaries: table -> key -> item.

    Items are deep-copied on the way in and out, so callers never share
    state with the stored data.
    """

    def __init__(
        self,
        page_size: int = 100,
        max_batch_size: int = MAX_BATCH_SIZE,
    ) -> None:
        self.page_size = page_size
        self.max_batch_size = max_batch_size
        self._tables: Dict[str, Dict[str, Item]] = {}
        self._lock = threading.Lock()

    def get_item(self, table: str, key: str) -> Optional[Item]:
        with self._lock:
            item = self._tables.get(table, {}).get(key)
            return copy.deepcopy(item)

    def put_item_if_newer(self, table: str, item: Item, version: int) -> None:
        key = item[PRIMARY_KEY]
        with self._lock:
            rows = self._tables.setdefault(table, {})
            existing = rows.get(key)
            if existing is not None and not _is_older(existing, version):
                raise ConditionCheckFailed(table=table, key=key, version=version)
            rows[key] = copy.deepcopy(item)

    def scan_pages(self, table: str) -> Iterator[List[Item]]:
        with self._lock:
            items = copy.deepcopy(list(self._tables.get(table, {}).values()))
        for start in range(0, len(items), self.page_size):
            yield items[start:start + self.page_size]

    def batch_write(
        self,
        table: str,
        puts: Iterable[Item] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        puts = list(puts)
        deletes = list(deletes)
        if len(puts) + len(deletes) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(puts) + len(deletes)} operations exceeds "
                f"the limit of {self.max_batch_size}."
            )

        with self._lock:
            rows = self._tables.setdefault(table, {})
            for key in deletes:
                rows.pop(key, None)
            for item in puts:
                rows[item[PRIMARY_KEY]] = copy.deepcopy(item)

    def put_raw_item(self, table: str, item: Item) -> None:
        """Store ``item`` as-is, bypassing every condition."""
        with self._lock:
            self._tables.setdefault(table, {})[item[PRIMARY_KEY]] = copy.deepcopy(item)
