# flagmirror/repositories/store_client.py
"""Interface the feature store expects from a key-value backend.

Implementations: ``DynamoDBClient`` (boto3) and ``MemoryStoreClient``.
Items are plain dictionaries keyed by attribute name; the hash key
attribute is always ``"key"``.
"""


from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

PRIMARY_KEY = "key"
VERSION_ATTRIBUTE = "version"

# BatchWriteItem accepts at most 25 put/delete requests per call.
MAX_BATCH_SIZE = 25

Item = Dict[str, Any]


class StoreClient(Protocol):
    """Operations the feature store needs from its backend."""

    max_batch_size: int

    def get_item(self, table: str, key: str) -> Optional[Item]:
        """Strongly consistent point read; ``None`` when absent."""
        ...

    def put_item_if_newer(self, table: str, item: Item, version: int) -> None:
        """Write ``item`` only if its key is absent or stored with an
        older version than ``version``.

        Raises:
            ConditionCheckFailed: If the stored version is not older.
            StoreTransportError: On any other failure.
        """
        ...

    def scan_pages(self, table: str) -> Iterator[List[Item]]:
        """Yield every item of ``table`` page by page (consistent read)."""
        ...

    def batch_write(
        self,
        table: str,
        puts: Iterable[Item] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        """Unconditionally put items and delete keys in one batch.

        Raises:
            ValueError: If the batch holds more than ``max_batch_size``
                operations.
            StoreTransportError: If the backend rejects the batch.
        """
        ...
