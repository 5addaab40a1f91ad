# flagmirror/errors/store_errors.py
"""Error taxonomy for the feature store and its backend clients.

Transport and decode failures are genuine errors and always reach the
caller. A failed version precondition is not an error for callers of the
store: clients raise ``ConditionCheckFailed`` and the store treats it as
a successful no-op. Not-found is signalled with ``None``.
"""


from __future__ import annotations

from typing import Optional


class FeatureStoreError(Exception):
    """Base class for errors surfaced by the feature store.

    Attributes:
        table: Name of the table involved, if known.
        key: Item key involved, if known.
    """

    def __init__(
        self,
        detail: str,
        table: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.table = table
        self.key = key

    def __str__(self) -> str:
        context = []
        if self.key is not None:
            context.append(f"key={self.key}")
        if self.table is not None:
            context.append(f"table={self.table}")
        if not context:
            return self.detail
        return f"{self.detail} ({' '.join(context)})"


class StoreTransportError(FeatureStoreError):
    """Raised when a backend request fails (network, throttling, etc.)."""


class ItemDecodeError(FeatureStoreError):
    """Raised when a stored item does not match its kind's record shape."""


class ItemEncodeError(FeatureStoreError):
    """Raised when a record holds a value that cannot be stored."""


class ConditionCheckFailed(Exception):
    """Raised by a store client when a conditional put was rejected."""

    def __init__(self, table: str, key: str, version: int) -> None:
        super().__init__(
            f"Stored version is not older than {version} "
            f"(key={key} table={table})"
        )
        self.table = table
        self.key = key
        self.version = version
