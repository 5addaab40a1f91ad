# flagmirror/services/kinds.py
"""Data kinds and record types mirrored by flagmirror.

Every record is keyed and versioned by the origin service. A record with
``deleted=True`` is a tombstone: it is kept in the table so that older
writes for the same key can still be rejected.

The set of kinds is closed: ``FLAGS`` and ``SEGMENTS``. Adding a kind
means adding a record type here and listing its ``DataKind`` in
``ALL_KINDS``.
"""


from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


def wire_field(attr: str, types: Tuple[type, ...], **kwargs: Any) -> Any:
    """Declare a record field with its stored attribute name and types.

    Args:
        attr: Attribute name used in the table and in pushed payloads.
        types: Python types accepted when decoding the attribute.
        **kwargs: Forwarded to :func:`dataclasses.field` (defaults).

    Returns:
        A dataclass field carrying ``attr`` and ``types`` as metadata.
    """
    return field(metadata={"attr": attr, "types": types}, **kwargs)


@dataclass(frozen=True)
class FeatureFlag:
    """A feature flag as published by the origin service."""

    key: str = wire_field("key", (str,))
    version: int = wire_field("version", (int,), default=0)
    deleted: bool = wire_field("deleted", (bool,), default=False)
    on: bool = wire_field("on", (bool,), default=False)
    prerequisites: List[Dict[str, Any]] = wire_field(
        "prerequisites", (list,), default_factory=list
    )
    salt: str = wire_field("salt", (str,), default="")
    targets: List[Dict[str, Any]] = wire_field(
        "targets", (list,), default_factory=list
    )
    rules: List[Dict[str, Any]] = wire_field(
        "rules", (list,), default_factory=list
    )
    fallthrough: Dict[str, Any] = wire_field(
        "fallthrough", (dict,), default_factory=dict
    )
    off_variation: Optional[int] = wire_field(
        "offVariation", (int, type(None)), default=None
    )
    variations: List[Any] = wire_field(
        "variations", (list,), default_factory=list
    )
    client_side: bool = wire_field("clientSide", (bool,), default=False)
    track_events: bool = wire_field("trackEvents", (bool,), default=False)
    debug_events_until_date: Optional[int] = wire_field(
        "debugEventsUntilDate", (int, type(None)), default=None
    )


@dataclass(frozen=True)
class Segment:
    """A user segment as published by the origin service."""

    key: str = wire_field("key", (str,))
    version: int = wire_field("version", (int,), default=0)
    deleted: bool = wire_field("deleted", (bool,), default=False)
    included: List[str] = wire_field(
        "included", (list,), default_factory=list
    )
    excluded: List[str] = wire_field(
        "excluded", (list,), default_factory=list
    )
    salt: str = wire_field("salt", (str,), default="")
    rules: List[Dict[str, Any]] = wire_field(
        "rules", (list,), default_factory=list
    )


Record = Union[FeatureFlag, Segment]


@dataclass(frozen=True)
class DataKind:
    """Descriptor for one category of mirrored data.

    Attributes:
        namespace: Suffix of the table name holding this kind.
        record_type: Record class used as the decoding shell.
    """

    namespace: str
    record_type: type

    def make_deleted_item(self, key: str, version: int) -> Record:
        """Build the tombstone written when ``key`` is deleted at ``version``."""
        return self.record_type(key=key, version=version, deleted=True)

    def __str__(self) -> str:
        return self.namespace


FLAGS = DataKind(namespace="flags", record_type=FeatureFlag)
SEGMENTS = DataKind(namespace="segments", record_type=Segment)

ALL_KINDS: Tuple[DataKind, ...] = (FLAGS, SEGMENTS)


def kind_for_namespace(namespace: str) -> Optional[DataKind]:
    """Return the kind stored under ``namespace``, or ``None``."""
    for kind in ALL_KINDS:
        if kind.namespace == namespace:
            return kind
    return None
