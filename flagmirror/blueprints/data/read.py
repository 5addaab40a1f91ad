"""Read-only access to the mirrored flags and segments.

This blueprint exposes the cached data to compute workloads that cannot
reach the origin service. Deleted records are never returned.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from flagmirror.errors.handlers import NotFound
from flagmirror.services.codec import record_to_attributes
from flagmirror.services.kinds import DataKind, kind_for_namespace
from flagmirror.services.store_service import get_feature_store


data_bp = Blueprint("data_bp", __name__, url_prefix="/data")


def _kind_or_404(namespace: str) -> DataKind:
    kind = kind_for_namespace(namespace)
    if kind is None:
        raise NotFound(f"Unknown namespace '{namespace}'.")
    return kind


@data_bp.get("/<string:namespace>/")
def list_items(namespace: str) -> tuple[Any, int]:
    """Return every live record of a namespace.

    Args:
        namespace: ``flags`` or ``segments``.

    Returns:
        A tuple ``(response, status_code)`` where ``response`` maps each
        record key to its attributes. Returns 404 for an unknown
        namespace and 503 if the store is unavailable.
    """
    kind = _kind_or_404(namespace)
    items = get_feature_store().all(kind)
    return (
        jsonify({key: record_to_attributes(item) for key, item in items.items()}),
        200,
    )


@data_bp.get("/<string:namespace>/<string:key>")
def get_item(namespace: str, key: str) -> tuple[Any, int]:
    """Return a single live record.

    Args:
        namespace: ``flags`` or ``segments``.
        key: Record key.

    Returns:
        A tuple ``(response, status_code)``; 404 if the record does not
        exist or has been deleted.
    """
    kind = _kind_or_404(namespace)
    item = get_feature_store().get(kind, key)
    if item is None:
        raise NotFound(f"No record '{key}' in namespace '{namespace}'.")
    return jsonify(record_to_attributes(item)), 200
