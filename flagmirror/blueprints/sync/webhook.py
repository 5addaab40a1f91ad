"""Webhook endpoint receiving change notifications from the publisher.

``POST /sync/`` accepts a full dataset (``put``) or a single change
(``patch`` / ``delete``) and writes it to the feature store. Several
publishers may call it concurrently; stale writes are dropped by the
store's version check.
"""

from __future__ import annotations

from typing import Any

import structlog
from flask import Blueprint, jsonify, request

from flagmirror.errors.handlers import BadRequest
from flagmirror.services.signature_service import require_signature
from flagmirror.services.store_service import get_feature_store
from flagmirror.services.sync_service import InvalidSyncPayload, apply_event
from flagmirror.validators.sync_validator import validate_sync_payload


sync_bp = Blueprint("sync_bp", __name__, url_prefix="/sync")

logger = structlog.get_logger(__name__)

# Logged for every delivery to help trace publishers.
TRACED_HEADERS = ("User-Agent", "X-Forwarded-For", "X-Amzn-Trace-Id")


@sync_bp.post("/")
@require_signature
def post_sync() -> tuple[Any, int]:
    """Apply a change notification.

    Request JSON body (SyncEvent), one of:
        {"event": "put", "data": {"flags": {...}, "segments": {...}}}
        {"event": "patch", "namespace": "flags", "data": {...}}
        {"event": "delete", "namespace": "flags", "key": "...", "version": 3}

    Behaviour:
        - Requires a valid ``X-Webhook-Signature`` when a secret is set.
        - Returns 400 if the payload does not match the schema or holds
            invalid records.
        - Returns 503 if the store cannot be written.
        - Otherwise returns 200 with the applied event.
    """
    logger.debug(
        "sync_request",
        **{h.lower().replace("-", "_"): request.headers.get(h) for h in TRACED_HEADERS},
    )

    payload = request.get_json(silent=True)
    validate_sync_payload(payload)

    try:
        event = apply_event(get_feature_store(), payload)
    except InvalidSyncPayload as exc:
        raise BadRequest(str(exc)) from exc

    return jsonify({"status": "ok", "event": event}), 200
