# flagmirror/services/signature_service.py
"""Webhook signature verification.

Change notifications pushed to ``/sync/`` are signed by the sender with a
shared secret: the ``X-Webhook-Signature`` header carries the hex-encoded
HMAC-SHA256 of the raw request body.
"""


from __future__ import annotations

import hashlib
import hmac
from functools import wraps
from typing import Callable, Optional, TypeVar, cast

import structlog
from flask import current_app, jsonify, request

SIGNATURE_HEADER = "X-Webhook-Signature"

F = TypeVar("F", bound=Callable[..., object])

logger = structlog.get_logger(__name__)


def sign_payload(body: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA256 of ``body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check ``signature`` against the expected one in constant time.

    Args:
        body: Raw request body.
        signature: Value of the signature header, if any.
        secret: Shared webhook secret.

    Returns:
        bool: True if the signature matches, False otherwise.
    """
    if not signature:
        return False
    expected = sign_payload(body, secret)
    return hmac.compare_digest(signature.strip().lower(), expected)


def require_signature(func: F) -> F:
    """Flask view decorator that enforces webhook signatures.

    Behaviour:
        - Reads the secret from ``current_app.config["WEBHOOK_SECRET"]``.
        - If no secret is configured, the check is skipped.
        - If the ``X-Webhook-Signature`` header does not match the body,
            returns ``401`` with a JSON error.
        - Otherwise calls the wrapped view.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        secret = current_app.config.get("WEBHOOK_SECRET")
        if not secret:
            logger.info("signature_check_skipped")
            return func(*args, **kwargs)

        body = request.get_data(cache=True)
        if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), secret):
            logger.error("signature_invalid", remote_addr=request.remote_addr)
            response = jsonify(
                {
                    "error": "Invalid or missing webhook signature",
                    "code": "sync.signature_invalid",
                }
            )
            return response, 401

        logger.info("signature_verified")
        return func(*args, **kwargs)

    return cast(F, wrapper)
