# flagmirror/errors/handlers.py
"""Centralized JSON error handling for the flagmirror service.

Defines HTTP-facing exceptions and registers Flask error handlers so that
errors are returned as consistent JSON payloads instead of HTML pages.
Feature store failures map to ``503``: callers should treat the cache as
unavailable and fall back to their defaults.
"""


from __future__ import annotations

from typing import Any

import structlog
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from flagmirror.errors.store_errors import FeatureStoreError

logger = structlog.get_logger(__name__)


class BadRequest(Exception):
    """Exception raised for bad requests (HTTP 400).

    Attributes:
        detail: Human-readable description of the error.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(Exception):
    """Exception raised for missing resources (HTTP 404).

    Attributes:
        detail: Human-readable description of the error.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers for common HTTP errors.

    Args:
        app: The Flask application instance to configure.
    """

    @app.errorhandler(BadRequest)
    def _on_bad_request(err: BadRequest) -> tuple[Any, int]:
        """Return HTTP 400 for validation/contract issues."""
        return jsonify({"error": "BadRequest", "detail": err.detail}), 400

    @app.errorhandler(NotFound)
    def _on_not_found(err: NotFound) -> tuple[Any, int]:
        """Return HTTP 404 for missing resources."""
        return jsonify({"error": "NotFound", "detail": err.detail}), 404

    @app.errorhandler(FeatureStoreError)
    def _on_store_error(err: FeatureStoreError) -> tuple[Any, int]:
        """Return HTTP 503 when the backing store cannot serve the call."""
        logger.error(
            "store_unavailable",
            error_type=type(err).__name__,
            key=err.key,
            table=err.table,
        )
        return (
            jsonify(
                {
                    "error": "StoreUnavailable",
                    "detail": "The feature store is unavailable.",
                }
            ),
            503,
        )

    @app.errorhandler(HTTPException)
    def _on_http_exception(err: HTTPException) -> tuple[Any, int]:
        """Fallback for other HTTP errors (for example 500, 405)."""
        code = err.code or 500
        name = err.name or "HTTPException"
        return jsonify({"error": name, "detail": err.description}), code

    @app.errorhandler(Exception)
    def _on_unexpected(err: Exception) -> tuple[Any, int]:
        """Last-resort handler to avoid HTML stack traces."""
        logger.exception("unexpected_error", error_type=type(err).__name__)
        return (
            jsonify(
                {
                    "error": "InternalServerError",
                    "detail": "An unexpected error occurred.",
                }
            ),
            500,
        )
