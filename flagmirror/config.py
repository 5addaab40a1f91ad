# flagmirror/config.py
"""Environment-based configuration for flagmirror.

Values are read from the process environment, after loading a local
``.env`` file if present.
"""


from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

STORE_BACKENDS = ("dynamodb", "memory")


@dataclass(frozen=True)
class Settings:
    """Runtime settings of the flagmirror service."""
    table_prefix: str
    store_backend: str = "dynamodb"
    webhook_secret: Optional[str] = None
    aws_region: Optional[str] = None
    dynamodb_endpoint_url: Optional[str] = None
    log_level: str = "info"
    port: int = 8000
    debug: bool = False


def load_settings() -> Settings:
    """Build :class:`Settings` from environment variables.

    Returns:
        Settings: The loaded configuration.

    Raises:
        RuntimeError: If ``FLAGMIRROR_TABLE_PREFIX`` is not set or
            ``FLAGMIRROR_STORE_BACKEND`` is not a known backend.
    """
    load_dotenv()

    table_prefix = os.getenv("FLAGMIRROR_TABLE_PREFIX", "").strip()
    if not table_prefix:
        raise RuntimeError(
            "FLAGMIRROR_TABLE_PREFIX is not set. Make sure .env is configured."
        )

    store_backend = os.getenv("FLAGMIRROR_STORE_BACKEND", "dynamodb").lower()
    if store_backend not in STORE_BACKENDS:
        raise RuntimeError(
            f"FLAGMIRROR_STORE_BACKEND must be one of {STORE_BACKENDS}, "
            f"got {store_backend!r}."
        )

    return Settings(
        table_prefix=table_prefix,
        store_backend=store_backend,
        webhook_secret=os.getenv("FLAGMIRROR_WEBHOOK_SECRET") or None,
        aws_region=os.getenv("AWS_REGION") or None,
        dynamodb_endpoint_url=os.getenv("DYNAMODB_ENDPOINT_URL") or None,
        log_level=os.getenv("LOG_LEVEL", "info"),
        port=int(os.getenv("BACKEND_PORT", "8000")),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )
