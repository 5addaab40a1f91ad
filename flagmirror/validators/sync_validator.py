# flagmirror/validators/sync_validator.py
"""
Validator for /sync/ requests using JSON Schema.

This module loads the SyncEvent JSON Schema once at import time and
exposes a helper to validate incoming payloads, raising BadRequest on error.
"""


from pathlib import Path
import json
from jsonschema import validate as js_validate, ValidationError
from flagmirror.errors.handlers import BadRequest


# Resolve schema path
SCHEMA_PATH = (
    Path(__file__).resolve().parent.parent / "schemas" / "SyncEvent.schema.json"
)

# Load schema
with SCHEMA_PATH.open("r", encoding="utf-8") as f:
    SYNC_EVENT_SCHEMA = json.load(f)


def validate_sync_payload(payload: dict) -> None:
    """
    Validate a change notification against the SyncEvent schema.

    Args:
        payload: Parsed JSON body.

    Raises:
        BadRequest: If payload is not a JSON object or doesn't match the schema.
    """
    if not isinstance(payload, dict):
        raise BadRequest("Payload must be a JSON object.")

    try:
        js_validate(instance=payload, schema=SYNC_EVENT_SCHEMA)
    except ValidationError as e:
        raise BadRequest(f"Invalid SyncEvent: {e.message}")
