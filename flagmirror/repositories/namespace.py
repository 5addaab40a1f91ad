# flagmirror/repositories/namespace.py
"""Table naming for data kinds: ``<prefix><namespace>``."""


from __future__ import annotations

import re

from flagmirror.services.kinds import DataKind

# Characters DynamoDB accepts in table names.
_TABLE_NAME_CHARS = re.compile(r"^[A-Za-z0-9_.\-]+$")


def validate_prefix(prefix: str) -> str:
    """Check that ``prefix`` can start a DynamoDB table name.

    Args:
        prefix: Configured table prefix, for example ``"flagmirror-prod-"``.

    Returns:
        str: The prefix, unchanged.

    Raises:
        ValueError: If the prefix is empty or contains invalid characters.
    """
    if not prefix:
        raise ValueError("Table prefix cannot be empty.")
    if not _TABLE_NAME_CHARS.match(prefix):
        raise ValueError(
            f"Table prefix {prefix!r} may only contain letters, digits, "
            "'_', '-' and '.'."
        )
    return prefix


def table_name(prefix: str, kind: DataKind) -> str:
    return prefix + kind.namespace
