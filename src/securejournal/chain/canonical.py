"""
Canonical string and hash for audit blocks.

The hash input is nine fields in a fixed order joined by ``|``. Changing
the order, the separator or the rendering of empty values makes every
previously stored chain unverifiable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..crypto import primitives

CANON_FIELDS = (
    "seq",
    "ts",
    "event",
    "detail",
    "id",
    "file",
    "hash",
    "signature",
    "prevHash",
)
SEPARATOR = "|"


def _render(value: Any) -> str:
    # Falsy values (None, "", 0, False) render as the empty string.
    if not value:
        return ""
    if value is True:
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canon(fields: Mapping[str, Any]) -> str:
    """Pipe-joined canonical string over :data:`CANON_FIELDS`."""
    return SEPARATOR.join(_render(fields.get(name)) for name in CANON_FIELDS)


def compute_block_hash(fields: Mapping[str, Any]) -> str:
    """Lowercase hex SHA-256 of :func:`canon`."""
    return primitives.sha256_hex(canon(fields))
