"""
JSON and timestamp helpers shared by storage, the entry store and the chain.

JSON is produced with orjson. Timestamps use the millisecond-precision
``YYYY-MM-DDTHH:MM:SS.mmmZ`` form so that records written elsewhere in that
format hash identically.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson

from .errors import StorageUnavailable


def dumps(payload: Any, *, indent: bool = False) -> str:
    """Serialize ``payload`` to a JSON string."""
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(payload, option=option).decode("utf-8")


def loads(text: str | bytes, *, key: str | None = None) -> Any:
    """Parse stored JSON, mapping decode errors to StorageUnavailable."""
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise StorageUnavailable(
            "stored value is not valid JSON", cause=exc, key=key
        ) from exc


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as UTC ISO-8601 with millisecond precision."""
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return format_timestamp(utc_now())


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings or epoch milliseconds; ``None`` if unparsable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_timestamp(value: Any) -> str:
    """Return ``value`` as canonical ISO-8601, falling back to now."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return utc_now_iso()
    try:
        return format_timestamp(parsed)
    except (OverflowError, ValueError):
        return utc_now_iso()
