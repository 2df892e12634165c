"""
Structured internal diagnostics.

Thin wrapper over a fapilog logger so library code can report non-fatal
conditions (corrupt records, wipe residue, migration) without ever raising
into the caller. Fields must never carry passphrases, key bytes or entry
plaintext.
"""

from __future__ import annotations

import threading
from typing import Any

_LOGGER_NAME = "securejournal"

_lock = threading.Lock()
_logger: Any | None = None
_enabled = True


def configure(*, enabled: bool) -> None:
    """Enable or disable emission (mirrors ``core.internal_logging_enabled``)."""
    global _enabled
    _enabled = enabled


def is_enabled() -> bool:
    return _enabled


def set_logger(logger: Any | None) -> None:
    """Install a specific logger; ``None`` resets to the lazy fapilog default."""
    global _logger
    with _lock:
        _logger = logger


def _get_logger() -> Any:
    global _logger
    with _lock:
        if _logger is None:
            from fapilog import get_logger

            _logger = get_logger(name=_LOGGER_NAME)
        return _logger


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    if not _enabled:
        return
    try:
        log_method = getattr(_get_logger(), level)
        log_method(message, component=component, **fields)
    except Exception:
        # Diagnostics must never break vault operations
        return


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("debug", component, message, fields)


def info(component: str, message: str, **fields: Any) -> None:
    _emit("info", component, message, fields)


def warn(component: str, message: str, **fields: Any) -> None:
    _emit("warning", component, message, fields)
