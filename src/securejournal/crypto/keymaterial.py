"""
Best-effort scrubbing wrapper for key material.
"""

from __future__ import annotations

from typing import Any


class SecretBytes:
    """Owns a mutable buffer that is zeroed on ``wipe()``, context exit and GC.

    Python cannot guarantee that no copy of the bytes survives elsewhere (the
    ``cryptography`` APIs take immutable ``bytes``), so this only narrows the
    window in which key material sits in memory. The repr never shows the
    content.
    """

    __slots__ = ("_buf", "__weakref__")

    def __init__(self, data: bytes | bytearray) -> None:
        self._buf: bytearray | None = bytearray(data)

    def reveal(self) -> bytes:
        if self._buf is None:
            raise ValueError("secret has been wiped")
        return bytes(self._buf)

    @property
    def wiped(self) -> bool:
        return self._buf is None

    def wipe(self) -> None:
        if self._buf is not None:
            _zero(self._buf)
            self._buf = None

    def __len__(self) -> int:
        return 0 if self._buf is None else len(self._buf)

    def __enter__(self) -> SecretBytes:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            self.wipe()
        except Exception:
            pass

    def __repr__(self) -> str:
        state = "wiped" if self._buf is None else f"{len(self._buf)} bytes"
        return f"SecretBytes(<{state}>)"

    def __eq__(self, other: object) -> bool:
        import hmac

        if not isinstance(other, SecretBytes) or self.wiped or other.wiped:
            return NotImplemented
        return hmac.compare_digest(self.reveal(), other.reveal())

    __hash__ = None  # type: ignore[assignment]


def _zero(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0
