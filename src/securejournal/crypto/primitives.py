"""
Stateless cryptographic primitives.

Randomness comes from :mod:`secrets`; hashing and HMAC from :mod:`hashlib`
and :mod:`hmac`; PBKDF2 and AES-256-CBC with PKCS7 padding from the
``cryptography`` package. Nothing here holds state.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
from types import SimpleNamespace
from typing import Any

from ..core.errors import CryptoPrimitiveUnavailable

AES_KEY_BYTES = 32
AES_BLOCK_BITS = 128
IV_BYTES = 16


def _require_crypto() -> Any:
    """Return the ``cryptography`` hazmat namespace or fail loudly."""
    try:
        from cryptography.hazmat.primitives import hashes, padding
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
        from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
    except ImportError as exc:  # pragma: no cover - depends on environment
        raise CryptoPrimitiveUnavailable(
            "cryptography is required for vault operations", cause=exc
        ) from exc

    return SimpleNamespace(
        hashes=hashes,
        padding=padding,
        Cipher=Cipher,
        algorithms=algorithms,
        modes=modes,
        PBKDF2HMAC=PBKDF2HMAC,
    )


# Randomness and codecs -------------------------------------------------------


def random_bytes(n: int) -> bytes:
    return secrets.token_bytes(n)


def random_hex(n: int) -> str:
    """Hex string of ``n`` random bytes (``2 * n`` characters)."""
    return secrets.token_hex(n)


def to_hex(data: bytes | bytearray) -> str:
    return bytes(data).hex()


def from_hex(text: str) -> bytes:
    return bytes.fromhex(text)


def b64encode(data: bytes | bytearray) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict standard base64 decode; raises ``ValueError`` on bad input."""
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError("invalid base64") from exc


# Hashing ---------------------------------------------------------------------


def sha256(data: bytes | bytearray) -> bytes:
    return hashlib.sha256(bytes(data)).digest()


def sha256_hex(text: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 encoding of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hmac_sha256_hex(key: bytes | bytearray, text: str) -> str:
    return hmac.new(bytes(key), text.encode("utf-8"), hashlib.sha256).hexdigest()


def constant_time_equals(a: str | bytes, b: str | bytes) -> bool:
    if isinstance(a, str):
        a = a.encode("utf-8")
    if isinstance(b, str):
        b = b.encode("utf-8")
    return hmac.compare_digest(a, b)


# Key derivation --------------------------------------------------------------


def pbkdf2_sha256(
    passphrase: str, salt: bytes, iterations: int, length: int = AES_KEY_BYTES
) -> bytes:
    hz = _require_crypto()
    kdf = hz.PBKDF2HMAC(
        algorithm=hz.hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


# AES-256-CBC -----------------------------------------------------------------


def aes_cbc_encrypt(key: bytes | bytearray, iv: bytes, plaintext: bytes) -> bytes:
    hz = _require_crypto()
    padder = hz.padding.PKCS7(AES_BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = hz.Cipher(hz.algorithms.AES(bytes(key)), hz.modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def aes_cbc_decrypt(key: bytes | bytearray, iv: bytes, ciphertext: bytes) -> bytes:
    """Decrypt and unpad; raises ``ValueError`` on malformed input or padding."""
    hz = _require_crypto()
    if len(iv) != IV_BYTES:
        raise ValueError("invalid IV length")
    if not ciphertext or len(ciphertext) % IV_BYTES:
        raise ValueError("ciphertext is not a whole number of blocks")
    decryptor = hz.Cipher(hz.algorithms.AES(bytes(key)), hz.modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = hz.padding.PKCS7(AES_BLOCK_BITS).unpadder()
    return unpadder.update(padded) + unpadder.finalize()
