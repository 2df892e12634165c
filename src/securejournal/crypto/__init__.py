"""
Cryptographic primitives and key-material handling.
"""

from . import primitives
from .keymaterial import SecretBytes

__all__ = ["SecretBytes", "primitives"]
