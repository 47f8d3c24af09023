from __future__ import annotations

from .constants import XOR_KEY


# Precomputed byte -> byte table for bytes.translate
_XOR_TABLE = bytes(b ^ XOR_KEY for b in range(256))


def transform_byte(b: int) -> int:
    """Obfuscate or de-obfuscate one byte. Applying it twice returns ``b``."""
    return b ^ XOR_KEY


def transform(data) -> bytes:
    """Apply the byte transform to every byte of a bytes-like object."""
    return bytes(data).translate(_XOR_TABLE)
