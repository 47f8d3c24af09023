from __future__ import annotations

import struct
from typing import BinaryIO

from .constants import DEFAULT_COPY_CHUNK, MAX_NAME_LEN
from .errors import InvalidNameLength
from .xor import transform


_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class PakWriter:
    """Byte sink wrapper that obfuscates everything written through it."""

    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self.written = 0

    def write(self, data) -> int:
        n = len(data)
        if n:
            self.sink.write(transform(data))
            self.written += n
        return n

    def write_u8(self, value: int) -> None:
        self.write(bytes([value]))

    def write_u32(self, value: int) -> None:
        self.write(_U32.pack(value))

    def write_u64(self, value: int) -> None:
        self.write(_U64.pack(value))

    def write_filename(self, name: bytes) -> None:
        if len(name) > MAX_NAME_LEN:
            raise InvalidNameLength(len(name))
        self.write_u8(len(name))
        self.write(name)

    def copy_from(self, src, chunk_size: int = DEFAULT_COPY_CHUNK) -> int:
        """Stream ``src`` from its current position to EOF; returns bytes copied."""
        total = 0
        while True:
            chunk = src.read(chunk_size)
            if not chunk:
                break
            total += self.write(chunk)
        return total
