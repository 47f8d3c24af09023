from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, List, Union

from .constants import FILEFLAGS_END, FILEFLAGS_NEXT, MAGIC, VERSION
from .errors import InvalidMagic, InvalidRecordFlags, InvalidVersion
from .xor import transform


log = logging.getLogger(__name__)

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


@dataclass
class Record:
    """One row of the record table. Only lives while an archive is being loaded."""

    name: bytes
    file_size: int
    filetime: int


class BufferSource:
    """Sequential reader over a contiguous buffer.

    Unlike io.BytesIO this never copies the buffer; ``remaining()`` hands back a
    memoryview of everything not yet consumed.
    """

    def __init__(self, buffer):
        self.view = memoryview(buffer).cast("B")
        self.pos = 0

    def read(self, n: int = -1) -> bytes:
        if n is None or n < 0:
            end = len(self.view)
        else:
            end = min(self.pos + n, len(self.view))
        out = self.view[self.pos:end].tobytes()
        self.pos = end
        return out

    def remaining(self) -> memoryview:
        return self.view[self.pos:]

    def release(self) -> None:
        self.view.release()


class PakReader:
    """Reads the pak header and record table, un-obfuscating every byte.

    Call order: read_magic, read_version, read_records, then either keep reading
    payload bytes (stream sources) or take ``into_reader()`` (buffer sources).
    """

    def __init__(self, source: Union[BinaryIO, BufferSource]):
        self.source = source

    def read_exact(self, n: int) -> bytes:
        parts = []
        want = n
        while want > 0:
            b = self.source.read(want)
            if not b:
                raise EOFError("Unexpected EOF")
            parts.append(b)
            want -= len(b)
        return transform(b"".join(parts))

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_u32(self) -> int:
        return _U32.unpack(self.read_exact(4))[0]

    def read_u64(self) -> int:
        return _U64.unpack(self.read_exact(8))[0]

    def read_magic(self) -> None:
        magic = self.read_exact(len(MAGIC))
        if magic != MAGIC:
            raise InvalidMagic(magic)

    def read_version(self) -> None:
        version = self.read_exact(len(VERSION))
        if version != VERSION:
            raise InvalidVersion(version)

    def read_records(self) -> List[Record]:
        records: List[Record] = []
        while True:
            flags = self.read_u8()
            if flags & FILEFLAGS_END:
                break
            if flags != FILEFLAGS_NEXT:
                raise InvalidRecordFlags(flags)
            name_len = self.read_u8()
            name = self.read_exact(name_len)
            file_size = self.read_u32()
            filetime = self.read_u64()
            records.append(Record(name=name, file_size=file_size, filetime=filetime))
        log.debug("parsed %d records", len(records))
        return records

    def into_reader(self) -> memoryview:
        """Return the still-obfuscated bytes that follow the record table.

        Only available when reading from a BufferSource.
        """
        if not isinstance(self.source, BufferSource):
            raise TypeError("into_reader() requires a BufferSource")
        return self.source.remaining()
