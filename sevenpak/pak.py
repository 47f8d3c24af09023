from __future__ import annotations

import io
import logging
from typing import BinaryIO, Iterator, List, Optional, Union

from .constants import (
    FILEFLAGS_END,
    FILEFLAGS_NEXT,
    MAGIC,
    MAX_DATA_LEN,
    MAX_FILETIME,
    MAX_NAME_LEN,
    VERSION,
)
from .entry import Entry, XorView
from .errors import InvalidDataLength, InvalidNameLength, PayloadPositionError
from .reader import BufferSource, PakReader
from .writer import PakWriter


log = logging.getLogger(__name__)


class Pak:
    """An in-memory pak archive: an ordered list of entries.

    Entry order is the on-disk order and is preserved by write_to.
    """

    def __init__(self, entries: Optional[List[Entry]] = None):
        self.entries: List[Entry] = list(entries) if entries is not None else []

    def __repr__(self) -> str:
        return f"Pak(entries={len(self.entries)})"

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pak):
            return NotImplemented
        return self.entries == other.entries

    __hash__ = None  # type: ignore[assignment]

    # -------- loading --------

    @classmethod
    def from_read(cls, source: BinaryIO) -> "Pak":
        """Read a pak from a stream, decoding every payload into an owned buffer.

        Slower to open than from_bytes and holds the whole archive in memory,
        but the result never references external data.
        """
        reader = PakReader(source)
        reader.read_magic()
        reader.read_version()
        records = reader.read_records()

        entries = []
        for record in records:
            data = reader.read_exact(record.file_size) if record.file_size else b""
            entries.append(Entry(record.name, io.BytesIO(data), record.filetime))
        log.debug("loaded %d owned entries", len(entries))
        return cls(entries)

    @classmethod
    def from_bytes(cls, buffer) -> "Pak":
        """Read a pak from a contiguous buffer (bytes, bytearray, memoryview, mmap).

        Only the header and record table are decoded here. Each entry borrows a
        slice of ``buffer`` and decodes it as it is read. The slices keep
        ``buffer`` alive; an mmap must not be closed while the entries are in use.
        Use into_owned() to detach from the buffer.
        """
        source = BufferSource(buffer)
        entries = []
        rest = None
        try:
            reader = PakReader(source)
            reader.read_magic()
            reader.read_version()
            records = reader.read_records()

            rest = reader.into_reader()
            for record in records:
                n = record.file_size
                if n > len(rest):
                    raise EOFError("Unexpected EOF")
                entries.append(Entry(record.name, XorView(rest[:n]), record.filetime))
                rest = rest[n:]
        except BaseException:
            # Drop every view so the caller can close or resize the buffer
            for entry in entries:
                entry.data.close()
            if rest is not None:
                rest.release()
            source.release()
            raise
        rest.release()
        log.debug("loaded %d borrowed entries", len(entries))
        return cls(entries)

    def into_owned(self) -> "Pak":
        """Return a Pak whose entries own independent copies of their payloads."""
        return Pak([entry.into_owned() for entry in self.entries])

    # -------- editing --------

    def get(self, path: Union[bytes, str]) -> Optional[Entry]:
        key = path.encode("utf-8") if isinstance(path, str) else path
        for entry in self.entries:
            if entry.path == key:
                return entry
        return None

    def add(self, path: Union[bytes, str], data=b"", filetime: int = 0) -> Entry:
        entry = Entry(path, data, filetime)
        self.entries.append(entry)
        return entry

    def remove(self, path: Union[bytes, str]) -> Entry:
        entry = self.get(path)
        if entry is None:
            raise KeyError(path)
        self.entries.remove(entry)
        return entry

    def rewind(self) -> None:
        for entry in self.entries:
            entry.rewind()

    # -------- writing --------

    def _validate(self) -> List[int]:
        sizes = []
        for entry in self.entries:
            if len(entry.path) > MAX_NAME_LEN:
                raise InvalidNameLength(len(entry.path))
            size = entry.size()
            if size > MAX_DATA_LEN:
                raise InvalidDataLength(size)
            pos = entry.tell()
            if pos != 0:
                raise PayloadPositionError(entry.path, pos, size)
            if not 0 <= entry.filetime <= MAX_FILETIME:
                raise ValueError(f"filetime of {entry.path!r} out of range: {entry.filetime}")
            sizes.append(size)
        return sizes

    def write_to(self, sink: BinaryIO) -> int:
        """Serialize the archive to a writable sink; returns bytes written.

        Every entry is checked before the first byte goes out. Payloads are
        consumed by reading, so all cursors end up at end-of-payload: call
        rewind() before writing the same entries again.
        """
        sizes = self._validate()

        writer = PakWriter(sink)
        writer.write(MAGIC)
        writer.write(VERSION)

        for entry, size in zip(self.entries, sizes):
            writer.write_u8(FILEFLAGS_NEXT)
            writer.write_filename(entry.path)
            writer.write_u32(size)
            writer.write_u64(entry.filetime)
        writer.write_u8(FILEFLAGS_END)

        for entry, size in zip(self.entries, sizes):
            copied = writer.copy_from(entry)
            if copied != size:
                raise EOFError(f"payload of {entry.path!r} changed while writing: {copied} of {size} bytes")
        log.debug("wrote %d entries, %d bytes", len(self.entries), writer.written)
        return writer.written

    def to_bytes(self) -> bytes:
        out = io.BytesIO()
        self.write_to(out)
        return out.getvalue()
