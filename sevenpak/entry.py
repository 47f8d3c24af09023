from __future__ import annotations

import io
import os
from datetime import datetime
from typing import BinaryIO, Optional, Union

from .constants import PATH_SEPARATORS
from .filetime import datetime_to_filetime, filetime_to_datetime
from .xor import transform


class XorView(io.RawIOBase):
    """Read-only, seekable cursor over obfuscated bytes borrowed from another buffer.

    Nothing is decoded until it is read. The view keeps the underlying buffer
    alive; for mmap sources the map must stay open while the view is in use.
    """

    def __init__(self, view: memoryview):
        super().__init__()
        self._view = view
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._view)

    def _span(self, size: int) -> memoryview:
        if self.closed:
            raise ValueError("I/O operation on closed view")
        start = min(self._pos, len(self._view))
        end = len(self._view) if size is None or size < 0 else min(start + size, len(self._view))
        self._pos = max(self._pos, end)
        return self._view[start:end]

    def read(self, size: int = -1) -> bytes:
        return transform(self._span(size))

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, b) -> int:
        out = memoryview(b).cast("B")
        data = self.read(len(out))
        out[: len(data)] = data
        return len(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed view")
        if whence == os.SEEK_SET:
            pos = offset
        elif whence == os.SEEK_CUR:
            pos = self._pos + offset
        elif whence == os.SEEK_END:
            pos = len(self._view) + offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        if pos < 0:
            raise ValueError(f"negative seek position {pos}")
        self._pos = pos
        return pos

    def tell(self) -> int:
        return self._pos

    def getvalue(self) -> bytes:
        return transform(self._view)

    def close(self) -> None:
        if not self.closed:
            self._view.release()
        super().close()


def _as_payload(data) -> BinaryIO:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(data))
    return data


class Entry:
    """One file inside a pak archive.

    ``data`` is a seekable binary cursor over the decoded payload. Entries loaded
    with Pak.from_read (or built by callers) own an io.BytesIO; entries loaded
    with Pak.from_bytes hold an XorView into the caller's buffer. Code that only
    reads, seeks or measures an entry does not need to care which one it has.
    """

    def __init__(self, path: Union[bytes, str], data=b"", filetime: int = 0):
        self.path = path.encode("utf-8") if isinstance(path, str) else bytes(path)
        self.filetime = filetime
        self.data = _as_payload(data)

    def __repr__(self) -> str:
        kind = "borrowed" if self.is_borrowed else "owned"
        return f"Entry(path={self.path!r}, size={self.size()}, filetime={self.filetime}, {kind})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return (
            self.path == other.path
            and self.filetime == other.filetime
            and self.getvalue() == other.getvalue()
        )

    __hash__ = None  # type: ignore[assignment]

    # -------- path --------

    @property
    def path_str(self) -> str:
        """Path decoded for display; undecodable bytes are replaced."""
        return self.path.decode("utf-8", errors="replace")

    def _split_index(self) -> int:
        return max(self.path.rfind(sep) for sep in (PATH_SEPARATORS[:1], PATH_SEPARATORS[1:]))

    def dir(self) -> Optional[bytes]:
        """Everything up to and including the last separator, or None."""
        idx = self._split_index()
        if idx < 0:
            return None
        return self.path[: idx + 1]

    def file_name(self) -> bytes:
        return self.path[self._split_index() + 1 :]

    # -------- time --------

    @property
    def mtime(self) -> datetime:
        return filetime_to_datetime(self.filetime)

    @mtime.setter
    def mtime(self, value: datetime) -> None:
        self.filetime = datetime_to_filetime(value)

    # -------- payload --------

    @property
    def is_borrowed(self) -> bool:
        return isinstance(self.data, XorView)

    def read(self, size: int = -1) -> bytes:
        return self.data.read(size)

    def readinto(self, b) -> int:
        return self.data.readinto(b)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self.data.seek(offset, whence)

    def tell(self) -> int:
        return self.data.tell()

    def rewind(self) -> None:
        self.data.seek(0)

    def size(self) -> int:
        """Current payload length, whatever the cursor position."""
        pos = self.data.tell()
        end = self.data.seek(0, os.SEEK_END)
        self.data.seek(pos)
        return end

    def getvalue(self) -> bytes:
        """Whole decoded payload. The cursor is left where it was."""
        getvalue = getattr(self.data, "getvalue", None)
        if getvalue is not None:
            return getvalue()
        pos = self.data.tell()
        self.data.seek(0)
        try:
            return self.data.read()
        finally:
            self.data.seek(pos)

    def set_data(self, data) -> None:
        """Replace the payload. The new cursor starts at 0."""
        self.data = _as_payload(data)
        self.data.seek(0)

    def into_owned(self) -> "Entry":
        """Return an entry whose payload is an io.BytesIO nothing else references.

        The payload is always copied, so the two entries keep separate cursors.
        The cursor position carries over.
        """
        pos = self.data.tell()
        data = io.BytesIO(self.getvalue())
        data.seek(pos)
        return Entry(self.path, data, self.filetime)
