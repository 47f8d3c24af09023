"""
sevenpak — reader/writer for "7x7M" .pak archives.

Features:

- Byte-exact codec: loading an archive and saving it again reproduces the input.
- Two load strategies: ``Pak.from_read`` decodes every payload up front into owned
  buffers, ``Pak.from_bytes`` slices payloads out of a caller-supplied buffer and
  decodes them lazily on read.
- Flat entry names with either ``\\`` or ``/`` as the directory separator.
- Windows FILETIME timestamps with helpers to convert to datetime / Unix time.

Every byte on disk is XOR-obfuscated with a fixed key; see sevenpak.xor.
"""

__version__ = "0.1"

from .entry import Entry
from .errors import (
    PakError,
    InvalidMagic,
    InvalidVersion,
    InvalidRecordFlags,
    InvalidNameLength,
    InvalidDataLength,
    PayloadPositionError,
)
from .pak import Pak

__all__ = [
    "Pak",
    "Entry",
    "PakError",
    "InvalidMagic",
    "InvalidVersion",
    "InvalidRecordFlags",
    "InvalidNameLength",
    "InvalidDataLength",
    "PayloadPositionError",
]
