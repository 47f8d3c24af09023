class PakError(Exception):
    """Base class for sevenpak-specific errors."""


# Header
class InvalidMagic(PakError):
    def __init__(self, magic: bytes):
        super().__init__(f"invalid pak magic: {magic.hex()}")
        self.magic = magic


class InvalidVersion(PakError):
    def __init__(self, version: bytes):
        super().__init__(f"unsupported pak version: {version.hex()}")
        self.version = version


# Record table
class InvalidRecordFlags(PakError):
    def __init__(self, flags: int):
        super().__init__(f"invalid record flags: 0x{flags:02x}")
        self.flags = flags


# Write-time bounds
class InvalidNameLength(PakError):
    def __init__(self, length: int):
        super().__init__(f"file name too long: {length} bytes")
        self.length = length


class InvalidDataLength(PakError):
    def __init__(self, length: int):
        super().__init__(f"file data too long: {length} bytes")
        self.length = length


class PayloadPositionError(PakError):
    def __init__(self, path: bytes, position: int, size: int):
        super().__init__(
            f"payload cursor of {path!r} is at {position} of {size}; rewind entries before saving again"
        )
        self.path = path
        self.position = position
        self.size = size
