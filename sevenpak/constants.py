# Magic and version (logical values; the wire form is XORed like every other byte)
MAGIC = bytes([0xC0, 0x4A, 0xC0, 0xBA])  # XOR 0xF7 -> "7\xbd7M", hence "7x7M"
VERSION = bytes([0x00, 0x00, 0x00, 0x00])

# Obfuscation key applied to every byte of the stream
XOR_KEY = 0xF7

# Record table flags
FILEFLAGS_NEXT = 0x00
FILEFLAGS_END = 0x80

# Limits imposed by the u8 name length and u32 size fields
MAX_NAME_LEN = 0xFF
MAX_DATA_LEN = 0xFFFFFFFF
MAX_FILETIME = 0xFFFFFFFFFFFFFFFF

# Either byte separates directories inside an entry name
PATH_SEPARATORS = b"\\/"

# FILETIME: 100ns ticks since 1601-01-01 UTC
TICKS_PER_SECOND = 10_000_000
NANOSECONDS_PER_TICK = 100
FILETIME_EPOCH_OFFSET_SECS = 11_644_473_600  # 1601-01-01 -> 1970-01-01
FILETIME_EPOCH_OFFSET_TICKS = FILETIME_EPOCH_OFFSET_SECS * TICKS_PER_SECOND

DEFAULT_COPY_CHUNK = 65536
