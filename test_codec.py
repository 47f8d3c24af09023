from __future__ import annotations

import io
import struct
import unittest
from datetime import datetime, timezone

from sevenpak.constants import MAGIC, VERSION
from sevenpak.entry import Entry, XorView
from sevenpak.errors import InvalidMagic, InvalidNameLength, InvalidRecordFlags, InvalidVersion
from sevenpak.filetime import (
    datetime_to_filetime,
    filetime_to_datetime,
    filetime_to_unix_ns,
    unix_ns_to_filetime,
)
from sevenpak.pathutil import split_entry_path
from sevenpak.reader import BufferSource, PakReader
from sevenpak.writer import PakWriter
from sevenpak.xor import transform, transform_byte


def _xor(data: bytes) -> bytes:
    return bytes(b ^ 0xF7 for b in data)


def _record(name: bytes, size: int, filetime: int) -> bytes:
    return bytes([0x00, len(name)]) + name + struct.pack("<IQ", size, filetime)


class TransformTests(unittest.TestCase):
    def test_involution_every_byte(self):
        for b in range(256):
            self.assertEqual(transform_byte(transform_byte(b)), b)
        everything = bytes(range(256))
        self.assertEqual(transform(transform(everything)), everything)

    def test_matches_fixed_key(self):
        self.assertEqual(transform(b"\x00\xff\xf7"), b"\xf7\x08\x00")
        self.assertEqual(transform(memoryview(b"abc")), _xor(b"abc"))

    def test_magic_on_the_wire(self):
        self.assertEqual(transform(MAGIC), b"7\xbd7M")
        self.assertEqual(transform(VERSION), b"\xf7" * 4)


class ReaderTests(unittest.TestCase):
    def _reader(self, logical: bytes) -> PakReader:
        return PakReader(io.BytesIO(_xor(logical)))

    def test_header_and_records(self):
        logical = (
            MAGIC
            + VERSION
            + _record(b"a.txt", 3, 0)
            + _record(b"dir/b.txt", 0, 42)
            + b"\x80"
            + b"abc"
        )
        r = self._reader(logical)
        r.read_magic()
        r.read_version()
        records = r.read_records()
        self.assertEqual([(x.name, x.file_size, x.filetime) for x in records], [(b"a.txt", 3, 0), (b"dir/b.txt", 0, 42)])
        self.assertEqual(r.read_exact(3), b"abc")

    def test_bad_magic_stops_after_four_bytes(self):
        src = io.BytesIO(_xor(b"PACK" + VERSION + b"\x80"))
        r = PakReader(src)
        with self.assertRaises(InvalidMagic) as cm:
            r.read_magic()
        self.assertEqual(cm.exception.magic, b"PACK")
        self.assertEqual(src.tell(), 4)

    def test_bad_version(self):
        r = self._reader(MAGIC + b"\x01\x00\x00\x00" + b"\x80")
        r.read_magic()
        with self.assertRaises(InvalidVersion) as cm:
            r.read_version()
        self.assertEqual(cm.exception.version, b"\x01\x00\x00\x00")

    def test_any_flag_with_end_bit_ends_table(self):
        for end in (0x80, 0x81, 0xC0, 0xFF):
            r = self._reader(_record(b"a", 1, 0) + bytes([end]) + b"z")
            records = r.read_records()
            self.assertEqual([(x.name, x.file_size) for x in records], [(b"a", 1)])
            self.assertEqual(r.read_exact(1), b"z")

    def test_unknown_flag_rejected(self):
        r = self._reader(b"\x01" + b"\x00" * 13)
        with self.assertRaises(InvalidRecordFlags) as cm:
            r.read_records()
        self.assertEqual(cm.exception.flags, 0x01)

    def test_truncated_table(self):
        r = self._reader(_record(b"name.bin", 5, 0)[:-3])
        with self.assertRaises(EOFError):
            r.read_records()

    def test_read_exact_loops_over_short_reads(self):
        class Trickle(io.RawIOBase):
            def __init__(self, data):
                self.data = data

            def readable(self):
                return True

            def read(self, n=-1):
                out, self.data = self.data[:1], self.data[1:]
                return out

        r = PakReader(Trickle(_xor(b"\x01\x02\x03\x04")))
        self.assertEqual(r.read_u32(), 0x04030201)

    def test_into_reader_returns_remaining_buffer(self):
        wire = _xor(MAGIC + VERSION + _record(b"x", 2, 0) + b"\x80" + b"hi")
        r = PakReader(BufferSource(wire))
        r.read_magic()
        r.read_version()
        r.read_records()
        rest = r.into_reader()
        self.assertIsInstance(rest, memoryview)
        self.assertEqual(bytes(rest), _xor(b"hi"))

    def test_into_reader_requires_buffer(self):
        r = self._reader(MAGIC)
        with self.assertRaises(TypeError):
            r.into_reader()


class WriterTests(unittest.TestCase):
    def test_integers_little_endian_and_obfuscated(self):
        out = io.BytesIO()
        w = PakWriter(out)
        w.write_u8(0x80)
        w.write_u32(3)
        w.write_u64(1)
        self.assertEqual(_xor(out.getvalue()), b"\x80" + b"\x03\x00\x00\x00" + b"\x01" + b"\x00" * 7)
        self.assertEqual(w.written, 13)

    def test_filename_prefix(self):
        out = io.BytesIO()
        PakWriter(out).write_filename(b"dir\\b.txt")
        self.assertEqual(_xor(out.getvalue()), b"\x09dir\\b.txt")

    def test_filename_too_long_writes_nothing(self):
        out = io.BytesIO()
        w = PakWriter(out)
        w.write_filename(b"n" * 255)
        out.seek(0)
        out.truncate()
        with self.assertRaises(InvalidNameLength) as cm:
            w.write_filename(b"n" * 256)
        self.assertEqual(cm.exception.length, 256)
        self.assertEqual(out.getvalue(), b"")

    def test_copy_from_streams_until_eof(self):
        out = io.BytesIO()
        payload = bytes(range(256)) * 10
        n = PakWriter(out).copy_from(io.BytesIO(payload), chunk_size=7)
        self.assertEqual(n, len(payload))
        self.assertEqual(_xor(out.getvalue()), payload)


class XorViewTests(unittest.TestCase):
    def setUp(self):
        self.plain = b"hello, pak"
        self.view = XorView(memoryview(_xor(self.plain)))

    def test_read_decodes_lazily(self):
        self.assertEqual(self.view.read(5), b"hello")
        self.assertEqual(self.view.tell(), 5)
        self.assertEqual(self.view.read(), b", pak")
        self.assertEqual(self.view.read(), b"")

    def test_seek_and_readinto(self):
        self.assertEqual(self.view.seek(-3, io.SEEK_END), 7)
        buf = bytearray(8)
        self.assertEqual(self.view.readinto(buf), 3)
        self.assertEqual(bytes(buf[:3]), b"pak")
        self.view.seek(2)
        self.view.seek(1, io.SEEK_CUR)
        self.assertEqual(self.view.read(2), b"lo")
        with self.assertRaises(ValueError):
            self.view.seek(-1)

    def test_seek_past_end_reads_nothing(self):
        self.view.seek(100)
        self.assertEqual(self.view.read(4), b"")
        self.assertEqual(self.view.tell(), 100)

    def test_getvalue_ignores_cursor(self):
        self.view.read(4)
        self.assertEqual(self.view.getvalue(), self.plain)
        self.assertEqual(self.view.tell(), 4)
        self.assertEqual(len(self.view), len(self.plain))


class EntryPathTests(unittest.TestCase):
    def test_backslash(self):
        e = Entry(b"dir\\sub\\b.txt")
        self.assertEqual(e.dir(), b"dir\\sub\\")
        self.assertEqual(e.file_name(), b"b.txt")

    def test_slash(self):
        e = Entry("dir/b.txt")
        self.assertEqual(e.dir(), b"dir/")
        self.assertEqual(e.file_name(), b"b.txt")

    def test_mixed_uses_last_separator(self):
        self.assertEqual(Entry(b"a/b\\c").dir(), b"a/b\\")
        self.assertEqual(Entry(b"a\\b/c").dir(), b"a\\b/")

    def test_no_separator(self):
        e = Entry(b"a.txt")
        self.assertIsNone(e.dir())
        self.assertEqual(e.file_name(), b"a.txt")

    def test_non_utf8_name(self):
        e = Entry(b"caf\xe9\\x.bin")
        self.assertEqual(e.dir(), b"caf\xe9\\")
        self.assertEqual(e.path_str, "caf\ufffd\\x.bin")


class EntryPayloadTests(unittest.TestCase):
    def test_size_tracks_replacement(self):
        e = Entry("a", b"abc")
        self.assertEqual(e.size(), 3)
        e.read(2)
        e.set_data(b"0123456789")
        self.assertEqual(e.size(), 10)
        self.assertEqual(e.tell(), 0)

    def test_size_does_not_move_cursor(self):
        e = Entry("a", b"abcdef")
        e.read(2)
        self.assertEqual(e.size(), 6)
        self.assertEqual(e.read(), b"cdef")

    def test_file_object_payload(self):
        class Opaque(io.RawIOBase):
            # No getvalue(); Entry must fall back to seek + read
            def __init__(self, data):
                self._b = io.BytesIO(data)

            def readable(self):
                return True

            def seekable(self):
                return True

            def readinto(self, b):
                return self._b.readinto(b)

            def seek(self, offset, whence=io.SEEK_SET):
                return self._b.seek(offset, whence)

            def tell(self):
                return self._b.tell()

        e = Entry("f", Opaque(b"payload"))
        e.read(3)
        self.assertEqual(e.getvalue(), b"payload")
        self.assertEqual(e.tell(), 3)
        self.assertEqual(e.size(), 7)

    def test_into_owned_copies_borrowed_and_keeps_position(self):
        e = Entry("b", XorView(memoryview(_xor(b"borrowed"))), 7)
        self.assertTrue(e.is_borrowed)
        e.read(3)
        owned = e.into_owned()
        self.assertFalse(owned.is_borrowed)
        self.assertIsInstance(owned.data, io.BytesIO)
        self.assertEqual(owned.tell(), 3)
        self.assertEqual(owned, e)

    def test_into_owned_copies_owned_payload(self):
        e = Entry("o", b"owned", 3)
        e.read(2)
        owned = e.into_owned()
        self.assertIsNot(owned.data, e.data)
        self.assertEqual(owned.tell(), 2)
        owned.read()
        self.assertEqual(e.tell(), 2)
        self.assertEqual(e.read(), b"ned")

    def test_closing_view_releases_buffer(self):
        buf = bytearray(_xor(b"payload"))
        view = XorView(memoryview(buf))
        with self.assertRaises(BufferError):
            buf.extend(b"!")
        view.close()
        buf.extend(b"!")
        with self.assertRaises(ValueError):
            view.read()

    def test_equality(self):
        self.assertEqual(Entry("x", b"1", 5), Entry(b"x", bytearray(b"1"), 5))
        self.assertNotEqual(Entry("x", b"1", 5), Entry("x", b"1", 6))
        self.assertNotEqual(Entry("x", b"1", 5), Entry("x", b"2", 5))
        self.assertNotEqual(Entry("x", b"1", 5), Entry("y", b"1", 5))

    def test_mtime_property(self):
        e = Entry("t", b"", 132000000000000000)
        self.assertEqual(e.mtime, datetime(2019, 4, 17, 18, 40, tzinfo=timezone.utc))
        e.mtime = datetime(1970, 1, 1)
        self.assertEqual(e.filetime, 116444736000000000)


class FiletimeTests(unittest.TestCase):
    def test_unix_epoch(self):
        self.assertEqual(filetime_to_unix_ns(116444736000000000), 0)
        self.assertEqual(unix_ns_to_filetime(0), 116444736000000000)

    def test_sub_tick_nanoseconds_are_floored(self):
        self.assertEqual(unix_ns_to_filetime(199), 116444736000000001)
        self.assertEqual(filetime_to_unix_ns(116444736000000001), 100)

    def test_datetime_round_trip(self):
        dt = datetime(2019, 4, 17, 18, 40, tzinfo=timezone.utc)
        self.assertEqual(datetime_to_filetime(dt), 132000000000000000)
        self.assertEqual(filetime_to_datetime(0), datetime(1601, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(datetime_to_filetime(datetime(2019, 4, 17, 18, 40)), 132000000000000000)

    def test_out_of_range(self):
        with self.assertRaises(ValueError):
            filetime_to_unix_ns(-1)
        with self.assertRaises(ValueError):
            filetime_to_unix_ns(1 << 64)
        with self.assertRaises(ValueError):
            datetime_to_filetime(datetime(1600, 12, 31, tzinfo=timezone.utc))


class PathUtilTests(unittest.TestCase):
    def test_splits_both_separators(self):
        self.assertEqual(split_entry_path("dir\\sub/b.txt"), ["dir", "sub", "b.txt"])
        self.assertEqual(split_entry_path("\\.\\a"), ["a"])

    def test_rejects_escapes(self):
        for bad in ("..\\evil", "a/../b", "C:\\x", "", "\\"):
            with self.assertRaises(ValueError):
                split_entry_path(bad)


if __name__ == "__main__":
    unittest.main()
