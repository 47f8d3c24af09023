from __future__ import annotations

import argparse
import io
import logging
import mmap
import os
import shutil
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from sevenpak.errors import PakError
from sevenpak.filetime import filetime_to_datetime, filetime_to_unix_ns, unix_ns_to_filetime
from sevenpak.logutil import get_logger
from sevenpak.pak import Pak
from sevenpak.pathutil import join_entry_path, split_entry_path


log = logging.getLogger(__name__)


def _load_pak(archive: str, *, borrow: bool = False) -> Pak:
    """Load an archive from disk.

    With ``borrow`` the file is memory-mapped and entries read straight from the
    map; the map is released once the returned Pak is garbage collected.
    """
    with open(archive, "rb") as f:
        if not borrow:
            return Pak.from_read(f)
        try:
            mm = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        except ValueError:
            # Empty files cannot be mapped; report them like any other short read
            raise EOFError("Unexpected EOF") from None
    try:
        return Pak.from_bytes(mm)
    except BaseException:
        mm.close()
        raise


def _safe_utime(path: str, filetime: int) -> None:
    """Best-effort mtime update that never raises.

    Args:
        path: Destination filesystem path to update.
        filetime: Entry timestamp in FILETIME ticks. 0 (unset) leaves the file alone.
    """
    if filetime == 0:
        return
    ns = filetime_to_unix_ns(filetime)
    try:
        os.utime(path, ns=(ns, ns))
    except (OSError, OverflowError) as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def _format_time(filetime: int) -> str:
    if filetime == 0:
        return "-"
    try:
        return filetime_to_datetime(filetime).strftime("%Y-%m-%d %H:%M:%S")
    except OverflowError:
        return str(filetime)


def _next_nonconflicting_path(path: str) -> str:
    if not os.path.lexists(path):
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


# -------- list --------

def cmd_list(archive: str, *, borrow: bool = False) -> bool:
    """List archive entries as size, mtime and path."""
    pak = _load_pak(archive, borrow=borrow)
    for e in pak:
        print(f"{e.size()}\t{_format_time(e.filetime)}\t{e.path_str}")
    return True


# -------- extract --------

def cmd_extract(
    archive: str,
    *,
    outdir: str = ".",
    borrow: bool = False,
    exists: str = "rename",
    quiet: bool = False,
) -> bool:
    """Extract every entry below ``outdir``.

    Entry names are split on both separators; '..' components are refused.
    """
    pak = _load_pak(archive, borrow=borrow)
    extracted = 0
    skipped = 0
    total_bytes = 0
    for e in pak:
        parts = split_entry_path(e.path_str)
        dst = os.path.join(outdir or ".", *parts)
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        if os.path.lexists(dst):
            if exists == "skip":
                skipped += 1
                if not quiet:
                    print(f"   skipping: {e.path_str}")
                continue
            if exists == "fail":
                raise FileExistsError(f"Destination exists: {dst}")
            if exists == "rename":
                dst = _next_nonconflicting_path(dst)
        with open(dst, "wb") as wf:
            e.rewind()
            shutil.copyfileobj(e, wf)
        _safe_utime(dst, e.filetime)
        extracted += 1
        total_bytes += e.size()
        if not quiet:
            print(f" extracting: {e.path_str}")
    print(f"Done: {extracted} files extracted, {skipped} skipped; {total_bytes} bytes")
    return True


# -------- create --------

def _iter_inputs(inputs: Iterable[str]) -> Iterable[Tuple[List[str], str]]:
    """Yield (archive path components, filesystem path) for every input file.

    Directories contribute their contents relative to the directory itself.
    """
    for inp in inputs:
        if os.path.isdir(inp):
            for root, dirs, files in os.walk(inp):
                dirs.sort()
                rel = os.path.relpath(root, inp)
                prefix = [] if rel == "." else Path(rel).parts
                for fn in sorted(files):
                    yield [*prefix, fn], os.path.join(root, fn)
        elif os.path.isfile(inp):
            yield [os.path.basename(inp)], inp
        else:
            raise FileNotFoundError(f"No such file or directory: {inp}")


def cmd_create(output: str, inputs: List[str], *, separator: str = "\\", quiet: bool = False) -> bool:
    """Pack files and directory trees into a new archive at ``output``."""
    pak = Pak()
    for parts, full in _iter_inputs(inputs):
        st = os.stat(full)
        with open(full, "rb") as f:
            data = f.read()
        name = join_entry_path(parts, separator)
        pak.add(name, data, unix_ns_to_filetime(st.st_mtime_ns))
        if not quiet:
            print(f"     adding: {name}")

    tmp = output + ".tmp"
    try:
        with open(tmp, "wb") as out:
            written = pak.write_to(out)
        os.replace(tmp, output)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    print(f"Done: {len(pak)} files; {written} bytes written to {output}")
    return True


# -------- verify --------

def cmd_verify(archive: str) -> bool:
    """Load both ways and check that they agree and that saving reproduces the file."""
    data = Path(archive).read_bytes()
    owned = Pak.from_read(io.BytesIO(data))
    borrowed = Pak.from_bytes(data)
    ok = True
    if owned != borrowed:
        print("FAIL: stream and buffer loads disagree", file=sys.stderr)
        ok = False
    if owned.to_bytes() != data:
        print("FAIL: re-serialized archive differs from input", file=sys.stderr)
        ok = False
    log.debug("verify %s: %d entries, ok=%s", archive, len(owned), ok)
    if ok:
        print(f"OK: {len(owned)} entries")
    return ok


def main(argv: List[str] | None = None):
    get_logger("sevenpak")
    ap = argparse.ArgumentParser(
        prog="sevenpak",
        description="7x7M .pak archive tool",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("--borrow", action="store_true", help="Memory-map the archive instead of reading it")

    ap_extract = sub.add_parser("extract", help="Extract files")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--borrow", action="store_true", help="Memory-map the archive instead of reading it")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap_extract.add_argument(
        "--exists",
        choices=["overwrite", "skip", "rename", "fail"],
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite, skip, "
            "rename (append ' (n)' before extension), or fail (abort). Default: rename"
        ),
    )

    ap_create = sub.add_parser("create", help="Create archive")
    ap_create.add_argument("output", help="Output .pak path")
    ap_create.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_create.add_argument(
        "--separator",
        choices=["\\", "/"],
        default="\\",
        help="Directory separator written into entry names (default: backslash)",
    )
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_verify = sub.add_parser("verify", help="Check that the archive round-trips byte for byte")
    ap_verify.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "list":
            cmd_list(args.archive, borrow=args.borrow)
        elif args.cmd == "extract":
            cmd_extract(args.archive, outdir=args.outdir, borrow=args.borrow, exists=args.exists, quiet=args.quiet)
        elif args.cmd == "create":
            cmd_create(args.output, args.inputs, separator=args.separator, quiet=args.quiet)
        elif args.cmd == "verify":
            sys.exit(0 if cmd_verify(args.archive) else 1)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (PakError, EOFError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
