from __future__ import annotations

import re
from typing import List


_SEP_RE = re.compile(r"[\\/]")


def split_entry_path(name: str) -> List[str]:
    """Split an entry name into path components for extraction.

    Rules:
    - Both backslash and slash separate directories
    - Empty and '.' segments are dropped
    - '..' segments and drive prefixes are rejected
    """
    parts = [q for q in _SEP_RE.split(name) if q not in ("", ".")]
    if not parts:
        raise ValueError(f"Empty entry path: {name!r}")
    for q in parts:
        if q == "..":
            raise ValueError(f"Path may not contain '..': {name!r}")
    if ":" in parts[0]:
        raise ValueError(f"Path may not carry a drive prefix: {name!r}")
    return parts


def join_entry_path(parts: List[str], separator: str = "\\") -> str:
    return separator.join(parts)
