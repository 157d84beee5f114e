"""
Per-file classification: decide whether a discovered file is read, and
measure it if so.
"""

import os
import re
import stat
from pathlib import Path

from constants import BINARY_EXTENSIONS
from core.file_io import decode_text
from core.models import FileEntry
from core.tokens import TokenCounter
from models import SkipReason
from utils import extension_of

_LINE_BREAK = re.compile(r"\r?\n")


def count_lines(text: str) -> int:
    """
    Count line segments, treating both LF and CRLF as breaks.

    A trailing newline produces a final empty segment, so "a\\nb\\n" has 3
    lines and the empty string has 1.
    """
    return len(_LINE_BREAK.split(text))


def classify_file(
    abs_path: Path, rel_path: str, max_bytes: int, counter: TokenCounter
) -> FileEntry:
    """
    Classify and measure a single file.

    Checks run in order: known-binary extension (no filesystem access), not a
    regular file, size over the ceiling, then read + decode + count. The first
    check that fails produces a skipped entry. I/O errors are recorded as the
    skip reason; this function never raises for filesystem problems.

    Args:
        abs_path: Absolute path of the file.
        rel_path: Posix path relative to the scan root.
        max_bytes: Per-file size ceiling.
        counter: Token counter used for the content.

    Returns:
        A FileEntry that either carries valid metrics or is skipped.
    """
    ext = extension_of(rel_path)

    def skipped(reason: str, size: int = 0) -> FileEntry:
        return FileEntry(
            abs_path=abs_path,
            rel_path=rel_path,
            bytes=size,
            ext=ext,
            skipped=True,
            reason=reason,
        )

    if ext in BINARY_EXTENSIONS:
        return skipped(SkipReason.BINARY_EXT)

    try:
        st = os.stat(abs_path)
        if not stat.S_ISREG(st.st_mode):
            return skipped(SkipReason.NOT_A_FILE)
        if st.st_size > max_bytes:
            return skipped(SkipReason.TOO_LARGE, st.st_size)

        data = abs_path.read_bytes()
    except OSError as e:
        return skipped(str(e))

    text = decode_text(data)
    return FileEntry(
        abs_path=abs_path,
        rel_path=rel_path,
        bytes=len(data),
        lines=count_lines(text),
        tokens=counter.count(text),
        ext=ext,
    )
