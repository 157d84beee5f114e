"""
Core data models for the scan, pack and render pipeline.

This module defines the data structures used to represent scanned files,
scan aggregates, the resolved selection policy, and the packer's output
within the ctxpack CLI.
"""

from dataclasses import dataclass, field
from pathlib import Path

from constants import (
    DEFAULT_BLOCK_SEPARATOR,
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    DEFAULT_MAX_BYTES_PER_FILE,
    DEFAULT_MODEL,
)
from models import FileReport, OutputFormat, PackOrder


@dataclass(frozen=True)
class FileEntry:
    """
    One physical file considered by a scan.

    Entries are created fresh by every scan and never mutated afterwards.
    Exactly one of the following holds: the metrics are valid, or `skipped`
    is True. A skipped entry has zero lines and tokens; its `bytes` is zero
    too, except for "too-large" entries, which keep the real size so the
    rejected file can still be reported.

    Attributes:
        abs_path: Absolute path on disk.
        rel_path: Posix path relative to the scan root. This is the stable key
            used by selection sets, rankings and directory aggregation.
        bytes: File size in bytes.
        lines: Number of segments when splitting the content on line breaks.
        tokens: Token count of the whole decoded content.
        ext: Lowercase extension without the leading dot.
        skipped: True if the file was not read.
        reason: Skip reason ("binary-ext", "too-large", "not-a-file", or an
            I/O error message). None for files that were read.
    """

    abs_path: Path
    rel_path: str
    bytes: int = 0
    lines: int = 0
    tokens: int = 0
    ext: str = ""
    skipped: bool = False
    reason: str | None = None

    def to_report(self) -> FileReport:
        """Return the JSON metadata row for this entry."""
        return {
            "path": self.rel_path,
            "bytes": self.bytes,
            "lines": self.lines,
            "tokens": self.tokens,
            "skipped": self.skipped,
            "reason": self.reason,
        }


@dataclass
class DirStats:
    """Token, byte, file and line totals for one directory."""

    tokens: int = 0
    bytes: int = 0
    files: int = 0
    lines: int = 0

    def add(self, entry: FileEntry) -> None:
        self.tokens += entry.tokens
        self.bytes += entry.bytes
        self.files += 1
        self.lines += entry.lines


@dataclass
class ScanResult:
    """
    Aggregate of one scan pass.

    Totals and `by_dir` only count non-skipped entries. `by_dir` groups files
    by their immediate parent directory ("." for files at the root); it is
    not summed up the tree.

    Attributes:
        files: Every entry in discovery order.
        total_tokens: Sum of tokens over non-skipped entries.
        total_bytes: Sum of bytes over non-skipped entries.
        total_lines: Sum of lines over non-skipped entries.
        by_dir: Direct-child rollups keyed by posix directory path.
        auto_deselected: Paths listed by the scan but turned off by the
            tool ignore file.
        cancelled: True if a concurrent scan stopped early. Cancelled results
            are incomplete and should be discarded.
    """

    files: list[FileEntry] = field(default_factory=list)
    total_tokens: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    by_dir: dict[str, DirStats] = field(default_factory=dict)
    auto_deselected: frozenset[str] = frozenset()
    cancelled: bool = False


@dataclass(frozen=True)
class DiscoveryResult:
    """
    Outcome of file discovery.

    Attributes:
        paths: Relative posix paths to scan, in walk order.
        auto_deselected: Subset of `paths` excluded by the tool ignore file.
    """

    paths: list[str]
    auto_deselected: frozenset[str] = frozenset()


@dataclass(frozen=True)
class SelectionPolicy:
    """
    Resolved options for one scan + pack + render run.

    This is a pure value object produced by `core.config.resolve_policy`.
    Fields mirror the configuration keys; see `core.config.ConfigLayer` for
    how layers are merged.
    """

    cwd: Path
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE
    use_gitignore: bool = True
    use_ignore_file: bool = True
    hidden: bool = False
    max_bytes_per_file: int = DEFAULT_MAX_BYTES_PER_FILE
    model: str | None = DEFAULT_MODEL
    encoding: str | None = None
    format: OutputFormat = OutputFormat.MARKDOWN
    max_tokens: int | None = None
    pack_order: PackOrder = PackOrder.SMALL_FIRST
    strict: bool = True
    code_fences: bool = True
    header: str | None = None
    block_separator: str = DEFAULT_BLOCK_SEPARATOR
    xml_wrap: bool = False
    tags_wrap: bool = True
    prompt_text: str | None = None


@dataclass
class PackResult:
    """
    Output of the budget packer.

    Attributes:
        selected: Files chosen for the bundle, in pack order.
        rendered: The final bundle text. Set only when strict packing ran.
        tokens: Exact token count of `rendered`. Set only when strict packing
            ran; otherwise callers may fall back to summing entry tokens,
            which excludes wrapper and instruction overhead.
    """

    selected: list[FileEntry]
    rendered: str | None = None
    tokens: int | None = None
