"""
Type definitions and data models used across the ctxpack CLI application.

This module contains shared type definitions including enums and TypedDict
structures that are used throughout the codebase for type safety and consistency.
"""

from enum import StrEnum
from typing import TypedDict


class OutputFormat(StrEnum):
    """
    Enumeration of the text encodings a bundle can be rendered to.

    MARKDOWN and PLAIN render file bodies. JSON only serializes per-file
    metadata and never includes file content.
    """

    MARKDOWN = "markdown"
    PLAIN = "plain"
    JSON = "json"


class PackOrder(StrEnum):
    """
    Sort policy applied to eligible files before greedy budget admission.

    SMALL_FIRST maximizes the number of files that fit, LARGE_FIRST favours
    big files, and PATH keeps a deterministic lexicographic bundle order.
    """

    SMALL_FIRST = "small-first"
    LARGE_FIRST = "large-first"
    PATH = "path"


class SkipReason(StrEnum):
    """
    Well-known reasons for skipping a file during a scan.

    I/O failures are reported with the exception message instead of one of
    these values.
    """

    BINARY_EXT = "binary-ext"
    TOO_LARGE = "too-large"
    NOT_A_FILE = "not-a-file"


class TreeMark(StrEnum):
    """Inclusion state of a directory node in the selection tree."""

    INCLUDED = "included"
    MIXED = "mixed"
    EXCLUDED = "excluded"


class FileReport(TypedDict):
    """
    Type definition for one row of the JSON metadata output.

    Attributes:
        path: Posix path relative to the scan root.
        bytes: File size in bytes (0 for most skipped files).
        lines: Line count of the decoded content.
        tokens: Token count reported by the tokenizer.
        skipped: True if the file was skipped during the scan.
        reason: Skip reason, or None for included files.
    """

    path: str
    bytes: int
    lines: int
    tokens: int
    skipped: bool
    reason: str | None
