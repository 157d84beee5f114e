"""
Custom exception classes for the ctxpack CLI.

This module defines application-specific exceptions that are raised during
file discovery, tokenizer initialization, rendering, and output delivery.
These exceptions provide structured error information and diagnostic data
to help with debugging and error reporting.

Per-file scan problems (binary files, oversized files, unreadable files) are
never raised: they are recorded as skip reasons on the scanned entries.
"""

import os
from typing import Optional


class FileIOError(Exception):
    """
    Base exception for file I/O errors.

    Attributes:
        message: A human-readable error message describing what went wrong.
        file_path: The path of the file involved, if known.
        original_exception: The underlying exception that caused this error, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        file_path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "A file I/O error occurred"
        super().__init__(self.message)
        self.file_path = file_path
        self.original_exception = original_exception


class InvalidFilePathError(FileIOError):
    """
    Raised when a file path is invalid for the requested operation.

    Typically the parent directory of an output file does not exist or is
    not writable.
    """


class FileReadError(FileIOError):
    """
    Raised when a file cannot be read.

    During rendering a selected file is assumed to be readable; failing to
    read it is a defect state that surfaces as this exception instead of
    silently dropping the file from the bundle.
    """


class FileWriteError(FileIOError):
    """Raised when the rendered bundle cannot be written to its output file."""


class TokenizerInitError(Exception):
    """
    Raised when the tokenizer cannot be initialized.

    This is fatal to the whole run: without a working tokenizer no token
    counts can be produced.

    Attributes:
        message: A human-readable error message.
        encoding: The encoding name that failed to load.
        original_exception: The underlying exception, if any.
        diagnostic_info: Exception type, details and OS name for bug reports.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        encoding: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or f"Failed to initialize tokenizer '{encoding}'"
        super().__init__(self.message)
        self.encoding = encoding
        self.original_exception = original_exception
        self.diagnostic_info = {
            "type": (
                type(original_exception).__name__ if original_exception else "Unknown"
            ),
            "details": str(original_exception) if original_exception else "No details",
            "os_name": os.name,
        }


class DiscoveryError(Exception):
    """
    Raised when the file set cannot be enumerated.

    Covers malformed include/exclude globs and directories that cannot be
    listed. Discovery failures abort the scan.

    Attributes:
        message: A human-readable error message.
        path: The directory or pattern that caused the failure, if known.
        original_exception: The underlying exception, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "Failed to enumerate files"
        super().__init__(self.message)
        self.path = path
        self.original_exception = original_exception


class ClipboardError(Exception):
    """
    Raised when no clipboard mechanism could take the bundle.

    The CLI reports this as a warning; it never changes the exit code.
    """

    def __init__(self, message: Optional[str] = None):
        self.message = message or "No clipboard mechanism available"
        super().__init__(self.message)
