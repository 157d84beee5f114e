"""
Tests for the file_io module using pytest.

Tests cover:
- FilesystemFileReader: reading files, invalid UTF-8, missing files
- CachingFileReader: one underlying read per path
- FilesystemFileWriter: factory validation, writing, appending, errors
- MockFileReader / MockFileWriter: call tracking and configurable behavior
"""

from pathlib import Path

import pytest

from core.exceptions import FileReadError, FileWriteError, InvalidFilePathError
from core.file_io import (
    CachingFileReader,
    FilesystemFileReader,
    FilesystemFileWriter,
    MockFileReader,
    MockFileWriter,
    decode_text,
)


# ============================================================================
# Tests for FilesystemFileReader.read_file
# ============================================================================


@pytest.mark.unit
def test_read_file_success(tmp_path):
    """Should read a text file exactly."""
    file_path = tmp_path / "test.txt"
    content = "Hello, world!\nThis is a test file.\n"
    file_path.write_text(content, encoding="utf-8")

    assert FilesystemFileReader().read_file(file_path) == content


@pytest.mark.unit
def test_read_file_keeps_crlf(tmp_path):
    """Line endings should not be normalized."""
    file_path = tmp_path / "crlf.txt"
    file_path.write_bytes(b"a\r\nb\r\n")

    assert FilesystemFileReader().read_file(file_path) == "a\r\nb\r\n"


@pytest.mark.unit
def test_read_file_invalid_utf8_is_replaced(tmp_path):
    """Invalid UTF-8 should be replaced with U+FFFD instead of failing."""
    file_path = tmp_path / "invalid.txt"
    file_path.write_bytes(b"ok\xff\xfe")

    result = FilesystemFileReader().read_file(file_path)

    assert result.startswith("ok")
    assert "�" in result


@pytest.mark.unit
def test_read_file_missing_raises(tmp_path):
    """A missing file should raise FileReadError with the path."""
    missing = tmp_path / "gone.txt"

    with pytest.raises(FileReadError) as exc_info:
        FilesystemFileReader().read_file(missing)

    assert exc_info.value.file_path == str(missing)
    assert isinstance(exc_info.value.original_exception, OSError)


@pytest.mark.unit
def test_decode_text_matches_reader(tmp_path):
    """decode_text should decode the same way the reader does."""
    data = b"caf\xc3\xa9 \xff"
    file_path = tmp_path / "x.txt"
    file_path.write_bytes(data)

    assert decode_text(data) == FilesystemFileReader().read_file(file_path)


# ============================================================================
# Tests for CachingFileReader
# ============================================================================


@pytest.mark.unit
def test_caching_reader_reads_each_path_once():
    """Repeated reads should hit the cache."""
    inner = MockFileReader(read_file_fn=lambda p: p.name)
    reader = CachingFileReader(inner)

    assert reader.read_file(Path("/a.txt")) == "a.txt"
    assert reader.read_file(Path("/a.txt")) == "a.txt"
    assert reader.read_file(Path("/b.txt")) == "b.txt"
    assert inner.read_file_calls == [Path("/a.txt"), Path("/b.txt")]


# ============================================================================
# Tests for FilesystemFileWriter
# ============================================================================


@pytest.mark.unit
def test_from_path_missing_parent(tmp_path):
    """A missing parent directory should be rejected up front."""
    with pytest.raises(InvalidFilePathError) as exc_info:
        FilesystemFileWriter.from_path(tmp_path / "nope" / "out.md")

    assert "does not exist" in exc_info.value.message


@pytest.mark.unit
def test_write_and_append(tmp_path):
    """write_file should truncate in 'w' mode and append in 'a' mode."""
    target = tmp_path / "out.md"
    writer = FilesystemFileWriter.from_path(target)

    writer.write_file("first\n")
    writer.write_file("second\n", mode="a")

    assert target.read_text(encoding="utf-8") == "first\nsecond\n"

    writer.write_file("reset")
    assert target.read_text(encoding="utf-8") == "reset"


@pytest.mark.unit
def test_write_without_path_raises():
    """A writer without a path should refuse to write."""
    with pytest.raises(InvalidFilePathError):
        FilesystemFileWriter().write_file("data")


@pytest.mark.mock
def test_write_os_error_is_wrapped(tmp_path, mocker):
    """OS errors while writing should become FileWriteError."""
    writer = FilesystemFileWriter.from_path(tmp_path / "out.md")
    mocker.patch("builtins.open", side_effect=PermissionError("denied"))

    with pytest.raises(FileWriteError) as exc_info:
        writer.write_file("data")

    assert isinstance(exc_info.value.original_exception, PermissionError)


# ============================================================================
# Tests for test doubles
# ============================================================================


@pytest.mark.unit
def test_mock_file_reader_precedence():
    """return_value should win over read_file_fn."""
    reader = MockFileReader(return_value="fixed", read_file_fn=lambda p: "fn")

    assert reader.read_file(Path("x")) == "fixed"
    assert reader.read_file_calls == [Path("x")]
    assert MockFileReader().read_file(Path("y")) == ""


@pytest.mark.unit
def test_mock_file_writer_stores_data():
    """MockFileWriter should accumulate data when asked to."""
    writer = MockFileWriter(store_written_data=True)

    writer.write_file("a")
    writer.write_file("b", mode="a")

    assert writer.written_data == "ab"
    assert writer.write_file_calls == [("a", "w"), ("b", "a")]
