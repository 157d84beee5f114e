"""
Tests for the classifier module using pytest.

Tests cover:
- count_lines: LF, CRLF, trailing newline, empty text
- classify_file: binary extensions, non-regular files, size ceiling,
  I/O errors, empty files, measured metrics
"""

import pytest

from core.classifier import classify_file, count_lines
from models import SkipReason


# ============================================================================
# Tests for count_lines
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("", 1),
        ("one line", 1),
        ("a\nb", 2),
        ("a\nb\n", 3),
        ("a\r\nb\r\n", 3),
        ("a\r\nb\nc", 3),
        ("lone\rcarriage", 1),
    ],
)
def test_count_lines(text, expected):
    """LF and CRLF should both count as line breaks; a bare CR should not."""
    assert count_lines(text) == expected


# ============================================================================
# Tests for classify_file
# ============================================================================


@pytest.mark.unit
def test_classify_measures_text_file(tmp_path, word_counter):
    """A readable text file should carry bytes, lines and tokens."""
    path = tmp_path / "main.py"
    path.write_bytes(b"import os\nprint(os.name)\n")

    entry = classify_file(path, "main.py", 1000, word_counter)

    assert not entry.skipped
    assert entry.reason is None
    assert entry.bytes == 25
    assert entry.lines == 3
    assert entry.tokens == 3
    assert entry.ext == "py"
    assert entry.rel_path == "main.py"


@pytest.mark.mock
def test_classify_binary_extension_skips_without_stat(tmp_path, word_counter, mocker):
    """Known binary extensions should be skipped without touching the disk."""
    stat = mocker.patch("core.classifier.os.stat")

    entry = classify_file(tmp_path / "logo.PNG", "logo.PNG", 1000, word_counter)

    assert entry.skipped
    assert entry.reason == SkipReason.BINARY_EXT
    assert entry.bytes == 0
    stat.assert_not_called()
    assert word_counter.count_calls == []


@pytest.mark.unit
def test_classify_not_a_regular_file(tmp_path, word_counter):
    """Directories and other non-regular files should be skipped."""
    path = tmp_path / "dir.txt"
    path.mkdir()

    entry = classify_file(path, "dir.txt", 1000, word_counter)

    assert entry.skipped
    assert entry.reason == SkipReason.NOT_A_FILE


@pytest.mark.unit
def test_classify_too_large_keeps_real_size(tmp_path, word_counter):
    """Oversized files should be skipped but still report their size."""
    path = tmp_path / "big.txt"
    path.write_bytes(b"x" * 101)

    entry = classify_file(path, "big.txt", 100, word_counter)

    assert entry.skipped
    assert entry.reason == SkipReason.TOO_LARGE
    assert entry.bytes == 101
    assert entry.tokens == 0
    assert entry.lines == 0
    assert word_counter.count_calls == []


@pytest.mark.unit
def test_classify_size_at_ceiling_is_read(tmp_path, word_counter):
    """A file exactly at the ceiling should still be read."""
    path = tmp_path / "edge.txt"
    path.write_bytes(b"x" * 100)

    entry = classify_file(path, "edge.txt", 100, word_counter)

    assert not entry.skipped
    assert entry.bytes == 100


@pytest.mark.unit
def test_classify_missing_file_records_error(tmp_path, word_counter):
    """I/O errors should become the skip reason instead of raising."""
    entry = classify_file(tmp_path / "gone.txt", "gone.txt", 1000, word_counter)

    assert entry.skipped
    assert entry.reason
    assert entry.reason not in {r.value for r in SkipReason}
    assert entry.bytes == 0


@pytest.mark.mock
def test_classify_read_error_records_error(tmp_path, word_counter, mocker):
    """A failing read after a successful stat should also be a skip."""
    path = tmp_path / "locked.txt"
    path.write_text("secret", encoding="utf-8")
    mocker.patch("pathlib.Path.read_bytes", side_effect=PermissionError("denied"))

    entry = classify_file(path, "locked.txt", 1000, word_counter)

    assert entry.skipped
    assert entry.reason == "denied"


@pytest.mark.unit
def test_classify_empty_file(tmp_path, word_counter):
    """An empty file should be a valid entry with one line and no tokens."""
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")

    entry = classify_file(path, "empty.txt", 1000, word_counter)

    assert not entry.skipped
    assert entry.bytes == 0
    assert entry.lines == 1
    assert entry.tokens == 0


@pytest.mark.unit
def test_classify_invalid_utf8_is_counted(tmp_path, word_counter):
    """Invalid UTF-8 should be decoded with replacements, not skipped."""
    path = tmp_path / "latin1.txt"
    path.write_bytes(b"caf\xe9 ok\n")

    entry = classify_file(path, "latin1.txt", 1000, word_counter)

    assert not entry.skipped
    assert entry.bytes == 8
    assert entry.tokens == 2
    assert "�" in word_counter.count_calls[0]


@pytest.mark.unit
def test_classify_file_without_extension(tmp_path, word_counter):
    """Files without an extension should be read with an empty ext."""
    path = tmp_path / "Makefile"
    path.write_text("all:\n\techo hi\n", encoding="utf-8")

    entry = classify_file(path, "Makefile", 1000, word_counter)

    assert not entry.skipped
    assert entry.ext == ""


@pytest.mark.unit
def test_classify_real_png_reports_zero_bytes(tmp_path, word_counter):
    """A real photo.png should be skipped as binary with bytes=0."""
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 40)

    entry = classify_file(path, "photo.png", 512_000, word_counter)

    assert entry.skipped
    assert entry.reason == SkipReason.BINARY_EXT
    assert entry.bytes == 0


@pytest.mark.unit
def test_classify_oversized_text_file(tmp_path, word_counter):
    """A 600000-byte .txt over a 512000-byte ceiling keeps its real size."""
    path = tmp_path / "dump.txt"
    path.write_bytes(b"a" * 600_000)

    entry = classify_file(path, "dump.txt", 512_000, word_counter)

    assert entry.skipped
    assert entry.reason == SkipReason.TOO_LARGE
    assert entry.bytes == 600_000
