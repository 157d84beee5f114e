"""
Tests for the report module using pytest.

Tests cover:
- scan_table: statuses for read, skipped and auto-deselected files
- totals_line / by_dir_table: aggregates and ranking
- scan_json: machine-readable summary shape
- tree_view / print_scan_report: rendered output
"""

from pathlib import Path

import pytest
from rich.console import Console

from core.models import FileEntry
from core.scanning import summarize
from core.tree import build_dir_tree
from models import SkipReason
from ui.report import (
    by_dir_table,
    print_scan_report,
    scan_json,
    scan_table,
    totals_line,
    tree_view,
)


def entry(rel_path, tokens=10, **kwargs):
    kwargs.setdefault("bytes", tokens * 4)
    kwargs.setdefault("lines", 2)
    return FileEntry(
        abs_path=Path("/virtual") / rel_path, rel_path=rel_path, tokens=tokens, **kwargs
    )


@pytest.fixture
def result():
    """Scan result with read, skipped and auto-deselected files."""
    files = [
        entry("README.md", tokens=5),
        entry("src/main.py", tokens=40),
        entry("src/util.py", tokens=20),
        entry("docs/guide.md", tokens=30),
        entry(
            "logo.png",
            tokens=0,
            bytes=0,
            lines=0,
            skipped=True,
            reason=SkipReason.BINARY_EXT,
        ),
    ]
    return summarize(files, {"docs/guide.md"})


def render(renderable) -> str:
    console = Console(record=True, width=120, color_system=None)
    console.print(renderable)
    return console.export_text()


# ============================================================================
# Tests for scan_table and totals_line
# ============================================================================


@pytest.mark.unit
def test_scan_table_statuses(result):
    """Each row should carry ok, auto-off or the skip reason."""
    table = scan_table(result)
    text = render(table)

    assert table.row_count == 5
    assert "skipped: binary-ext" in text
    assert "auto-off" in text
    assert text.count(" ok") == 3


@pytest.mark.unit
def test_totals_line(result):
    """The totals line should exclude skipped files from the counts."""
    line = totals_line(result)

    assert "files=4" in line
    assert "skipped=1" in line
    assert "tokens=95" in line
    assert "lines=8" in line


# ============================================================================
# Tests for by_dir_table
# ============================================================================


@pytest.mark.unit
def test_by_dir_table_ranks_by_tokens(result):
    """Directories should be sorted by tokens, largest first."""
    text = render(by_dir_table(result))

    assert text.index("src") < text.index("docs") < text.index(" .")


@pytest.mark.unit
def test_by_dir_table_limit(result):
    """Only the top N directories should be listed."""
    assert by_dir_table(result, limit=1).row_count == 1


# ============================================================================
# Tests for scan_json
# ============================================================================


@pytest.mark.unit
def test_scan_json_shape(result):
    """The JSON summary should expose totals, files and directory rollups."""
    data = scan_json(result)

    assert data["totalTokens"] == 95
    assert data["totalBytes"] == 380
    assert data["totalLines"] == 8
    assert [f["path"] for f in data["files"]][-1] == "logo.png"
    assert data["files"][-1]["reason"] == "binary-ext"
    assert data["byDir"] == [
        {"dir": ".", "tokens": 5, "bytes": 20, "files": 1, "lines": 2},
        {"dir": "docs", "tokens": 30, "bytes": 120, "files": 1, "lines": 2},
        {"dir": "src", "tokens": 60, "bytes": 240, "files": 2, "lines": 4},
    ]


# ============================================================================
# Tests for tree_view and print_scan_report
# ============================================================================


@pytest.mark.unit
def test_tree_view_marks(result):
    """Directories should show their inclusion mark and eligible rollup."""
    tree = build_dir_tree([f for f in result.files if not f.skipped], "proj")
    eligible = {"README.md", "src/main.py"}

    text = render(tree_view(tree, eligible))

    assert "◐ proj/  45 tok  2/4" in text
    assert "◐ src/  40 tok  1/2" in text
    assert "○ docs/  0 tok  0/1" in text
    assert "● main.py  40 tok" in text
    assert "○ util.py  20 tok" in text


@pytest.mark.unit
def test_tree_view_dirs_only(result):
    """With show_files off only directories should be listed."""
    tree = build_dir_tree([f for f in result.files if not f.skipped], "proj")

    text = render(tree_view(tree, set(), show_files=False))

    assert "src/" in text
    assert "main.py" not in text


@pytest.mark.unit
def test_print_scan_report(result):
    """The report should print the table, totals and optional rollup."""
    console = Console(record=True, width=120, color_system=None)

    print_scan_report(result, console, by_dir=True)
    text = console.export_text()

    assert "Total:" in text
    assert "Top directories by tokens" in text
