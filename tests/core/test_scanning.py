"""
Tests for the scanning module using pytest.

Tests cover:
- summarize: totals and per-directory rollups skip unread entries
- scan: sequential scan, discovery order, progress reporting
- scan_concurrent: same result for any worker count, progress callbacks,
  cancellation, worker errors
- scan_with_display: display lifecycle and final state
"""

import threading

import pytest

from core.models import FileEntry
from core.scanning import scan, scan_concurrent, scan_with_display, summarize
from models import SkipReason
from ui.progress import ProgressState


@pytest.fixture
def sample_project(project, make_tree):
    """A small project with text, binary, nested and auto-deselected files."""
    make_tree(
        project,
        {
            ".ctxpackignore": "docs/**\n",
            "README.md": "hello world\n",
            "src/app.py": "def main():\n    return 1\n",
            "src/util/helpers.py": "x = 1\n",
            "src/blob.bin": b"\x00\x01",
            "docs/guide.md": "read the docs please\n",
            "empty.txt": "",
        },
    )
    return project


def as_rows(result):
    return [(f.rel_path, f.bytes, f.lines, f.tokens, f.skipped, f.reason) for f in result.files]


# ============================================================================
# Tests for summarize
# ============================================================================


@pytest.mark.unit
def test_summarize_only_counts_read_entries(make_entry):
    """Skipped entries should not contribute to totals or rollups."""
    files = [
        make_entry("a.py", tokens=10, lines=2),
        make_entry("src/b.py", tokens=5, lines=3),
        make_entry("src/c.py", tokens=7, lines=1),
        FileEntry(
            abs_path=make_entry("big.txt").abs_path,
            rel_path="big.txt",
            bytes=9999,
            skipped=True,
            reason=SkipReason.TOO_LARGE,
        ),
    ]

    result = summarize(files, {"src/c.py"})

    assert result.total_tokens == 22
    assert result.total_bytes == 88
    assert result.total_lines == 6
    assert set(result.by_dir) == {".", "src"}
    assert result.by_dir["src"].files == 2
    assert result.by_dir["src"].tokens == 12
    assert result.by_dir["."].bytes == 40
    assert result.auto_deselected == frozenset({"src/c.py"})


@pytest.mark.unit
def test_summarize_rollup_is_not_recursive(make_entry):
    """Files count toward their immediate parent only."""
    result = summarize([make_entry("a/b/c.py", tokens=3)])

    assert set(result.by_dir) == {"a/b"}


# ============================================================================
# Tests for scan
# ============================================================================


@pytest.mark.unit
def test_scan_sequential(sample_project, home, make_policy, word_counter, progress_display):
    """The sequential scan should classify every discovered file in order."""
    policy = make_policy(cwd=sample_project)

    result = scan(policy, counter=word_counter, progress_display=progress_display, home=home)

    assert [f.rel_path for f in result.files] == [
        "README.md",
        "empty.txt",
        "docs/guide.md",
        "src/app.py",
        "src/blob.bin",
        "src/util/helpers.py",
    ]
    blob = result.files[4]
    assert blob.skipped and blob.reason == SkipReason.BINARY_EXT
    assert result.auto_deselected == frozenset({"docs/guide.md"})
    assert result.total_tokens == sum(f.tokens for f in result.files)
    assert not result.cancelled


@pytest.mark.unit
def test_scan_reports_progress(sample_project, home, make_policy, zero_counter, progress_display):
    """Progress should start with the total and tick once per file."""
    policy = make_policy(cwd=sample_project)

    scan(policy, counter=zero_counter, progress_display=progress_display, home=home)

    assert progress_display.started == [("Scanning files", 6)]
    assert progress_display.updates == [1, 2, 3, 4, 5, 6]
    assert progress_display.completed[0][1] == 6


@pytest.mark.unit
def test_scan_empty_project(project, home, make_policy, zero_counter):
    """An empty project should scan to an empty result."""
    result = scan(make_policy(cwd=project), counter=zero_counter, home=home)

    assert result.files == []
    assert result.total_tokens == 0
    assert result.by_dir == {}


# ============================================================================
# Tests for scan_concurrent
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize("concurrency", [1, 2, 16, 64, 0, 500])
def test_scan_concurrent_matches_sequential(
    sample_project, home, make_policy, word_counter, concurrency
):
    """Any worker count should yield exactly the sequential result."""
    policy = make_policy(cwd=sample_project)

    expected = scan(policy, counter=word_counter, home=home)
    actual = scan_concurrent(policy, concurrency=concurrency, counter=word_counter, home=home)

    assert as_rows(actual) == as_rows(expected)
    assert actual.total_tokens == expected.total_tokens
    assert actual.total_bytes == expected.total_bytes
    assert actual.total_lines == expected.total_lines
    assert actual.by_dir == expected.by_dir
    assert actual.auto_deselected == expected.auto_deselected
    assert not actual.cancelled


@pytest.mark.unit
def test_scan_concurrent_progress(sample_project, home, make_policy, zero_counter):
    """The callback should fire with (0, total) first and reach (total, total)."""
    calls = []
    lock = threading.Lock()

    def on_progress(done, total):
        with lock:
            calls.append((done, total))

    scan_concurrent(
        make_policy(cwd=sample_project),
        concurrency=4,
        on_progress=on_progress,
        counter=zero_counter,
        home=home,
    )

    assert calls[0] == (0, 6)
    assert len(calls) == 7
    assert sorted(done for done, _ in calls) == list(range(7))
    assert all(total == 6 for _, total in calls)


@pytest.mark.unit
def test_scan_concurrent_pre_cancelled(sample_project, home, make_policy, zero_counter):
    """A scan cancelled before it starts should be empty and marked cancelled."""
    cancel = threading.Event()
    cancel.set()

    result = scan_concurrent(
        make_policy(cwd=sample_project), cancel=cancel, counter=zero_counter, home=home
    )

    assert result.files == []
    assert result.cancelled


@pytest.mark.unit
def test_scan_concurrent_cancel_midway(sample_project, home, make_policy, zero_counter):
    """Cancelling from the progress callback should stop the scan early."""
    cancel = threading.Event()

    def on_progress(done, total):
        if done >= 2:
            cancel.set()

    result = scan_concurrent(
        make_policy(cwd=sample_project),
        concurrency=1,
        on_progress=on_progress,
        cancel=cancel,
        counter=zero_counter,
        home=home,
    )

    assert result.cancelled
    assert len(result.files) == 2
    assert [f.rel_path for f in result.files] == ["README.md", "empty.txt"]


@pytest.mark.mock
def test_scan_concurrent_reraises_worker_errors(sample_project, home, make_policy, mocker):
    """Unexpected worker failures should propagate to the caller."""
    mocker.patch("core.scanning.classify_file", side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        scan_concurrent(
            make_policy(cwd=sample_project),
            concurrency=3,
            counter=mocker.Mock(),
            home=home,
        )


@pytest.mark.unit
def test_scan_concurrent_empty_project(project, home, make_policy, zero_counter):
    """An empty project should not start any work and not be cancelled."""
    calls = []

    result = scan_concurrent(
        make_policy(cwd=project),
        on_progress=lambda d, t: calls.append((d, t)),
        counter=zero_counter,
        home=home,
    )

    assert result.files == []
    assert not result.cancelled
    assert calls == [(0, 0)]


# ============================================================================
# Tests for scan_with_display
# ============================================================================


@pytest.mark.unit
def test_scan_with_display_lifecycle(sample_project, home, make_policy, zero_counter, progress_display):
    """The display should be started, updated and completed in green."""
    result = scan_with_display(
        make_policy(cwd=sample_project),
        progress_display,
        concurrency=2,
        counter=zero_counter,
        home=home,
    )

    assert progress_display.started == [("Scanning files", 6)]
    assert progress_display.updates == sorted(set(progress_display.updates))
    assert progress_display.updates[-1] == 6
    assert progress_display.completed == [
        (f"Scanned {len(result.files)} files", 6, ProgressState.COMPLETE)
    ]
