"""
Shared fixtures for core module tests.

This module provides reusable pytest fixtures for testing core functionality,
including deterministic token counters, file entry builders, and temporary
project trees.
"""

from pathlib import Path

import pytest

from core.file_io import MockFileReader
from core.models import FileEntry, SelectionPolicy
from core.tokens import MockTokenBudget, NoOpTokenCounter
from ui.progress_display import NoOpProgressDisplay


def count_words(text: str | None) -> int:
    """Deterministic stand-in tokenizer: one token per whitespace-separated word."""
    return len(text.split()) if text else 0


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create files under root from a {relative path: content} mapping."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree():
    """Factory that writes {relative path: content} files under a root."""
    return write_tree


@pytest.fixture
def word_counter():
    """Token counter that counts whitespace-separated words."""
    return NoOpTokenCounter(count_fn=count_words)


@pytest.fixture
def zero_counter():
    """Token counter that prices every string at zero tokens."""
    return NoOpTokenCounter(return_value=0)


@pytest.fixture
def token_budget():
    """Token budget for testing."""
    return MockTokenBudget(can_afford_return=True)


@pytest.fixture
def progress_display():
    """Progress display that records calls."""
    return NoOpProgressDisplay()


@pytest.fixture
def home(tmp_path):
    """Empty home directory so user-global files never leak into tests."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def project(tmp_path):
    """Empty project root."""
    path = tmp_path / "proj"
    path.mkdir()
    return path


@pytest.fixture
def make_entry():
    """Factory for FileEntry objects that live at a virtual path."""

    def _factory(rel_path: str, tokens: int = 10, **kwargs) -> FileEntry:
        kwargs.setdefault("bytes", tokens * 4)
        kwargs.setdefault("lines", 1)
        kwargs.setdefault("ext", rel_path.rsplit(".", 1)[-1] if "." in rel_path else "")
        return FileEntry(
            abs_path=Path("/virtual") / rel_path,
            rel_path=rel_path,
            tokens=tokens,
            **kwargs,
        )

    return _factory


@pytest.fixture
def contents_reader():
    """Factory for a MockFileReader serving contents keyed by file name."""

    def _factory(contents: dict[str, str]) -> MockFileReader:
        return MockFileReader(
            read_file_fn=lambda p: contents[p.relative_to("/virtual").as_posix()]
        )

    return _factory


@pytest.fixture
def make_policy(tmp_path):
    """Factory for SelectionPolicy with test-friendly defaults."""

    def _factory(**kwargs) -> SelectionPolicy:
        kwargs.setdefault("cwd", tmp_path / "proj")
        return SelectionPolicy(**kwargs)

    return _factory
