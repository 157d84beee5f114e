"""
Tests for the prompts module using pytest.

Tests cover:
- prompt_dirs: search order
- load_saved_prompts: extensions, name clashes, origins, missing dirs
- compose_prompt: sections, ad-hoc text, empty input
"""

from pathlib import Path

import pytest

from core.prompts import SavedPrompt, compose_prompt, load_saved_prompts, prompt_dirs


def saved(name, text, origin="project"):
    return SavedPrompt(name=name, path=Path(f"/p/{name}.md"), text=text, origin=origin)


# ============================================================================
# Tests for prompt_dirs
# ============================================================================


@pytest.mark.unit
def test_prompt_dirs_order(project, home):
    """The hint should come first, the global directory last."""
    dirs = prompt_dirs(project, home, dir_hint="my-prompts")

    assert dirs == [
        (project / "my-prompts").resolve(),
        project / ".ctxpack" / "prompts",
        project / "prompts",
        home / ".ctxpack" / "prompts",
    ]


# ============================================================================
# Tests for load_saved_prompts
# ============================================================================


@pytest.mark.unit
def test_load_saved_prompts_filters_extensions(project, home, make_tree):
    """Only .md, .txt and .prompt files should be loaded."""
    make_tree(
        project,
        {
            "prompts/review.md": "Review it",
            "prompts/explain.txt": "Explain it",
            "prompts/tests.prompt": "Write tests",
            "prompts/script.py": "print()",
        },
    )

    prompts = load_saved_prompts(project, home)

    assert [p.name for p in prompts] == ["explain", "review", "tests"]
    assert all(p.origin == "project" for p in prompts)


@pytest.mark.unit
def test_load_saved_prompts_project_wins_over_global(project, home, make_tree):
    """On a name clash the project prompt should shadow the global one."""
    make_tree(project, {".ctxpack/prompts/review.md": "local review"})
    make_tree(
        home,
        {
            ".ctxpack/prompts/review.md": "global review",
            ".ctxpack/prompts/docs.md": "global docs",
        },
    )

    prompts = {p.name: p for p in load_saved_prompts(project, home)}

    assert prompts["review"].text == "local review"
    assert prompts["review"].origin == "project"
    assert prompts["docs"].origin == "global"


@pytest.mark.unit
def test_load_saved_prompts_dir_hint(project, home, make_tree):
    """A directory hint should be searched before the defaults."""
    make_tree(
        project,
        {"custom/review.md": "hinted", "prompts/review.md": "default"},
    )

    prompts = load_saved_prompts(project, home, dir_hint="custom")

    assert [p.text for p in prompts] == ["hinted"]


@pytest.mark.unit
def test_load_saved_prompts_no_directories(project, home):
    """Missing prompt directories should yield an empty list."""
    assert load_saved_prompts(project, home) == []


# ============================================================================
# Tests for compose_prompt
# ============================================================================


@pytest.mark.unit
def test_compose_prompt_sections_and_text():
    """Chosen prompts become sections, ad-hoc text follows a rule."""
    available = [saved("a", "  first\n"), saved("b", "second"), saved("c", "unused")]

    result = compose_prompt(available, ["b", "a"], "  and also this  ")

    assert result == "### a\nfirst\n\n### b\nsecond\n\n---\n\nand also this"


@pytest.mark.unit
def test_compose_prompt_only_text():
    """Without picks, only the ad-hoc text should remain."""
    assert compose_prompt([saved("a", "x")], [], "just this") == "just this"


@pytest.mark.unit
@pytest.mark.parametrize("text", [None, "", "   "])
def test_compose_prompt_nothing(text):
    """No picks and blank text should yield None."""
    assert compose_prompt([saved("a", "x")], ["missing"], text) is None
