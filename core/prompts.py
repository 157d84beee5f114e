"""
Saved prompts and instruction composition.

Saved prompts are small text files (`.md`, `.txt`, `.prompt`) kept in a
prompts directory. They are looked up in the project first, then in the
user's global directory; on a name clash the first one found wins.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from constants import GLOBAL_DIR_NAME, PROMPT_FILE_EXTENSIONS

PROMPT_SECTION_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class SavedPrompt:
    """
    A reusable instruction snippet loaded from disk.

    Attributes:
        name: File name without its extension.
        path: Where the prompt was read from.
        text: The prompt's content.
        origin: "project" or "global".
    """

    name: str
    path: Path
    text: str
    origin: str


def prompt_dirs(cwd: Path, home: Path | None = None, dir_hint: str | None = None) -> list[Path]:
    """
    Directories searched for saved prompts, in priority order.

    An explicit `dir_hint` (relative to `cwd`) comes first, then
    `.ctxpack/prompts`, then `prompts`, then `~/.ctxpack/prompts`.
    """
    home = home if home is not None else Path.home()
    dirs = []
    if dir_hint:
        dirs.append((cwd / dir_hint).resolve())
    dirs.extend(
        [
            cwd / GLOBAL_DIR_NAME / "prompts",
            cwd / "prompts",
            home / GLOBAL_DIR_NAME / "prompts",
        ]
    )
    return dirs


def load_saved_prompts(
    cwd: Path, home: Path | None = None, dir_hint: str | None = None
) -> list[SavedPrompt]:
    """
    Load every saved prompt visible from `cwd`, sorted by name.

    Unreadable directories and files are skipped.
    """
    home = home if home is not None else Path.home()
    global_dir = home / GLOBAL_DIR_NAME / "prompts"
    found: dict[str, SavedPrompt] = {}

    for directory in prompt_dirs(cwd, home, dir_hint):
        try:
            children = sorted(directory.iterdir())
        except OSError:
            continue
        for path in children:
            if path.suffix.lower() not in PROMPT_FILE_EXTENSIONS or not path.is_file():
                continue
            if path.stem in found:
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except OSError:
                continue
            origin = "global" if directory == global_dir else "project"
            found[path.stem] = SavedPrompt(name=path.stem, path=path, text=text, origin=origin)

    return sorted(found.values(), key=lambda p: p.name)


def compose_prompt(
    available: Iterable[SavedPrompt],
    selected_names: Iterable[str],
    prompt_text: str | None = None,
) -> str | None:
    """
    Combine chosen saved prompts with ad-hoc instruction text.

    Each chosen prompt becomes a `### name` section; sections are separated
    by blank lines. The ad-hoc text follows after a `---` rule.

    Returns:
        The composed text, or None if there is nothing to compose.
    """
    chosen = set(selected_names)
    picks = [p for p in available if p.name in chosen]
    sections: list[str] = []
    if picks:
        sections.append("\n\n".join(f"### {p.name}\n{p.text.strip()}" for p in picks))
    if prompt_text and prompt_text.strip():
        sections.append(prompt_text.strip())
    return PROMPT_SECTION_SEPARATOR.join(sections) or None
