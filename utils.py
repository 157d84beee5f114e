"""
General utility functions for the CLI application.
"""

import os
from pathlib import PurePosixPath


def to_posix(path: str) -> str:
    """
    Convert an OS-specific relative path to forward-slash form.

    Args:
        path: A path using the platform separator.

    Returns:
        The same path with every separator replaced by "/".
    """
    return path.replace(os.sep, "/") if os.sep != "/" else path


def extension_of(path: str) -> str:
    """
    Return the lowercase extension of a path without its leading dot.

    Only the last suffix counts, so "archive.tar.gz" yields "gz". Dotfiles
    without a further suffix (".env") have no extension, matching how the
    filesystem reports them.

    Args:
        path: A posix or OS path.

    Returns:
        The lowercase extension, or an empty string when there is none.
    """
    return PurePosixPath(to_posix(path)).suffix.lower().lstrip(".")


def parent_dir(rel_path: str) -> str:
    """Return the posix parent directory of a relative path ("." for root files)."""
    parent = str(PurePosixPath(rel_path).parent)
    return parent if parent else "."


def human_bytes(n: int) -> str:
    """
    Format a byte count for display.

    Examples:
        >>> human_bytes(0)
        '0 B'
        >>> human_bytes(1536)
        '1.5 KB'
    """
    units = ["B", "KB", "MB", "GB"]
    value = float(n)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    if i == 0:
        return f"{int(value)} {units[i]}"
    return f"{value:.1f} {units[i]}" if value < 10 else f"{value:.0f} {units[i]}"


def split_globs(values: list[str] | tuple[str, ...] | None) -> list[str]:
    """
    Normalize list-like CLI options that may be passed comma separated.

    Both `--include a,b` and `--include a --include b` yield ["a", "b"].
    Commas inside brace groups ("**/*.{js,ts}") are part of the glob and are
    not split. Empty items are dropped.
    """
    if not values:
        return []
    out: list[str] = []
    for value in values:
        depth = 0
        current: list[str] = []
        for ch in str(value):
            if ch == "{":
                depth += 1
            elif ch == "}" and depth:
                depth -= 1
            if ch == "," and depth == 0:
                out.append("".join(current).strip())
                current = []
            else:
                current.append(ch)
        out.append("".join(current).strip())
    return [item for item in out if item]
