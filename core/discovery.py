"""
File discovery for a project directory.

Walks the scan root and produces the relative posix paths that pass the
include/exclude globs, the root and nested `.gitignore` files, the hidden-file
rule and, optionally, the tool ignore file. Globs use git wildmatch semantics
(via pathspec), so a pattern without a slash matches at any depth, and brace
groups such as `**/*.{png,jpg}` are expanded before compiling.
"""

import os
from pathlib import Path
from typing import Iterable

import pathspec

from constants import GLOBAL_DIR_NAME, IGNORE_FILE_NAME
from core.exceptions import DiscoveryError
from core.models import DiscoveryResult, SelectionPolicy
from utils import to_posix


def _split_top_level(body: str) -> list[str]:
    options: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            options.append("".join(current))
            current = []
        else:
            current.append(ch)
    options.append("".join(current))
    return options


def expand_braces(pattern: str) -> list[str]:
    """
    Expand shell-style brace groups in a glob.

    Nested groups are expanded recursively. An unbalanced brace is kept as a
    literal character, and a group without a comma ("{a}") stands for its
    single option.

    Examples:
        >>> expand_braces("**/*.{js,ts}")
        ['**/*.js', '**/*.ts']
        >>> expand_braces("src/{a,b/{c,d}}/x")
        ['src/a/x', 'src/b/c/x', 'src/b/d/x']
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    end = -1
    for i in range(start, len(pattern)):
        if pattern[i] == "{":
            depth += 1
        elif pattern[i] == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end == -1:
        return [pattern]

    prefix, body, suffix = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]
    expanded: list[str] = []
    for option in _split_top_level(body):
        for item in expand_braces(prefix + option + suffix):
            if item not in expanded:
                expanded.append(item)
    return expanded


def compile_globs(patterns: Iterable[str]) -> pathspec.GitIgnoreSpec:
    """
    Compile globs into a gitignore-style spec.

    Raises:
        DiscoveryError: If a pattern is malformed.
    """
    lines: list[str] = []
    for pattern in patterns:
        lines.extend(expand_braces(pattern))
    try:
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except (ValueError, TypeError) as e:
        raise DiscoveryError(
            message=f"Invalid glob pattern: {e}",
            path=", ".join(lines),
            original_exception=e,
        ) from e


def read_pattern_file(path: Path) -> list[str]:
    """
    Read an ignore-style file into a list of patterns.

    Lines are stripped; blank lines and `#` comments are dropped. A missing or
    unreadable file yields no patterns.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []
    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def read_gitignore_lines(path: Path) -> list[str]:
    """
    Read a `.gitignore` file verbatim.

    Lines are kept as written: escaped trailing spaces and a leading `\\#`
    are significant to git. GitIgnoreSpec drops comments and blanks itself.
    """
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def load_ignore_patterns(root: Path, home: Path | None = None) -> list[str]:
    """
    Load the tool ignore patterns for a project.

    The project file (`<root>/.ctxpackignore`) comes first, followed by the
    user-global file (`~/.ctxpack/.ctxpackignore`).

    Args:
        root: The scan root.
        home: Home directory override, mainly for tests.

    Returns:
        The concatenated patterns, possibly empty.
    """
    home = home if home is not None else Path.home()
    project = read_pattern_file(root / IGNORE_FILE_NAME)
    global_ = read_pattern_file(home / GLOBAL_DIR_NAME / IGNORE_FILE_NAME)
    return project + global_


class _GitIgnoreStack:
    """The `.gitignore` specs found while walking, keyed by their directory."""

    def __init__(self) -> None:
        self._specs: dict[str, pathspec.GitIgnoreSpec] = {}

    def load(self, abs_dir: str, rel_dir: str) -> None:
        patterns = read_gitignore_lines(Path(abs_dir) / ".gitignore")
        if not any(line.strip() for line in patterns):
            return
        try:
            self._specs[rel_dir] = pathspec.GitIgnoreSpec.from_lines(patterns)
        except (ValueError, TypeError) as e:
            raise DiscoveryError(
                message=f"Invalid .gitignore pattern: {e}",
                path=os.path.join(abs_dir, ".gitignore"),
                original_exception=e,
            ) from e

    def ignores(self, rel_path: str, is_dir: bool = False) -> bool:
        candidate = rel_path + "/" if is_dir else rel_path
        for base, spec in self._specs.items():
            if base == ".":
                local = candidate
            elif candidate.startswith(base + "/"):
                local = candidate[len(base) + 1 :]
            else:
                continue
            if local and spec.match_file(local):
                return True
        return False


def discover_paths(
    root: Path,
    include: Iterable[str],
    exclude: Iterable[str],
    use_gitignore: bool = True,
    hidden: bool = False,
    extra_ignore: Iterable[str] = (),
) -> list[str]:
    """
    Enumerate the files under `root` that pass every filter.

    The walk is deterministic (entries sorted by name) and does not follow
    symlinks. Only regular files are returned; symlinked files are skipped.

    Args:
        root: Directory to walk.
        include: Globs a file must match.
        exclude: Globs that reject a file or a whole directory.
        use_gitignore: Honour the root and nested `.gitignore` files.
        hidden: Keep dotfiles and dot-directories.
        extra_ignore: Additional exclude globs (the tool ignore patterns).

    Returns:
        Relative posix paths in walk order.

    Raises:
        DiscoveryError: If a glob is malformed or a directory cannot be listed.
    """
    if not root.is_dir():
        raise DiscoveryError(message=f"Not a directory: {root}", path=str(root))

    include_spec = compile_globs(include)
    exclude_spec = compile_globs([*exclude, *extra_ignore])
    gitignore = _GitIgnoreStack()

    def on_error(err: OSError) -> None:
        raise DiscoveryError(
            message=f"Cannot list directory: {err.filename}",
            path=err.filename,
            original_exception=err,
        ) from err

    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        rel_dir = to_posix(os.path.relpath(dirpath, root))
        prefix = "" if rel_dir == "." else rel_dir + "/"
        if use_gitignore:
            gitignore.load(dirpath, rel_dir)

        kept_dirs = []
        for name in sorted(dirnames):
            if not hidden and name.startswith("."):
                continue
            rel = prefix + name
            if exclude_spec.match_file(rel + "/"):
                continue
            if use_gitignore and gitignore.ignores(rel, is_dir=True):
                continue
            kept_dirs.append(name)
        dirnames[:] = kept_dirs

        for name in sorted(filenames):
            if not hidden and name.startswith("."):
                continue
            rel = prefix + name
            if not include_spec.match_file(rel) or exclude_spec.match_file(rel):
                continue
            if use_gitignore and gitignore.ignores(rel):
                continue
            path = os.path.join(dirpath, name)
            if os.path.islink(path) or not os.path.isfile(path):
                continue
            found.append(rel)
    return found


def discover(policy: SelectionPolicy, home: Path | None = None) -> DiscoveryResult:
    """
    Discover the files to scan for a policy.

    When the tool ignore file is enabled and yields patterns, the listed set is
    computed without them and the files they would exclude are reported as
    auto-deselected: they stay visible to the scan but start out unselected.

    Args:
        policy: The resolved selection policy.
        home: Home directory override for the global ignore file.

    Returns:
        DiscoveryResult with the listed paths and the auto-deselected subset.

    Raises:
        DiscoveryError: On malformed globs or unreadable directories.
    """
    root = Path(policy.cwd)
    listed = discover_paths(
        root,
        policy.include,
        policy.exclude,
        use_gitignore=policy.use_gitignore,
        hidden=policy.hidden,
    )
    if not policy.use_ignore_file:
        return DiscoveryResult(paths=listed)

    ignore_patterns = load_ignore_patterns(root, home)
    if not ignore_patterns:
        return DiscoveryResult(paths=listed)

    ignore_spec = compile_globs(ignore_patterns)
    auto_deselected = frozenset(p for p in listed if ignore_spec.match_file(p))
    return DiscoveryResult(paths=listed, auto_deselected=auto_deselected)
