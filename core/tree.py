"""
Directory tree built from scanned files.

The tree is an arena: every directory is a DirNode stored in `DirTree.nodes`
under its posix path ("." for the root), and children are referenced by
path. Nodes are rebuilt from scratch for every scan.
"""

from dataclasses import dataclass, field
from typing import Iterable

from core.models import FileEntry
from models import TreeMark

ROOT = "."


@dataclass
class DirNode:
    name: str
    path: str
    dirs: list[str] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)


@dataclass
class DirTree:
    """Arena of directory nodes keyed by posix path."""

    nodes: dict[str, DirNode]

    @property
    def root(self) -> DirNode:
        return self.nodes[ROOT]

    def children(self, node: DirNode) -> list[DirNode]:
        """Sub-directories of a node in name order."""
        return sorted((self.nodes[p] for p in node.dirs), key=lambda n: n.name)


@dataclass(frozen=True)
class TreeStats:
    """
    Eligibility rollup for one directory subtree.

    Attributes:
        tokens: Sum of tokens over eligible descendant files.
        included: Number of eligible descendant files.
        total: Number of descendant files.
    """

    tokens: int
    included: int
    total: int


@dataclass(frozen=True)
class TreeRow:
    """
    One visible row of the tree view.

    Directory rows carry `stats` and a `mark`; file rows carry `entry` and
    `included`.
    """

    depth: int
    path: str
    name: str
    is_dir: bool
    entry: FileEntry | None = None
    included: bool = False
    stats: TreeStats | None = None
    mark: TreeMark | None = None


def build_dir_tree(files: Iterable[FileEntry], root_name: str = ROOT) -> DirTree:
    """Group file entries into a directory tree by their relative paths."""
    nodes = {ROOT: DirNode(name=root_name, path=ROOT)}
    for entry in files:
        parts = entry.rel_path.split("/")
        node = nodes[ROOT]
        for part in parts[:-1]:
            sub_path = part if node.path == ROOT else f"{node.path}/{part}"
            if sub_path not in nodes:
                nodes[sub_path] = DirNode(name=part, path=sub_path)
                node.dirs.append(sub_path)
            node = nodes[sub_path]
        node.files.append(entry)
    return DirTree(nodes=nodes)


def dir_stats(tree: DirTree, path: str, eligible: set[str]) -> TreeStats:
    """Compute the eligibility rollup for the subtree rooted at `path`."""
    tokens = included = total = 0
    stack = [tree.nodes[path]]
    while stack:
        node = stack.pop()
        for entry in node.files:
            total += 1
            if entry.rel_path in eligible:
                included += 1
                tokens += entry.tokens
        stack.extend(tree.nodes[p] for p in node.dirs)
    return TreeStats(tokens=tokens, included=included, total=total)


def mark_for(stats: TreeStats) -> TreeMark:
    """
    Classify a directory by how many of its files are eligible.

    An empty directory counts as excluded.
    """
    if stats.total > 0 and stats.included == stats.total:
        return TreeMark.INCLUDED
    if stats.included > 0:
        return TreeMark.MIXED
    return TreeMark.EXCLUDED


def visible_rows(tree: DirTree, expanded: set[str], eligible: set[str]) -> list[TreeRow]:
    """
    Flatten the tree into display rows.

    The root is always shown. A directory's children are listed only when its
    path is in `expanded`: sub-directories first, then files, each in
    alphabetical order.
    """
    rows: list[TreeRow] = []

    def walk(node: DirNode, depth: int) -> None:
        stats = dir_stats(tree, node.path, eligible)
        rows.append(
            TreeRow(
                depth=depth,
                path=node.path,
                name=node.name,
                is_dir=True,
                stats=stats,
                mark=mark_for(stats),
            )
        )
        if node.path not in expanded:
            return
        for child in tree.children(node):
            walk(child, depth + 1)
        for entry in sorted(node.files, key=lambda e: e.rel_path):
            rows.append(
                TreeRow(
                    depth=depth + 1,
                    path=entry.rel_path,
                    name=entry.rel_path.rsplit("/", 1)[-1],
                    is_dir=False,
                    entry=entry,
                    included=entry.rel_path in eligible,
                )
            )

    walk(tree.root, 0)
    return rows


def files_under(tree: DirTree, path: str) -> list[str]:
    """All file paths in the subtree rooted at `path`."""
    out: list[str] = []
    stack = [tree.nodes[path]]
    while stack:
        node = stack.pop()
        out.extend(entry.rel_path for entry in node.files)
        stack.extend(tree.nodes[p] for p in node.dirs)
    return sorted(out)


def render_ascii_tree(paths: Iterable[str], root_name: str) -> str:
    """
    Render paths as an ASCII tree.

    The first line is `root_name/`. Directories come before files, both in
    alphabetical order, and directories carry a trailing slash.

    Example:
        proj/
        ├─ src/
        │  └─ main.py
        └─ README.md
    """
    root: dict = {"dirs": {}, "files": []}
    for p in paths:
        node = root
        parts = p.split("/")
        for part in parts[:-1]:
            node = node["dirs"].setdefault(part, {"dirs": {}, "files": []})
        node["files"].append(parts[-1])

    lines = [f"{root_name}/"]

    def walk(node: dict, prefix: str) -> None:
        entries = [(name, True) for name in sorted(node["dirs"])]
        entries += [(name, False) for name in sorted(node["files"])]
        for idx, (name, is_dir) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└─ " if last else "├─ "
            if is_dir:
                lines.append(f"{prefix}{branch}{name}/")
                walk(node["dirs"][name], prefix + ("   " if last else "│  "))
            else:
                lines.append(f"{prefix}{branch}{name}")

    walk(root, "")
    return "\n".join(lines)
