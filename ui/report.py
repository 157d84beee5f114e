"""
Rich rendering of scan results.

Builds the tables and trees the CLI prints: the per-file scan table, the
totals line, the top directories by tokens, and the directory tree with
inclusion marks. Everything here only formats data; nothing is computed
that the core does not already provide.
"""

from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from core.models import ScanResult
from core.tree import DirNode, DirTree, dir_stats, mark_for
from models import TreeMark
from utils import human_bytes

MARK_STYLES = {
    TreeMark.INCLUDED: ("●", "green"),
    TreeMark.MIXED: ("◐", "yellow"),
    TreeMark.EXCLUDED: ("○", "dim"),
}


def scan_table(result: ScanResult) -> Table:
    """Build the per-file table: path, size, lines, tokens and status."""
    table = Table(show_edge=False, header_style="bold")
    table.add_column("Path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Status")

    for entry in result.files:
        if entry.skipped:
            status = Text(f"skipped: {entry.reason}", style="yellow")
        elif entry.rel_path in result.auto_deselected:
            status = Text("auto-off", style="cyan")
        else:
            status = Text("ok", style="green")
        table.add_row(
            entry.rel_path,
            human_bytes(entry.bytes),
            str(entry.lines),
            str(entry.tokens),
            status,
        )
    return table


def totals_line(result: ScanResult) -> str:
    skipped = sum(1 for f in result.files if f.skipped)
    return (
        f"[bold]Total:[/bold] files={len(result.files) - skipped} "
        f"skipped={skipped} tokens={result.total_tokens} "
        f"lines={result.total_lines} bytes={human_bytes(result.total_bytes)}"
    )


def by_dir_table(result: ScanResult, limit: int = 10) -> Table:
    """Build a table of the directories holding the most tokens."""
    table = Table(title="Top directories by tokens", show_edge=False, header_style="bold")
    table.add_column("Directory", overflow="fold")
    table.add_column("Files", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Tokens", justify="right")

    ranked = sorted(result.by_dir.items(), key=lambda kv: (-kv[1].tokens, kv[0]))
    for directory, stats in ranked[:limit]:
        table.add_row(
            directory,
            str(stats.files),
            str(stats.lines),
            human_bytes(stats.bytes),
            str(stats.tokens),
        )
    return table


def scan_json(result: ScanResult) -> dict[str, Any]:
    """Return the machine-readable scan summary printed by `scan --json`."""
    return {
        "totalTokens": result.total_tokens,
        "totalBytes": result.total_bytes,
        "totalLines": result.total_lines,
        "files": [entry.to_report() for entry in result.files],
        "byDir": [
            {"dir": d, "tokens": s.tokens, "bytes": s.bytes, "files": s.files, "lines": s.lines}
            for d, s in sorted(result.by_dir.items())
        ],
    }


def _dir_label(tree: DirTree, node: DirNode, eligible: set[str]) -> Text:
    stats = dir_stats(tree, node.path, eligible)
    symbol, style = MARK_STYLES[mark_for(stats)]
    label = Text(f"{symbol} ", style=style)
    label.append(f"{node.name}/", style="bold")
    label.append(f"  {stats.tokens} tok  {stats.included}/{stats.total}", style="dim")
    return label


def tree_view(tree: DirTree, eligible: set[str], show_files: bool = True) -> Tree:
    """
    Build a Rich tree of directories with inclusion marks and eligible token
    rollups. Directories come before files, both alphabetical.
    """
    view = Tree(_dir_label(tree, tree.root, eligible))

    def walk(node: DirNode, branch: Tree) -> None:
        for child in tree.children(node):
            walk(child, branch.add(_dir_label(tree, child, eligible)))
        if not show_files:
            return
        for entry in sorted(node.files, key=lambda e: e.rel_path):
            included = entry.rel_path in eligible
            symbol, style = MARK_STYLES[
                TreeMark.INCLUDED if included else TreeMark.EXCLUDED
            ]
            label = Text(f"{symbol} ", style=style)
            label.append(entry.rel_path.rsplit("/", 1)[-1])
            label.append(f"  {entry.tokens} tok", style="dim")
            branch.add(label)

    walk(tree.root, view)
    return view


def print_scan_report(
    result: ScanResult, console: Console, by_dir: bool = False
) -> None:
    console.print(scan_table(result))
    console.print(totals_line(result))
    if by_dir and result.by_dir:
        console.print()
        console.print(by_dir_table(result))
