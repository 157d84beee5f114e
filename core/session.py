"""
Interactive selection state and background rescans.

A SelectionState is the mutable overlay a front end keeps on top of the
latest scan: which files the user turned off, which the tool ignore file
turned off, and the packing options in effect. It has a single owner; scans
running on other threads never touch it directly. Instead, RescanScheduler
posts finished scans to a queue and the owner applies them with
`apply_pending`, which drops results that a newer request has superseded.
"""

import threading
import time
from dataclasses import dataclass, field, replace
from queue import Empty, Queue
from typing import Callable

from constants import DEFAULT_RESCAN_DEBOUNCE_SECONDS, DEFAULT_SCAN_CONCURRENCY
from core.file_io import FileReader
from core.models import FileEntry, ScanResult, SelectionPolicy
from core.packing import pack
from core.prompts import SavedPrompt, compose_prompt
from core.rendering import render, render_json
from core.scanning import scan_concurrent
from core.tokens import TokenCounter
from core.tree import DirTree, build_dir_tree, files_under
from models import OutputFormat, PackOrder


@dataclass
class SelectionState:
    """
    Mutable selection overlay for one interactive session.

    Attributes:
        files: Non-skipped entries of the latest applied scan.
        manual_excluded: Paths the user turned off.
        auto_deselected: Paths turned off by the tool ignore file.
        max_tokens: Token budget, or None for no budget.
        pack_order: Sort policy for packing.
        format: Output format.
        xml_wrap: Render as XML.
        tags_wrap: Render with `<FILE_n>` tags.
        prompt_text: Ad-hoc instruction text.
        available_prompts: Saved prompts that can be picked.
        selected_prompts: Names of the picked saved prompts.
        expanded: Directory paths expanded in the tree view.
    """

    files: list[FileEntry] = field(default_factory=list)
    manual_excluded: set[str] = field(default_factory=set)
    auto_deselected: set[str] = field(default_factory=set)
    max_tokens: int | None = None
    pack_order: PackOrder = PackOrder.SMALL_FIRST
    format: OutputFormat = OutputFormat.MARKDOWN
    xml_wrap: bool = False
    tags_wrap: bool = True
    prompt_text: str | None = None
    available_prompts: list[SavedPrompt] = field(default_factory=list)
    selected_prompts: set[str] = field(default_factory=set)
    expanded: set[str] = field(default_factory=lambda: {"."})

    @classmethod
    def from_policy(cls, policy: SelectionPolicy) -> "SelectionState":
        """Seed a session with the packing options of a resolved policy."""
        return cls(
            max_tokens=policy.max_tokens,
            pack_order=policy.pack_order,
            format=policy.format,
            xml_wrap=policy.xml_wrap,
            tags_wrap=policy.tags_wrap,
            prompt_text=policy.prompt_text,
        )

    @property
    def paths(self) -> set[str]:
        return {f.rel_path for f in self.files}

    def tree(self, root_name: str = ".") -> DirTree:
        return build_dir_tree(self.files, root_name)


def eligible_files(state: SelectionState) -> list[FileEntry]:
    """Files that are neither manually excluded nor auto-deselected."""
    return [
        f
        for f in state.files
        if f.rel_path not in state.manual_excluded
        and f.rel_path not in state.auto_deselected
    ]


def apply_scan_result(state: SelectionState, result: ScanResult) -> None:
    """
    Replace the session's files with a new scan.

    Skipped entries are dropped. Manual exclusions and expanded directories
    that no longer exist are pruned; auto-deselections are taken from the
    scan.
    """
    state.files = [f for f in result.files if not f.skipped]
    paths = state.paths
    state.manual_excluded &= paths
    state.auto_deselected = set(result.auto_deselected) & paths

    dirs = set(state.tree().nodes)
    state.expanded &= dirs
    state.expanded.add(".")


def toggle_file(state: SelectionState, rel_path: str) -> bool:
    """
    Flip one file's inclusion.

    Turning an auto-deselected file on overrides the ignore file for this
    session.

    Returns:
        True if the file is eligible afterwards.
    """
    if rel_path not in state.paths:
        return False
    if rel_path in state.manual_excluded or rel_path in state.auto_deselected:
        state.manual_excluded.discard(rel_path)
        state.auto_deselected.discard(rel_path)
        return True
    state.manual_excluded.add(rel_path)
    return False


def toggle_dir(state: SelectionState, dir_path: str) -> bool:
    """
    Flip a whole directory.

    A fully included directory is turned off; a mixed or excluded one is
    turned fully on.

    Returns:
        True if the directory's files are eligible afterwards.
    """
    tree = state.tree()
    if dir_path not in tree.nodes:
        return False
    under = files_under(tree, dir_path)
    eligible = {f.rel_path for f in eligible_files(state)}
    if under and all(p in eligible for p in under):
        state.manual_excluded.update(under)
        return False
    state.manual_excluded.difference_update(under)
    state.auto_deselected.difference_update(under)
    return True


def session_prompt(state: SelectionState) -> str | None:
    return compose_prompt(state.available_prompts, state.selected_prompts, state.prompt_text)


def session_policy(state: SelectionState, policy: SelectionPolicy) -> SelectionPolicy:
    """Overlay the session's packing options on a base policy."""
    return replace(
        policy,
        max_tokens=state.max_tokens,
        pack_order=state.pack_order,
        format=state.format,
        xml_wrap=state.xml_wrap,
        tags_wrap=state.tags_wrap,
        prompt_text=session_prompt(state),
    )


def pack_selection(
    state: SelectionState,
    policy: SelectionPolicy,
    counter: TokenCounter | None = None,
    reader: FileReader | None = None,
) -> tuple[str, list[FileEntry], int]:
    """
    Pack and render the session's eligible files.

    JSON output lists metadata for every eligible file and skips packing.

    Returns:
        (text, selected, tokens). Without strict packing the token figure is
        the sum of the selected files' tokens and excludes wrapper overhead.
    """
    effective = session_policy(state, policy)
    eligible = eligible_files(state)
    if effective.format == OutputFormat.JSON and not (
        effective.xml_wrap or effective.tags_wrap
    ):
        return render_json(eligible), eligible, sum(f.tokens for f in eligible)

    result = pack(eligible, effective, counter, reader)
    if result.rendered is not None and result.tokens is not None:
        return result.rendered, result.selected, result.tokens
    text = render(result.selected, effective, reader)
    return text, result.selected, sum(f.tokens for f in result.selected)


def rescan(
    state: SelectionState,
    policy: SelectionPolicy,
    *,
    cancel: threading.Event | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    counter: TokenCounter | None = None,
) -> ScanResult:
    """Run a concurrent scan and apply it to the state unless it was cancelled."""
    result = scan_concurrent(
        policy,
        concurrency=DEFAULT_SCAN_CONCURRENCY,
        on_progress=on_progress,
        cancel=cancel,
        counter=counter,
    )
    if not result.cancelled:
        apply_scan_result(state, result)
    return result


@dataclass(frozen=True)
class ScanMessage:
    """A finished background scan, tagged with the request it answers."""

    generation: int
    result: ScanResult | None = None
    error: BaseException | None = None


class RescanScheduler:
    """
    Debounced, coalescing background rescans.

    Every `request()` bumps the generation and cancels the scan in flight.
    One worker thread waits out the debounce window, then runs the newest
    request; requests arriving meanwhile collapse into a single follow-up
    run. Results are only ever applied by the owner through
    `apply_pending()`.
    """

    def __init__(
        self,
        scan_fn: Callable[[threading.Event], ScanResult],
        debounce: float = DEFAULT_RESCAN_DEBOUNCE_SECONDS,
    ) -> None:
        """
        Args:
            scan_fn: Runs one scan, observing the given cancel event.
            debounce: Seconds to wait before starting a requested scan.
        """
        self._scan_fn = scan_fn
        self._debounce = debounce
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: int | None = None
        self._running = False
        self._cancel: threading.Event | None = None
        self._idle = threading.Event()
        self._idle.set()
        self._messages: Queue[ScanMessage] = Queue()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def request(self) -> int:
        """Schedule a rescan and return its generation."""
        with self._lock:
            self._generation += 1
            self._pending = self._generation
            if self._cancel is not None:
                self._cancel.set()
            if self._running:
                return self._generation
            self._running = True
            self._idle.clear()
            generation = self._generation

        worker = threading.Thread(target=self._worker, name="ctxpack-rescan", daemon=True)
        worker.start()
        return generation

    def _worker(self) -> None:
        while True:
            if self._debounce > 0:
                time.sleep(self._debounce)
            with self._lock:
                generation = self._pending
                self._pending = None
                if generation is None:
                    self._running = False
                    self._cancel = None
                    self._idle.set()
                    return
                cancel = threading.Event()
                self._cancel = cancel

            try:
                message = ScanMessage(generation, result=self._scan_fn(cancel))
            except Exception as e:
                message = ScanMessage(generation, error=e)
            self._messages.put(message)

    def drain(self) -> list[ScanMessage]:
        """Take every finished scan message off the queue."""
        out: list[ScanMessage] = []
        while True:
            try:
                out.append(self._messages.get_nowait())
            except Empty:
                return out

    def apply_pending(self, state: SelectionState) -> bool:
        """
        Apply the scan for the current generation, if it has arrived.

        Messages for older generations, and cancelled results, are dropped.

        Returns:
            True if the state was updated.

        Raises:
            Exception: The error raised by the current generation's scan.
        """
        current = self.generation
        applied = False
        for message in self.drain():
            if message.generation != current:
                continue
            if message.error is not None:
                raise message.error
            if message.result is not None and not message.result.cancelled:
                apply_scan_result(state, message.result)
                applied = True
        return applied

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no scan is running or pending."""
        return self._idle.wait(timeout)
