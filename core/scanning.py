"""
Scan engine: discover files, classify each one, and aggregate the results.

Two entry points produce identical results for the same filesystem state:
`scan` classifies files one after another, `scan_concurrent` spreads the
work over a bounded pool of worker threads. Entries always come back in
discovery order.
"""

import threading
from pathlib import Path
from typing import Callable, Iterable

from constants import DEFAULT_SCAN_CONCURRENCY, MAX_SCAN_CONCURRENCY
from core.classifier import classify_file
from core.discovery import discover
from core.models import DirStats, FileEntry, ScanResult, SelectionPolicy
from core.tokens import TokenCounter, get_token_counter
from ui.progress import ProgressState
from ui.progress_display import (
    NoOpProgressDisplay,
    ProgressDisplay,
    as_progress_callback,
)
from utils import parent_dir


def summarize(
    files: list[FileEntry], auto_deselected: Iterable[str] = ()
) -> ScanResult:
    """
    Build a ScanResult from classified entries.

    Totals and the per-directory rollup only count entries that were read.
    `by_dir` is keyed by each file's immediate parent directory.
    """
    result = ScanResult(files=files, auto_deselected=frozenset(auto_deselected))
    for entry in files:
        if entry.skipped:
            continue
        result.total_tokens += entry.tokens
        result.total_bytes += entry.bytes
        result.total_lines += entry.lines
        result.by_dir.setdefault(parent_dir(entry.rel_path), DirStats()).add(entry)
    return result


def _counter_for(policy: SelectionPolicy, counter: TokenCounter | None) -> TokenCounter:
    if counter is not None:
        return counter
    return get_token_counter(policy.model, policy.encoding)


def scan(
    policy: SelectionPolicy,
    counter: TokenCounter | None = None,
    progress_display: ProgressDisplay | None = None,
    home: Path | None = None,
) -> ScanResult:
    """
    Scan a project sequentially.

    Args:
        policy: The resolved selection policy.
        counter: Token counter override. Defaults to the shared tiktoken
            counter for the policy's model/encoding.
        progress_display: Optional entered display for progress reporting.
        home: Home directory override for the global ignore file.

    Returns:
        The aggregated ScanResult.

    Raises:
        DiscoveryError: If the file set cannot be enumerated.
        TokenizerInitError: If the tokenizer cannot be loaded.
    """
    counter = _counter_for(policy, counter)
    display = progress_display or NoOpProgressDisplay()
    discovered = discover(policy, home)
    root = Path(policy.cwd)

    display.on_start("Scanning files", len(discovered.paths))
    files = []
    for i, rel_path in enumerate(discovered.paths, start=1):
        files.append(
            classify_file(root / rel_path, rel_path, policy.max_bytes_per_file, counter)
        )
        display.on_update(completed=i)
    display.on_complete(f"Scanned {len(files)} files", len(files))

    return summarize(files, discovered.auto_deselected)


def scan_concurrent(
    policy: SelectionPolicy,
    *,
    concurrency: int = DEFAULT_SCAN_CONCURRENCY,
    on_progress: Callable[[int, int], None] | None = None,
    cancel: threading.Event | None = None,
    counter: TokenCounter | None = None,
    home: Path | None = None,
) -> ScanResult:
    """
    Scan a project with a bounded pool of worker threads.

    Workers take the next index from a shared, lock-guarded cursor and write
    each entry into its own slot, so the result order is discovery order no
    matter which worker finishes first. `on_progress` fires once with
    `(0, total)` before any work and then after every file; it may be called
    from worker threads. Workers check `cancel` before each file; a cancelled
    scan returns a partial result with `cancelled=True`.

    Args:
        policy: The resolved selection policy.
        concurrency: Number of workers, clamped to [1, 64].
        on_progress: Optional `(done, total)` callback.
        cancel: Optional event that stops the scan early.
        counter: Token counter override.
        home: Home directory override for the global ignore file.

    Returns:
        The aggregated ScanResult.

    Raises:
        DiscoveryError: If the file set cannot be enumerated.
        TokenizerInitError: If the tokenizer cannot be loaded.
    """
    counter = _counter_for(policy, counter)
    discovered = discover(policy, home)
    root = Path(policy.cwd)
    paths = discovered.paths
    total = len(paths)
    workers = max(1, min(MAX_SCAN_CONCURRENCY, concurrency))

    slots: list[FileEntry | None] = [None] * total
    lock = threading.Lock()
    cursor = 0
    done = 0
    errors: list[BaseException] = []

    if on_progress:
        on_progress(0, total)

    def work() -> None:
        nonlocal cursor, done
        while True:
            if cancel is not None and cancel.is_set():
                return
            with lock:
                if errors or cursor >= total:
                    return
                i = cursor
                cursor += 1
            rel_path = paths[i]
            try:
                slots[i] = classify_file(
                    root / rel_path, rel_path, policy.max_bytes_per_file, counter
                )
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                done += 1
                finished = done
            if on_progress:
                on_progress(finished, total)

    threads = [
        threading.Thread(target=work, name=f"ctxpack-scan-{n}", daemon=True)
        for n in range(min(workers, max(total, 1)))
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if errors:
        raise errors[0]

    files = [entry for entry in slots if entry is not None]
    result = summarize(files, discovered.auto_deselected)
    result.cancelled = len(files) < total
    return result


def scan_with_display(
    policy: SelectionPolicy,
    progress_display: ProgressDisplay,
    *,
    concurrency: int = DEFAULT_SCAN_CONCURRENCY,
    counter: TokenCounter | None = None,
    home: Path | None = None,
) -> ScanResult:
    """
    Run `scan_concurrent` while reporting to a progress display.

    The display must already be entered.
    """
    result = scan_concurrent(
        policy,
        concurrency=concurrency,
        on_progress=as_progress_callback(progress_display),
        counter=counter,
        home=home,
    )
    state = ProgressState.WARNING if result.cancelled else ProgressState.COMPLETE
    progress_display.on_complete(
        f"Scanned {len(result.files)} files", len(result.files), state=state
    )
    return result
