"""
Progress reporting protocol for decoupling UI from the scan engine.

The scan engine only knows about `(done, total)` callbacks. This module
provides the displays those callbacks drive: a Rich implementation for the
CLI and a no-op implementation for tests, plus `as_progress_callback`, which
adapts a display into a callback that is safe to call from scan worker
threads.
"""

import threading
from types import TracebackType
from typing import Callable, Protocol

from rich.progress import Progress, TaskID
from ui.progress import (
    ProgressState,
    create_progress,
    create_task,
    update_progress,
)

ProgressCallback = Callable[[int, int], None]


class ProgressDisplay(Protocol):
    """
    Protocol for progress reporting.

    The lifecycle is:
    1. Context manager entry (__enter__)
    2. on_start() - Called once at the beginning
    3. on_update() - Called as files finish
    4. on_complete() - Called once at the end
    5. Context manager exit (__exit__)
    """

    def __enter__(self) -> "ProgressDisplay":
        """Enter the progress context."""

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the progress context."""

    def on_start(self, description: str, total: int | None) -> None:
        """
        Initialize progress reporting for a new task.

        Args:
            description: Initial description text to display.
            total: Total number of files. None for indeterminate progress.
        """

    def on_update(
        self, *, completed: int | None = None, description: str | None = None
    ) -> None:
        """
        Set the number of finished files, the description, or both.

        Args:
            completed: Absolute number of files done so far.
            description: New description text.
        """

    def on_complete(
        self,
        description: str,
        completed: int,
        total: int | None = None,
        state: ProgressState = ProgressState.COMPLETE,
    ) -> None:
        """
        Mark the task as finished.

        Args:
            description: Final description text to display.
            completed: Number of files that were done.
            total: Optional new total.
            state: Final colour state (COMPLETE, WARNING or ERROR).
        """


class RichProgressDisplay:
    """
    Rich implementation of ProgressDisplay.

    Must be used as a context manager: `with RichProgressDisplay() as rpd:`.
    """

    def __init__(self, progress: Progress | None = None) -> None:
        """
        Args:
            progress: Optional preconfigured Progress. Created lazily on
                context entry otherwise.
        """
        self._progress: Progress | None = progress
        self._task: TaskID | None = None

    def __enter__(self) -> "RichProgressDisplay":
        if self._progress is None:
            self._progress = create_progress()
        self._progress.__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._progress:
            self._progress.__exit__(exc_type, exc_val, exc_tb)

    def _require_progress(self) -> Progress:
        if not self._progress:
            raise RuntimeError(
                "RichProgressDisplay must be used as a context manager. "
                "Use: with RichProgressDisplay() as rpd:"
            )
        return self._progress

    def on_start(self, description: str, total: int | None) -> None:
        """
        Create the Rich task.

        Raises:
            RuntimeError: If not used as a context manager.
        """
        progress = self._require_progress()
        self._task = create_task(progress, description, total=total)

    def on_update(
        self, *, completed: int | None = None, description: str | None = None
    ) -> None:
        """
        Update the Rich task.

        Raises:
            RuntimeError: If on_start() was not called first.
            ValueError: If neither completed nor description is provided.
        """
        progress = self._require_progress()
        if self._task is None:
            raise RuntimeError("on_start() must be called before on_update()")
        if completed is None and not description:
            raise ValueError(
                "At least one of 'completed' or 'description' must be provided to on_update()"
            )

        if description:
            update_progress(
                progress,
                self._task,
                ProgressState.IN_PROGRESS,
                completed=completed,
                description=description,
            )
        else:
            update_progress(progress, self._task, completed=completed)

    def on_complete(
        self,
        description: str,
        completed: int,
        total: int | None = None,
        state: ProgressState = ProgressState.COMPLETE,
    ) -> None:
        progress = self._require_progress()
        if self._task is None:
            raise RuntimeError("on_start() must be called before on_complete()")

        update_progress(
            progress,
            self._task,
            state,
            completed=completed,
            total=total,
            description=description,
        )


class NoOpProgressDisplay:
    """
    No-op implementation of ProgressDisplay for testing.

    Records the calls it receives so tests can assert on them.

    Attributes (for test inspection):
        started: (description, total) pairs passed to on_start()
        updates: `completed` values passed to on_update()
        completed: (description, completed, state) triples passed to on_complete()
    """

    def __init__(self) -> None:
        self.started: list[tuple[str, int | None]] = []
        self.updates: list[int | None] = []
        self.completed: list[tuple[str, int, ProgressState]] = []

    def __enter__(self) -> "NoOpProgressDisplay":
        return self

    def __exit__(self, *args) -> None:
        """Exit the progress context (no-op)."""

    def on_start(self, description: str, total: int | None) -> None:
        self.started.append((description, total))

    def on_update(
        self, *, completed: int | None = None, description: str | None = None
    ) -> None:
        self.updates.append(completed)

    def on_complete(
        self,
        description: str,
        completed: int,
        total: int | None = None,
        state: ProgressState = ProgressState.COMPLETE,
    ) -> None:
        self.completed.append((description, completed, state))


def as_progress_callback(
    display: ProgressDisplay, description: str = "Scanning files"
) -> ProgressCallback:
    """
    Adapt a display into a `(done, total)` callback.

    The first call starts the task; later calls update it. Calls are
    serialized with a lock because scan workers report from their own
    threads. Out-of-order reports never move the counter backwards.

    Args:
        display: An entered ProgressDisplay.
        description: Description shown while scanning.

    Returns:
        A thread-safe callback for `scan_concurrent(on_progress=...)`.
    """
    lock = threading.Lock()
    state = {"started": False, "done": 0}

    def callback(done: int, total: int) -> None:
        with lock:
            if not state["started"]:
                display.on_start(description, total)
                state["started"] = True
            if done > state["done"]:
                state["done"] = done
                display.on_update(completed=done)

    return callback
