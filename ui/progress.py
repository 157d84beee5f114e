"""
Progress bar factory and state styling for scan progress.

Scans report `(done, total)` pairs; this module turns them into a Rich
progress bar with a spinner, a colour-coded description, a bar and a
percentage column. Output goes to stderr so that bundle text written to
stdout stays clean.
"""

from enum import StrEnum
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)


class ProgressState(StrEnum):
    """
    Colour used for a task's description, one per progress phase.

    Attributes:
        IN_PROGRESS: Magenta while files are being classified.
        COMPLETE: Green once the scan finished.
        WARNING: Yellow when the scan ended early (cancelled).
        ERROR: Red when the scan failed.
    """

    IN_PROGRESS = "magenta"
    COMPLETE = "green"
    WARNING = "yellow"
    ERROR = "red"


def styled(description: str, state: ProgressState) -> str:
    """Wrap a description in the Rich markup for a progress state."""
    return f"[{state}]{description}"


def create_progress(console: Optional[Console] = None) -> Progress:
    """
    Create a Rich Progress instance for file scans.

    Args:
        console: Console to draw on. Defaults to a stderr console.

    Returns:
        A configured, not yet started, Progress.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TaskProgressColumn(),
        console=console or Console(stderr=True),
        transient=True,
    )


def create_task(progress: Progress, description: str, total: Optional[int]) -> TaskID:
    """Add a task in the IN_PROGRESS state and return its id."""
    return progress.add_task(styled(description, ProgressState.IN_PROGRESS), total=total)


def update_progress(
    progress: Progress,
    task: TaskID,
    progress_state: Optional[ProgressState] = None,
    total: Optional[float] = None,
    completed: Optional[float] = None,
    advance: Optional[float] = None,
    description: Optional[str] = None,
) -> None:
    """
    Update a progress task's counters, description and state colour.

    `progress_state` and `description` go together: a new description is
    always rendered in a state colour.

    Raises:
        ValueError: If only one of progress_state and description is given.
    """
    if bool(progress_state) != bool(description):
        raise ValueError("progress_state and description must be provided together.")

    if description is not None and progress_state is not None:
        progress.update(
            task,
            total=total,
            completed=completed,
            advance=advance,
            description=styled(description, progress_state),
        )
    else:
        progress.update(task, total=total, completed=completed, advance=advance)
