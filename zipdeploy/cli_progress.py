"""CLI progress display for deployments.

Provides a Rich-based progress bar fed by the engine's per-upload
progress callback.
"""

from typing import Any, Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class DeployProgressDisplay:
    """Rich-based progress display for uploads.

    Use as a context manager and pass ``callback`` to the engine:

        >>> with DeployProgressDisplay() as display:
        ...     engine.deploy(locator, bucket, progress_callback=display.callback)
    """

    def __init__(self, enabled: bool = True) -> None:
        """Initialize the progress display.

        Args:
            enabled: When False the display renders nothing
        """
        self.enabled = enabled
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "DeployProgressDisplay":
        if self.enabled:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task("Downloading archive...", total=None)
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None

    def callback(self, name: str, done: int, total: int) -> None:
        """Progress callback: one entry finished uploading."""
        if self._progress is None or self._task is None:
            return
        self._progress.update(
            self._task,
            description=f"Uploaded {name}",
            completed=done,
            total=total,
        )
