"""Multi-step spinner for the check pipeline."""

from __future__ import annotations

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn

PIPELINE_STEPS = (
    "Computing diff",
    "Planning searches",
    "Searching documentation",
    "Analyzing consistency",
)


class StageProgress:
    """Rich spinner showing the current pipeline step.

    Disabled (all calls no-ops) when the console is not a terminal, so hook
    output stays clean under CI and when stderr is redirected.
    """

    def __init__(self, console: Console, enabled: bool | None = None):
        self._console = console
        self._enabled = console.is_terminal if enabled is None else enabled
        self._progress: Progress | None = None
        self._task: TaskID | None = None
        self._step = 0

    def __enter__(self) -> StageProgress:
        if self._enabled:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task("Starting", total=None)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def step(self, description: str) -> None:
        self._step += 1
        if self._progress is not None and self._task is not None:
            label = f"[{self._step}/{len(PIPELINE_STEPS)}] {description}"
            self._progress.update(self._task, description=label)
