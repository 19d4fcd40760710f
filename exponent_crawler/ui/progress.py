"""Rich progress bar over listing pages."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    success: int = 0
    failed: int = 0
    empty: int = 0
    current_url: str | None = None

    @property
    def completed(self) -> int:
        return self.success + self.failed


class RateColumn(ProgressColumn):
    """Render pages processed per second, e.g. ``0.8 page/s``."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} page/s", style="progress.percentage")


class ProgressReporter:
    """Render progress and keep counters; thread-safe for worker updates."""

    def __init__(self, enabled: bool = True, console: Console | None = None, label: str = "questions") -> None:
        self.enabled = enabled
        self.label = label
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        console = self._console or Console()
        if not console.is_terminal:
            # Non-interactive output: stay silent instead of printing every refresh.
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<12}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            RateColumn(),
            TextColumn("[green]✓{task.fields[success]:>4}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>3}", justify="right"),
            TextColumn("[yellow]∅{task.fields[empty]:>3}", justify="right"),
            TextColumn("[dim]{task.fields[current_url]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=console,
        )
        try:
            self._progress.start()
        except LiveError:
            # Another live display owns the console.
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "crawl",
            total=total,
            label=self.label,
            success=0,
            failed=0,
            empty=0,
            current_url="waiting…",
        )

    def advance(
        self,
        success: bool = False,
        failed: bool = False,
        empty: bool = False,
        current_url: str | None = None,
    ) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        with self._lock:
            if current_url:
                self.state.current_url = current_url
            if success:
                self.state.success += 1
            if failed:
                self.state.failed += 1
            if empty:
                self.state.empty += 1
            if self._progress is None or self._task_id is None:
                return
            display_url = self.state.current_url or ""
            if len(display_url) > 60:
                display_url = display_url[:57] + "..."
            self._progress.update(
                self._task_id,
                completed=self.state.completed,
                success=self.state.success,
                failed=self.state.failed,
                empty=self.state.empty,
                current_url=display_url,
            )

    def close(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
                self._progress = None
            self._task_id = None


__all__ = ["ProgressReporter", "ProgressState", "RateColumn"]
