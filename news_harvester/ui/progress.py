"""Rich progress display for the extraction phase of a harvest run."""

from __future__ import annotations

from dataclasses import dataclass

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
from rich.status import Status
from rich.text import Text

from ..engine import RunOutcome

URL_DISPLAY_WIDTH = 60


@dataclass
class ProgressState:
    total: int
    saved: int = 0
    failed: int = 0
    words: int = 0
    current_url: str | None = None

    @property
    def done(self) -> int:
        return self.saved + self.failed


class ArticleRateColumn(ProgressColumn):
    """Articles finished per second, saved or failed."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} art/s", style="progress.percentage")


def _shorten(url: str) -> str:
    if len(url) <= URL_DISPLAY_WIDTH:
        return url
    return url[: URL_DISPLAY_WIDTH - 3] + "..."


class ProgressReporter:
    """Count saved/failed articles and render them as a live bar.

    Counting always happens; rendering only on an interactive console, so
    piped output stays clean.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None, label: str = "extract") -> None:
        self.enabled = enabled
        self.label = label
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        console = self._console or Console()
        if not console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<10}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            ArticleRateColumn(),
            TextColumn("[green]✓{task.fields[saved]:>3}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>3}", justify="right"),
            TextColumn("[cyan]{task.fields[words]:>7} words", justify="right"),
            TextColumn("[dim]{task.fields[current_url]}"),
            expand=True,
            transient=True,
            console=console,
        )
        try:
            self._progress.start()
        except LiveError:
            # Another live display owns the console
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "extract", total=total, label=self.label, saved=0, failed=0, words=0, current_url=""
        )

    def advance(self, ok: bool, current_url: str | None = None, words: int = 0) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        state = self.state
        if current_url:
            state.current_url = current_url
        if ok:
            state.saved += 1
            state.words += words
        else:
            state.failed += 1
        if self._progress is not None and self._task_id is not None:
            self._progress.update(
                self._task_id,
                completed=state.done,
                saved=state.saved,
                failed=state.failed,
                words=state.words,
                current_url=_shorten(state.current_url or ""),
            )

    def on_outcome(self, outcome: RunOutcome) -> None:
        """Callback for ``ExtractionPool.run(on_outcome=...)``."""

        words = outcome.extracted.word_count if outcome.extracted is not None else 0
        self.advance(outcome.ok, outcome.resolved_url or outcome.item.tracking_link, words)

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None


class ProgressActivity:
    """Spinner shown during the feed fan-out, before the item count is known."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console or Console()
        self._status: Status | None = None

    def start(self, message: str) -> None:
        if not self.enabled or self._status is not None or not self._console.is_terminal:
            return
        self._status = self._console.status(message, spinner="dots")
        self._status.start()

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


__all__ = ["ArticleRateColumn", "ProgressActivity", "ProgressReporter", "ProgressState"]
