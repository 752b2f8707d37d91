"""
Progress bars for rbsync using the Rich library.

Two stages show progress:
    - Searching Spotify for each Rekordbox track: MatchingProgressBar
    - Adding resolved tracks to the playlist, batch by batch: AddingProgressBar

Both are driven from the main thread only (the matcher calls its
on_result callback on the caller's thread), so no locking is needed.

Usage:
    from rbsync.core.progress import MatchingProgressBar

    with MatchingProgressBar(total=len(tracks)) as progress:
        matcher.match_tracks(tracks, on_result=lambda r: progress.update(r.is_resolved))
"""

from typing import Optional

from rich import get_console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, ProgressColumn, Task, TaskID
from rich.text import Text
from rich.theme import Theme


BAR_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",   # Spotify green
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.download": "white",
})

LABEL_WIDTH = 12
STATUS_WIDTH = 28


class PaddedColumn(ProgressColumn):
    """Renders a task field padded or cut (with ellipsis) to a fixed width."""

    def __init__(self, field: str, width: int, style: str = "none") -> None:
        self.field = field
        self.width = width
        self.style = style
        super().__init__()

    def render(self, task: Task) -> Text:
        if self.field == "description":
            markup = task.description
        else:
            markup = task.fields.get(self.field, "")
        text = Text.from_markup(markup, style=self.style)
        text.truncate(max_width=self.width, overflow="ellipsis", pad=True)
        return text


class StageProgressBar:
    """
    One Rich progress bar for a counted stage, usable as a context manager.

    Subclasses keep their own tallies and describe them in status().
    """

    def __init__(self, total: int, label: str) -> None:
        self.total = total
        self.label = label
        self.completed = 0

        self.console = get_console()
        self.progress = Progress(
            PaddedColumn("description", width=LABEL_WIDTH, style="bold"),
            PaddedColumn("status", width=STATUS_WIDTH),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            console=self.console,
            refresh_per_second=10,
        )
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "StageProgressBar":
        self.console.push_theme(BAR_THEME)
        self.progress.start()
        self._task = self.progress.add_task(self.label, total=self.total, status=self.status())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.progress.stop()
        self.console.pop_theme()
        self._task = None

    def status(self) -> str:
        return ""

    def _advance(self, count: int = 1) -> None:
        self.completed += count
        if self._task is not None:
            self.progress.update(self._task, completed=self.completed, status=self.status())


class MatchingProgressBar(StageProgressBar):
    """
    Progress bar for the Spotify search stage.

    Example:
        Searching   ✓ 45  ✗ 2  ⚠ 3   ━━━━━━━━━━━━━━━━━  50/100
    """

    def __init__(self, total: int, label: str = "Searching") -> None:
        self.resolved = 0
        self.unresolved = 0
        self.low_similarity = 0
        super().__init__(total=total, label=label)

    def status(self) -> str:
        text = f"[green]✓ {self.resolved}[/green]  [red]✗ {self.unresolved}[/red]"
        if self.low_similarity:
            text += f"  [yellow]⚠ {self.low_similarity}[/yellow]"
        return text

    def update(self, resolved: bool, low_similarity: bool = False) -> None:
        """Record one finished search."""
        if not resolved:
            self.unresolved += 1
        else:
            self.resolved += 1
            self.low_similarity += int(low_similarity)
        self._advance()


class AddingProgressBar(StageProgressBar):
    """
    Progress bar for the add-to-playlist stage, counted in tracks.

    Signature of update() matches PlaylistSyncer.sync's on_batch callback.
    """

    def __init__(self, total: int, label: str = "Adding") -> None:
        self.added = 0
        self.failed = 0
        super().__init__(total=total, label=label)

    def status(self) -> str:
        return f"[green]✓ {self.added}[/green]  [red]✗ {self.failed}[/red]"

    def update(self, count: int, success: bool) -> None:
        if success:
            self.added += count
        else:
            self.failed += count
        self._advance(count)
