"""
Progress reporting for conversion runs.

Shows one updating line per run instead of a log line per archive. The
line tracks the group being converted as well as the book count.
"""

import sys
import time
from dataclasses import dataclass, field

BAR_WIDTH = 20
NAME_WIDTH = 25


@dataclass
class RunCounters:
    """Book and group counts for one run. Finished = succeeded + failed."""

    total: int
    groups: int = 0
    group: int = 0
    succeeded: int = 0
    failed: int = 0
    started: float = field(default_factory=time.monotonic)

    @property
    def done(self) -> int:
        return self.succeeded + self.failed

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.done)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def fraction(self) -> float:
        """Share of books finished; an empty run counts as finished."""
        if not self.total:
            return 1.0
        return min(1.0, self.done / self.total)

    def eta(self) -> float | None:
        """Seconds left at the average pace so far, None before the first book."""
        if not self.done:
            return None
        return self.elapsed / self.done * self.remaining


def format_duration(seconds: float | None) -> str:
    """Clock-style duration: ``MM:SS``, or ``H:MM:SS`` past an hour."""
    if seconds is None:
        return "--:--"
    minutes, secs = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def shorten(name: str, width: int = NAME_WIDTH) -> str:
    """Keep the tail of a long name, where the distinguishing part usually is."""
    if len(name) <= width:
        return name
    return "..." + name[-(width - 3):]


class ProgressReporter:
    """Renders conversion progress to the terminal.

    Usage:
        with ProgressReporter(total=15, groups=2) as progress:
            progress.start_group(1)
            progress.update(success=True, item_name="moby-dick.epub")
    """

    def __init__(
        self,
        total: int,
        groups: int = 0,
        desc: str = "Converting",
        unit: str = "books",
        stream=None,
    ):
        """Initialize progress reporter.

        Args:
            total: Number of archives in the run
            groups: Number of groups the archives are split into
            desc: Description prefix for the progress line
            unit: Unit name shown in the summary
            stream: Output stream (defaults to stderr)
        """
        self.counters = RunCounters(total=total, groups=groups)
        self.desc = desc
        self.unit = unit
        self._output = stream if stream is not None else sys.stderr
        self._is_tty = hasattr(self._output, "isatty") and self._output.isatty()
        self._width = 0
        self._item_name: str | None = None

    def __enter__(self):
        self.counters.started = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()

    def start_group(self, index: int) -> None:
        """Record that group ``index`` (1-based) has started."""
        self.counters.group = index
        self._render()

    def update(self, success: bool = True, item_name: str | None = None) -> None:
        """Record one finished archive.

        Args:
            success: Whether the archive was converted and written
            item_name: Name of the archive for display
        """
        if success:
            self.counters.succeeded += 1
        else:
            self.counters.failed += 1
        self._item_name = item_name
        self._render()

    def render_line(self) -> str:
        """Build the status line."""
        c = self.counters
        filled = round(BAR_WIDTH * c.fraction)
        line = f"{self.desc} [{'#' * filled}{'.' * (BAR_WIDTH - filled)}] {c.done}/{c.total}"
        if c.groups:
            line += f" group {c.group}/{c.groups}"
        if c.failed:
            line += f" ({c.failed} failed)"
        line += f" {format_duration(c.elapsed)} eta {format_duration(c.eta())}"
        if self._item_name:
            line += f" {shorten(self._item_name)}"
        return line

    def _should_print(self) -> bool:
        """Non-TTY streams get the first and last books and every tenth of the run."""
        c = self.counters
        step = max(1, c.total // 10)
        return c.done in (1, c.total) or c.done % step == 0

    def _render(self) -> None:
        line = self.render_line()
        if self._is_tty:
            self._output.write("\r" + line.ljust(self._width))
            self._width = len(line)
        elif self._should_print():
            self._output.write(line + "\n")
        else:
            return
        self._output.flush()

    def finish(self) -> None:
        """End the status line and print the run summary."""
        c = self.counters
        if self._is_tty:
            self._output.write("\n")

        summary = f"{self.desc} complete: {c.succeeded}/{c.total} {self.unit}"
        if c.failed:
            summary += f", {c.failed} failed"
        self._output.write(f"{summary} in {format_duration(c.elapsed)}\n")
        self._output.flush()
