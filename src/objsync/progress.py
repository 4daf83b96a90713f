# src/objsync/progress.py
"""
Terminal progress bar for a running sync.

The bar is split into objects already present at the destination (`=`),
objects copied so far (`+`) and the remainder. It is redrawn periodically
from unsynchronized snapshots of the run counters, so it may lag behind
by a tick but never blocks the transfers.
"""

import asyncio
import time
from typing import Callable, Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from objsync.models import StatsSnapshot


class ProgressReporter:
    """Periodically renders the run counters to an interactive terminal."""

    def __init__(
        self,
        snapshot: Callable[[], StatsSnapshot],
        console: Optional[Console] = None,
        interval_s: float = 0.3,
        width: int = 80,
    ) -> None:
        """
        Args:
            snapshot (Callable[[], StatsSnapshot]): Reads the current counters.
            console (Console, optional): The rich console to draw on.
            interval_s (float): Seconds between redraws.
            width (int): Number of columns of the bar itself.
        """
        self._snapshot: Callable[[], StatsSnapshot] = snapshot
        self._console: Console = console or Console()
        self._interval_s: float = interval_s
        self._width: int = width
        self._last_copied: int = 0
        self._last_time: float = time.monotonic()
        self._task: Optional[asyncio.Task[None]] = None

    def render(self, stats: StatsSnapshot, now: float) -> str:
        """
        Formats one frame and advances the throughput baseline.

        Args:
            stats (StatsSnapshot): The counters to draw.
            now (float): The current monotonic time in seconds.

        Returns:
            str: The bar, the completed percentage and the copy rate.
        """
        elapsed: float = now - self._last_time
        rate: float = (stats.copied - self._last_copied) / elapsed if elapsed > 0 else 0.0
        self._last_copied = stats.copied
        self._last_time = now

        if stats.found <= 0:
            # Nothing listed yet
            return f"[{' ' * self._width}]  --%  {rate:.1f} per second"

        present: int = self._width * stats.present // stats.found
        copied: int = self._width * stats.copied // stats.found
        bar: str = "".join(
            "=" if i < present else "+" if i < present + copied else " "
            for i in range(self._width)
        )
        percent: int = (stats.present + stats.copied) * 100 // stats.found
        return f"[{bar}] {percent}%  {rate:.1f} per second"

    async def _run(self) -> None:
        with Live(
            Text(""),
            console=self._console,
            auto_refresh=False,
            transient=True,
        ) as live:
            while True:
                frame: str = self.render(self._snapshot(), time.monotonic())
                live.update(Text(frame), refresh=True)
                await asyncio.sleep(self._interval_s)

    def start(self) -> None:
        """Starts redrawing in the background."""
        self._last_time = time.monotonic()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stops redrawing and clears the bar."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
