# tests/unit/test_progress.py
"""
Unit tests for the progress reporter.

Frames are checked through the pure `render` method with explicit
timestamps; the background task is only smoke-tested.
"""

import asyncio
import io

import pytest
from rich.console import Console

from objsync.models import StatsSnapshot, SyncStats
from objsync.progress import ProgressReporter


def make_reporter(stats: SyncStats, width: int = 80) -> ProgressReporter:
    console: Console = Console(file=io.StringIO(), force_terminal=True, width=120)
    return ProgressReporter(stats.snapshot, console=console, interval_s=0.01, width=width)


def test_placeholder_before_anything_is_found() -> None:
    """Tests that no ratio is computed while `found` is zero."""
    reporter: ProgressReporter = make_reporter(SyncStats())

    frame: str = reporter.render(StatsSnapshot(), reporter._last_time + 1)

    assert frame == f"[{' ' * 80}]  --%  0.0 per second"


def test_bar_segments_and_percentage() -> None:
    """
    Tests the partition of the bar into present, copied and remaining.

    Arrange:
        - 100 found, 50 missing of which 25 copied; a 10-column bar.
    Act:
        - Render a frame 2 seconds after the previous one.
    Assert:
        - 5 present columns, 2 copied columns, 3 blank ones.
        - 75% done and 12.5 copies per second.
    """
    reporter: ProgressReporter = make_reporter(SyncStats(), width=10)
    start: float = reporter._last_time

    frame: str = reporter.render(
        StatsSnapshot(found=100, missing=50, copied=25), start + 2
    )

    assert frame == "[=====++   ] 75%  12.5 per second"


def test_rate_is_relative_to_previous_frame() -> None:
    """Tests that the copy rate only counts copies since the last frame."""
    reporter: ProgressReporter = make_reporter(SyncStats(), width=10)
    start: float = reporter._last_time
    reporter.render(StatsSnapshot(found=10, missing=10, copied=4), start + 1)

    frame: str = reporter.render(StatsSnapshot(found=10, missing=10, copied=10), start + 4)

    assert frame.endswith("100%  2.0 per second")
    assert frame.startswith("[++++++++++]")


def test_complete_sync_of_present_objects() -> None:
    """Tests a run where everything already existed at the destination."""
    reporter: ProgressReporter = make_reporter(SyncStats(), width=4)

    frame: str = reporter.render(StatsSnapshot(found=3), reporter._last_time + 1)

    assert frame == "[====] 100%  0.0 per second"


@pytest.mark.asyncio
async def test_start_and_stop() -> None:
    """
    Tests that the background redraw runs and stops cleanly.
    """
    stats: SyncStats = SyncStats()
    stats.add_found(4)
    reporter: ProgressReporter = make_reporter(stats)

    reporter.start()
    await asyncio.sleep(0.05)
    await reporter.stop()

    assert reporter._task is None
