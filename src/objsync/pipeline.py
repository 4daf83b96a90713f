# src/objsync/pipeline.py
"""Core orchestration logic for the objsync pipeline."""

import asyncio
import logging
from typing import Optional

from rich.console import Console

from objsync.config import AppConfig
from objsync.diff import enqueue_missing
from objsync.listing import ListingIterator
from objsync.models import StatsSnapshot, SyncStats
from objsync.progress import ProgressReporter
from objsync.stores.base import ObjectStore
from objsync.worker import ReplicationPool

logger: logging.Logger = logging.getLogger(__name__)


class SyncPipeline:
    """Orchestrates one sync from start to finish."""

    def __init__(
        self,
        source: ObjectStore,
        destination: ObjectStore,
        app_config: AppConfig,
        shutdown_event: Optional[asyncio.Event] = None,
        console: Optional[Console] = None,
    ) -> None:
        """
        Initializes the pipeline with opened stores.

        Args:
            source (ObjectStore): The store objects are copied from.
            destination (ObjectStore): The store objects are copied to.
            app_config (AppConfig): The application configuration.
            shutdown_event (asyncio.Event, optional): Event to signal graceful shutdown.
            console (Console, optional): Console the progress bar is drawn on.
        """
        self._source: ObjectStore = source
        self._destination: ObjectStore = destination
        self._config: AppConfig = app_config
        self._shutdown_event: asyncio.Event = shutdown_event or asyncio.Event()
        self._console: Console = console or Console()

    def _progress_enabled(self) -> bool:
        return self._config.show_progress and self._console.is_terminal

    async def run(self) -> StatsSnapshot:
        """
        Copies every object of the key range missing at the destination.

        Listing failures after the first page and failed transfers only
        make the run incomplete; they are logged and counted.

        Returns:
            StatsSnapshot: The final counters of the run.

        Raises:
            ListingError: If either store cannot be listed at all.
            ListingOrderError: If either store lists keys out of order.
        """
        logger.info(
            f"Syncing between {self._source} and {self._destination} "
            f"(starting from {self._config.start!r})"
        )
        stats: SyncStats = SyncStats()
        source_listing: ListingIterator = ListingIterator(
            self._source, self._config.start, self._config.end, self._config.page_size
        )
        dest_listing: ListingIterator = ListingIterator(
            self._destination,
            self._config.start,
            self._config.end,
            self._config.page_size,
        )
        try:
            await source_listing.start()
            await dest_listing.start()
            await self._replicate_missing(source_listing, dest_listing, stats)
        finally:
            # An ordering error the diff never reached is raised here
            try:
                await source_listing.aclose()
            finally:
                await dest_listing.aclose()

        result: StatsSnapshot = stats.snapshot()
        logger.info(
            f"Found: {result.found}, copied: {result.copied}, failed: {result.failed}"
        )
        return result

    async def _replicate_missing(
        self,
        source_listing: ListingIterator,
        dest_listing: ListingIterator,
        stats: SyncStats,
    ) -> None:
        """
        Runs the diff and the replication pool to completion.

        Args:
            source_listing (ListingIterator): The started source listing.
            dest_listing (ListingIterator): The started destination listing.
            stats (SyncStats): Counters of the run.
        """
        pool: ReplicationPool = ReplicationPool(
            self._source,
            self._destination,
            stats,
            workers=self._config.workers,
            queue_size=self._config.queue_size,
            spill_threshold=self._config.spill_threshold,
            shutdown_event=self._shutdown_event,
        )
        reporter: Optional[ProgressReporter] = None
        if self._progress_enabled():
            reporter = ProgressReporter(
                stats.snapshot,
                console=self._console,
                interval_s=self._config.progress_interval_s,
            )
            reporter.start()

        pool.start()
        try:
            await enqueue_missing(
                source_listing,
                dest_listing,
                pool.queue,
                stats,
                workers=pool.workers,
                shutdown_event=self._shutdown_event,
            )
            await pool.join()
        except BaseException:
            await pool.cancel()
            raise
        finally:
            if reporter is not None:
                await reporter.stop()
