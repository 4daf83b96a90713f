# src/objsync/diff.py
"""
Merge-join diff of two ordered listings.

Both listings are sorted by key, so the set of source keys missing at the
destination is computed in a single forward pass over both streams while
holding nothing but the current destination key in memory.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from objsync.listing import ListingIterator
from objsync.models import EndOfStream, ListingFailure, ListingItem, ObjectRecord, SyncStats

logger: logging.Logger = logging.getLogger(__name__)


async def iter_missing(
    source: ListingIterator,
    destination: ListingIterator,
    stats: SyncStats,
    shutdown_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[ObjectRecord]:
    """
    Yields the source records not confirmed present at the destination.

    Records come out in source order. A key equal to the destination key
    counts as present regardless of content. Once the destination listing
    is exhausted every remaining source record is missing. A listing
    failure on either side ends the diff early.

    Args:
        source (ListingIterator): The started source listing.
        destination (ListingIterator): The started destination listing.
        stats (SyncStats): Counters of the run; `found` is incremented for
            every source record consumed.
        shutdown_event (asyncio.Event, optional): Stops the diff when set.

    Yields:
        ObjectRecord: The next record to replicate.
    """
    dst_key: str = ""
    has_more: bool = True
    async for obj in source:
        if isinstance(obj, ListingFailure):
            logger.error(
                f"Listing {source.store} failed, stop replicating, "
                "waiting for pending ones"
            )
            return
        if shutdown_event is not None and shutdown_event.is_set():
            logger.warning("Shutdown initiated, stopping diff.")
            return
        stats.add_found()
        while has_more and obj.key > dst_key:
            item: ListingItem = await destination.next_item()
            if isinstance(item, EndOfStream):
                has_more = False
            elif isinstance(item, ListingFailure):
                logger.error(
                    f"Listing {destination.store} failed, stop replicating, "
                    "waiting for pending ones"
                )
                return
            else:
                dst_key = item.key
        if obj.key < dst_key or not has_more:
            yield obj


async def enqueue_missing(
    source: ListingIterator,
    destination: ListingIterator,
    work_queue: "asyncio.Queue[Optional[ObjectRecord]]",
    stats: SyncStats,
    workers: int,
    shutdown_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Feeds every missing record into the work queue, then closes it.

    The queue is closed with one `None` sentinel per worker once the diff
    ends, including after a listing failure. If the diff raises, the queue
    is left open and the caller is expected to cancel the workers.

    Args:
        source (ListingIterator): The started source listing.
        destination (ListingIterator): The started destination listing.
        work_queue (asyncio.Queue[Optional[ObjectRecord]]): The bounded
            queue drained by the replication workers.
        stats (SyncStats): Counters of the run.
        workers (int): Number of workers draining the queue.
        shutdown_event (asyncio.Event, optional): Stops the diff when set.
    """
    async for obj in iter_missing(source, destination, stats, shutdown_event):
        # Blocks while the workers are behind
        await work_queue.put(obj)
        stats.add_missing()
    for _ in range(workers):
        await work_queue.put(None)
