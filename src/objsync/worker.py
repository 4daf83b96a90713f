# src/objsync/worker.py
"""
Defines the replication workers and the pool running them.

Each worker is a long-lived task that pulls missing objects from the shared
bounded work queue and replicates them one at a time. Failures are counted
and logged but never retried, and never stop the other workers.
"""

import asyncio
import logging
import time
from typing import List, Optional

from botocore.exceptions import ClientError

from objsync.config import SPILL_THRESHOLD, WORK_QUEUE_SIZE
from objsync.exceptions import ReplicationError
from objsync.models import ObjectRecord, SyncStats
from objsync.replicator import replicate
from objsync.stores.base import ObjectStore

logger: logging.Logger = logging.getLogger(__name__)


async def replication_worker(
    worker_id: int,
    work_queue: "asyncio.Queue[Optional[ObjectRecord]]",
    source: ObjectStore,
    destination: ObjectStore,
    stats: SyncStats,
    spill_threshold: int = SPILL_THRESHOLD,
    shutdown_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Replicates objects from the work queue until it is closed.

    A `None` item closes the queue for this worker. Once a shutdown is
    signaled, remaining items are drained without being copied.

    Args:
        worker_id (int): A unique identifier for this worker.
        work_queue (asyncio.Queue[Optional[ObjectRecord]]): The queue from
            which to pull objects.
        source (ObjectStore): The store to copy from.
        destination (ObjectStore): The store to copy to.
        stats (SyncStats): Counters of the run.
        spill_threshold (int): Size above which objects are spilled to disk.
        shutdown_event (asyncio.Event, optional): Event to signal graceful shutdown.
    """
    logger.debug(f"Worker {worker_id} started.")
    while True:
        obj: Optional[ObjectRecord] = await work_queue.get()
        try:
            if obj is None:
                break
            if shutdown_event is not None and shutdown_event.is_set():
                continue
            start_time: float = time.monotonic()
            try:
                await replicate(source, destination, obj, spill_threshold)
            except (ClientError, OSError, ReplicationError) as e:
                logger.warning(
                    f"Failed to replicate {obj.key} from {source} to {destination}: {e}"
                )
                stats.add_failed()
            except Exception:
                logger.exception(
                    f"Unexpected error replicating {obj.key} from {source} "
                    f"to {destination}"
                )
                stats.add_failed()
            else:
                stats.add_copied()
                logger.debug(
                    f"Copied {obj.key} in {time.monotonic() - start_time:.3f}s"
                )
        finally:
            work_queue.task_done()
    logger.debug(f"Worker {worker_id} shutting down.")


class ReplicationPool:
    """A fixed number of replication workers sharing one bounded queue."""

    def __init__(
        self,
        source: ObjectStore,
        destination: ObjectStore,
        stats: SyncStats,
        workers: int,
        queue_size: int = WORK_QUEUE_SIZE,
        spill_threshold: int = SPILL_THRESHOLD,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Initializes the pool; no worker runs before `start()`.

        Args:
            source (ObjectStore): The store to copy from.
            destination (ObjectStore): The store to copy to.
            stats (SyncStats): Counters of the run.
            workers (int): Number of concurrent workers.
            queue_size (int): Capacity of the work queue.
            spill_threshold (int): Size above which objects are spilled to disk.
            shutdown_event (asyncio.Event, optional): Event to signal graceful shutdown.
        """
        self.workers: int = workers
        self.queue: asyncio.Queue[Optional[ObjectRecord]] = asyncio.Queue(
            maxsize=queue_size
        )
        self._source: ObjectStore = source
        self._destination: ObjectStore = destination
        self._stats: SyncStats = stats
        self._spill_threshold: int = spill_threshold
        self._shutdown_event: Optional[asyncio.Event] = shutdown_event
        self._tasks: List[asyncio.Task[None]] = []

    def start(self) -> None:
        """Spawns the worker tasks."""
        self._tasks = [
            asyncio.create_task(
                replication_worker(
                    worker_id=i,
                    work_queue=self.queue,
                    source=self._source,
                    destination=self._destination,
                    stats=self._stats,
                    spill_threshold=self._spill_threshold,
                    shutdown_event=self._shutdown_event,
                )
            )
            for i in range(self.workers)
        ]

    async def join(self) -> None:
        """Waits for every worker to exit."""
        await asyncio.gather(*self._tasks)

    async def cancel(self) -> None:
        """Stops all workers immediately."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
