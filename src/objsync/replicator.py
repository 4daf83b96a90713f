# src/objsync/replicator.py
"""
Copies a single object from one store to another.

Objects up to the spill threshold are copied through memory. Larger ones
keep only their first `spill_threshold` bytes in memory and stream the rest
through an anonymous temporary file, so peak memory per transfer stays
bounded whatever the object size.
"""

import asyncio
import logging
import tempfile
from typing import BinaryIO, List

from objsync.config import SPILL_THRESHOLD
from objsync.exceptions import ReplicationError
from objsync.models import ObjectRecord
from objsync.stores.base import ObjectStore

logger: logging.Logger = logging.getLogger(__name__)


async def _read_range(store: ObjectStore, key: str, offset: int, length: int) -> bytes:
    chunks: List[bytes] = [chunk async for chunk in store.read(key, offset, length)]
    return b"".join(chunks)


async def replicate(
    source: ObjectStore,
    destination: ObjectStore,
    obj: ObjectRecord,
    spill_threshold: int = SPILL_THRESHOLD,
) -> None:
    """
    Copies `obj` from `source` to `destination`.

    Safe to run more than once for the same key. An object that fails to
    read and no longer exists at the source was deleted concurrently; that
    is not an error and the copy is skipped.

    Args:
        source (ObjectStore): The store to read from.
        destination (ObjectStore): The store to write to.
        obj (ObjectRecord): The listed object.
        spill_threshold (int): Size above which the object is spilled to disk.

    Raises:
        Exception: Any read, write or filesystem error of the transfer.
    """
    key: str = obj.key
    first_block: int = spill_threshold if obj.size > spill_threshold else -1
    try:
        data: bytes = await _read_range(source, key, 0, first_block)
    except Exception:
        if not await source.exists(key):
            logger.debug(f"'{key}' vanished from {source}, skipping.")
            return
        raise

    if first_block == -1:
        await destination.write(key, data, len(data))
        return

    loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
    # Anonymous on POSIX: already unlinked, reclaimed once closed
    with tempfile.TemporaryFile(prefix="objsync-") as spill:
        f: BinaryIO = spill  # type: ignore[assignment]
        await loop.run_in_executor(None, f.write, data)
        async for chunk in source.read(key, len(data), -1):
            await loop.run_in_executor(None, f.write, chunk)
        size: int = f.tell()
        if size < obj.size:
            raise ReplicationError(
                f"Short read of '{key}' from {source}: {size} of {obj.size} bytes"
            )
        f.seek(0)
        await destination.write(key, f, size)
