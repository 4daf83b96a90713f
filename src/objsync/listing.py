# src/objsync/listing.py
"""
Ordered listing of an object store.

A `ListingIterator` turns the paginated `list` call of a store into a
single ordered stream of records. Pages are fetched by a background task
into a queue holding one page of lookahead, so both stores of a sync list
in parallel with the diff and the transfers.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Union

from objsync.config import MAX_RESULTS
from objsync.exceptions import ListingError, ListingOrderError
from objsync.models import (
    END_OF_STREAM,
    EndOfStream,
    ListingFailure,
    ListingItem,
    ObjectRecord,
)
from objsync.stores.base import ObjectStore

logger: logging.Logger = logging.getLogger(__name__)


def check_order(page: List[ObjectRecord], last_key: str) -> None:
    """
    Verifies that a page continues a strictly increasing key sequence.

    The empty key is a placeholder some stores list for the prefix itself
    and is not checked.

    Args:
        page (List[ObjectRecord]): The page to verify.
        last_key (str): The last key emitted before this page.
    """
    for obj in page:
        if obj.key and obj.key <= last_key:
            raise ListingOrderError(
                f"The keys are out of order: {last_key!r} >= {obj.key!r}"
            )
        last_key = obj.key


class ListingIterator:
    """
    Lazy, single-pass, ordered listing of the keys in `(marker, end)`.

    The stream ends with `END_OF_STREAM`. When a page request fails after
    the first one, a `ListingFailure` precedes it.
    """

    def __init__(
        self,
        store: ObjectStore,
        marker: str = "",
        end: str = "",
        page_size: int = MAX_RESULTS,
    ) -> None:
        """
        Args:
            store (ObjectStore): The store to list.
            marker (str): Exclusive lower bound of the listed keys.
            end (str): Exclusive upper bound, empty for none.
            page_size (int): Maximum number of keys per request.
        """
        self.store: ObjectStore = store
        self._marker: str = marker
        self._end: str = end
        self._page_size: int = page_size
        self._queue: asyncio.Queue[ListingItem] = asyncio.Queue(maxsize=page_size)
        self._task: Optional[asyncio.Task[None]] = None
        self._done: bool = False
        # Set until the consumer has been handed the error
        self._order_error: Optional[ListingOrderError] = None

    async def start(self) -> None:
        """
        Fetches the first page and starts paging in the background.

        Raises:
            ListingError: If the first page cannot be fetched.
            ListingOrderError: If the first page is not sorted.
        """
        try:
            page: List[ObjectRecord] = await self.store.list(
                "", self._marker, self._page_size
            )
        except Exception as e:
            logger.error(f"Can't list {self.store}: {e}")
            raise ListingError(f"Can't list {self.store}: {e}") from e
        check_order(page, self._marker)
        self._task = asyncio.create_task(self._produce(page))

    async def _produce(self, page: List[ObjectRecord]) -> None:
        """Feeds the queue page by page until the listing ends."""
        try:
            await self._emit_pages(page)
        except ListingOrderError as e:
            logger.critical(f"Listing of {self.store} is not sorted: {e}")
            self._order_error = e
            await self._queue.put(ListingFailure(e))
        await self._queue.put(END_OF_STREAM)

    async def _emit_pages(self, page: List[ObjectRecord]) -> None:
        last_key: str = self._marker
        while page:
            check_order(page, last_key)
            for obj in page:
                if self._end and obj.key >= self._end:
                    return
                last_key = obj.key
                await self._queue.put(obj)
            try:
                page = await self.store.list("", last_key, self._page_size)
            except Exception as e:
                logger.error(f"Fail to list {self.store} after {last_key!r}: {e}")
                await self._queue.put(ListingFailure(e))
                return

    async def next_item(self) -> ListingItem:
        """
        Waits for the next item of the stream.

        Once `END_OF_STREAM` has been returned, it is returned again on every
        further call.

        Returns:
            ListingItem: A record, a listing failure, or `END_OF_STREAM`.

        Raises:
            ListingOrderError: If the store listed keys out of order.
        """
        if self._done:
            return END_OF_STREAM
        item: ListingItem = await self._queue.get()
        if isinstance(item, EndOfStream):
            self._done = True
        elif isinstance(item, ListingFailure) and isinstance(
            item.error, ListingOrderError
        ):
            self._order_error = None
            raise item.error
        return item

    def __aiter__(self) -> AsyncIterator[Union[ObjectRecord, ListingFailure]]:
        return self

    async def __anext__(self) -> Union[ObjectRecord, ListingFailure]:
        item: ListingItem = await self.next_item()
        if isinstance(item, EndOfStream):
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        """
        Stops the background paging, if still running.

        Raises:
            ListingOrderError: If the store listed keys out of order and
                the error was never raised by `next_item()`.
        """
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        if self._order_error is not None:
            error: ListingOrderError = self._order_error
            self._order_error = None
            raise error
