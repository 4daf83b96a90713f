# src/objsync/stores/base.py
"""Abstract interface every object store adapter implements."""

import abc
from types import TracebackType
from typing import AsyncIterator, BinaryIO, List, Optional, Type, Union

from objsync.models import ObjectRecord

Body = Union[bytes, BinaryIO]


class ObjectStore(abc.ABC):
    """
    A key-addressed object store.

    Adapters are async context managers; network clients and other
    resources are only available between `__aenter__` and `__aexit__`.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Display name used in log messages."""

    def __str__(self) -> str:
        return self.name

    async def __aenter__(self) -> "ObjectStore":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        return None

    @abc.abstractmethod
    async def list(self, prefix: str, marker: str, limit: int) -> List[ObjectRecord]:
        """
        Lists up to `limit` objects whose keys sort strictly after `marker`.

        Args:
            prefix (str): Only keys starting with this prefix are listed.
            marker (str): Exclusive lower bound; empty lists from the start.
            limit (int): Maximum number of records to return.

        Returns:
            List[ObjectRecord]: Records in ascending key order; empty once
                the listing is exhausted.
        """

    @abc.abstractmethod
    def read(self, key: str, offset: int = 0, length: int = -1) -> AsyncIterator[bytes]:
        """
        Streams a byte range of an object.

        Args:
            key (str): The object key.
            offset (int): First byte to read.
            length (int): Number of bytes to read, -1 reads to the end.

        Returns:
            AsyncIterator[bytes]: The object content in chunks. Errors are
                raised from the first iteration.
        """

    @abc.abstractmethod
    async def write(self, key: str, body: Body, size: int) -> None:
        """
        Creates or fully replaces an object.

        Args:
            key (str): The object key.
            body (Body): The full content, in memory or as a readable file
                positioned at its start.
            size (int): The content length in bytes.
        """

    @abc.abstractmethod
    async def exists(self, key: str) -> bool:
        """Returns whether the object is currently present."""
