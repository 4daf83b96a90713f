# src/objsync/models.py
"""
Records and counters shared by the listing, diff and replication stages.

A listing stream carries `ListingItem` values: an `ObjectRecord` for every
listed object, a `ListingFailure` when enumeration broke off, and the
`END_OF_STREAM` marker once the listing is exhausted.
"""

import threading
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ObjectRecord:
    """
    A point-in-time observation of one listed object.

    Attributes:
        key (str): The object key, unique and totally ordered within a store.
        size (int): The object size in bytes.
    """

    key: str
    size: int


@dataclass(frozen=True)
class ListingFailure:
    """
    Marks a listing that could not be continued.

    Consumers must read it as "nothing further is known on this side",
    never as "no further objects exist".

    Attributes:
        error (BaseException): The error that interrupted the listing.
    """

    error: BaseException


class EndOfStream:
    """Marks the natural exhaustion of a listing."""

    _instance: "EndOfStream" = None  # type: ignore[assignment]

    def __new__(cls) -> "EndOfStream":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM: EndOfStream = EndOfStream()

ListingItem = Union[ObjectRecord, ListingFailure, EndOfStream]


@dataclass(frozen=True)
class StatsSnapshot:
    """An immutable view of the sync counters."""

    found: int = 0
    missing: int = 0
    copied: int = 0
    failed: int = 0

    @property
    def present(self) -> int:
        """Number of source objects already present at the destination."""
        return self.found - self.missing


class SyncStats:
    """
    Counters of a single sync run.

    Every component of a run receives the same instance. Increments are
    serialized so concurrent updates are never lost; reads are plain
    attribute loads and may be momentarily stale.
    """

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self.found: int = 0
        self.missing: int = 0
        self.copied: int = 0
        self.failed: int = 0

    def add_found(self, n: int = 1) -> None:
        with self._lock:
            self.found += n

    def add_missing(self, n: int = 1) -> None:
        with self._lock:
            self.missing += n

    def add_copied(self, n: int = 1) -> None:
        with self._lock:
            self.copied += n

    def add_failed(self, n: int = 1) -> None:
        with self._lock:
            self.failed += n

    def snapshot(self) -> StatsSnapshot:
        """
        Returns the current counter values.

        Returns:
            StatsSnapshot: The counters as observed now.
        """
        return StatsSnapshot(
            found=self.found,
            missing=self.missing,
            copied=self.copied,
            failed=self.failed,
        )
