# src/objsync/exceptions.py
"""Custom exceptions for the objsync application."""


class ObjSyncError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(ObjSyncError):
    """Raised for configuration-related issues."""

    pass


class ListingError(ObjSyncError):
    """Raised when the first page of a store listing cannot be fetched."""

    pass


class ListingOrderError(ObjSyncError):
    """
    Raised when a store lists keys out of strictly increasing order.

    The merge-join diff is only correct on sorted input, so this error is
    never absorbed: it propagates to the pipeline and terminates the run.
    """

    pass


class ReplicationError(ObjSyncError):
    """Raised when a single object cannot be copied to the destination."""

    pass
