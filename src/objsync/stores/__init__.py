# src/objsync/stores/__init__.py
"""Object store adapters and the factory resolving store URIs."""

from pathlib import Path
from typing import List
from urllib.parse import SplitResult, urlsplit

from objsync.config import AppConfig, StoreConfig
from objsync.exceptions import ConfigError
from objsync.stores.base import ObjectStore
from objsync.stores.file import FileStore
from objsync.stores.s3 import S3Store

__all__: List[str] = ["FileStore", "ObjectStore", "S3Store", "open_store"]


def open_store(config: StoreConfig, app_config: AppConfig = AppConfig()) -> ObjectStore:
    """
    Creates the adapter for a store URI.

    The returned store must still be entered with `async with`.

    Args:
        config (StoreConfig): The store location and credentials.
        app_config (AppConfig): Used to size S3 connection pools and retries.

    Returns:
        ObjectStore: An unopened store adapter.
    """
    parts: SplitResult = urlsplit(config.uri)
    if parts.scheme == "s3":
        if not parts.netloc:
            raise ConfigError(f"Missing bucket name in '{config.uri}'.")
        return S3Store(
            config,
            bucket=parts.netloc,
            prefix=parts.path.lstrip("/"),
            max_pool_connections=app_config.workers + 50,
            max_attempts=app_config.max_attempts,
        )
    if parts.scheme == "file":
        return FileStore(Path(parts.path))
    if parts.scheme == "" and config.uri:
        return FileStore(Path(config.uri))
    raise ConfigError(f"Unsupported store '{config.uri}'.")
