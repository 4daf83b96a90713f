# src/objsync/config.py
"""
Configuration for objsync.

This module centralizes all configuration: store locations and credentials
are read from environment variables, and operational parameters are
collected in typed, frozen dataclasses used throughout the application.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from objsync.exceptions import ConfigError

MAX_RESULTS: int = 10240
WORK_QUEUE_SIZE: int = 1024
SPILL_THRESHOLD: int = 10 << 20


def _get_env_var(name: str, default: Optional[str] = None) -> str:
    """
    Retrieves a required environment variable.

    Args:
        name (str): The name of the environment variable.
        default (str, optional): The default value if the variable is not set.

    Returns:
        str: The value of the environment variable.
    """
    value: Optional[str] = os.environ.get(name, default)
    if not value:
        raise ConfigError(f"Environment variable '{name}' must be set.")
    return value


@dataclass(frozen=True)
class StoreConfig:
    """
    Location and credentials of one object store.

    Attributes:
        uri (str): Store address, `s3://bucket[/prefix]`, `file:///path`
            or a bare local path.
        endpoint_url (str, optional): Custom S3 endpoint (MinIO, R2, ...).
        access_key_id (str, optional): The access key ID.
        secret_access_key (str, optional): The secret access key.
        region (str): The AWS region.
    """

    uri: str
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "us-east-1"

    @classmethod
    def from_env(cls, role: str, uri: str) -> "StoreConfig":
        """
        Builds a store configuration from `OBJSYNC_<ROLE>_*` variables.

        Credentials are optional, in which case the default botocore
        credential chain applies. A secret is required once an access
        key is given.

        Args:
            role (str): Either "source" or "destination".
            uri (str): The store address given on the command line.

        Returns:
            StoreConfig: The resolved configuration.
        """
        prefix: str = f"OBJSYNC_{role.upper()}"
        access_key_id: Optional[str] = os.environ.get(f"{prefix}_ACCESS_KEY_ID")
        secret_access_key: Optional[str] = None
        if access_key_id:
            secret_access_key = _get_env_var(f"{prefix}_SECRET_ACCESS_KEY")
        return cls(
            uri=uri,
            endpoint_url=os.environ.get(f"{prefix}_ENDPOINT_URL") or None,
            access_key_id=access_key_id or None,
            secret_access_key=secret_access_key,
            region=_get_env_var(f"{prefix}_REGION", "us-east-1"),
        )

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as a dictionary suitable for aiobotocore clients.

        Returns:
            Dict[str, str]: A dictionary of client parameters.
        """
        params: Dict[str, str] = {"region_name": self.region}
        if self.endpoint_url:
            params["endpoint_url"] = self.endpoint_url
        if self.access_key_id and self.secret_access_key:
            params["aws_access_key_id"] = self.access_key_id
            params["aws_secret_access_key"] = self.secret_access_key
        return params


@dataclass(frozen=True)
class AppConfig:
    """
    Defines the application's operational parameters.

    Attributes:
        workers (int): Number of concurrent replication workers.
        start (str): Exclusive lower bound of the synced key range.
        end (str): Exclusive upper bound of the synced key range, empty
            for unbounded.
        page_size (int): Maximum number of keys per listing request.
        queue_size (int): Capacity of the replication work queue.
        spill_threshold (int): Objects above this size are spilled to a
            temporary file past their first `spill_threshold` bytes.
        progress_interval_s (float): Redraw interval of the progress bar.
        show_progress (bool): Whether the progress bar may be displayed.
        max_attempts (int): botocore retry attempts per S3 request.
    """

    workers: int = 50
    start: str = ""
    end: str = ""
    page_size: int = MAX_RESULTS
    queue_size: int = WORK_QUEUE_SIZE
    spill_threshold: int = SPILL_THRESHOLD
    progress_interval_s: float = 0.3
    show_progress: bool = True
    max_attempts: int = 5

    def validate(self) -> None:
        """Raises `ConfigError` for inconsistent settings."""
        if self.workers < 1:
            raise ConfigError(f"At least one worker is required, got {self.workers}.")
        if self.end and self.end <= self.start:
            raise ConfigError(
                f"End key {self.end!r} must sort after start key {self.start!r}."
            )
        for name in ("page_size", "queue_size", "spill_threshold"):
            if getattr(self, name) < 1:
                raise ConfigError(f"'{name}' must be positive.")


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for the entire application.

    Attributes:
        source (StoreConfig): The store objects are copied from.
        destination (StoreConfig): The store objects are copied to.
        app (AppConfig): General application settings.
    """

    source: StoreConfig
    destination: StoreConfig
    app: AppConfig = field(default_factory=AppConfig)
