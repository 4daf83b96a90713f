# src/objsync/stores/s3.py
"""S3-compatible object store adapter built on aiobotocore."""

import logging
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional

from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from objsync.config import StoreConfig
from objsync.models import ObjectRecord
from objsync.stores.base import Body, ObjectStore

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client
    from types_aiobotocore_s3.type_defs import (
        GetObjectOutputTypeDef,
        ListObjectsV2OutputTypeDef,
    )

logger: logging.Logger = logging.getLogger(__name__)

# S3 never returns more than this many keys per ListObjectsV2 call
_S3_MAX_KEYS: int = 1000
_CHUNK_SIZE: int = 1 << 20
_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3Store(ObjectStore):
    """
    An S3 bucket, optionally restricted to a key prefix.

    Keys exposed by this store are relative to the prefix, so two stores
    with different prefixes list comparable keys.
    """

    def __init__(
        self,
        config: StoreConfig,
        bucket: str,
        prefix: str = "",
        max_pool_connections: int = 100,
        max_attempts: int = 5,
    ) -> None:
        """
        Initializes the store. The client is created on `__aenter__`.

        Args:
            config (StoreConfig): Endpoint and credentials.
            bucket (str): The bucket name.
            prefix (str): Key prefix prepended to every key.
            max_pool_connections (int): HTTP connection pool size.
            max_attempts (int): botocore retry attempts per request.
        """
        self._config: StoreConfig = config
        self._bucket: str = bucket
        self._prefix: str = prefix
        # Non-AWS providers need SigV4 and an explicit Content-Length
        self._boto_config: BotoConfig = BotoConfig(
            signature_version="s3v4",
            max_pool_connections=max_pool_connections,
            retries={"max_attempts": max_attempts, "mode": "standard"},
            s3={"payload_signing_enabled": False},
        )
        self._session: AioSession = get_session()
        self._stack: Optional[AsyncExitStack] = None
        self._client: Optional["S3Client"] = None

    @property
    def name(self) -> str:
        return f"s3://{self._bucket}/{self._prefix}"

    async def __aenter__(self) -> "S3Store":
        self._stack = AsyncExitStack()
        self._client = await self._stack.enter_async_context(
            self._session.create_client(
                "s3", **self._config.as_boto_dict(), config=self._boto_config
            )
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._client = None

    @property
    def client(self) -> "S3Client":
        if self._client is None:
            raise RuntimeError(f"{self.name} is not open.")
        return self._client

    async def list(self, prefix: str, marker: str, limit: int) -> List[ObjectRecord]:
        params: Dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": self._prefix + prefix,
            "MaxKeys": min(limit, _S3_MAX_KEYS),
        }
        if marker:
            params["StartAfter"] = self._prefix + marker
        response: "ListObjectsV2OutputTypeDef" = await self.client.list_objects_v2(
            **params
        )
        offset: int = len(self._prefix)
        return [
            ObjectRecord(key=content["Key"][offset:], size=content["Size"])
            for content in response.get("Contents", [])
        ]

    async def read(
        self, key: str, offset: int = 0, length: int = -1
    ) -> AsyncIterator[bytes]:
        if length == 0:
            return
        params: Dict[str, Any] = {"Bucket": self._bucket, "Key": self._prefix + key}
        if offset > 0 or length > 0:
            last: str = str(offset + length - 1) if length > 0 else ""
            params["Range"] = f"bytes={offset}-{last}"
        response: "GetObjectOutputTypeDef" = await self.client.get_object(**params)
        async with response["Body"] as stream:
            async for chunk in stream.iter_chunks(_CHUNK_SIZE):
                yield chunk

    async def write(self, key: str, body: Body, size: int) -> None:
        await self.client.put_object(
            Bucket=self._bucket,
            Key=self._prefix + key,
            Body=body,
            ContentLength=size,
        )

    async def exists(self, key: str) -> bool:
        try:
            await self.client.head_object(Bucket=self._bucket, Key=self._prefix + key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            # Absence could not be proven
            logger.debug(f"Cannot check '{key}' in {self.name}: {e}")
        return True
