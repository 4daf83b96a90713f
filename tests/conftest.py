# tests/conftest.py
"""
Pytest configuration and fixtures for the objsync test suite.

This module provides:
- An in-memory `ObjectStore` with fault injection, used by the unit tests
  to exercise listing failures, vanished objects and failing writes.
- Docker-based MinIO services, buckets and configuration for the
  end-to-end tests.
"""

import asyncio
import bisect
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Generator, Iterable, List, Optional, Set

import boto3
import pytest
import requests
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from requests.exceptions import ConnectionError

from objsync.config import AppConfig
from objsync.models import ObjectRecord
from objsync.stores.base import Body, ObjectStore

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"


class MemoryStore(ObjectStore):
    """
    A dictionary-backed object store for tests.

    Attributes:
        objects (Dict[str, bytes]): The stored objects.
        list_calls (int): Number of `list` calls made so far.
        fail_list_on_call (int, optional): 1-based index of the `list` call
            that raises.
        fail_read (Set[str]): Keys whose reads raise.
        vanish_on_read (Set[str]): Keys deleted right before they are read.
        fail_write (Set[str]): Keys whose writes raise.
        reads (List[tuple]): `(key, offset, length)` of every read.
        pages (List[List[ObjectRecord]], optional): Canned listing pages
            served instead of the real content, one per call.
    """

    def __init__(
        self,
        name: str = "mem://test/",
        objects: Optional[Dict[str, bytes]] = None,
    ) -> None:
        self._name: str = name
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.list_calls: int = 0
        self.fail_list_on_call: Optional[int] = None
        self.fail_read: Set[str] = set()
        self.vanish_on_read: Set[str] = set()
        self.fail_write: Set[str] = set()
        self.reads: List[tuple] = []
        self.pages: Optional[List[List[ObjectRecord]]] = None

    @property
    def name(self) -> str:
        return self._name

    async def list(self, prefix: str, marker: str, limit: int) -> List[ObjectRecord]:
        self.list_calls += 1
        await asyncio.sleep(0)
        if self.fail_list_on_call == self.list_calls:
            raise OSError(f"listing of {self._name} failed")
        if self.pages is not None:
            return self.pages.pop(0) if self.pages else []
        keys: List[str] = sorted(k for k in self.objects if k.startswith(prefix))
        start: int = bisect.bisect_right(keys, marker) if marker else 0
        return [
            ObjectRecord(key=k, size=len(self.objects[k]))
            for k in keys[start : start + limit]
        ]

    async def read(
        self, key: str, offset: int = 0, length: int = -1
    ) -> AsyncIterator[bytes]:
        self.reads.append((key, offset, length))
        await asyncio.sleep(0)
        if key in self.vanish_on_read:
            self.objects.pop(key, None)
        if key in self.fail_read or key not in self.objects:
            raise OSError(f"cannot read {key}")
        data: bytes = self.objects[key]
        end: int = len(data) if length < 0 else offset + length
        # Small chunks to exercise streaming
        for i in range(offset, end, 4096):
            yield data[i : min(i + 4096, end)]

    async def write(self, key: str, body: Body, size: int) -> None:
        await asyncio.sleep(0)
        if key in self.fail_write:
            raise OSError(f"cannot write {key}")
        data: bytes = body if isinstance(body, bytes) else body.read()
        assert len(data) == size
        self.objects[key] = data

    async def exists(self, key: str) -> bool:
        return key in self.objects


def make_objects(keys: Iterable[str], size: int = 100) -> Dict[str, bytes]:
    """
    Builds distinct object contents for the given keys.

    Args:
        keys (Iterable[str]): The object keys.
        size (int): The size of every object in bytes.

    Returns:
        Dict[str, bytes]: Key to content mapping.
    """
    return {
        key: (key.encode() * (size // max(len(key), 1) + 1))[:size] for key in keys
    }


@pytest.fixture(scope="function")
def memory_store_factory() -> Generator[Any, None, None]:
    """
    Provide a factory for in-memory stores.

    Yields:
        A callable `(name, objects) -> MemoryStore`.
    """

    def _factory(name: str, objects: Optional[Dict[str, bytes]] = None) -> MemoryStore:
        return MemoryStore(name=f"mem://{name}/", objects=objects)

    yield _factory


@pytest.fixture(scope="function")
def objects_factory() -> Generator[Any, None, None]:
    """
    Provide a factory for deterministic object contents.

    Yields:
        The `make_objects` helper.
    """
    yield make_objects


@pytest.fixture(scope="function")
def app_config() -> AppConfig:
    """
    Provide an application configuration suited to fast tests.

    Returns:
        AppConfig: Few workers, small pages and no progress bar.
    """
    return AppConfig(workers=4, page_size=2, queue_size=4, show_progress=False)


# --- Docker Fixtures (e2e only) ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the test suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration object.

    Returns:
        str: The absolute path to the docker-compose.yml file.
    """
    return str(Path(pytestconfig.rootdir) / "tests" / "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_compose_project_name() -> str:
    """
    Define a static project name for the Docker stack.

    Returns:
        str: The name of the docker-compose project.
    """
    return "objsync-tests"


def _is_s3_responsive(url: str) -> bool:
    """
    Check if the MinIO health endpoint is responsive.

    Args:
        url (str): The base URL of the MinIO API.

    Returns:
        bool: True if the service is responsive, False otherwise.
    """
    try:
        response: requests.Response = requests.get(f"{url}/minio/health/live")
        return response.status_code == 200
    except ConnectionError:
        return False


def _s3_service(docker_ip: str, docker_services: Any, name: str) -> Dict[str, Any]:
    port: int = docker_services.port_for(name, 9000)
    api_url: str = f"http://{docker_ip}:{port}"
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.1, check=lambda: _is_s3_responsive(api_url)
    )
    return {
        "endpoint_url": api_url,
        "aws_access_key_id": S3_ACCESS_KEY,
        "aws_secret_access_key": S3_SECRET_KEY,
        "region_name": S3_REGION,
    }


@pytest.fixture(scope="session")
def source_s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the source S3 service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Client parameters for the source S3 service.
    """
    return _s3_service(docker_ip, docker_services, "minio-source")


@pytest.fixture(scope="session")
def dest_s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the destination S3 service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Client parameters for the destination S3 service.
    """
    return _s3_service(docker_ip, docker_services, "minio-destination")


@pytest.fixture(scope="function")
def s3_buckets(
    source_s3_service: Dict[str, Any],
    dest_s3_service: Dict[str, Any],
) -> Generator[Dict[str, Any], None, None]:
    """
    Create unique, isolated buckets for a single test function.

    Yields:
        Dict[str, Any]: The bucket names and boto3 clients of both services.
    """
    suffix: str = f"test-bucket-{uuid.uuid4()}"
    boto_config: BotoConfig = BotoConfig(retries={"max_attempts": 0, "mode": "standard"})
    source_client = boto3.client("s3", **source_s3_service, config=boto_config)
    dest_client = boto3.client("s3", **dest_s3_service, config=boto_config)
    source_bucket: str = f"source-{suffix}"
    dest_bucket: str = f"dest-{suffix}"
    source_client.create_bucket(Bucket=source_bucket)
    dest_client.create_bucket(Bucket=dest_bucket)

    yield {
        "source": source_bucket,
        "destination": dest_bucket,
        "source_client": source_client,
        "dest_client": dest_client,
    }

    s3_resources = [
        (boto3.resource("s3", **source_s3_service, config=boto_config), source_bucket),
        (boto3.resource("s3", **dest_s3_service, config=boto_config), dest_bucket),
    ]
    for resource, bucket in s3_resources:
        try:
            bucket_obj = resource.Bucket(bucket)
            bucket_obj.objects.all().delete()
            bucket_obj.delete()
        except ClientError as e:
            if e.response["Error"]["Code"] != "NoSuchBucket":
                raise

