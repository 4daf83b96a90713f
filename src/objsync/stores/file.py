# src/objsync/stores/file.py
"""
Local filesystem object store adapter.

Every regular file under the root directory is an object whose key is its
POSIX-style path relative to the root. Blocking filesystem calls are run
in the default executor so they never stall the event loop.
"""

import asyncio
import itertools
import logging
import os
import shutil
import tempfile
from functools import partial
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Iterator, List, Tuple

from objsync.models import ObjectRecord
from objsync.stores.base import Body, ObjectStore

logger: logging.Logger = logging.getLogger(__name__)

_CHUNK_SIZE: int = 1 << 20


class FileStore(ObjectStore):
    """A directory tree on the local filesystem."""

    def __init__(self, root: Path) -> None:
        """
        Args:
            root (Path): The directory holding the objects.
        """
        self._root: Path = root.resolve()

    @property
    def name(self) -> str:
        return f"file://{self._root}/"

    def _path(self, key: str) -> Path:
        return self._root.joinpath(*key.split("/"))

    def _scan(
        self, directory: str, base: str, prefix: str, marker: str
    ) -> Iterator[ObjectRecord]:
        """
        Yields the files below `directory` in key order, after `marker`.

        A directory sorts as its name followed by "/", which is how all
        of its keys start, so entries are visited in key order and whole
        subtrees before the marker are skipped without being read.

        Args:
            directory (str): The directory to scan.
            base (str): The key prefix of `directory`, "" for the root.
            prefix (str): Only keys starting with this prefix are listed.
            marker (str): Exclusive lower bound of the listed keys.

        Yields:
            ObjectRecord: The next file in key order.
        """
        entries: List[Tuple[str, os.DirEntry, bool]] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    if entry.name.startswith(".objsync-"):
                        continue  # in-flight write
                    if entry.is_dir():
                        if not entry.is_symlink():
                            entries.append((f"{base}{entry.name}/", entry, True))
                    elif entry.is_file():
                        entries.append((f"{base}{entry.name}", entry, False))
        except (FileNotFoundError, NotADirectoryError):
            return
        entries.sort(key=lambda e: e[0])

        for key, entry, is_dir in entries:
            if is_dir:
                if key <= marker and not marker.startswith(key):
                    continue
                if not (key.startswith(prefix) or prefix.startswith(key)):
                    continue
                yield from self._scan(entry.path, key, prefix, marker)
            elif key > marker and key.startswith(prefix):
                try:
                    size: int = entry.stat().st_size
                except FileNotFoundError:
                    continue
                yield ObjectRecord(key=key, size=size)

    def _list(self, prefix: str, marker: str, limit: int) -> List[ObjectRecord]:
        records: Iterator[ObjectRecord] = self._scan(
            str(self._root), "", prefix, marker
        )
        return list(itertools.islice(records, limit))

    async def list(self, prefix: str, marker: str, limit: int) -> List[ObjectRecord]:
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self._list, prefix, marker, limit)
        )

    async def read(
        self, key: str, offset: int = 0, length: int = -1
    ) -> AsyncIterator[bytes]:
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        f: BinaryIO = await loop.run_in_executor(None, self._path(key).open, "rb")
        try:
            await loop.run_in_executor(None, f.seek, offset)
            remaining: int = length
            while remaining != 0:
                size: int = _CHUNK_SIZE if remaining < 0 else min(_CHUNK_SIZE, remaining)
                chunk: bytes = await loop.run_in_executor(None, f.read, size)
                if not chunk:
                    break
                if remaining > 0:
                    remaining -= len(chunk)
                yield chunk
        finally:
            f.close()

    def _write(self, key: str, body: Body) -> None:
        path: Path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".objsync-", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as out:
                if isinstance(body, bytes):
                    out.write(body)
                else:
                    shutil.copyfileobj(body, out, _CHUNK_SIZE)
            os.replace(tmp_name, path)
        except BaseException:
            os.unlink(tmp_name)
            raise

    async def write(self, key: str, body: Body, size: int) -> None:
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, key, body)

    async def exists(self, key: str) -> bool:
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._path(key).is_file)
