"""
Blob storage backends used by the narration cache.

Every backend exposes the same narrow contract: ``exists``, ``read``,
``write`` and ``url_for``. Writes of a single blob are atomic from a reader's
point of view; there is no transaction spanning several blobs.
"""

import asyncio
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import redis.asyncio as redis

from narrator.shared.config import config
from narrator.shared.enums import StorageBackend
from narrator.shared.utils import ensure_directory, setup_logging

logger = setup_logging("narration-storage")


class Storage(ABC):
    """Abstract base class for blob storage."""

    def __init__(self, base_url: str = "/media") -> None:
        self.base_url = base_url.rstrip("/")

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return whether a blob is stored under ``key``."""

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Return the blob stored under ``key``; raise ``KeyError`` when it is missing."""

    @abstractmethod
    async def write(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store ``data`` under ``key`` (replacing any previous blob) and return its public URL."""

    def url_for(self, key: str) -> str:
        """Public URL under which the media route serves ``key``."""
        return f"{self.base_url}/{key}"


class InMemoryStorage(Storage):
    """Process-local storage, mainly for tests and single-process development."""

    def __init__(self, base_url: str = "/media") -> None:
        super().__init__(base_url)
        self._blobs: dict[str, bytes] = {}

    async def exists(self, key: str) -> bool:
        return key in self._blobs

    async def read(self, key: str) -> bytes:
        return self._blobs[key]

    async def write(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self._blobs[key] = bytes(data)
        return self.url_for(key)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def clear(self) -> None:
        self._blobs.clear()

    def size(self) -> int:
        return len(self._blobs)


class LocalFileStorage(Storage):
    """Filesystem storage rooted at ``media_root``."""

    def __init__(self, media_root: str | Path, base_url: str = "/media") -> None:
        super().__init__(base_url)
        self.media_root = Path(media_root).resolve()
        ensure_directory(str(self.media_root))

    def _path_for(self, key: str) -> Path:
        path = (self.media_root / key).resolve()
        if path != self.media_root and self.media_root not in path.parents:
            raise KeyError(f"Invalid storage key: {key}")
        return path

    async def exists(self, key: str) -> bool:
        try:
            path = self._path_for(key)
        except KeyError:
            return False
        return await asyncio.to_thread(path.is_file)

    async def read(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise KeyError(key) from e

    async def write(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._path_for(key)
        await asyncio.to_thread(self._write_atomic, path, data)
        logger.debug("Stored %s (%d bytes)", key, len(data))
        return self.url_for(key)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        ensure_directory(str(path.parent))
        temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        with open(temp_path, "wb") as f:
            f.write(data)
        os.replace(temp_path, path)


class RedisStorage(Storage):
    """Redis-backed storage; each blob is a single string value."""

    def __init__(self, redis_url: str, base_url: str = "/media", client: Any = None) -> None:
        super().__init__(base_url)
        self.redis_url = redis_url
        self.redis = client if client is not None else redis.Redis.from_url(redis_url)
        logger.info(f"RedisStorage initialized with Redis URL: {redis_url}")

    async def exists(self, key: str) -> bool:
        return bool(await self.redis.exists(key))

    async def read(self, key: str) -> bytes:
        value = await self.redis.get(key)
        if value is None:
            raise KeyError(key)
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    async def write(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        await self.redis.set(key, data)
        return self.url_for(key)


def create_storage(backend: str | None = None) -> Storage:
    """Build the storage backend selected in configuration."""
    backend_name = StorageBackend(backend or config.get("storage_backend", StorageBackend.LOCAL.value))
    base_url = config.get("media_base_url", "/media")

    if backend_name == StorageBackend.REDIS:
        return RedisStorage(config.get("redis_url"), base_url=base_url)
    if backend_name == StorageBackend.MEMORY:
        return InMemoryStorage(base_url=base_url)
    return LocalFileStorage(config.get("media_root", "./media"), base_url=base_url)
