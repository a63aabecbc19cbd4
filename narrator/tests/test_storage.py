"""Tests for the blob storage backends."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from narrator.shared.storage import InMemoryStorage, LocalFileStorage, RedisStorage, create_storage


class TestInMemoryStorage:
    @pytest.mark.asyncio
    async def test_write_read(self) -> None:
        storage = InMemoryStorage(base_url="/media/")
        url = await storage.write("tts/a/abc.mp3", b"bytes", "audio/mpeg")

        assert url == "/media/tts/a/abc.mp3"
        assert await storage.exists("tts/a/abc.mp3")
        assert await storage.read("tts/a/abc.mp3") == b"bytes"
        assert storage.size() == 1

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        storage = InMemoryStorage()
        assert not await storage.exists("nope")
        with pytest.raises(KeyError):
            await storage.read("nope")


class TestLocalFileStorage:
    @pytest.mark.asyncio
    async def test_write_creates_nested_file(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path / "media")
        url = await storage.write("tts/guides__intro/0123.json", b"[]")

        assert url == "/media/tts/guides__intro/0123.json"
        assert (tmp_path / "media" / "tts" / "guides__intro" / "0123.json").read_bytes() == b"[]"
        assert await storage.exists("tts/guides__intro/0123.json")

    @pytest.mark.asyncio
    async def test_overwrite_replaces_content(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path)
        await storage.write("a.mp3", b"first")
        await storage.write("a.mp3", b"second")

        assert await storage.read("a.mp3") == b"second"
        assert [path.name for path in tmp_path.iterdir()] == ["a.mp3"]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path)
        with pytest.raises(KeyError):
            await storage.read("missing.mp3")

    @pytest.mark.asyncio
    async def test_rejects_keys_outside_root(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path / "media")
        assert not await storage.exists("../secret.txt")
        with pytest.raises(KeyError):
            await storage.write("../secret.txt", b"x")


class TestRedisStorage:
    @pytest.mark.asyncio
    async def test_delegates_to_client(self) -> None:
        client = AsyncMock()
        client.exists.return_value = 1
        client.get.return_value = b"audio"
        storage = RedisStorage("redis://localhost:6379/0", client=client)

        assert await storage.exists("k.mp3")
        assert await storage.read("k.mp3") == b"audio"
        assert await storage.write("k.mp3", b"audio") == "/media/k.mp3"
        client.set.assert_awaited_once_with("k.mp3", b"audio")

    @pytest.mark.asyncio
    async def test_missing_value(self) -> None:
        client = AsyncMock()
        client.get.return_value = None
        storage = RedisStorage("redis://localhost:6379/0", client=client)

        with pytest.raises(KeyError):
            await storage.read("k.json")


def test_create_storage_from_config(tmp_path: Path) -> None:
    assert isinstance(create_storage("memory"), InMemoryStorage)
    assert isinstance(create_storage("local"), LocalFileStorage)
    with pytest.raises(ValueError):
        create_storage("s3")
