"""Content-addressed narration cache.

An artifact is stored as two blobs under the same base key: the audio
(``.mp3``) and the word timestamps (``.json``). A lookup is a hit only when
both blobs exist; writes are independent and idempotent, so concurrent
writers for one key simply race to store identical content.
"""

from __future__ import annotations

import asyncio
import json

from pydantic import TypeAdapter, ValidationError

from narrator.shared.config import config
from narrator.shared.models import CacheKey, NarrationArtifact, SynthesisResult, WordTimestamp
from narrator.shared.storage import Storage
from narrator.shared.utils import content_hash, setup_logging

logger = setup_logging("narration-cache")

_TIMESTAMPS_ADAPTER = TypeAdapter(list[WordTimestamp])


def build_cache_key(
    document_key: str,
    plain_text: str,
    prefix: str | None = None,
    hash_length: int | None = None,
) -> CacheKey:
    """Derive the cache key for one snapshot of a document's plain text."""
    return CacheKey(
        prefix=prefix or config.get("cache_prefix", "tts"),
        document_key=document_key,
        content_hash=content_hash(plain_text, hash_length or config.get("content_hash_length", 16)),
    )


class NarrationCache:
    """Store and retrieve narration artifacts through a ``Storage`` backend."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def get(self, key: CacheKey) -> NarrationArtifact | None:
        """
        Look up the artifact stored at ``key``.

        Args:
            key: Cache key of the document snapshot

        Returns:
            The artifact when both blobs are present and readable, None otherwise
        """
        audio_exists, timestamps_exist = await asyncio.gather(
            self.storage.exists(key.audio_key),
            self.storage.exists(key.timestamps_key),
        )

        if not audio_exists and not timestamps_exist:
            return None
        if not (audio_exists and timestamps_exist):
            missing = key.timestamps_key if audio_exists else key.audio_key
            logger.warning("Partial narration artifact at %s (missing %s); treating as miss", key.base, missing)
            return None

        try:
            raw = await self.storage.read(key.timestamps_key)
            timestamps = _TIMESTAMPS_ADAPTER.validate_python(json.loads(raw))
        except KeyError:
            logger.warning("Timestamps for %s disappeared during read; treating as miss", key.base)
            return None
        except (ValueError, ValidationError) as e:
            logger.warning("Unreadable timestamps at %s (%s); treating as miss", key.timestamps_key, e)
            return None

        return NarrationArtifact(
            audio_url=self.storage.url_for(key.audio_key),
            timestamps=timestamps,
            content_hash=key.content_hash,
        )

    async def put(self, key: CacheKey, synthesis: SynthesisResult) -> NarrationArtifact:
        """Write the audio and timestamp blobs for ``key`` and return the stored artifact."""
        payload = _TIMESTAMPS_ADAPTER.dump_json(synthesis.timestamps)
        audio_url, _ = await asyncio.gather(
            self.storage.write(key.audio_key, synthesis.audio, synthesis.content_type),
            self.storage.write(key.timestamps_key, payload, "application/json"),
        )
        logger.info(
            "Cached narration %s (%d bytes audio, %d words)",
            key.base,
            len(synthesis.audio),
            len(synthesis.timestamps),
        )
        return NarrationArtifact(
            audio_url=audio_url,
            timestamps=list(synthesis.timestamps),
            content_hash=key.content_hash,
        )
