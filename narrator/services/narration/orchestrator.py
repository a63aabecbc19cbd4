"""Narration orchestrator: document text to cached audio and word timestamps."""

from __future__ import annotations

from typing import Any

from narrator.services.narration.cache import NarrationCache, build_cache_key
from narrator.services.narration.documents import DocumentSource
from narrator.services.narration.normalizer import document_key, to_slug_segments
from narrator.services.tts_service.service import TTSService
from narrator.shared.errors import InvalidDocumentKeyError
from narrator.shared.models import CacheKey, DocumentStatus, NarrationResponse
from narrator.shared.storage import Storage, create_storage
from narrator.shared.utils import setup_logging

logger = setup_logging("narration-orchestrator")


class NarrationOrchestrator:
    """Serve narration requests from the cache, synthesizing on a miss.

    There is no lock per cache key: two concurrent misses for the same
    document both synthesize and both write identical blobs.
    """

    def __init__(
        self,
        documents: DocumentSource | None = None,
        storage: Storage | None = None,
        tts_service: TTSService | None = None,
    ):
        self.documents = documents or DocumentSource()
        self.storage = storage or create_storage()
        self.cache = NarrationCache(self.storage)
        # Built on first synthesis so cache hits never need provider credentials.
        self._tts_service = tts_service

    @property
    def tts_service(self) -> TTSService:
        if self._tts_service is None:
            self._tts_service = TTSService()
        return self._tts_service

    async def _resolve(self, slug: Any) -> tuple[list[str], str, CacheKey]:
        segments = to_slug_segments(slug)
        if not segments:
            raise InvalidDocumentKeyError("Request did not include a usable slug")

        plain_text = await self.documents.load_plain_text(segments)
        key = build_cache_key(document_key(segments), plain_text)
        return segments, plain_text, key

    async def request_narration(self, slug: Any) -> NarrationResponse:
        """
        Return narration for a document, generating it when not cached.

        Args:
            slug: Path string (``"a/b"``) or list of path segments

        Returns:
            Audio URL, word timestamps and content hash

        Raises:
            InvalidDocumentKeyError: no usable slug
            DocumentNotFoundError: missing document or no narratable text
            UpstreamSynthesisError: the speech provider failed
        """
        segments, plain_text, key = await self._resolve(slug)

        artifact = await self.cache.get(key)
        if artifact is not None:
            logger.info("Narration cache hit for %s", key.base)
            return NarrationResponse(
                audio_url=artifact.audio_url,
                timestamps=artifact.timestamps,
                hash=artifact.content_hash,
                cached=True,
            )

        logger.info("Narration cache miss for %s; synthesizing %d characters", key.base, len(plain_text))
        synthesis = await self.tts_service.synthesize(plain_text)
        artifact = await self.cache.put(key, synthesis)
        return NarrationResponse(
            audio_url=artifact.audio_url,
            timestamps=artifact.timestamps,
            hash=artifact.content_hash,
            cached=False,
        )

    async def inspect(self, slug: Any) -> DocumentStatus:
        """Report size and cache state of a document without synthesizing."""
        segments, plain_text, key = await self._resolve(slug)
        cached = await self.cache.get(key) is not None
        return DocumentStatus(
            slug="/".join(segments),
            document_key=key.document_key,
            characters=len(plain_text),
            cached=cached,
            cache_key=key,
        )

    async def generate(self, slug: Any) -> NarrationResponse:
        """Synthesize and store narration regardless of the cache state."""
        _, plain_text, key = await self._resolve(slug)
        synthesis = await self.tts_service.synthesize(plain_text)
        artifact = await self.cache.put(key, synthesis)
        return NarrationResponse(
            audio_url=artifact.audio_url,
            timestamps=artifact.timestamps,
            hash=artifact.content_hash,
            cached=False,
        )
