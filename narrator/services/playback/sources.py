"""Where a playback controller gets narration from."""

from __future__ import annotations

from abc import ABC, abstractmethod

import aiohttp
from pydantic import ValidationError

from narrator.services.narration.orchestrator import NarrationOrchestrator
from narrator.shared.config import config
from narrator.shared.errors import DocumentNotFoundError, InvalidDocumentKeyError, UpstreamSynthesisError
from narrator.shared.http_client import AsyncHTTPClient
from narrator.shared.models import NarrationResponse
from narrator.shared.utils import setup_logging

logger = setup_logging("narration-source")


class NarrationSource(ABC):
    @abstractmethod
    async def fetch(self, document_key: str) -> NarrationResponse:
        """Return narration for ``document_key`` (a ``/``-separated slug)."""


class HTTPNarrationSource(NarrationSource):
    """Request narration from the narration service over HTTP."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = base_url or config.get("narration_service_url", "http://localhost:8000/api")
        self.timeout = timeout or config.get("synthesis_timeout", 120)

    async def fetch(self, document_key: str) -> NarrationResponse:
        try:
            async with AsyncHTTPClient(base_url=self.base_url, timeout=self.timeout) as client:
                data = await client.post("/narration", data={"slug": document_key})
        except aiohttp.ClientResponseError as e:
            logger.warning(f"Narration request for {document_key} failed with {e.status}: {e.message}")
            if e.status == 404:
                raise DocumentNotFoundError(e.message) from e
            if e.status == 400:
                raise InvalidDocumentKeyError(e.message) from e
            raise UpstreamSynthesisError(e.message) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UpstreamSynthesisError(f"Narration service unreachable: {e!s}") from e

        try:
            return NarrationResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamSynthesisError("Malformed narration response") from e


class LocalNarrationSource(NarrationSource):
    """Serve narration from an in-process orchestrator."""

    def __init__(self, orchestrator: NarrationOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def fetch(self, document_key: str) -> NarrationResponse:
        return await self.orchestrator.request_narration(document_key)
