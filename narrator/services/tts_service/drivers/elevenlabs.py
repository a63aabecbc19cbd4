import base64
import binascii
from typing import Any

import aiohttp

from narrator.services.tts_service.timestamps import build_word_timestamps
from narrator.shared.config import config
from narrator.shared.errors import UpstreamSynthesisError
from narrator.shared.http_client import AsyncHTTPClient
from narrator.shared.models import QuotaInfo, SynthesisResult
from narrator.shared.utils import setup_logging

from .base import TTSEngine

logger = setup_logging("elevenlabs-driver")


class ElevenLabsTTSEngine(TTSEngine):
    """ElevenLabs text-to-speech with character-level timestamps."""

    name = "elevenlabs"

    def __init__(
        self,
        api_key: str | None = None,
        voice_id: str | None = None,
        model_id: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        voice_settings: dict[str, Any] | None = None,
    ):
        """
        Initialize ElevenLabs TTS engine.

        Args:
            api_key: ElevenLabs API key; synthesis fails without one
            voice_id: Default voice identifier
            model_id: Default model identifier
            base_url: API base URL
            timeout: Total request timeout in seconds
            voice_settings: Overrides for stability / similarity_boost
        """
        self.api_key = api_key if api_key is not None else config.get("elevenlabs_api_key")
        self.voice_id = voice_id or config.get("elevenlabs_voice_id", "21m00Tcm4TlvDq8ikWAM")
        self.model_id = model_id or config.get("elevenlabs_model_id", "eleven_multilingual_v2")
        self.base_url = base_url or config.get("elevenlabs_base_url", "https://api.elevenlabs.io")
        self.timeout = timeout or config.get("synthesis_timeout", 120)
        self.voice_settings = voice_settings or {
            "stability": config.get_narration_value("elevenlabs.voice_settings.stability", 0.4),
            "similarity_boost": config.get_narration_value("elevenlabs.voice_settings.similarity_boost", 0.8),
        }

    def _client(self) -> AsyncHTTPClient:
        if not self.api_key:
            raise UpstreamSynthesisError("ELEVENLABS_API_KEY is not configured")
        return AsyncHTTPClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"xi-api-key": self.api_key, "Accept": "application/json"},
        )

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> SynthesisResult:
        """
        Synthesize speech from text using the ``with-timestamps`` endpoint.

        Args:
            text: Plain text to narrate
            voice: Voice identifier (defaults to the configured voice)
            model: Model identifier (defaults to the configured model)
            **kwargs: Additional options
                - voice_settings: per-request voice settings

        Returns:
            Decoded audio and word timestamps

        Raises:
            UpstreamSynthesisError: missing key, rejected request or malformed response
        """
        voice_id = voice or self.voice_id
        payload = {
            "text": text,
            "model_id": model or self.model_id,
            "voice_settings": kwargs.get("voice_settings") or self.voice_settings,
        }

        logger.info("Requesting narration: voice=%s model=%s chars=%d", voice_id, payload["model_id"], len(text))
        try:
            async with self._client() as client:
                data = await client.post(f"/v1/text-to-speech/{voice_id}/with-timestamps", data=payload)
        except aiohttp.ClientResponseError as e:
            logger.error("ElevenLabs request failed (%s): %s", e.status, e.message)
            raise UpstreamSynthesisError(f"ElevenLabs request failed ({e.status}): {e.message}") from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UpstreamSynthesisError(f"ElevenLabs request failed: {e!s}") from e

        audio_base64 = data.get("audio_base64") if isinstance(data, dict) else None
        if not audio_base64:
            raise UpstreamSynthesisError("ElevenLabs response did not include audio data")
        try:
            audio = base64.b64decode(audio_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UpstreamSynthesisError("ElevenLabs returned undecodable audio data") from e

        alignment = data.get("alignment") or data.get("normalized_alignment")
        timestamps = build_word_timestamps(alignment)
        logger.info("Synthesized %d bytes of audio with %d word timestamps", len(audio), len(timestamps))
        return SynthesisResult(audio=audio, timestamps=timestamps, content_type="audio/mpeg")

    async def get_quota(self) -> QuotaInfo:
        """Read character usage from the subscription endpoint."""
        try:
            async with self._client() as client:
                data = await client.get("/v1/user/subscription")
        except aiohttp.ClientError as e:
            raise UpstreamSynthesisError(f"Unable to read ElevenLabs subscription: {e!s}") from e

        return QuotaInfo(
            character_count=int(data.get("character_count") or 0),
            character_limit=int(data.get("character_limit") or 0),
        )
