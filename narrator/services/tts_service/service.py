"""Application-level Text-to-Speech service wrapper."""

from __future__ import annotations

from typing import Any

from narrator.services.tts_service.drivers import ElevenLabsTTSEngine, TTSEngine
from narrator.shared.config import config
from narrator.shared.errors import NarrationError, UpstreamSynthesisError
from narrator.shared.models import QuotaInfo, SynthesisResult
from narrator.shared.utils import setup_logging

logger = setup_logging("tts-service")


def default_drivers() -> dict[str, TTSEngine]:
    return {"elevenlabs": ElevenLabsTTSEngine()}


class TTSService:
    """Provide a simple interface for synthesizing speech via registered drivers.

    Each call makes exactly one attempt against one driver. Provider failures
    surface as ``UpstreamSynthesisError`` with the original exception chained.
    """

    def __init__(
        self,
        drivers: dict[str, TTSEngine] | None = None,
        default_driver: str | None = None,
    ) -> None:
        self.drivers = drivers if drivers is not None else default_drivers()
        self.default_driver = default_driver or config.get("tts_driver", "elevenlabs")

    def get_driver(self, driver_name: str | None = None) -> TTSEngine:
        driver_id = driver_name or self.default_driver
        driver = self.drivers.get(driver_id)
        if not driver:
            raise ValueError(f"TTS driver '{driver_id}' is not configured")
        return driver

    async def synthesize(
        self,
        text: str,
        driver_name: str | None = None,
        extra_options: dict[str, Any] | None = None,
    ) -> SynthesisResult:
        driver = self.get_driver(driver_name)
        logger.info("Synthesizing %d characters with driver %s", len(text), type(driver).__name__)

        try:
            return await driver.synthesize(text=text, **(extra_options or {}))
        except NarrationError:
            raise
        except Exception as e:
            logger.exception("TTS driver %s failed", type(driver).__name__)
            raise UpstreamSynthesisError(f"Speech synthesis failed: {e!s}") from e

    async def get_quota(self, driver_name: str | None = None) -> QuotaInfo | None:
        """Provider quota, or None when the driver cannot report one."""
        try:
            return await self.get_driver(driver_name).get_quota()
        except NotImplementedError:
            return None
