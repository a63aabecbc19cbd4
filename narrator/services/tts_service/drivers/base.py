from abc import ABC, abstractmethod
from typing import Any

from narrator.shared.models import QuotaInfo, SynthesisResult


class TTSEngine(ABC):
    """Abstract base class for TTS engines."""

    name = "base"

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> SynthesisResult:
        """Synthesize speech from text. Returns the audio bytes and canonical word timings."""
        pass

    async def get_quota(self) -> QuotaInfo:
        """Report the provider's character quota. Not every driver can."""
        raise NotImplementedError("Quota reporting not supported by this TTS driver")
