"""TTS driver implementations"""

from .base import TTSEngine
from .elevenlabs import ElevenLabsTTSEngine

__all__ = ["ElevenLabsTTSEngine", "TTSEngine"]
