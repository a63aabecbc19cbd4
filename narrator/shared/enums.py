"""
Enums and constants used across the application.
"""

from enum import Enum


class PlaybackStatus(str, Enum):
    """Lifecycle of a playback controller."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class PlaybackSubStatus(str, Enum):
    """Transport state, meaningful only while the controller is ready."""

    PLAYING = "playing"
    PAUSED = "paused"


class AlignmentShape(str, Enum):
    """Shapes of timing data a speech provider may return."""

    WORDS = "words"
    CHARACTERS = "characters"
    EMPTY = "empty"


class StorageBackend(str, Enum):
    """Available blob storage backends for narration artifacts."""

    LOCAL = "local"
    REDIS = "redis"
    MEMORY = "memory"


PLAYBACK_RATES: tuple[float, ...] = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)
