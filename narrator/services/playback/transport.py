"""
Collaborator interfaces of the playback controller: the media transport that
plays audio and the sink that renders the reading highlight.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from narrator.shared.errors import PlaybackError


class Transport(ABC):
    """Abstract media transport (an audio element, a player process, a clock)."""

    @abstractmethod
    async def load(self, audio_url: str) -> float:
        """Load ``audio_url`` and return its duration in seconds. Raise ``PlaybackError`` on failure."""

    @abstractmethod
    def unload(self) -> None:
        """Stop and release the current media."""

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback. Raise ``PlaybackError`` on failure."""

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek(self, position: float) -> None:
        pass

    @abstractmethod
    def set_rate(self, rate: float) -> None:
        pass

    @property
    @abstractmethod
    def position(self) -> float:
        """Current playback position in seconds."""

    @property
    @abstractmethod
    def duration(self) -> float:
        pass

    @property
    @abstractmethod
    def ended(self) -> bool:
        """Whether playback ran to the end of the media."""


class HighlightSink(ABC):
    """Receives highlight updates; owns all presentation."""

    @abstractmethod
    def highlight(self, position: int) -> None:
        """Highlight the rendered word element at ``position``."""

    @abstractmethod
    def clear(self) -> None:
        """Remove any highlight."""


class ClockTransport(Transport):
    """Headless transport that advances with a clock instead of decoding audio.

    ``duration_resolver`` maps an audio URL to its length; the clock defaults
    to ``time.monotonic`` and can be replaced for deterministic tests.
    """

    def __init__(
        self,
        duration_resolver: Callable[[str], float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration_resolver = duration_resolver
        self.clock = clock
        self.audio_url: str | None = None
        self.rate = 1.0
        self._duration = 0.0
        self._offset = 0.0
        self._started_at: float | None = None

    async def load(self, audio_url: str) -> float:
        duration = self.duration_resolver(audio_url) if self.duration_resolver else 0.0
        if duration is None or duration < 0:
            raise PlaybackError(f"Unable to load audio from {audio_url}")
        self.audio_url = audio_url
        self._duration = float(duration)
        self._offset = 0.0
        self._started_at = None
        return self._duration

    def unload(self) -> None:
        self.audio_url = None
        self._duration = 0.0
        self._offset = 0.0
        self._started_at = None

    async def play(self) -> None:
        if self.audio_url is None:
            raise PlaybackError("No audio loaded")
        if self._started_at is None:
            if self._offset >= self._duration:
                self._offset = 0.0
            self._started_at = self.clock()

    def pause(self) -> None:
        self._offset = self.position
        self._started_at = None

    def seek(self, position: float) -> None:
        self._offset = max(0.0, min(position, self._duration))
        if self._started_at is not None:
            self._started_at = self.clock()

    def set_rate(self, rate: float) -> None:
        # Fold elapsed time into the offset before the rate changes.
        self._offset = self.position
        if self._started_at is not None:
            self._started_at = self.clock()
        self.rate = rate

    @property
    def position(self) -> float:
        if self._started_at is None:
            return self._offset
        elapsed = (self.clock() - self._started_at) * self.rate
        return min(self._duration, self._offset + elapsed)

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def ended(self) -> bool:
        return self.audio_url is not None and self._duration > 0 and self.position >= self._duration
