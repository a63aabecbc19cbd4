"""Read-along playback controller.

Drives one narration at a time through ``idle -> loading -> ready | error``.
While ready and playing, an asyncio task samples the transport position every
frame, locates the spoken word and forwards the matching element position to
the highlight sink.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Sequence

from narrator.services.playback.aligner import UNMATCHED, align_timeline, unmatched_indices
from narrator.services.playback.locator import NO_WORD, PlaybackLocator
from narrator.services.playback.sources import NarrationSource
from narrator.services.playback.state import PlaybackState
from narrator.services.playback.transport import HighlightSink, Transport
from narrator.shared.config import config
from narrator.shared.enums import PLAYBACK_RATES, PlaybackStatus, PlaybackSubStatus
from narrator.shared.models import RenderedWordElement
from narrator.shared.utils import setup_logging

logger = setup_logging("playback-controller")

AUDIO_UNAVAILABLE = "Audio unavailable"
PLAYBACK_FAILED = "Playback failed"


class PlaybackController:
    """Owns one ``PlaybackState`` and keeps the highlight in step with the audio."""

    def __init__(
        self,
        source: NarrationSource,
        transport: Transport,
        sink: HighlightSink,
        frame_interval: float | None = None,
        locator: PlaybackLocator | None = None,
    ) -> None:
        self.source = source
        self.transport = transport
        self.sink = sink
        self.frame_interval = (
            frame_interval
            if frame_interval is not None
            else float(config.get_narration_value("playback.frame_interval", 1 / 60))
        )
        self.locator = locator or PlaybackLocator()
        self.state = PlaybackState()

        self._generation = 0
        self._request_task: asyncio.Task | None = None
        self._sampling_task: asyncio.Task | None = None
        self._highlighted: int | None = None

    async def __aenter__(self) -> PlaybackController:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Requests

    def request_narration(
        self, document_key: str, elements: Sequence[RenderedWordElement]
    ) -> asyncio.Task:
        """Start loading narration for a document, abandoning any previous request.

        Must be called from a running event loop. Returns the loading task.
        """
        self._cancel_request()
        self._stop_sampling()
        self._generation += 1
        generation = self._generation

        self.transport.unload()
        self._clear_highlight(force=True)
        self.state.reset(status=PlaybackStatus.LOADING, document_key=document_key)
        self.locator.reset([])

        logger.info(f"Requesting narration for {document_key} (generation {generation})")
        self._request_task = asyncio.create_task(self._load(generation, document_key, list(elements)))
        return self._request_task

    async def _load(self, generation: int, document_key: str, elements: list[RenderedWordElement]) -> None:
        try:
            narration = await self.source.fetch(document_key)
            if generation != self._generation:
                return
            duration = await self.transport.load(narration.audio_url)
        except Exception as e:
            if generation != self._generation:
                return
            logger.warning(f"Narration for {document_key} unavailable: {e}")
            self.transport.unload()
            self.state.reset(
                status=PlaybackStatus.ERROR,
                document_key=document_key,
                error_message=AUDIO_UNAVAILABLE,
            )
            return

        if generation != self._generation:
            logger.debug(f"Discarding stale narration for {document_key}")
            return

        alignment = align_timeline(narration.timestamps, elements)
        missing = unmatched_indices(alignment)
        if missing:
            logger.info(f"{len(missing)} of {len(alignment)} words in {document_key} have no element to highlight")

        self.transport.set_rate(self.state.playback_rate)
        self.locator.reset(narration.timestamps)
        self.state.status = PlaybackStatus.READY
        self.state.sub_status = PlaybackSubStatus.PAUSED
        self.state.audio_url = narration.audio_url
        self.state.timestamps = list(narration.timestamps)
        self.state.alignment = alignment
        self.state.duration = max(0.0, duration or self.transport.duration)
        self.state.current_time = 0.0
        self.state.last_word_index = NO_WORD
        self.state.error_message = None

    def _cancel_request(self) -> None:
        if self._request_task is not None and not self._request_task.done():
            self._request_task.cancel()
        self._request_task = None

    # Transport controls

    async def play(self) -> None:
        if not self.state.is_ready or self.state.is_playing:
            return
        try:
            await self.transport.play()
        except Exception as e:
            self._fail_playback(e)
            return
        self.state.sub_status = PlaybackSubStatus.PLAYING
        self._start_sampling()

    def pause(self) -> None:
        if not self.state.is_playing:
            return
        self.transport.pause()
        self._stop_sampling()
        self.state.sub_status = PlaybackSubStatus.PAUSED
        self.state.current_time = self.transport.position
        self.state.last_word_index = NO_WORD
        self._clear_highlight()

    async def toggle(self) -> None:
        """Play when paused, pause when playing; ignored unless ready."""
        if not self.state.is_ready:
            return
        if self.state.is_playing:
            self.pause()
        else:
            await self.play()

    def seek(self, position: float) -> None:
        if not self.state.is_ready:
            return
        target = max(0.0, min(position, self.state.duration))
        self.transport.seek(target)
        self.state.current_time = target
        self.state.last_word_index = NO_WORD

    def skip(self, delta: float) -> None:
        """Seek relative to the current transport position."""
        if not self.state.is_ready:
            return
        self.seek(self.transport.position + delta)

    @staticmethod
    def skip_interval(long: bool = False) -> float:
        if long:
            return float(config.get_narration_value("playback.skip_long", 15))
        return float(config.get_narration_value("playback.skip_short", 5))

    def skip_forward(self, long: bool = False) -> None:
        self.skip(self.skip_interval(long))

    def skip_back(self, long: bool = False) -> None:
        self.skip(-self.skip_interval(long))

    def set_playback_rate(self, rate: float) -> None:
        if rate not in PLAYBACK_RATES:
            raise ValueError(f"Unsupported playback rate {rate}; expected one of {PLAYBACK_RATES}")
        self.state.playback_rate = rate
        if self.state.is_ready:
            self.transport.set_rate(rate)

    def handle_media_end(self) -> None:
        if not self.state.is_ready:
            return
        self._stop_sampling()
        self.transport.pause()
        self.transport.seek(0.0)
        self.state.sub_status = PlaybackSubStatus.PAUSED
        self.state.current_time = 0.0
        self.state.last_word_index = NO_WORD
        self._clear_highlight()

    def resync(self) -> None:
        """Re-read the transport after the host was suspended (e.g. a hidden tab)."""
        if not self.state.is_ready:
            return
        self._stop_sampling()
        self.state.current_time = self.transport.position
        self.state.last_word_index = NO_WORD
        if self.state.is_playing:
            self.sample()
            if self.state.is_playing:
                self._start_sampling()

    # Sampling

    def sample(self) -> int:
        """Run one sampling tick and return the located word index."""
        if not self.state.is_ready:
            return NO_WORD
        if self.transport.ended:
            self.handle_media_end()
            return NO_WORD

        current_time = self.transport.position
        self.state.current_time = current_time
        self.locator.last_index = self.state.last_word_index
        index = self.locator.locate(current_time)
        self.state.last_word_index = index

        if index == NO_WORD:
            self._clear_highlight()
        elif index < len(self.state.alignment):
            position = self.state.alignment[index]
            # Unmatched words keep whatever is highlighted.
            if position != UNMATCHED and position != self._highlighted:
                self.sink.highlight(position)
                self._highlighted = position
        return index

    async def _run_sampling(self) -> None:
        while self.state.is_playing:
            try:
                self.sample()
            except Exception as e:
                self._fail_playback(e)
                return
            await asyncio.sleep(self.frame_interval)

    def _start_sampling(self) -> None:
        if self._sampling_task is not None and not self._sampling_task.done():
            return
        self._sampling_task = asyncio.create_task(self._run_sampling())

    def _stop_sampling(self) -> None:
        task = self._sampling_task
        self._sampling_task = None
        if task is None or task.done():
            return
        # The loop exits by itself when stopped from inside a tick.
        if task is not asyncio.current_task():
            task.cancel()

    # Teardown

    def _fail_playback(self, error: Exception) -> None:
        logger.error(f"Playback failed for {self.state.document_key}: {error}")
        self._stop_sampling()
        self.transport.unload()
        self._clear_highlight()
        self.state.reset(
            status=PlaybackStatus.ERROR,
            document_key=self.state.document_key,
            error_message=PLAYBACK_FAILED,
        )

    def _clear_highlight(self, force: bool = False) -> None:
        if force or self._highlighted is not None:
            self.sink.clear()
        self._highlighted = None

    async def close(self) -> None:
        """Cancel pending work, release the transport and clear the highlight."""
        self._generation += 1
        tasks = [task for task in (self._request_task, self._sampling_task) if task is not None]
        self._cancel_request()
        self._stop_sampling()
        for task in tasks:
            if task is asyncio.current_task():
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self.transport.unload()
        self._clear_highlight(force=True)
        self.state.reset()
