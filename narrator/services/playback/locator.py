"""Locate the spoken word for a playback position.

Each word interval ``[start, end]`` is widened on both sides by a tolerance
window so provider timing jitter around short words does not make the
highlight flicker. The index only changes when the playback time crosses a
widened boundary.
"""

from __future__ import annotations

from collections.abc import Sequence

from narrator.shared.config import config
from narrator.shared.models import WordTimestamp

NO_WORD = -1
DEFAULT_BASE_WINDOW = 0.02
DEFAULT_MAX_WINDOW = 0.12


def resolve_window(
    entry: WordTimestamp,
    base_window: float = DEFAULT_BASE_WINDOW,
    max_window: float = DEFAULT_MAX_WINDOW,
) -> float:
    """Half the word's duration, clamped to ``[base_window, max_window]``."""
    half_span = 0.5 * (entry.end - entry.start)
    return min(max_window, max(base_window, half_span))


def locate_word_index(
    current_time: float,
    timestamps: Sequence[WordTimestamp],
    last_index: int,
    *,
    base_window: float = DEFAULT_BASE_WINDOW,
    max_window: float = DEFAULT_MAX_WINDOW,
) -> int:
    """
    Return the index of the word spoken at ``current_time``.

    Args:
        current_time: Playback position in seconds
        timestamps: Word timings sorted by start
        last_index: Index returned for the previous sample, or -1
        base_window: Minimum tolerance, also used when stepping between words
        max_window: Maximum tolerance

    Returns:
        Word index, or -1 before the first word or for an empty timeline
    """
    if not timestamps:
        return NO_WORD

    last = len(timestamps) - 1
    index = max(NO_WORD, min(last_index, last))

    if index >= 0:
        previous = timestamps[index]
        window = resolve_window(previous, base_window, max_window)
        if previous.start - window <= current_time <= previous.end + window:
            return index

    if index == NO_WORD:
        if current_time < timestamps[0].start - base_window:
            return NO_WORD
        index = 0

    while index < last and current_time >= timestamps[index + 1].start - base_window:
        index += 1

    while index > 0 and current_time < timestamps[index].start - base_window:
        index -= 1

    current = timestamps[index]
    window = resolve_window(current, base_window, max_window)

    if current.start - window <= current_time <= current.end + window:
        return index

    if current_time > current.end + window:
        if index == last:
            return last
        # Still in the silence before the next word.
        if current_time < timestamps[index + 1].start - base_window:
            return index
        return index + 1

    if index == 0:
        return NO_WORD
    return index - 1


class PlaybackLocator:
    """Stateful locator that remembers the last index between samples."""

    def __init__(
        self,
        timestamps: Sequence[WordTimestamp] | None = None,
        base_window: float | None = None,
        max_window: float | None = None,
    ) -> None:
        self.timestamps = list(timestamps or [])
        self.base_window = (
            base_window
            if base_window is not None
            else float(config.get_narration_value("playback.base_window", DEFAULT_BASE_WINDOW))
        )
        self.max_window = (
            max_window
            if max_window is not None
            else float(config.get_narration_value("playback.max_window", DEFAULT_MAX_WINDOW))
        )
        self.last_index = NO_WORD

    def locate(self, current_time: float) -> int:
        self.last_index = locate_word_index(
            current_time,
            self.timestamps,
            self.last_index,
            base_window=self.base_window,
            max_window=self.max_window,
        )
        return self.last_index

    def reset(self, timestamps: Sequence[WordTimestamp] | None = None) -> None:
        """Forget the last index; optionally swap the timeline."""
        if timestamps is not None:
            self.timestamps = list(timestamps)
        self.last_index = NO_WORD
