"""Read-along playback: timeline alignment, word location and the playback controller."""

from .aligner import UNMATCHED, align_timeline, unmatched_indices
from .controller import PlaybackController
from .locator import PlaybackLocator, locate_word_index, resolve_window
from .state import PlaybackState
from .transport import ClockTransport, HighlightSink, Transport

__all__ = [
    "UNMATCHED",
    "ClockTransport",
    "HighlightSink",
    "PlaybackController",
    "PlaybackLocator",
    "PlaybackState",
    "Transport",
    "align_timeline",
    "locate_word_index",
    "resolve_window",
    "unmatched_indices",
]
