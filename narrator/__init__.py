"""Document narration backend and read-along playback core."""

__version__ = "0.1.0"
