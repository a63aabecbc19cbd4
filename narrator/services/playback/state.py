from pydantic import BaseModel, Field

from narrator.shared.enums import PlaybackStatus, PlaybackSubStatus
from narrator.shared.models import WordTimestamp


class PlaybackState(BaseModel):
    """Observable state of one playback controller.

    Only the owning controller mutates it; everything else reads.
    """

    status: PlaybackStatus = Field(default=PlaybackStatus.IDLE, description="Controller lifecycle state")
    sub_status: PlaybackSubStatus | None = Field(
        default=None, description="Playing or paused; set only while ready"
    )
    current_time: float = Field(default=0.0, ge=0.0, description="Playback position in seconds")
    duration: float = Field(default=0.0, ge=0.0, description="Audio duration in seconds")
    last_word_index: int = Field(default=-1, ge=-1, description="Index of the last located word")
    audio_url: str | None = Field(default=None, description="URL of the loaded narration audio")
    timestamps: list[WordTimestamp] = Field(default_factory=list, description="Word timings of the narration")
    alignment: list[int] = Field(default_factory=list, description="Element position per timestamp, -1 if unmatched")
    error_message: str | None = Field(default=None, description="User-facing error message")
    document_key: str | None = Field(default=None, description="Document the state belongs to")
    playback_rate: float = Field(default=1.0, gt=0.0, description="Transport playback rate")

    @property
    def is_ready(self) -> bool:
        return self.status == PlaybackStatus.READY

    @property
    def is_playing(self) -> bool:
        return self.is_ready and self.sub_status == PlaybackSubStatus.PLAYING

    def reset(self, **overrides) -> None:
        """Return every field to its default, then apply ``overrides``."""
        fresh = PlaybackState(**overrides)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))
