from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# Timeline models
class WordTimestamp(BaseModel):
    """Timing of one synthesized word, in seconds from the start of the audio."""

    word: str = Field(..., description="Word as spoken by the provider")
    start: float = Field(..., ge=0.0, description="Start time in seconds")
    end: float = Field(..., ge=0.0, description="End time in seconds")
    normalized: str = Field(default="", description="Canonical token used for alignment")


class RenderedWordElement(BaseModel):
    """One highlightable word of the rendered document, in reading order."""

    position: int = Field(..., ge=0, description="Document-order index of the element")
    text: str = Field(default="", description="Visible text of the element")
    normalized: str = Field(default="", description="Canonical token used for alignment")


# Cache models
class CacheKey(BaseModel):
    """Content-addressed location of a narration artifact."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    document_key: str
    content_hash: str

    @property
    def base(self) -> str:
        return f"{self.prefix}/{self.document_key}/{self.content_hash}"

    @property
    def audio_key(self) -> str:
        return f"{self.base}.mp3"

    @property
    def timestamps_key(self) -> str:
        return f"{self.base}.json"


class NarrationArtifact(BaseModel):
    """Stored narration: where the audio lives and its word timings."""

    audio_url: str
    timestamps: list[WordTimestamp] = Field(default_factory=list)
    content_hash: str


class SynthesisResult(BaseModel):
    """Audio bytes and canonical word timings returned by a TTS driver."""

    audio: bytes
    timestamps: list[WordTimestamp] = Field(default_factory=list)
    content_type: str = "audio/mpeg"


class QuotaInfo(BaseModel):
    """Character quota reported by the speech provider."""

    character_count: int = 0
    character_limit: int = 0

    @property
    def remaining_characters(self) -> int:
        return max(0, self.character_limit - self.character_count)


# Provider alignment payloads
class ProviderWordEntry(BaseModel):
    word: str | None = None
    start: float | None = None
    end: float | None = None


class ProviderCharacterEntry(BaseModel):
    character: str | None = Field(default=None, validation_alias=AliasChoices("character", "char"))
    start: float | None = None
    end: float | None = None


# Request/Response Models
class NarrationRequest(BaseModel):
    slug: Any = Field(None, description="Document slug, as a path or list of segments; other values are ignored")


class NarrationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_url: str = Field(..., alias="audioUrl", description="URL of the narration audio")
    timestamps: list[WordTimestamp] = Field(default_factory=list, description="Word timings")
    hash: str = Field(..., description="Content hash of the narrated text")
    cached: bool = Field(default=False, description="Whether the narration was served from cache")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="User-facing error message")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str | None = Field(None, description="Service version")
    storage: str | None = Field(None, description="Active storage backend")


class DocumentStatus(BaseModel):
    """Narration readiness of one document, used by the pre-generation tool."""

    slug: str
    document_key: str
    characters: int
    cached: bool
    cache_key: CacheKey
