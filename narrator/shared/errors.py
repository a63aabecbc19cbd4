"""
Exception hierarchy shared by the narration services and the playback core.
"""


class NarrationError(Exception):
    """Base class for narration failures surfaced to callers."""

    status_code = 500
    public_message = "Unable to generate narration"


class InvalidDocumentKeyError(NarrationError):
    """The request did not identify a document."""

    status_code = 400
    public_message = "Missing article slug"


class DocumentNotFoundError(NarrationError):
    """The requested document does not exist or has no narratable content."""

    status_code = 404
    public_message = "Article not found"


class UpstreamSynthesisError(NarrationError):
    """The speech provider rejected the request or returned an unusable response."""


class PlaybackError(NarrationError):
    """The media transport failed to load or play narration audio."""

    public_message = "Playback failed"
