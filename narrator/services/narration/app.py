"""Narration service API endpoints for document read-along audio."""

import mimetypes

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from narrator import __version__
from narrator.services.narration.orchestrator import NarrationOrchestrator
from narrator.shared.errors import InvalidDocumentKeyError, NarrationError
from narrator.shared.models import ErrorResponse, HealthResponse, NarrationRequest, NarrationResponse
from narrator.shared.utils import config, setup_logging

logger = setup_logging("narration-service")

app = FastAPI(
    title="Narration Service",
    description="Cached text-to-speech narration with word timestamps for documents",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_orchestrator: NarrationOrchestrator | None = None


def get_orchestrator() -> NarrationOrchestrator:
    """Shared orchestrator, created on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = NarrationOrchestrator()
    return _orchestrator


def _error_response(error: NarrationError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(error=error.public_message).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unreadable request bodies are treated as requests without a slug."""
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return _error_response(InvalidDocumentKeyError())


app.add_exception_handler(RequestValidationError, validation_error_handler)


def is_servable_media_key(key: str) -> bool:
    """Only narration artifacts under the cache prefix are exposed."""
    prefix = f"{config.get('cache_prefix', 'tts').strip('/')}/"
    return key.startswith(prefix) and key.endswith((".mp3", ".json"))


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for the narration service."""
    return HealthResponse(
        status="healthy",
        service="narration",
        version=__version__,
        storage=config.get("storage_backend"),
    )


@app.post(
    "/narration",
    response_model=NarrationResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def request_narration(
    request: NarrationRequest,
    orchestrator: NarrationOrchestrator = Depends(get_orchestrator),
):
    """Return the narration audio URL and word timestamps for a document.

    Narration is served from the content-addressed cache when the document's
    text is unchanged; otherwise it is synthesized once and stored.
    """
    try:
        return await orchestrator.request_narration(request.slug)
    except NarrationError as e:
        if e.status_code >= 500:
            logger.error(f"Narration failed for slug {request.slug!r}: {e}")
        else:
            logger.info(f"Narration rejected for slug {request.slug!r}: {e}")
        return _error_response(e)
    except Exception:
        logger.exception(f"Unexpected narration failure for slug {request.slug!r}")
        return _error_response(NarrationError())


@app.get("/media/{key:path}")
async def get_media(key: str, orchestrator: NarrationOrchestrator = Depends(get_orchestrator)):
    """Serve a stored narration blob."""
    not_found = JSONResponse(status_code=404, content=ErrorResponse(error="Media not found").model_dump())
    if not is_servable_media_key(key):
        return not_found
    try:
        data = await orchestrator.storage.read(key)
    except KeyError:
        return not_found

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
