"""
Narrator - Unified Application Entry Point
Mounts the narration service under a single FastAPI application
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from narrator import __version__
from narrator.services.narration import app as narration_module
from narrator.shared.models import HealthResponse
from narrator.shared.utils import config, setup_logging

logger = setup_logging("narrator-gateway")

narration_app = narration_module.app

app = FastAPI(
    title="Narrator API",
    description="""
    Document narration: cached speech synthesis with word timestamps for read-along playback.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Narration",
            "description": "Narration requests - mounted at /api",
        },
        {
            "name": "Media",
            "description": "Stored narration audio and timestamps - mounted at the media base URL",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, narration_module.validation_error_handler)

# Routes to exclude (internal FastAPI docs routes and the service's own health check)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc", "/health"}

# Media stays at the root so stored URLs (``/media/...``) resolve; everything else lives under /api
for route in narration_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        if route.path in EXCLUDED_PATHS:
            continue
        is_media = route.path.startswith("/media")
        route_kwargs = {
            "path": route.path if is_media else f"/api{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Media" if is_media else "Narration"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"narration_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        if hasattr(route, "responses"):
            route_kwargs["responses"] = route.responses
        app.add_api_route(**route_kwargs)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Gateway health check."""
    return HealthResponse(
        status="healthy",
        service="narrator",
        version=__version__,
        storage=config.get("storage_backend"),
    )


@app.on_event("startup")
async def log_startup() -> None:
    logger.info("Narrator gateway started (storage=%s)", config.get("storage_backend"))
