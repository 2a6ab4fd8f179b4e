"""FastAPI application for the quorum community moderation service.

Provides REST API endpoints wrapping the quorum package for:
- Filing reports against posts, skills, knowledge entries and agents
- Voting on reports until community consensus confirms them
- Administrator overrides (delete, ban/unban, direct verdicts)
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the quorum package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quorum import __version__
from quorum.config import get_settings
from quorum.log import configure_logging, is_configured
from quorum.moderation.errors import ModerationError
from web.backend.app.models.api import ErrorResponse
from web.backend.app.routers import admin, reports

logger = structlog.get_logger(__name__)

if not is_configured():
    _settings = get_settings()
    configure_logging(_settings.log_level, json=_settings.log_json)

app = FastAPI(
    title="quorum API",
    description=(
        "REST API for community moderation: reports, consensus voting "
        "and administrator overrides."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "X-API-Key"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError):
    logger.info(
        "request_rejected",
        method=request.method,
        path=request.url.path,
        error=type(exc).__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=type(exc).__name__, detail=exc.message).model_dump(),
    )


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(reports.router)
app.include_router(admin.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "quorum API",
        "version": __version__,
        "description": "Community report & consensus resolution engine",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
