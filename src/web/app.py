"""
FastAPI application factory for the live detection status API.

Routes:
- /api/status     -> engine status and frame counters
- /api/detections -> latest decoded results
- /api/health     -> loaded model metadata
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Live Detect",
        version="0.1.0",
        description="On-device object detection status API",
    )

    # Read-only API; any dashboard origin may poll it.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    return app
