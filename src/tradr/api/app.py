"""FastAPI application factory for the analysis endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from tradr.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to wire and tear down the orchestrator.

    Returns:
        Configured FastAPI application. ``app.state.orchestrator`` must be
        set (by the lifespan or a test) before requests are served.
    """
    app = FastAPI(
        title="Tradr Stock Analysis",
        lifespan=lifespan,
    )

    # Wired by main.py lifespan
    app.state.orchestrator = None

    app.include_router(routes.health_router)
    app.include_router(routes.router)
    # Legacy path kept for existing clients
    app.include_router(routes.router, prefix="/api/stock")

    return app
