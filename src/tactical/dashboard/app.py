"""FastAPI dashboard application factory (JSON API and actions only)."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from tactical.dashboard.routes import actions, api


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to build components and load persisted state.

    Returns:
        Configured FastAPI application. Route handlers expect
        ``app.state.panel`` to hold a TacticalPanel.
    """
    app = FastAPI(
        title="BTC Tactical Decision Panel",
        lifespan=lifespan,
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")

    return app
