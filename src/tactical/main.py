"""Entry point for the BTC tactical decision panel.

Wires all components together and serves the JSON dashboard with uvicorn.
Persisted state is loaded in the FastAPI lifespan; the database is closed
on shutdown. There is no background polling: the snapshot only changes
when a client posts /actions/refresh.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. StateDatabase + PanelStateStore (key/value persistence)
4. IndicatorSourceClient (HTTP fetch of the configured endpoints)
5. SnapshotService (current snapshot, merge and demo fallback)
6. PositionLedger (open positions and closed trades)
7. TacticalPanel (controller)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tactical.config import AppSettings, DataSourceConfig
from tactical.data.database import StateDatabase
from tactical.data.store import PanelStateStore
from tactical.logging import get_logger, setup_logging
from tactical.market_data.snapshot_service import SnapshotService
from tactical.market_data.source_client import IndicatorSourceClient
from tactical.panel import TacticalPanel
from tactical.position.ledger import PositionLedger


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all panel components from settings.

    Note: Does NOT connect the database or load state -- that happens in
    the lifespan.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    default_sources = DataSourceConfig.from_settings(settings.sources)

    database = StateDatabase(settings.state.db_path)
    store = PanelStateStore(database, default_sources=default_sources)

    source_client = IndicatorSourceClient(
        default_sources,
        timeout_seconds=settings.sources.timeout_seconds,
    )
    snapshot_service = SnapshotService(source_client)

    ledger = PositionLedger(settings.ledger)

    panel = TacticalPanel(
        settings=settings,
        snapshot_service=snapshot_service,
        ledger=ledger,
        store=store,
    )

    return {
        "database": database,
        "store": store,
        "source_client": source_client,
        "snapshot_service": snapshot_service,
        "ledger": ledger,
        "panel": panel,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the state database and restore the panel on startup."""
    logger = get_logger("tactical.main")
    components = app.state.components

    await components["database"].connect()
    await components["panel"].load()
    app.state.panel = components["panel"]

    logger.info("lifespan_started", db_path=app.state.settings.state.db_path)

    yield

    await components["database"].close()
    logger.info("tactical_panel_stopped")


async def run() -> None:
    """Run the panel's dashboard server."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("tactical.main")

    if not settings.dashboard.enabled:
        logger.warning("dashboard_disabled", note="nothing to serve; exiting")
        return

    from tactical.dashboard.app import create_dashboard_app

    app = create_dashboard_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = _build_components(settings)

    logger.info(
        "starting_dashboard",
        host=settings.dashboard.host,
        port=settings.dashboard.port,
    )

    config = uvicorn.Config(
        app,
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
