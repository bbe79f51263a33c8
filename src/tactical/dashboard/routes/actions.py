"""POST endpoints for panel actions: refresh, buy, exits, drafts and settings.

Rejected ledger actions answer ``{"ok": false, ...}`` with status 200;
the ledger itself never raises.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tactical.config import DataSourceConfig
from tactical.dashboard.routes.api import (
    analytics_to_dict,
    closed_trade_to_dict,
    decision_to_dict,
    snapshot_to_dict,
)

log = structlog.get_logger(__name__)

router = APIRouter()


class ClosePortionRequest(BaseModel):
    fraction: Decimal


class DraftRequest(BaseModel):
    tranche_amount: Decimal | None = None
    note: str | None = None


class RequireSupportRequest(BaseModel):
    require_support: bool


class DataSourcesRequest(BaseModel):
    rsi_endpoint: str = ""
    macd_endpoint: str = ""
    perp_endpoint: str = ""
    volume_endpoint: str = ""
    price_endpoint: str = ""
    api_key: str = ""


@router.post("/refresh")
async def refresh(request: Request) -> JSONResponse:
    """Fetch a new snapshot and return it with the resulting decision."""
    panel = request.app.state.panel
    snapshot = await panel.refresh()
    return JSONResponse(content={
        "ok": True,
        "snapshot": snapshot_to_dict(snapshot),
        "decision": decision_to_dict(panel.decision()),
    })


@router.post("/buy")
async def buy(request: Request) -> JSONResponse:
    """Open a position for the drafted tranche at the current price."""
    panel = request.app.state.panel
    position = await panel.buy()
    if position is None:
        log.info("buy_rejected_via_dashboard", tranche_amount=str(panel.tranche_amount))
        return JSONResponse(content={
            "ok": False,
            "reason": "price unavailable or tranche amount not positive",
        })
    opened = next(a for a in panel.analytics if a.position_id == position.id)
    return JSONResponse(content={"ok": True, "position": analytics_to_dict(opened)})


@router.post("/positions/{position_id}/close")
async def close_portion(
    request: Request, position_id: str, body: ClosePortionRequest
) -> JSONResponse:
    """Close a fraction of a position's remaining quantity."""
    panel = request.app.state.panel
    trade = await panel.close_portion(position_id, body.fraction)
    if trade is None:
        return JSONResponse(content={
            "ok": False,
            "reason": "unknown position, fraction outside (0, 1], or price unavailable",
        })
    return JSONResponse(content={"ok": True, "trade": closed_trade_to_dict(trade)})


@router.post("/positions/{position_id}/close-all")
async def close_all(request: Request, position_id: str) -> JSONResponse:
    """Close the whole remaining quantity of a position."""
    panel = request.app.state.panel
    trade = await panel.close_all(position_id)
    if trade is None:
        return JSONResponse(content={
            "ok": False,
            "reason": "unknown position or price unavailable",
        })
    return JSONResponse(content={"ok": True, "trade": closed_trade_to_dict(trade)})


@router.post("/draft")
async def update_draft(request: Request, body: DraftRequest) -> JSONResponse:
    """Update the tranche amount and/or note draft."""
    panel = request.app.state.panel
    if body.tranche_amount is not None:
        await panel.set_tranche_amount(body.tranche_amount)
    if body.note is not None:
        await panel.set_note_draft(body.note)
    return JSONResponse(content={
        "ok": True,
        "tranche_amount": str(panel.tranche_amount),
        "note_draft": panel.note_draft,
    })


@router.post("/require-support")
async def set_require_support(request: Request, body: RequireSupportRequest) -> JSONResponse:
    """Toggle whether the support criterion is enforced."""
    panel = request.app.state.panel
    result = panel.set_require_support(body.require_support)
    return JSONResponse(content={"ok": True, "decision": decision_to_dict(result)})


@router.post("/data-sources")
async def update_data_sources(request: Request, body: DataSourcesRequest) -> JSONResponse:
    """Replace the indicator endpoints and bearer token."""
    panel = request.app.state.panel
    await panel.update_data_sources(DataSourceConfig(**body.model_dump()))
    log.info("data_sources_updated_via_dashboard")
    return JSONResponse(content={"ok": True})
