"""JSON API endpoints for panel data and CSV exports."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from tactical.analytics.position_metrics import PositionAnalytics
from tactical.models import ClosedTrade, IndicatorSnapshot
from tactical.signals.models import ChecklistResult

log = structlog.get_logger(__name__)

router = APIRouter()


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


def snapshot_to_dict(snapshot: IndicatorSnapshot) -> dict[str, Any]:
    return {
        "rsi": {"h1": str(snapshot.rsi_1h), "h4": str(snapshot.rsi_4h), "d1": str(snapshot.rsi_1d)},
        "macd": {
            "h1": str(snapshot.macd_1h),
            "h4": str(snapshot.macd_4h),
            "d1": str(snapshot.macd_1d),
            "h4_flattening": snapshot.macd_4h_flattening,
        },
        "funding_rate": str(snapshot.funding_rate),
        "oi_trend": snapshot.oi_trend.value,
        "spot_volume_24h": str(snapshot.spot_volume_24h),
        "futures_volume_24h": str(snapshot.futures_volume_24h),
        "near_support": snapshot.near_support,
        "require_support": snapshot.require_support,
        "price": str(snapshot.price),
        "is_demo": snapshot.is_demo,
    }


def decision_to_dict(result: ChecklistResult) -> dict[str, Any]:
    return {
        "verdict": result.verdict.value,
        "unmet": result.unmet,
        "flags": {criterion.value: ok for criterion, ok in result.flags.items()},
    }


def analytics_to_dict(item: PositionAnalytics) -> dict[str, Any]:
    return {
        "id": item.position_id,
        "opened_at": item.opened_at,
        "entry_price": str(item.entry_price),
        "quantity": str(item.quantity),
        "notional": str(item.notional),
        "current_price": str(item.current_price),
        "pnl_usd": str(item.pnl_usd),
        "pnl_pct": str(item.pnl_pct),
        "tier": item.tier.value,
        "recommendation": item.recommendation,
        "days_held": item.days_held,
        "best_excursion_pct": str(item.best_excursion_pct),
        "ttb_flag": item.ttb_flag,
        "note": item.note,
    }


def closed_trade_to_dict(trade: ClosedTrade) -> dict[str, Any]:
    return {
        "id": trade.position_id,
        "side": trade.side.value,
        "opened_at": trade.opened_at,
        "closed_at": trade.closed_at,
        "entry_price": str(trade.entry_price),
        "exit_price": str(trade.exit_price),
        "quantity_closed": str(trade.quantity_closed),
        "realized_pnl_usd": str(trade.realized_pnl_usd),
        "note": trade.note,
    }


@router.get("/snapshot")
async def get_snapshot(request: Request) -> JSONResponse:
    """Current indicator snapshot."""
    panel = request.app.state.panel
    return JSONResponse(content=snapshot_to_dict(panel.snapshot))


@router.get("/decision")
async def get_decision(request: Request) -> JSONResponse:
    """Checklist verdict for the current snapshot."""
    panel = request.app.state.panel
    return JSONResponse(content=decision_to_dict(panel.decision()))


@router.get("/positions")
async def get_positions(request: Request) -> JSONResponse:
    """Open positions with P&L, tier, recommendation and time-to-bounce flag."""
    panel = request.app.state.panel
    return JSONResponse(content=[analytics_to_dict(a) for a in panel.analytics])


@router.get("/closed-trades")
async def get_closed_trades(request: Request) -> JSONResponse:
    """Closed-trade history, most recent first."""
    panel = request.app.state.panel
    trades = panel.ledger.get_closed_trades()
    return JSONResponse(content=[closed_trade_to_dict(t) for t in trades])


@router.get("/summary")
async def get_summary(request: Request) -> JSONResponse:
    """Portfolio totals: exposure, unrealized and realized P&L, stalled count."""
    panel = request.app.state.panel
    return JSONResponse(content=_decimal_to_str(panel.summary()))


@router.get("/settings")
async def get_settings(request: Request) -> JSONResponse:
    """Drafts, presets and data-source config (API key masked)."""
    panel = request.app.state.panel
    ledger_settings = request.app.state.settings.ledger
    sources = panel.data_sources
    return JSONResponse(content=_decimal_to_str({
        "tranche_amount": panel.tranche_amount,
        "note_draft": panel.note_draft,
        "tranche_presets": ledger_settings.tranche_presets,
        "exit_fractions": ledger_settings.exit_fractions,
        "data_sources": {
            **{f"{name}_endpoint": url for name, url in sources.endpoints().items()},
            "has_api_key": bool(sources.api_key),
        },
    }))


@router.get("/export/open-positions.csv")
async def export_open_positions(request: Request) -> Response:
    panel = request.app.state.panel
    filename, csv_text = panel.export_open_csv()
    log.info("csv_exported", kind="open_positions", filename=filename)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export/closed-trades.csv")
async def export_closed_trades(request: Request) -> Response:
    panel = request.app.state.panel
    filename, csv_text = panel.export_closed_csv()
    log.info("csv_exported", kind="closed_trades", filename=filename)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
