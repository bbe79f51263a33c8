"""CSV exports of open positions and closed trades.

Column sets and order are fixed; downstream spreadsheets depend on them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pandas as pd

from tactical.analytics.position_metrics import PositionAnalytics
from tactical.models import ClosedTrade, PositionSide

OPEN_POSITION_COLUMNS = [
    "id",
    "openedAt",
    "side",
    "entryPrice",
    "qtyBtc",
    "amountUsd",
    "currentPrice",
    "pnlUsd",
    "pnlPct",
    "tier",
    "recommendation",
    "daysHeld",
    "maxPnlPctEver",
    "ttbFlag",
    "notes",
]

CLOSED_TRADE_COLUMNS = [
    "id",
    "openedAt",
    "closedAt",
    "side",
    "entryPrice",
    "exitPrice",
    "qtyClosed",
    "realizedPnlUsd",
    "notes",
]


def iso_timestamp(ts: float) -> str:
    """Render Unix seconds as ISO-8601 UTC with milliseconds, e.g. 2025-01-01T00:00:00.000Z."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def open_positions_rows(
    analytics: list[PositionAnalytics], price: Decimal
) -> list[dict[str, Any]]:
    return [
        {
            "id": a.position_id,
            "openedAt": iso_timestamp(a.opened_at),
            "side": PositionSide.LONG.value,
            "entryPrice": a.entry_price,
            "qtyBtc": a.quantity,
            "amountUsd": a.notional,
            "currentPrice": price,
            "pnlUsd": a.pnl_usd,
            "pnlPct": a.pnl_pct,
            "tier": a.tier.value,
            "recommendation": a.recommendation,
            "daysHeld": a.days_held,
            "maxPnlPctEver": a.best_excursion_pct,
            "ttbFlag": "true" if a.ttb_flag else "false",
            "notes": a.note or "",
        }
        for a in analytics
    ]


def closed_trades_rows(closed: list[ClosedTrade]) -> list[dict[str, Any]]:
    return [
        {
            "id": t.position_id,
            "openedAt": iso_timestamp(t.opened_at),
            "closedAt": iso_timestamp(t.closed_at),
            "side": t.side.value,
            "entryPrice": t.entry_price,
            "exitPrice": t.exit_price,
            "qtyClosed": t.quantity_closed,
            "realizedPnlUsd": t.realized_pnl_usd,
            "notes": t.note or "",
        }
        for t in closed
    ]


def to_csv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    """Render rows as CSV in ``columns`` order; an empty table is header only."""
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_csv(index=False)


def export_filename(kind: str, now: float) -> str:
    """Name a download, e.g. ``open_positions_1735689600000.csv``."""
    return f"{kind}_{int(now * 1000)}.csv"
