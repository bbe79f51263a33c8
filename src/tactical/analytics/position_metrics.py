"""Per-position analytics: P&L, profit tier, exit guidance, time-to-bounce.

Pure Decimal functions of (position, price, now). The only value that
outlives a recompute is ``best_excursion_pct``, which the caller writes
back into the ledger.

Exit tiers (on the raw, unrounded P&L percent):
    >= 10%  -> "+10%+"  Exit 20% or Trail
    >= 7%   -> "+7%"    Exit 30% (after 50%)
    >= 5%   -> "+5%"    Exit 50%
    below   -> "<5%"    Hold

Time-to-bounce flags a position held at least 5 days whose best-ever
excursion is still under +3%.
"""

import math
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from tactical.config import LedgerSettings
from tactical.models import ClosedTrade, Position

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_SECONDS_PER_DAY = 86400


class ProfitTier(str, Enum):
    """Profit bracket that selects the suggested exit action."""

    BELOW_5 = "<5%"
    PLUS_5 = "+5%"
    PLUS_7 = "+7%"
    PLUS_10 = "+10%+"


RECOMMENDATIONS: dict[ProfitTier, str] = {
    ProfitTier.BELOW_5: "Hold",
    ProfitTier.PLUS_5: "Exit 50%",
    ProfitTier.PLUS_7: "Exit 30% (after 50%)",
    ProfitTier.PLUS_10: "Exit 20% or Trail",
}


@dataclass(frozen=True)
class PositionAnalytics:
    """Derived view of one open position at the current price."""

    position_id: str
    entry_price: Decimal
    quantity: Decimal
    notional: Decimal
    opened_at: float
    note: str | None
    current_price: Decimal
    pnl_pct: Decimal  # rounded to 2 dp
    pnl_usd: Decimal  # rounded to 2 dp, on remaining notional
    tier: ProfitTier
    recommendation: str
    days_held: int
    best_excursion_pct: Decimal
    ttb_flag: bool


def _round2(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def raw_pnl_pct(entry_price: Decimal, price: Decimal) -> Decimal:
    """Unrounded percent change from entry; 0 when the price is unknown."""
    if price <= 0 or entry_price <= 0:
        return Decimal("0")
    return (price - entry_price) / entry_price * _HUNDRED


def classify_tier(raw_pct: Decimal) -> ProfitTier:
    """Select the profit tier from the unrounded P&L percent."""
    if raw_pct >= Decimal("10"):
        return ProfitTier.PLUS_10
    if raw_pct >= Decimal("7"):
        return ProfitTier.PLUS_7
    if raw_pct >= Decimal("5"):
        return ProfitTier.PLUS_5
    return ProfitTier.BELOW_5


def recommend(tier: ProfitTier) -> str:
    return RECOMMENDATIONS[tier]


def days_held(opened_at: float, now: float) -> int:
    """Whole days since ``opened_at``, never negative."""
    return max(0, math.floor((now - opened_at) / _SECONDS_PER_DAY))


def is_time_to_bounce_stall(
    held_days: int,
    best_excursion_pct: Decimal,
    settings: LedgerSettings,
) -> bool:
    return held_days >= settings.ttb_min_days and best_excursion_pct < settings.ttb_min_excursion_pct


def compute_position_analytics(
    position: Position,
    price: Decimal,
    now: float | None = None,
    settings: LedgerSettings | None = None,
) -> PositionAnalytics:
    """Derive P&L, tier, recommendation and staleness for one position.

    Args:
        position: The open position.
        price: Current spot price; 0 or less means unknown.
        now: Unix seconds to measure holding time against (defaults to now).
        settings: Ledger settings carrying the time-to-bounce thresholds.

    Returns:
        PositionAnalytics with the updated best-ever excursion.
    """
    settings = settings or LedgerSettings()
    now = time.time() if now is None else now

    raw_pct = raw_pnl_pct(position.entry_price, price)
    pnl_usd = raw_pct / _HUNDRED * position.notional
    current_gain = max(Decimal("0"), raw_pct)
    best = _round2(max(position.best_excursion_pct, current_gain))

    tier = classify_tier(raw_pct)
    held = days_held(position.opened_at, now)

    return PositionAnalytics(
        position_id=position.id,
        entry_price=position.entry_price,
        quantity=position.quantity,
        notional=position.notional,
        opened_at=position.opened_at,
        note=position.note,
        current_price=price,
        pnl_pct=_round2(raw_pct),
        pnl_usd=_round2(pnl_usd),
        tier=tier,
        recommendation=recommend(tier),
        days_held=held,
        best_excursion_pct=best,
        ttb_flag=is_time_to_bounce_stall(held, best, settings),
    )


def compute_analytics(
    positions: list[Position],
    price: Decimal,
    now: float | None = None,
    settings: LedgerSettings | None = None,
) -> list[PositionAnalytics]:
    """Compute analytics for every open position at one instant."""
    now = time.time() if now is None else now
    return [compute_position_analytics(p, price, now, settings) for p in positions]


def summarize_portfolio(
    analytics: list[PositionAnalytics],
    closed: list[ClosedTrade],
) -> dict:
    """Aggregate open exposure, unrealized and realized P&L.

    Returns:
        Dict with:
        - open_positions: Number of open positions.
        - total_notional: Sum of remaining notional.
        - unrealized_pnl_usd: Sum of per-position pnl_usd.
        - realized_pnl_usd: Sum of realized P&L over closed trades.
        - stalled_positions: Positions carrying the time-to-bounce flag.
    """
    return {
        "open_positions": len(analytics),
        "total_notional": sum((a.notional for a in analytics), Decimal("0")),
        "unrealized_pnl_usd": sum((a.pnl_usd for a in analytics), Decimal("0")),
        "realized_pnl_usd": sum((t.realized_pnl_usd for t in closed), Decimal("0")),
        "stalled_positions": sum(1 for a in analytics if a.ttb_flag),
    }
