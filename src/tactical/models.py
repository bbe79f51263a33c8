"""Shared data models for the BTC tactical panel.

All prices, quantities, notionals and percentages use Decimal. Timestamps
are Unix seconds (float).
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum


class OITrend(str, Enum):
    """Open-interest trend reported by the perp data source."""

    RISING = "rising"
    FLAT = "flat"
    FALLING = "falling"


class PositionSide(str, Enum):
    """Position direction. Spot ledger positions are long-only."""

    LONG = "LONG"


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Market metrics for one evaluation instant.

    Replaced wholesale on each refresh. ``price`` of 0 means the spot
    price is unknown; ``require_support`` is the user's checklist toggle
    and is never fetched.
    """

    rsi_1h: Decimal
    rsi_4h: Decimal
    rsi_1d: Decimal
    macd_1h: Decimal  # histogram values
    macd_4h: Decimal
    macd_1d: Decimal
    macd_4h_flattening: bool
    funding_rate: Decimal  # percent per period
    oi_trend: OITrend
    spot_volume_24h: Decimal
    futures_volume_24h: Decimal
    near_support: bool
    require_support: bool
    price: Decimal
    is_demo: bool = False

    @property
    def has_price(self) -> bool:
        return self.price > 0

    def with_require_support(self, require_support: bool) -> "IndicatorSnapshot":
        """Return a copy with the support toggle changed."""
        return replace(self, require_support=require_support)


@dataclass
class Position:
    """An open long spot position.

    Only ``quantity`` and ``notional`` shrink on partial exits; the entry
    price never changes, so notional stays ``quantity * entry_price``.
    ``best_excursion_pct`` only ever moves upward.
    """

    id: str
    entry_price: Decimal
    quantity: Decimal  # remaining base units
    notional: Decimal  # remaining quote-currency basis
    opened_at: float
    note: str | None = None
    best_excursion_pct: Decimal = Decimal("0")
    side: PositionSide = PositionSide.LONG


@dataclass(frozen=True)
class ClosedTrade:
    """One partial or final exit from a position."""

    position_id: str
    side: PositionSide
    entry_price: Decimal
    opened_at: float
    closed_at: float
    exit_price: Decimal
    quantity_closed: Decimal
    realized_pnl_usd: Decimal
    note: str | None = None


# Built-in values used when every indicator source fails or is unconfigured.
DEMO_SNAPSHOT = IndicatorSnapshot(
    rsi_1h=Decimal("46"),
    rsi_4h=Decimal("49"),
    rsi_1d=Decimal("50"),
    macd_1h=Decimal("85"),
    macd_4h=Decimal("-21"),
    macd_1d=Decimal("44"),
    macd_4h_flattening=False,
    funding_rate=Decimal("0.01"),
    oi_trend=OITrend.FALLING,
    spot_volume_24h=Decimal("27"),
    futures_volume_24h=Decimal("58"),
    near_support=False,
    require_support=True,
    price=Decimal("114000"),
    is_demo=True,
)

# State before the first refresh.
EMPTY_SNAPSHOT = IndicatorSnapshot(
    rsi_1h=Decimal("0"),
    rsi_4h=Decimal("0"),
    rsi_1d=Decimal("0"),
    macd_1h=Decimal("0"),
    macd_4h=Decimal("0"),
    macd_1d=Decimal("0"),
    macd_4h_flattening=False,
    funding_rate=Decimal("0"),
    oi_trend=OITrend.FLAT,
    spot_volume_24h=Decimal("0"),
    futures_volume_24h=Decimal("0"),
    near_support=False,
    require_support=True,
    price=Decimal("0"),
)
