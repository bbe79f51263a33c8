"""Indicator snapshot refresh: fetch, overlay onto the previous snapshot, or fall back.

Payload shapes (each source optional):
    rsi:    {"rsi": {"h1": .., "h4": .., "d1": ..}}
    macd:   {"macd": {"h1": {"hist"}, "h4": {"hist", "flattening"}, "d1": {"hist"}}}
    perp:   {"funding": .., "oiTrend": "rising|flat|falling", "nearSupport": bool}
    volume: {"spot24h": .., "futures24h": ..}
    price:  {"price": ..}

A field that is missing or cannot be coerced keeps the previous
snapshot's value. When no source returns anything, the built-in demo
snapshot is used instead so the checklist always has input.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any

from tactical.logging import get_logger
from tactical.market_data.source_client import IndicatorSourceClient
from tactical.models import DEMO_SNAPSHOT, EMPTY_SNAPSHOT, IndicatorSnapshot, OITrend

logger = get_logger(__name__)


def _dig(payload: dict[str, Any] | None, *keys: str) -> Any:
    """Walk nested dict keys, returning None at the first gap."""
    node: Any = payload
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _as_decimal(value: Any, fallback: Decimal) -> Decimal:
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, float) and not math.isfinite(value):
        return fallback
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return fallback
    return result if result.is_finite() else fallback


def _as_bool(value: Any, fallback: bool) -> bool:
    return value if isinstance(value, bool) else fallback


def _as_oi_trend(value: Any, fallback: OITrend) -> OITrend:
    try:
        return OITrend(value)
    except ValueError:
        return fallback


def merge_snapshot(
    previous: IndicatorSnapshot,
    payloads: dict[str, dict[str, Any] | None],
) -> IndicatorSnapshot:
    """Overlay source payloads onto ``previous`` field by field.

    The support toggle always carries over from ``previous``.
    """
    rsi = payloads.get("rsi")
    macd = payloads.get("macd")
    perp = payloads.get("perp")
    volume = payloads.get("volume")
    price = payloads.get("price")

    return IndicatorSnapshot(
        rsi_1h=_as_decimal(_dig(rsi, "rsi", "h1"), previous.rsi_1h),
        rsi_4h=_as_decimal(_dig(rsi, "rsi", "h4"), previous.rsi_4h),
        rsi_1d=_as_decimal(_dig(rsi, "rsi", "d1"), previous.rsi_1d),
        macd_1h=_as_decimal(_dig(macd, "macd", "h1", "hist"), previous.macd_1h),
        macd_4h=_as_decimal(_dig(macd, "macd", "h4", "hist"), previous.macd_4h),
        macd_1d=_as_decimal(_dig(macd, "macd", "d1", "hist"), previous.macd_1d),
        macd_4h_flattening=_as_bool(
            _dig(macd, "macd", "h4", "flattening"), previous.macd_4h_flattening
        ),
        funding_rate=_as_decimal(_dig(perp, "funding"), previous.funding_rate),
        oi_trend=_as_oi_trend(_dig(perp, "oiTrend"), previous.oi_trend),
        spot_volume_24h=_as_decimal(_dig(volume, "spot24h"), previous.spot_volume_24h),
        futures_volume_24h=_as_decimal(
            _dig(volume, "futures24h"), previous.futures_volume_24h
        ),
        near_support=_as_bool(_dig(perp, "nearSupport"), previous.near_support),
        require_support=previous.require_support,
        price=_as_decimal(_dig(price, "price"), previous.price),
    )


class SnapshotService:
    """Holds the current indicator snapshot and refreshes it on demand.

    Refreshes are not coordinated with each other: whichever completes
    last replaces the snapshot.

    Args:
        client: Source client used to fetch payloads.
        initial: Snapshot to start from (before any refresh).
    """

    def __init__(
        self,
        client: IndicatorSourceClient,
        initial: IndicatorSnapshot = EMPTY_SNAPSHOT,
    ) -> None:
        self._client = client
        self._snapshot = initial

    @property
    def client(self) -> IndicatorSourceClient:
        return self._client

    @property
    def snapshot(self) -> IndicatorSnapshot:
        return self._snapshot

    def set_require_support(self, require_support: bool) -> IndicatorSnapshot:
        """Apply the user's support toggle to the current snapshot."""
        self._snapshot = self._snapshot.with_require_support(require_support)
        return self._snapshot

    async def refresh(self) -> IndicatorSnapshot:
        """Fetch all sources and replace the snapshot.

        Never raises: failed sources keep their previous values, and a
        refresh where nothing answered substitutes the demo snapshot.
        """
        previous = self._snapshot
        payloads = await self._client.fetch_all()
        answered = [name for name, payload in payloads.items() if payload is not None]

        if answered:
            snapshot = merge_snapshot(previous, payloads)
            logger.info("snapshot_refreshed", sources=answered, price=str(snapshot.price))
        else:
            snapshot = DEMO_SNAPSHOT.with_require_support(previous.require_support)
            logger.warning("snapshot_demo_fallback", reason="no source returned data")

        self._snapshot = snapshot
        return snapshot
