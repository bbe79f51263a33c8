"""Shared test fixtures for the BTC tactical panel."""

from dataclasses import replace
from decimal import Decimal

import pytest

from tactical.config import AppSettings, ChecklistSettings, LedgerSettings
from tactical.models import IndicatorSnapshot, OITrend

DAY = 86400.0


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, start: float = 1_735_689_600.0) -> None:  # 2025-01-01T00:00:00Z
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def buy_ready_snapshot(**overrides) -> IndicatorSnapshot:
    """Snapshot satisfying all six entry criteria; override fields to break them."""
    snapshot = IndicatorSnapshot(
        rsi_1h=Decimal("40"),
        rsi_4h=Decimal("42"),
        rsi_1d=Decimal("50"),
        macd_1h=Decimal("10"),
        macd_4h=Decimal("5"),
        macd_1d=Decimal("20"),
        macd_4h_flattening=False,
        funding_rate=Decimal("-0.005"),
        oi_trend=OITrend.FLAT,
        spot_volume_24h=Decimal("30"),
        futures_volume_24h=Decimal("30"),
        near_support=True,
        require_support=True,
        price=Decimal("100000"),
    )
    return replace(snapshot, **overrides)


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with default checklist and ledger thresholds."""
    return AppSettings(
        log_level="DEBUG",
        checklist=ChecklistSettings(),
        ledger=LedgerSettings(),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
