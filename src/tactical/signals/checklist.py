"""Tactical entry checklist and verdict evaluation.

Each criterion is a pure function of the snapshot. The verdict follows a
fixed precedence, first match wins:

1. BUY   -- all six criteria hold
2. TP    -- any RSI (1H/4H/1D) >= 65 and 4H MACD histogram < 0
3. TRAIL -- MACD ok, 1H or 4H RSI above the band, OI not rising
4. HOLD  -- otherwise

Take-profit is checked independently of the entry criteria and outranks
TRAIL. The evaluator never reads the clock.
"""

from decimal import Decimal

from tactical.config import ChecklistSettings
from tactical.logging import get_logger
from tactical.models import IndicatorSnapshot, OITrend
from tactical.signals.models import ChecklistResult, Criterion, Verdict

logger = get_logger(__name__)


def rsi_in_band(snapshot: IndicatorSnapshot, settings: ChecklistSettings) -> bool:
    """1H or 4H RSI inside the inclusive entry band."""
    low, high = settings.rsi_band_low, settings.rsi_band_high
    return low <= snapshot.rsi_1h <= high or low <= snapshot.rsi_4h <= high


def macd_ok(snapshot: IndicatorSnapshot) -> bool:
    """4H MACD flattening, or histogram already non-negative."""
    return snapshot.macd_4h_flattening or snapshot.macd_4h >= 0


def funding_ok(snapshot: IndicatorSnapshot) -> bool:
    return snapshot.funding_rate <= 0


def open_interest_ok(snapshot: IndicatorSnapshot) -> bool:
    return snapshot.oi_trend != OITrend.RISING


def spot_volume_ok(snapshot: IndicatorSnapshot, settings: ChecklistSettings) -> bool:
    """Spot volume holding up against futures volume."""
    return snapshot.spot_volume_24h >= snapshot.futures_volume_24h * settings.spot_futures_ratio


def support_ok(snapshot: IndicatorSnapshot) -> bool:
    if snapshot.require_support:
        return snapshot.near_support
    return True


def is_take_profit(snapshot: IndicatorSnapshot, settings: ChecklistSettings) -> bool:
    """Overbought on any timeframe while the 4H histogram is negative."""
    threshold = settings.take_profit_rsi
    overbought = (
        snapshot.rsi_1h >= threshold
        or snapshot.rsi_4h >= threshold
        or snapshot.rsi_1d >= threshold
    )
    return overbought and snapshot.macd_4h < Decimal("0")


def is_trail(
    snapshot: IndicatorSnapshot,
    flags: dict[Criterion, bool],
    settings: ChecklistSettings,
) -> bool:
    """Momentum continuing above the entry band with OI contained."""
    above_band = (
        snapshot.rsi_1h > settings.rsi_band_high
        or snapshot.rsi_4h > settings.rsi_band_high
    )
    return flags[Criterion.MACD] and above_band and flags[Criterion.OPEN_INTEREST]


def evaluate_criteria(
    snapshot: IndicatorSnapshot, settings: ChecklistSettings
) -> dict[Criterion, bool]:
    """Evaluate all six criteria, keyed in display order."""
    return {
        Criterion.RSI_BAND: rsi_in_band(snapshot, settings),
        Criterion.MACD: macd_ok(snapshot),
        Criterion.FUNDING: funding_ok(snapshot),
        Criterion.OPEN_INTEREST: open_interest_ok(snapshot),
        Criterion.SPOT_VOLUME: spot_volume_ok(snapshot, settings),
        Criterion.SUPPORT: support_ok(snapshot),
    }


def evaluate(
    snapshot: IndicatorSnapshot, settings: ChecklistSettings | None = None
) -> ChecklistResult:
    """Map a snapshot to a verdict and the list of unmet criteria.

    Args:
        snapshot: Indicator values for one evaluation instant.
        settings: Checklist thresholds. Defaults reproduce the fixed checklist.

    Returns:
        ChecklistResult with verdict, unmet labels (display order) and
        per-criterion flags.
    """
    settings = settings or ChecklistSettings()
    flags = evaluate_criteria(snapshot, settings)
    unmet = [criterion.label for criterion, ok in flags.items() if not ok]

    if all(flags.values()):
        verdict = Verdict.BUY
    elif is_take_profit(snapshot, settings):
        verdict = Verdict.TAKE_PROFIT
    elif is_trail(snapshot, flags, settings):
        verdict = Verdict.TRAIL
    else:
        verdict = Verdict.HOLD

    logger.debug(
        "checklist_evaluated",
        verdict=verdict.value,
        unmet_count=len(unmet),
        price=str(snapshot.price),
        is_demo=snapshot.is_demo,
    )
    return ChecklistResult(verdict=verdict, unmet=unmet, flags=flags)
