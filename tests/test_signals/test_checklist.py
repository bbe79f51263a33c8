"""Tests for the tactical checklist evaluator.

Verifies:
- Each criterion in isolation (band edges, MACD flattening, funding sign,
  OI trend, spot/futures ratio, support toggle)
- Verdict precedence BUY > TP > TRAIL > HOLD
- unmet lists exactly the failed criteria in display order
- Demo snapshot evaluates to HOLD with RSI and MACD unmet
"""

from dataclasses import replace
from decimal import Decimal
from itertools import product

import pytest

from conftest import buy_ready_snapshot
from tactical.config import ChecklistSettings
from tactical.models import DEMO_SNAPSHOT, OITrend
from tactical.signals import CRITERION_LABELS, Criterion, Verdict, evaluate


class TestCriteria:
    """Each criterion evaluated on its own."""

    @pytest.mark.parametrize(
        "rsi_1h,rsi_4h,expected",
        [
            (Decimal("35"), Decimal("60"), True),  # lower edge inclusive
            (Decimal("45"), Decimal("60"), True),  # upper edge inclusive
            (Decimal("60"), Decimal("40"), True),  # 4H alone is enough
            (Decimal("34.99"), Decimal("45.01"), False),
            (Decimal("46"), Decimal("49"), False),
        ],
    )
    def test_rsi_band(self, rsi_1h: Decimal, rsi_4h: Decimal, expected: bool) -> None:
        result = evaluate(buy_ready_snapshot(rsi_1h=rsi_1h, rsi_4h=rsi_4h))
        assert result.flags[Criterion.RSI_BAND] is expected

    def test_macd_ok_when_flattening_despite_negative_histogram(self) -> None:
        snapshot = buy_ready_snapshot(macd_4h=Decimal("-50"), macd_4h_flattening=True)
        assert evaluate(snapshot).flags[Criterion.MACD] is True

    def test_macd_ok_at_zero_histogram(self) -> None:
        assert evaluate(buy_ready_snapshot(macd_4h=Decimal("0"))).flags[Criterion.MACD] is True

    def test_macd_fails_negative_without_flattening(self) -> None:
        snapshot = buy_ready_snapshot(macd_4h=Decimal("-0.1"), macd_4h_flattening=False)
        assert evaluate(snapshot).flags[Criterion.MACD] is False

    @pytest.mark.parametrize(
        "funding,expected",
        [(Decimal("0"), True), (Decimal("-0.01"), True), (Decimal("0.0001"), False)],
    )
    def test_funding(self, funding: Decimal, expected: bool) -> None:
        assert evaluate(buy_ready_snapshot(funding_rate=funding)).flags[Criterion.FUNDING] is expected

    @pytest.mark.parametrize(
        "trend,expected",
        [(OITrend.RISING, False), (OITrend.FLAT, True), (OITrend.FALLING, True)],
    )
    def test_open_interest(self, trend: OITrend, expected: bool) -> None:
        assert evaluate(buy_ready_snapshot(oi_trend=trend)).flags[Criterion.OPEN_INTEREST] is expected

    def test_spot_volume_at_ninety_percent_of_futures(self) -> None:
        snapshot = buy_ready_snapshot(
            spot_volume_24h=Decimal("90"), futures_volume_24h=Decimal("100")
        )
        assert evaluate(snapshot).flags[Criterion.SPOT_VOLUME] is True

    def test_spot_volume_below_ratio(self) -> None:
        snapshot = buy_ready_snapshot(
            spot_volume_24h=Decimal("89.9"), futures_volume_24h=Decimal("100")
        )
        assert evaluate(snapshot).flags[Criterion.SPOT_VOLUME] is False

    def test_support_ignored_when_not_required(self) -> None:
        snapshot = buy_ready_snapshot(near_support=False, require_support=False)
        assert evaluate(snapshot).flags[Criterion.SUPPORT] is True

    def test_support_required_and_missing(self) -> None:
        snapshot = buy_ready_snapshot(near_support=False, require_support=True)
        assert evaluate(snapshot).flags[Criterion.SUPPORT] is False

    def test_custom_band_from_settings(self) -> None:
        settings = ChecklistSettings(rsi_band_low=Decimal("30"), rsi_band_high=Decimal("50"))
        snapshot = buy_ready_snapshot(rsi_1h=Decimal("48"), rsi_4h=Decimal("49"))
        assert evaluate(snapshot, settings).flags[Criterion.RSI_BAND] is True


class TestVerdict:
    """Verdict precedence."""

    def test_all_criteria_met_is_buy(self) -> None:
        result = evaluate(buy_ready_snapshot())
        assert result.verdict == Verdict.BUY
        assert result.unmet == []
        assert result.all_met

    def test_buy_outranks_take_profit(self) -> None:
        # 1D RSI overbought with negative 4H histogram, but flattening keeps MACD ok
        snapshot = buy_ready_snapshot(
            rsi_1d=Decimal("70"), macd_4h=Decimal("-3"), macd_4h_flattening=True
        )
        assert evaluate(snapshot).verdict == Verdict.BUY

    def test_take_profit_outranks_trail(self) -> None:
        snapshot = buy_ready_snapshot(
            rsi_1h=Decimal("70"),
            rsi_4h=Decimal("66"),
            macd_4h=Decimal("-5"),
            macd_4h_flattening=True,  # keeps MACD ok so TRAIL would also hold
            oi_trend=OITrend.FALLING,
        )
        result = evaluate(snapshot)
        assert result.flags[Criterion.MACD] is True
        assert result.verdict == Verdict.TAKE_PROFIT
        assert result.verdict.value == "TP"

    def test_take_profit_requires_negative_histogram(self) -> None:
        snapshot = buy_ready_snapshot(
            rsi_1h=Decimal("70"), rsi_4h=Decimal("50"), macd_4h=Decimal("0")
        )
        assert evaluate(snapshot).verdict == Verdict.TRAIL

    def test_take_profit_on_daily_rsi_alone(self) -> None:
        snapshot = buy_ready_snapshot(
            rsi_1h=Decimal("50"),
            rsi_4h=Decimal("50"),
            rsi_1d=Decimal("65"),
            macd_4h=Decimal("-1"),
        )
        assert evaluate(snapshot).verdict == Verdict.TAKE_PROFIT

    def test_trail_when_momentum_above_band(self) -> None:
        snapshot = buy_ready_snapshot(rsi_1h=Decimal("55"), rsi_4h=Decimal("52"))
        result = evaluate(snapshot)
        assert result.verdict == Verdict.TRAIL
        assert result.unmet == [CRITERION_LABELS[Criterion.RSI_BAND]]

    def test_trail_blocked_by_rising_open_interest(self) -> None:
        snapshot = buy_ready_snapshot(
            rsi_1h=Decimal("55"), rsi_4h=Decimal("52"), oi_trend=OITrend.RISING
        )
        assert evaluate(snapshot).verdict == Verdict.HOLD

    def test_hold_when_nothing_lines_up(self) -> None:
        snapshot = buy_ready_snapshot(
            rsi_1h=Decimal("30"), rsi_4h=Decimal("30"), macd_4h=Decimal("-10")
        )
        assert evaluate(snapshot).verdict == Verdict.HOLD

    def test_demo_snapshot_is_hold_with_rsi_and_macd_unmet(self) -> None:
        result = evaluate(DEMO_SNAPSHOT)
        assert result.verdict == Verdict.HOLD
        assert result.flags[Criterion.RSI_BAND] is False
        assert result.flags[Criterion.MACD] is False
        assert "RSI (1H or 4H) in 35–45" in result.unmet
        assert "4H MACD flattening / cross-up" in result.unmet

    def test_scenario_positive_funding_falling_oi(self) -> None:
        snapshot = buy_ready_snapshot(
            funding_rate=Decimal("0.01"),
            oi_trend=OITrend.FALLING,
            rsi_1h=Decimal("46"),
            rsi_4h=Decimal("49"),
            macd_4h=Decimal("-21"),
            macd_4h_flattening=False,
        )
        result = evaluate(snapshot)
        assert result.flags[Criterion.RSI_BAND] is False
        assert result.flags[Criterion.MACD] is False
        assert result.verdict == Verdict.HOLD
        assert result.unmet[:2] == [
            CRITERION_LABELS[Criterion.RSI_BAND],
            CRITERION_LABELS[Criterion.MACD],
        ]


class TestUnmetCriteria:
    """unmet mirrors the failed flags exactly, in display order."""

    @staticmethod
    def _breakers() -> dict[Criterion, dict]:
        return {
            Criterion.RSI_BAND: {"rsi_1h": Decimal("20"), "rsi_4h": Decimal("20")},
            Criterion.MACD: {"macd_4h": Decimal("-1")},
            Criterion.FUNDING: {"funding_rate": Decimal("0.02")},
            Criterion.OPEN_INTEREST: {"oi_trend": OITrend.RISING},
            Criterion.SPOT_VOLUME: {"spot_volume_24h": Decimal("1")},
            Criterion.SUPPORT: {"near_support": False},
        }

    def test_every_combination_of_failures(self) -> None:
        breakers = self._breakers()
        criteria = list(Criterion)
        for mask in product([False, True], repeat=len(criteria)):
            overrides: dict = {}
            for criterion, broken in zip(criteria, mask):
                if broken:
                    overrides.update(breakers[criterion])
            result = evaluate(buy_ready_snapshot(**overrides))

            expected = [c.label for c, broken in zip(criteria, mask) if broken]
            assert result.unmet == expected
            for criterion, broken in zip(criteria, mask):
                assert result.flags[criterion] is (not broken)
            assert (result.verdict == Verdict.BUY) is (not any(mask))

    def test_unmet_independent_of_verdict(self) -> None:
        snapshot = replace(
            buy_ready_snapshot(rsi_1h=Decimal("70"), macd_4h=Decimal("-2")),
            funding_rate=Decimal("0.03"),
        )
        result = evaluate(snapshot)
        assert result.verdict == Verdict.TAKE_PROFIT
        assert result.unmet == [
            CRITERION_LABELS[Criterion.MACD],
            CRITERION_LABELS[Criterion.FUNDING],
        ]
