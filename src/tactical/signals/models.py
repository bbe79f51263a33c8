"""Checklist evaluation data models."""

from dataclasses import dataclass, field
from enum import Enum


class Verdict(str, Enum):
    """Overall recommendation produced by the checklist."""

    BUY = "BUY"
    TAKE_PROFIT = "TP"
    TRAIL = "TRAIL"
    HOLD = "HOLD"


class Criterion(str, Enum):
    """Entry checklist criteria, declared in display order."""

    RSI_BAND = "rsi_band"
    MACD = "macd"
    FUNDING = "funding"
    OPEN_INTEREST = "open_interest"
    SPOT_VOLUME = "spot_volume"
    SUPPORT = "support"

    @property
    def label(self) -> str:
        return CRITERION_LABELS[self]


CRITERION_LABELS: dict[Criterion, str] = {
    Criterion.RSI_BAND: "RSI (1H or 4H) in 35–45",
    Criterion.MACD: "4H MACD flattening / cross-up",
    Criterion.FUNDING: "Funding ≤ 0% (flat/neg)",
    Criterion.OPEN_INTEREST: "OI not rising aggressively",
    Criterion.SPOT_VOLUME: "Spot volume steady/rising vs futures",
    Criterion.SUPPORT: "Price near a known support",
}


@dataclass
class ChecklistResult:
    """Verdict plus the per-criterion breakdown that produced it.

    ``unmet`` lists the labels of failed criteria in display order,
    regardless of which verdict won.
    """

    verdict: Verdict
    unmet: list[str] = field(default_factory=list)
    flags: dict[Criterion, bool] = field(default_factory=dict)

    @property
    def all_met(self) -> bool:
        return not self.unmet
