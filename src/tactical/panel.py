"""Panel controller: the single owner of snapshot, ledger, drafts and state.

Every user action flows through TacticalPanel:

1. Mutate (refresh snapshot, buy, close, edit drafts)
2. Recompute analytics explicitly and write the best-ever excursion back
3. Persist the affected state

Ledger rejections come back as None; nothing raises to the caller.
"""

import time
from decimal import Decimal

from tactical.analytics.position_metrics import (
    PositionAnalytics,
    compute_analytics,
    summarize_portfolio,
)
from tactical.config import AppSettings, DataSourceConfig
from tactical.data.store import PanelStateStore
from tactical.export import (
    CLOSED_TRADE_COLUMNS,
    OPEN_POSITION_COLUMNS,
    closed_trades_rows,
    export_filename,
    open_positions_rows,
    to_csv,
)
from tactical.logging import get_logger
from tactical.market_data.snapshot_service import SnapshotService
from tactical.models import ClosedTrade, IndicatorSnapshot, Position
from tactical.position.ledger import PositionLedger
from tactical.signals.checklist import evaluate
from tactical.signals.models import ChecklistResult

logger = get_logger(__name__)


class TacticalPanel:
    """Coordinates the checklist, the position ledger and persistence.

    Args:
        settings: Application-wide settings.
        snapshot_service: Holds and refreshes the indicator snapshot.
        ledger: Position ledger.
        store: Persistence for ledger, drafts and data-source config.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        settings: AppSettings,
        snapshot_service: SnapshotService,
        ledger: PositionLedger,
        store: PanelStateStore,
        clock=time.time,
    ) -> None:
        self._settings = settings
        self._snapshots = snapshot_service
        self._ledger = ledger
        self._store = store
        self._clock = clock
        self._tranche_amount = Decimal("0")
        self._note_draft = ""
        self._analytics: list[PositionAnalytics] = []

    # ──────────────────────────────────────────────
    # Accessors
    # ──────────────────────────────────────────────

    @property
    def snapshot(self) -> IndicatorSnapshot:
        return self._snapshots.snapshot

    @property
    def ledger(self) -> PositionLedger:
        return self._ledger

    @property
    def tranche_amount(self) -> Decimal:
        return self._tranche_amount

    @property
    def note_draft(self) -> str:
        return self._note_draft

    @property
    def data_sources(self) -> DataSourceConfig:
        return self._snapshots.client.config

    @property
    def analytics(self) -> list[PositionAnalytics]:
        """Analytics from the latest recompute."""
        return list(self._analytics)

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def load(self) -> None:
        """Restore persisted state; corrupt or absent values fall back to defaults."""
        state = await self._store.load()
        self._ledger.restore(state.positions, state.closed_trades)
        self._tranche_amount = state.tranche_amount
        self._note_draft = state.note_draft
        self._snapshots.client.update_config(state.data_sources)
        self._snapshots.set_require_support(self._settings.checklist.require_support)
        self.recompute()

    async def refresh(self) -> IndicatorSnapshot:
        """Fetch a new snapshot, then recompute and persist the excursion marks."""
        snapshot = await self._snapshots.refresh()
        if self.recompute():
            await self._store.save_positions(self._ledger.get_open_positions())
        return snapshot

    # ──────────────────────────────────────────────
    # Decision and analytics
    # ──────────────────────────────────────────────

    def decision(self) -> ChecklistResult:
        return evaluate(self.snapshot, self._settings.checklist)

    def recompute(self) -> bool:
        """Recompute position analytics at the current price.

        Writes each position's best-ever excursion back into the ledger.

        Returns:
            True if any stored excursion changed.
        """
        self._analytics = compute_analytics(
            self._ledger.get_open_positions(),
            self.snapshot.price,
            now=self._clock(),
            settings=self._settings.ledger,
        )
        changed = False
        for item in self._analytics:
            if self._ledger.record_best_excursion(item.position_id, item.best_excursion_pct):
                changed = True
        return changed

    def summary(self) -> dict:
        return summarize_portfolio(self._analytics, self._ledger.get_closed_trades())

    # ──────────────────────────────────────────────
    # Ledger actions
    # ──────────────────────────────────────────────

    async def buy(self) -> Position | None:
        """Open a position for the drafted tranche at the current price.

        Clears the note draft on success.
        """
        if not self._has_price("buy"):
            return None
        position = self._ledger.open_position(
            self._tranche_amount, self.snapshot.price, self._note_draft
        )
        if position is None:
            return None
        self._note_draft = ""
        self.recompute()
        await self._store.save_positions(self._ledger.get_open_positions())
        await self._store.save_note_draft(self._note_draft)
        return position

    async def close_portion(self, position_id: str, fraction: Decimal) -> ClosedTrade | None:
        if not self._has_price("close_portion"):
            return None
        trade = self._ledger.close_portion(position_id, fraction, self.snapshot.price)
        if trade is None:
            return None
        await self._after_close()
        return trade

    async def close_all(self, position_id: str) -> ClosedTrade | None:
        if not self._has_price("close_all"):
            return None
        trade = self._ledger.close_all(position_id, self.snapshot.price)
        if trade is None:
            return None
        await self._after_close()
        return trade

    def _has_price(self, action: str) -> bool:
        if self.snapshot.has_price:
            return True
        logger.warning("action_rejected_no_price", action=action)
        return False

    async def _after_close(self) -> None:
        self.recompute()
        await self._store.save_positions(self._ledger.get_open_positions())
        await self._store.save_closed_trades(self._ledger.get_closed_trades())

    # ──────────────────────────────────────────────
    # Drafts and settings
    # ──────────────────────────────────────────────

    async def set_tranche_amount(self, amount: Decimal) -> None:
        self._tranche_amount = amount
        await self._store.save_tranche_amount(amount)

    async def set_note_draft(self, note: str) -> None:
        self._note_draft = note
        await self._store.save_note_draft(note)

    def set_require_support(self, require_support: bool) -> ChecklistResult:
        """Flip the support toggle and return the re-evaluated decision."""
        self._snapshots.set_require_support(require_support)
        logger.info("require_support_set", require_support=require_support)
        return self.decision()

    async def update_data_sources(self, config: DataSourceConfig) -> None:
        self._snapshots.client.update_config(config)
        await self._store.save_data_sources(config)

    # ──────────────────────────────────────────────
    # Exports
    # ──────────────────────────────────────────────

    def export_open_csv(self) -> tuple[str, str]:
        """Return (filename, csv text) for the open-positions table."""
        rows = open_positions_rows(self._analytics, self.snapshot.price)
        return (
            export_filename("open_positions", self._clock()),
            to_csv(rows, OPEN_POSITION_COLUMNS),
        )

    def export_closed_csv(self) -> tuple[str, str]:
        """Return (filename, csv text) for the closed-trades table."""
        rows = closed_trades_rows(self._ledger.get_closed_trades())
        return (
            export_filename("closed_trades", self._clock()),
            to_csv(rows, CLOSED_TRADE_COLUMNS),
        )
