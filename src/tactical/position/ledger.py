"""Spot position ledger: open, partial close, full close.

All actions are bookkeeping against a user-supplied price; nothing is
sent to an exchange.

Close flow:
1. Look up the position, reject unknown ids or a missing price
2. Slice quantity = remaining quantity * fraction
3. Realized P&L = slice * exit price - slice * entry price
4. Record a ClosedTrade
5. Drop the position if the remainder is within epsilon, else shrink it

Rejected operations return None and leave the ledger untouched.
"""

import threading
import time
from decimal import Decimal

from tactical.config import LedgerSettings
from tactical.logging import get_logger
from tactical.models import ClosedTrade, Position

logger = get_logger(__name__)


class PositionLedger:
    """In-memory ledger of open positions and closed-trade history.

    Owns both collections exclusively. Mutations are serialized with a
    lock and applied all-or-nothing.

    Args:
        settings: Ledger settings (close epsilon).
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        settings: LedgerSettings | None = None,
        clock=time.time,
    ) -> None:
        self._settings = settings or LedgerSettings()
        self._clock = clock
        self._positions: dict[str, Position] = {}
        self._closed: list[ClosedTrade] = []
        self._lock = threading.Lock()

    def open_position(
        self,
        amount_usd: Decimal,
        price: Decimal,
        note: str | None = None,
    ) -> Position | None:
        """Open a long spot position worth ``amount_usd`` at ``price``.

        Args:
            amount_usd: Tranche size in quote currency.
            price: Current spot price.
            note: Optional free-text reason for the entry.

        Returns:
            The new Position, or None if amount or price is not positive.
        """
        if price <= 0 or amount_usd <= 0:
            logger.warning(
                "open_position_rejected",
                amount_usd=str(amount_usd),
                price=str(price),
            )
            return None

        with self._lock:
            opened_at = self._clock()
            position = Position(
                id=self._next_id(opened_at),
                entry_price=price,
                quantity=amount_usd / price,
                notional=amount_usd,
                opened_at=opened_at,
                note=_clean_note(note),
            )
            self._positions[position.id] = position

        logger.info(
            "position_opened",
            position_id=position.id,
            entry_price=str(price),
            quantity=str(position.quantity),
            amount_usd=str(amount_usd),
        )
        return position

    def close_portion(
        self,
        position_id: str,
        fraction: Decimal,
        price: Decimal,
    ) -> ClosedTrade | None:
        """Close ``fraction`` of a position's remaining quantity at ``price``.

        Args:
            position_id: ID of the position to reduce.
            fraction: Share of the remaining quantity to close, in (0, 1].
            price: Current spot price used as the exit price.

        Returns:
            The ClosedTrade for the slice, or None if rejected.
        """
        if not Decimal("0") < fraction <= Decimal("1") or price <= 0:
            logger.warning(
                "close_rejected",
                position_id=position_id,
                fraction=str(fraction),
                price=str(price),
            )
            return None

        with self._lock:
            position = self._positions.get(position_id)
            if position is None:
                logger.warning("close_rejected_unknown_position", position_id=position_id)
                return None

            qty_to_close = position.quantity * fraction
            cost_basis = qty_to_close * position.entry_price
            exit_value = qty_to_close * price

            trade = ClosedTrade(
                position_id=position.id,
                side=position.side,
                entry_price=position.entry_price,
                opened_at=position.opened_at,
                closed_at=self._clock(),
                exit_price=price,
                quantity_closed=qty_to_close,
                realized_pnl_usd=exit_value - cost_basis,
                note=position.note,
            )

            remaining = position.quantity - qty_to_close
            fully_closed = remaining <= self._settings.close_epsilon
            if fully_closed:
                del self._positions[position_id]
            else:
                position.quantity = remaining
                position.notional = remaining * position.entry_price
            self._closed.append(trade)

        logger.info(
            "position_closed" if fully_closed else "position_reduced",
            position_id=position_id,
            fraction=str(fraction),
            exit_price=str(price),
            quantity_closed=str(trade.quantity_closed),
            realized_pnl_usd=str(trade.realized_pnl_usd),
        )
        return trade

    def close_all(self, position_id: str, price: Decimal) -> ClosedTrade | None:
        """Close the whole remaining quantity of a position."""
        return self.close_portion(position_id, Decimal("1"), price)

    def realized_total(self) -> Decimal:
        """Sum of realized P&L over every closed trade."""
        return sum((t.realized_pnl_usd for t in self._closed), Decimal("0"))

    def record_best_excursion(self, position_id: str, value: Decimal) -> bool:
        """Raise a position's best-ever excursion to ``value`` if higher.

        Returns:
            True if the stored value changed.
        """
        with self._lock:
            position = self._positions.get(position_id)
            if position is None or value <= position.best_excursion_pct:
                return False
            position.best_excursion_pct = value
            return True

    def restore(self, positions: list[Position], closed: list[ClosedTrade]) -> None:
        """Replace ledger contents with previously persisted state.

        ``closed`` is most recent first, as returned by get_closed_trades.
        """
        with self._lock:
            self._positions = {p.id: p for p in positions}
            self._closed = list(reversed(closed))
        logger.info(
            "ledger_restored",
            open_positions=len(self._positions),
            closed_trades=len(self._closed),
        )

    def get_open_positions(self) -> list[Position]:
        """Return open positions, newest first."""
        return sorted(self._positions.values(), key=lambda p: p.opened_at, reverse=True)

    def get_position(self, position_id: str) -> Position | None:
        return self._positions.get(position_id)

    def get_closed_trades(self) -> list[ClosedTrade]:
        """Return closed trades, most recent first."""
        return list(reversed(self._closed))

    def _next_id(self, opened_at: float) -> str:
        base = f"pos_{int(opened_at * 1000)}"
        candidate = base
        suffix = 1
        while candidate in self._positions:
            suffix += 1
            candidate = f"{base}_{suffix}"
        return candidate


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    return note.strip() or None
