"""Typed read/write abstraction over the key/value state table.

Stored keys:
    positions       -- open positions (JSON list)
    closed_trades   -- closed-trade history (JSON list)
    tranche_amount  -- last entered tranche size (JSON string)
    note_draft      -- note being typed for the next entry (JSON string)
    data_sources    -- user-edited endpoint config (JSON object)

CRITICAL: Decimal values are stored as JSON strings and restored as Decimal.
Timestamps are stored as Unix milliseconds.

Loading never raises: an absent or undecodable value falls back to its
default with a warning. Saving logs and reports failure instead of raising.
"""

import json
import time
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar

import aiosqlite

from tactical.config import DataSourceConfig
from tactical.data.database import StateDatabase
from tactical.exceptions import StateCorruptError
from tactical.logging import get_logger
from tactical.models import ClosedTrade, Position, PositionSide

logger = get_logger(__name__)

T = TypeVar("T")

KEY_POSITIONS = "positions"
KEY_CLOSED_TRADES = "closed_trades"
KEY_TRANCHE_AMOUNT = "tranche_amount"
KEY_NOTE_DRAFT = "note_draft"
KEY_DATA_SOURCES = "data_sources"


@dataclass
class PanelState:
    """Everything the panel restores on startup."""

    positions: list[Position] = field(default_factory=list)
    closed_trades: list[ClosedTrade] = field(default_factory=list)
    tranche_amount: Decimal = Decimal("0")
    note_draft: str = ""
    data_sources: DataSourceConfig = field(default_factory=DataSourceConfig)


# ──────────────────────────────────────────────
# Encoding
# ──────────────────────────────────────────────


def encode_position(position: Position) -> dict[str, Any]:
    return {
        "id": position.id,
        "side": position.side.value,
        "entryPrice": str(position.entry_price),
        "qtyBtc": str(position.quantity),
        "amountUsd": str(position.notional),
        "openedAt": round(position.opened_at * 1000),
        "notes": position.note,
        "maxPnlPctEver": str(position.best_excursion_pct),
    }


def decode_position(raw: dict[str, Any]) -> Position:
    return Position(
        id=str(raw["id"]),
        side=PositionSide(raw.get("side", PositionSide.LONG.value)),
        entry_price=_decimal(raw["entryPrice"]),
        quantity=_decimal(raw["qtyBtc"]),
        notional=_decimal(raw["amountUsd"]),
        opened_at=float(raw["openedAt"]) / 1000,
        note=raw.get("notes") or None,
        best_excursion_pct=_decimal(raw.get("maxPnlPctEver", "0")),
    )


def encode_closed_trade(trade: ClosedTrade) -> dict[str, Any]:
    return {
        "id": trade.position_id,
        "side": trade.side.value,
        "entryPrice": str(trade.entry_price),
        "openedAt": round(trade.opened_at * 1000),
        "closedAt": round(trade.closed_at * 1000),
        "exitPrice": str(trade.exit_price),
        "qtyClosed": str(trade.quantity_closed),
        "realizedPnlUsd": str(trade.realized_pnl_usd),
        "notes": trade.note,
    }


def decode_closed_trade(raw: dict[str, Any]) -> ClosedTrade:
    return ClosedTrade(
        position_id=str(raw["id"]),
        side=PositionSide(raw.get("side", PositionSide.LONG.value)),
        entry_price=_decimal(raw["entryPrice"]),
        opened_at=float(raw["openedAt"]) / 1000,
        closed_at=float(raw["closedAt"]) / 1000,
        exit_price=_decimal(raw["exitPrice"]),
        quantity_closed=_decimal(raw["qtyClosed"]),
        realized_pnl_usd=_decimal(raw["realizedPnlUsd"]),
        note=raw.get("notes") or None,
    )


def decode_data_sources(raw: dict[str, Any]) -> DataSourceConfig:
    known = DataSourceConfig.__dataclass_fields__
    values = {k: v for k, v in raw.items() if k in known}
    if not all(isinstance(v, str) for v in values.values()):
        raise TypeError("data source fields must be strings")
    return DataSourceConfig(**values)


def _decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    result = Decimal(str(value))
    if not result.is_finite():
        raise ValueError(f"non-finite number: {value}")
    return result


def _decode(key: str, text: str, decoder: Callable[[Any], T]) -> T:
    """Parse stored JSON and run ``decoder`` over it.

    Raises:
        StateCorruptError: If the text is not JSON or does not decode.
    """
    try:
        return decoder(json.loads(text))
    except (ValueError, TypeError, KeyError, AttributeError, InvalidOperation) as exc:
        raise StateCorruptError(f"{key}: {type(exc).__name__}: {exc}") from exc


def _decode_list(decoder: Callable[[dict[str, Any]], T]) -> Callable[[Any], list[T]]:
    def decode(raw: Any) -> list[T]:
        if not isinstance(raw, list):
            raise TypeError("expected a JSON list")
        return [decoder(item) for item in raw]

    return decode


def _decode_str(raw: Any) -> str:
    if not isinstance(raw, str):
        raise TypeError("expected a JSON string")
    return raw


def _decode_object(decoder: Callable[[dict[str, Any]], T]) -> Callable[[Any], T]:
    def decode(raw: Any) -> T:
        if not isinstance(raw, dict):
            raise TypeError("expected a JSON object")
        return decoder(raw)

    return decode


class PanelStateStore:
    """Persists the panel's ledger, drafts and data-source config.

    Args:
        database: Connected StateDatabase.
        default_sources: Config used when none has been stored yet.
    """

    def __init__(
        self,
        database: StateDatabase,
        default_sources: DataSourceConfig | None = None,
    ) -> None:
        self._database = database
        self._default_sources = default_sources or DataSourceConfig()

    # ──────────────────────────────────────────────
    # Read
    # ──────────────────────────────────────────────

    async def load(self) -> PanelState:
        """Load every stored key, substituting defaults for absent or corrupt values."""
        state = PanelState(
            positions=await self._load(KEY_POSITIONS, _decode_list(decode_position), []),
            closed_trades=await self._load(
                KEY_CLOSED_TRADES, _decode_list(decode_closed_trade), []
            ),
            tranche_amount=await self._load(KEY_TRANCHE_AMOUNT, _decimal, Decimal("0")),
            note_draft=await self._load(KEY_NOTE_DRAFT, _decode_str, ""),
            data_sources=await self._load(
                KEY_DATA_SOURCES,
                _decode_object(decode_data_sources),
                self._default_sources,
            ),
        )
        logger.info(
            "panel_state_loaded",
            open_positions=len(state.positions),
            closed_trades=len(state.closed_trades),
        )
        return state

    async def _load(self, key: str, decoder: Callable[[Any], T], default: T) -> T:
        try:
            text = await self._database.get_value(key)
        except aiosqlite.Error as exc:
            logger.error("state_read_failed", key=key, error=str(exc))
            return default
        if text is None:
            return default
        try:
            return _decode(key, text, decoder)
        except StateCorruptError as exc:
            logger.warning("state_corrupt_using_default", key=key, error=str(exc))
            return default

    # ──────────────────────────────────────────────
    # Write
    # ──────────────────────────────────────────────

    async def save_positions(self, positions: list[Position]) -> bool:
        return await self._save(KEY_POSITIONS, [encode_position(p) for p in positions])

    async def save_closed_trades(self, trades: list[ClosedTrade]) -> bool:
        return await self._save(KEY_CLOSED_TRADES, [encode_closed_trade(t) for t in trades])

    async def save_tranche_amount(self, amount: Decimal) -> bool:
        return await self._save(KEY_TRANCHE_AMOUNT, str(amount))

    async def save_note_draft(self, note: str) -> bool:
        return await self._save(KEY_NOTE_DRAFT, note)

    async def save_data_sources(self, config: DataSourceConfig) -> bool:
        return await self._save(KEY_DATA_SOURCES, asdict(config))

    async def _save(self, key: str, value: Any) -> bool:
        """Write one JSON value; returns False (and logs) on database errors."""
        try:
            await self._database.set_value(key, json.dumps(value), int(time.time() * 1000))
        except aiosqlite.Error as exc:
            logger.error("state_write_failed", key=key, error=str(exc))
            return False
        return True
