"""Tests for StateDatabase and PanelStateStore.

Verifies:
- Every key round-trips with Decimal precision intact
- Absent keys load as defaults
- Corrupt values fall back to defaults per key without raising
"""

from decimal import Decimal

import pytest

from tactical.config import DataSourceConfig
from tactical.data.database import StateDatabase
from tactical.data.store import PanelStateStore
from tactical.models import ClosedTrade, Position, PositionSide


def _position() -> Position:
    return Position(
        id="pos_1735689600000",
        entry_price=Decimal("114000"),
        quantity=Decimal("10000") / Decimal("114000"),
        notional=Decimal("10000"),
        opened_at=1_735_689_600.123,
        note="near 112k support",
        best_excursion_pct=Decimal("2.47"),
    )


def _trade() -> ClosedTrade:
    return ClosedTrade(
        position_id="pos_1735000000000",
        side=PositionSide.LONG,
        entry_price=Decimal("100000"),
        opened_at=1_735_000_000.0,
        closed_at=1_735_500_000.5,
        exit_price=Decimal("107500"),
        quantity_closed=Decimal("0.03"),
        realized_pnl_usd=Decimal("225.00"),
        note=None,
    )


class TestRoundTrip:
    """Saved values load back unchanged."""

    @pytest.mark.asyncio
    async def test_all_keys(self, tmp_path) -> None:
        sources = DataSourceConfig(
            rsi_endpoint="https://data.test/rsi",
            price_endpoint="https://data.test/price",
            api_key="tok",
        )
        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            store = PanelStateStore(db)
            assert await store.save_positions([_position()])
            assert await store.save_closed_trades([_trade()])
            assert await store.save_tranche_amount(Decimal("3000"))
            assert await store.save_note_draft("4H RSI 40")
            assert await store.save_data_sources(sources)

        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            state = await PanelStateStore(db).load()

        [position] = state.positions
        original = _position()
        assert position.id == original.id
        assert position.quantity == original.quantity
        assert position.notional == original.notional
        assert position.entry_price == original.entry_price
        assert position.best_excursion_pct == Decimal("2.47")
        assert position.note == "near 112k support"
        assert position.opened_at == pytest.approx(original.opened_at, abs=1e-3)

        assert state.closed_trades == [_trade()]
        assert state.tranche_amount == Decimal("3000")
        assert state.note_draft == "4H RSI 40"
        assert state.data_sources == sources


class TestDefaults:
    """Absent or corrupt state falls back to defaults."""

    @pytest.mark.asyncio
    async def test_empty_database(self, tmp_path) -> None:
        seeded = DataSourceConfig(price_endpoint="https://seed.test/price")
        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            state = await PanelStateStore(db, default_sources=seeded).load()

        assert state.positions == []
        assert state.closed_trades == []
        assert state.tranche_amount == Decimal("0")
        assert state.note_draft == ""
        assert state.data_sources == seeded

    @pytest.mark.asyncio
    async def test_corrupt_values(self, tmp_path) -> None:
        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            await db.set_value("positions", "{not json", 0)
            await db.set_value("closed_trades", '[{"id": "x"}]', 0)
            await db.set_value("tranche_amount", '"lots"', 0)
            await db.set_value("note_draft", "42", 0)
            await db.set_value("data_sources", '{"rsi_endpoint": 7}', 0)

            state = await PanelStateStore(db).load()

        assert state.positions == []
        assert state.closed_trades == []
        assert state.tranche_amount == Decimal("0")
        assert state.note_draft == ""
        assert state.data_sources == DataSourceConfig()

    @pytest.mark.asyncio
    async def test_one_corrupt_key_does_not_affect_others(self, tmp_path) -> None:
        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            store = PanelStateStore(db)
            await store.save_positions([_position()])
            await db.set_value("closed_trades", "null", 0)

            state = await store.load()

        assert len(state.positions) == 1
        assert state.closed_trades == []

    @pytest.mark.asyncio
    async def test_unknown_data_source_keys_ignored(self, tmp_path) -> None:
        async with StateDatabase(str(tmp_path / "panel.db")) as db:
            await db.set_value(
                "data_sources", '{"price_endpoint": "https://p.test", "legacy": "x"}', 0
            )
            state = await PanelStateStore(db).load()

        assert state.data_sources == DataSourceConfig(price_endpoint="https://p.test")


class TestDatabase:
    """StateDatabase lifecycle."""

    def test_db_before_connect_raises(self, tmp_path) -> None:
        with pytest.raises(RuntimeError):
            _ = StateDatabase(str(tmp_path / "panel.db")).db

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path) -> None:
        path = tmp_path / "nested" / "dir" / "panel.db"
        async with StateDatabase(str(path)) as db:
            await db.set_value("k", '"v"', 1)
            assert await db.get_value("k") == '"v"'
        assert path.exists()
