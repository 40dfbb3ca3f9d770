# tests/unit/test_order_persistence.py
"""Unit tests for BettingOrderRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.bo_order.domain.models import BettingOrder
from src.bo_order.infrastructure.persistence import BettingOrderRepository

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def _make_row(**kwargs: Any) -> MagicMock:
    row = MagicMock(spec=[
        "id", "order_no", "user_id", "asset", "amount", "direction", "duration",
        "entry_price", "entry_price_source", "exit_price", "exit_price_source",
        "profit_loss", "status", "result", "cancel_reason",
        "created_at", "expires_at", "settled_at", *kwargs.get("extra", []),
    ])
    row.id = kwargs.get("id", "order-1")
    row.order_no = kwargs.get("order_no", "ORD1760000000000abcdefghi")
    row.user_id = kwargs.get("user_id", "user-1")
    row.asset = "BTC/USDT"
    row.amount = kwargs.get("amount", 200000)
    row.direction = kwargs.get("direction", "Buy Up")
    row.duration = 60
    row.entry_price = Decimal("50000.00000000")
    row.entry_price_source = kwargs.get("entry_price_source", "live")
    row.exit_price = kwargs.get("exit_price")
    row.exit_price_source = kwargs.get("exit_price_source")
    row.profit_loss = kwargs.get("profit_loss")
    row.status = kwargs.get("status", "active")
    row.result = kwargs.get("result")
    row.cancel_reason = kwargs.get("cancel_reason")
    row.created_at = NOW
    row.expires_at = NOW + timedelta(seconds=60)
    row.settled_at = kwargs.get("settled_at")
    for name in kwargs.get("extra", []):
        setattr(row, name, kwargs[name])
    return row


def _make_order() -> BettingOrder:
    return BettingOrder(
        id="order-1",
        order_no="ORD1760000000000abcdefghi",
        user_id="user-1",
        asset="BTC/USDT",
        amount=200000,
        direction="Buy Up",
        duration=60,
        entry_price=Decimal("50000"),
        created_at=NOW,
        expires_at=NOW + timedelta(seconds=60),
    )


def _fetchone(row: Any) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.fetchone.return_value = row
    db.execute.return_value = result
    return db


def _fetchall(rows: list[Any]) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.fetchall.return_value = rows
    db.execute.return_value = result
    return db


class TestBettingOrderRepository:
    async def test_save_binds_all_columns(self) -> None:
        db = AsyncMock()
        await BettingOrderRepository().save(_make_order(), db)
        params = db.execute.await_args.args[1]
        assert params["status"] == "active"
        assert params["direction"] == "Buy Up"
        assert params["expires_at"] == NOW + timedelta(seconds=60)
        assert params["entry_price_source"] == "live"

    async def test_get_by_id_maps_row(self) -> None:
        order = await BettingOrderRepository().get_by_id("order-1", _fetchone(_make_row()))
        assert order is not None
        assert order.amount == 200000
        assert order.is_active
        assert order.username is None

    async def test_get_by_id_missing(self) -> None:
        assert await BettingOrderRepository().get_by_id("x", _fetchone(None)) is None

    async def test_list_all_carries_username(self) -> None:
        db = _fetchall([_make_row(extra=["username"], username="alice")])
        orders = await BettingOrderRepository().list_all(None, 21, None, db)
        assert orders[0].username == "alice"
        sql = str(db.execute.await_args.args[0])
        assert "LEFT JOIN users" in sql
        assert "u.id = CAST(o.user_id AS UUID)" in sql
        assert "::text" not in sql

    async def test_list_by_user_params(self) -> None:
        db = _fetchall([])
        await BettingOrderRepository().list_by_user("user-1", "active", 21, "order-9", db)
        assert db.execute.await_args.args[1] == {
            "user_id": "user-1", "status": "active", "cursor_id": "order-9", "limit": 21,
        }

    async def test_list_expired_active(self) -> None:
        db = _fetchall([_make_row(), _make_row(id="order-2")])
        orders = await BettingOrderRepository().list_expired_active(NOW, 200, db)
        assert [o.id for o in orders] == ["order-1", "order-2"]
        assert db.execute.await_args.args[1] == {"now": NOW, "limit": 200}


class TestStatusTransitions:
    async def test_mark_settled_returns_row_on_win_of_race(self) -> None:
        row = _make_row(
            status="completed", result="win", exit_price=Decimal("50010"), profit_loss=60000
        )
        db = _fetchone(row)
        order = await BettingOrderRepository().mark_settled(
            "order-1", "win", Decimal("50010"), "live", 60000, db
        )
        assert order is not None
        assert order.status == "completed"
        assert "status = 'active'" in str(db.execute.await_args.args[0])

    async def test_mark_settled_records_exit_source(self) -> None:
        row = _make_row(
            status="completed",
            result="draw",
            entry_price_source="hint",
            exit_price=Decimal("50000"),
            exit_price_source="flat",
            profit_loss=0,
        )
        db = _fetchone(row)
        order = await BettingOrderRepository().mark_settled(
            "order-1", "draw", Decimal("50000"), "flat", 0, db
        )
        assert db.execute.await_args.args[1]["exit_price_source"] == "flat"
        assert order.entry_price_source == "hint"
        assert order.exit_price_source == "flat"
        assert not order.entry_from_oracle

    async def test_mark_settled_returns_none_when_already_transitioned(self) -> None:
        order = await BettingOrderRepository().mark_settled(
            "order-1", "win", Decimal("50010"), "live", 60000, _fetchone(None)
        )
        assert order is None

    async def test_mark_cancelled(self) -> None:
        db = _fetchone(_make_row(status="cancelled", cancel_reason="Duplicate"))
        order = await BettingOrderRepository().mark_cancelled("order-1", "Duplicate", db)
        assert order is not None
        assert order.cancel_reason == "Duplicate"
        assert db.execute.await_args.args[1] == {"id": "order-1", "reason": "Duplicate"}
