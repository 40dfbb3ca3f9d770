# tests/unit/test_expiration_scheduler.py
import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bo_order.application.scheduler import ExpirationScheduler
from src.bo_order.domain.models import BettingOrder

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def _order(order_id: str) -> BettingOrder:
    return BettingOrder(
        id=order_id,
        order_no=f"ORD-{order_id}",
        user_id="user-1",
        asset="BTC/USDT",
        amount=100000,
        direction="Buy Up",
        duration=30,
        entry_price=Decimal("50000"),
        expires_at=T0,
    )


@asynccontextmanager
async def _session():
    yield MagicMock()


def _session_factory():
    return _session()


def _scheduler(engine, order_repo=None, **kwargs) -> ExpirationScheduler:
    return ExpirationScheduler(
        engine,
        _session_factory,
        order_repo=order_repo or AsyncMock(),
        interval_seconds=kwargs.get("interval_seconds", 0.01),
        startup_delay_seconds=kwargs.get("startup_delay_seconds", 0),
        batch_size=kwargs.get("batch_size", 50),
        clock=lambda: T0,
    )


@pytest.fixture
def engine() -> MagicMock:
    eng = MagicMock()
    eng.settle = AsyncMock(side_effect=lambda db, order_id, quotes=None: _order(order_id))
    return eng


class TestTimers:
    async def test_due_timer_settles_order(self, engine) -> None:
        scheduler = _scheduler(engine)
        scheduler.schedule("order-1", T0)
        assert scheduler.pending_timers == 1

        await asyncio.sleep(0.2)

        engine.settle.assert_awaited_once()
        assert engine.settle.await_args.args[1] == "order-1"
        assert engine.settle.await_args.args[2] is None
        assert scheduler.pending_timers == 0

    async def test_discard_cancels_pending_timer(self, engine) -> None:
        scheduler = _scheduler(engine)
        scheduler.schedule("order-1", T0 + timedelta(seconds=60))

        scheduler.discard("order-1")
        await asyncio.sleep(0)

        assert scheduler.pending_timers == 0
        engine.settle.assert_not_awaited()

    async def test_reschedule_replaces_timer(self, engine) -> None:
        scheduler = _scheduler(engine)
        scheduler.schedule("order-1", T0 + timedelta(seconds=60))
        scheduler.schedule("order-1", T0)

        await asyncio.sleep(0.2)

        engine.settle.assert_awaited_once()

    async def test_discard_unknown_is_harmless(self, engine) -> None:
        _scheduler(engine).discard("never-scheduled")


class TestSettleOne:
    async def test_failure_is_logged_not_raised(self, engine) -> None:
        engine.settle.side_effect = RuntimeError("db down")
        assert await _scheduler(engine).settle_one("order-1", trigger="sweep") is False

    async def test_noop_returns_false(self, engine) -> None:
        engine.settle.side_effect = None
        engine.settle.return_value = None
        assert await _scheduler(engine).settle_one("order-1", trigger="timer") is False


class TestSweep:
    async def test_counts_only_orders_this_call_settled(self, engine) -> None:
        repo = AsyncMock()
        repo.list_expired_active.return_value = [_order("a"), _order("b"), _order("c")]
        engine.settle.side_effect = (
            lambda db, order_id, quotes=None: None if order_id == "b" else _order(order_id)
        )

        settled = await _scheduler(engine, order_repo=repo, batch_size=3).sweep_once()

        assert settled == 2
        assert repo.list_expired_active.await_args.args[:2] == (T0, 3)

    async def test_batch_shares_one_quote_memo(self, engine) -> None:
        repo = AsyncMock()
        repo.list_expired_active.return_value = [_order("a"), _order("b")]

        await _scheduler(engine, order_repo=repo).sweep_once()

        first, second = (c.args[2] for c in engine.settle.await_args_list)
        assert first is second
        assert isinstance(first, dict)

    async def test_nothing_overdue(self, engine) -> None:
        repo = AsyncMock()
        repo.list_expired_active.return_value = []
        assert await _scheduler(engine, order_repo=repo).sweep_once() == 0
        engine.settle.assert_not_awaited()


class TestLifecycle:
    async def test_start_sweeps_and_stop_cancels(self, engine) -> None:
        repo = AsyncMock()
        repo.list_expired_active.return_value = [_order("late")]
        scheduler = _scheduler(engine, order_repo=repo)
        scheduler.schedule("future", T0 + timedelta(seconds=600))

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.pending_timers == 0
        assert repo.list_expired_active.await_count >= 1
        settled_ids = {c.args[1] for c in engine.settle.await_args_list}
        assert settled_ids == {"late"}

    async def test_sweep_error_does_not_kill_loop(self, engine) -> None:
        repo = AsyncMock()
        repo.list_expired_active.side_effect = RuntimeError("db down")
        scheduler = _scheduler(engine, order_repo=repo)

        scheduler.start()
        await asyncio.sleep(0.05)
        assert scheduler.running
        await scheduler.stop()
        assert repo.list_expired_active.await_count >= 2

    async def test_start_twice_keeps_one_sweeper(self, engine) -> None:
        scheduler = _scheduler(engine, startup_delay_seconds=10)
        scheduler.start()
        first = scheduler._sweeper
        scheduler.start()
        assert scheduler._sweeper is first
        await scheduler.stop()
