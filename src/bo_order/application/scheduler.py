"""ExpirationScheduler — two independent triggers converging on SettlementEngine.settle.

1. One-shot timer: an asyncio task per placed order that sleeps until
   ``expires_at`` and settles it. Timers live in process memory only.
2. Sweep: every SWEEP_INTERVAL_SECONDS, settle every active order whose
   deadline has passed. The first sweep runs STARTUP_SWEEP_DELAY_SECONDS
   after start, catching orders that expired while the process was down
   and orders whose timer died with a previous process.
   A sweep quotes each asset once and reuses it for every order in the batch.

Both triggers (possibly in different worker processes) can hit the same
order; the CAS inside ``settle`` guarantees a single application.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.bo_common.datetime_utils import seconds_until, utc_now
from src.bo_order.application.engine import QuoteMemo, SettlementEngine
from src.bo_order.domain.repository import BettingOrderRepositoryProtocol
from src.bo_order.infrastructure.persistence import BettingOrderRepository

logger = logging.getLogger("bo.scheduler")

# Wake slightly after the deadline so wall-clock jitter never makes settle see an undue order.
_TIMER_GRACE_SECONDS = 0.05


class ExpirationScheduler:
    def __init__(
        self,
        engine: SettlementEngine,
        session_factory: async_sessionmaker[AsyncSession],
        order_repo: BettingOrderRepositoryProtocol | None = None,
        interval_seconds: float | None = None,
        startup_delay_seconds: float | None = None,
        batch_size: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory
        self._orders: BettingOrderRepositoryProtocol = order_repo or BettingOrderRepository()
        self._interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._startup_delay = (
            startup_delay_seconds
            if startup_delay_seconds is not None
            else settings.STARTUP_SWEEP_DELAY_SECONDS
        )
        self._batch_size = batch_size or settings.SWEEP_BATCH_SIZE
        self._clock = clock
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    # ------------------------------------------------------------------
    # one-shot timers
    # ------------------------------------------------------------------

    def schedule(self, order_id: str, expires_at: datetime) -> None:
        """Arm a one-shot timer; replaces an existing timer for the same order."""
        self.discard(order_id)
        task = asyncio.get_running_loop().create_task(
            self._fire(order_id, expires_at), name=f"expire-{order_id}"
        )
        self._timers[order_id] = task
        task.add_done_callback(lambda t, oid=order_id: self._forget(oid, t))

    def discard(self, order_id: str) -> None:
        task = self._timers.pop(order_id, None)
        # A timer discarding itself (settle called from inside _fire) must not cancel its own task.
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _forget(self, order_id: str, task: asyncio.Task[None]) -> None:
        if self._timers.get(order_id) is task:
            del self._timers[order_id]

    async def _fire(self, order_id: str, expires_at: datetime) -> None:
        await asyncio.sleep(seconds_until(expires_at, self._clock()) + _TIMER_GRACE_SECONDS)
        await self.settle_one(order_id, trigger="timer")

    # ------------------------------------------------------------------
    # sweep
    # ------------------------------------------------------------------

    async def settle_one(
        self, order_id: str, trigger: str, quotes: QuoteMemo | None = None
    ) -> bool:
        """Settle in a fresh session. Failures are logged; the next sweep retries."""
        async with self._session_factory() as db:
            try:
                settled = await self._engine.settle(db, order_id, quotes)
            except Exception:
                logger.exception("Settlement of %s via %s failed", order_id, trigger)
                return False
        return settled is not None

    async def sweep_once(self) -> int:
        """Settle one batch of overdue active orders. Returns how many this call settled."""
        async with self._session_factory() as db:
            overdue = await self._orders.list_expired_active(self._clock(), self._batch_size, db)
        if not overdue:
            return 0

        # One oracle call per asset per sweep, however many orders share it.
        quotes: QuoteMemo = {}
        settled = 0
        for order in overdue:
            if await self.settle_one(order.id, trigger="sweep", quotes=quotes):
                settled += 1
        logger.info("Sweep found %d overdue orders, settled %d", len(overdue), settled)
        return settled

    async def _run(self) -> None:
        await asyncio.sleep(self._startup_delay)
        while True:
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Expiration sweep failed")
            await asyncio.sleep(self._interval)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._run(), name="expiration-sweep"
        )
        logger.info(
            "Expiration scheduler started (sweep every %.0fs, first in %.0fs)",
            self._interval,
            self._startup_delay,
        )

    async def stop(self) -> None:
        tasks = list(self._timers.values())
        if self._sweeper is not None:
            tasks.append(self._sweeper)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._timers.clear()
        self._sweeper = None
        logger.info("Expiration scheduler stopped")
