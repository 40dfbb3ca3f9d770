"""SettlementEngine — lifecycle of a single betting order.

    active --settle (deadline reached)--> completed
    active --cancel (admin)-------------> cancelled

Money movements per order (cents, all on the owner's account row):

    place   available -= amount         frozen += amount
    settle  available += amount+impact  frozen -= amount   reputation ±5
    cancel  available += amount         frozen -= amount

Each of these runs in ONE database transaction together with the order row
change and its ledger entry; any failure rolls all of them back. settle and
cancel begin with a compare-and-swap on ``status = 'active'``, so when the
one-shot timer and the periodic sweep race on the same order exactly one of
them applies the ledger change and the other becomes a no-op.

The exit price is an oracle quote observed within QUOTE_MAX_AGE_SECONDS of
``expires_at``. Otherwise the order settles flat (exit = entry, a draw): when
the entry price itself was a client hint or static default, when settlement
runs later than that window, or when no quote near the deadline exists.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bo_account.domain.models import BalanceDelta
from src.bo_account.domain.repository import AccountRepositoryProtocol
from src.bo_account.infrastructure.persistence import AccountRepository
from src.bo_common.datetime_utils import add_seconds, utc_now
from src.bo_common.enums import LedgerEntryType, OrderDirection, PriceSource
from src.bo_common.errors import (
    BelowMinimumError,
    InsufficientBalanceError,
    OrderNotCancellableError,
    OrderNotFoundError,
    UserNotFoundError,
)
from src.bo_common.id_generator import generate_id, generate_order_no
from src.bo_common.money import cents_to_str
from src.bo_oracle.application.service import PriceOracle, get_price_oracle
from src.bo_oracle.domain.assets import lookup_asset, normalize_asset
from src.bo_oracle.domain.quote import Quote
from src.bo_order.domain.models import BettingOrder
from src.bo_order.domain.outcome import resolve_outcome
from src.bo_order.domain.payout import validate_duration
from src.bo_order.domain.repository import BettingOrderRepositoryProtocol
from src.bo_order.infrastructure.persistence import BettingOrderRepository

logger = logging.getLogger("bo.settlement")

_REF_TYPE = "BETTING_ORDER"

# asset -> quote (or None on a miss), shared by one sweep so each asset is quoted once
QuoteMemo = dict[str, Quote | None]


class OrderTimerProtocol(Protocol):
    def schedule(self, order_id: str, expires_at: datetime) -> None: ...

    def discard(self, order_id: str) -> None: ...


class SettlementEngine:
    def __init__(
        self,
        order_repo: BettingOrderRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        oracle: PriceOracle | None = None,
        min_amount_cents: int | None = None,
        quote_max_age_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orders: BettingOrderRepositoryProtocol = order_repo or BettingOrderRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._oracle = oracle
        self._min_amount = (
            min_amount_cents if min_amount_cents is not None else settings.MIN_ORDER_AMOUNT_CENTS
        )
        self._max_age = (
            quote_max_age_seconds
            if quote_max_age_seconds is not None
            else settings.QUOTE_MAX_AGE_SECONDS
        )
        self._clock = clock
        self.timer: OrderTimerProtocol | None = None

    @property
    def oracle(self) -> PriceOracle:
        if self._oracle is None:
            self._oracle = get_price_oracle()
        return self._oracle

    @property
    def min_amount_cents(self) -> int:
        return self._min_amount

    # ------------------------------------------------------------------
    # place
    # ------------------------------------------------------------------

    async def place_order(
        self,
        db: AsyncSession,
        user_id: str,
        asset: str,
        amount_cents: int,
        direction: OrderDirection,
        duration: int,
        entry_price_hint: Decimal | None = None,
    ) -> BettingOrder:
        validate_duration(duration)
        if amount_cents < self._min_amount:
            raise BelowMinimumError(cents_to_str(amount_cents), cents_to_str(self._min_amount))
        lookup_asset(asset)
        asset = normalize_asset(asset)

        # Quote before touching the DB so no transaction is held open across HTTP.
        entry = await self.oracle.resolve_entry_price(asset, entry_price_hint)

        account = await self._accounts.get_account_by_user_id(db, user_id)
        if account is None:
            raise UserNotFoundError(user_id)
        if amount_cents > account.available_balance:
            raise InsufficientBalanceError(
                cents_to_str(amount_cents), cents_to_str(account.available_balance)
            )

        now = self._clock()
        order = BettingOrder(
            id=generate_id(),
            order_no=generate_order_no(),
            user_id=user_id,
            asset=asset,
            amount=amount_cents,
            direction=direction.value,
            duration=duration,
            entry_price=entry.price,
            entry_price_source=entry.source.value,
            created_at=now,
            expires_at=add_seconds(now, duration),
        )

        try:
            await self._orders.save(order, db)
            # The guarded UPDATE re-checks available >= amount under the row lock.
            account = await self._accounts.adjust_balances(
                db, user_id, BalanceDelta(available=-amount_cents, frozen=amount_cents)
            )
            await self._accounts.append_ledger_entry(
                db,
                user_id,
                LedgerEntryType.ORDER_FREEZE.value,
                -amount_cents,
                account.available_balance,
                _REF_TYPE,
                order.id,
                f"Escrow for {order.order_no}",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Order %s placed: user=%s %s %s %s for %ss @ %s (%s)",
            order.order_no,
            user_id,
            order.asset,
            order.direction,
            cents_to_str(amount_cents),
            duration,
            entry.price,
            entry.source.value,
        )
        if self.timer is not None:
            self.timer.schedule(order.id, order.expires_at)
        return order

    # ------------------------------------------------------------------
    # settle
    # ------------------------------------------------------------------

    async def settle(
        self, db: AsyncSession, order_id: str, quotes: QuoteMemo | None = None
    ) -> BettingOrder | None:
        """Settle an expired active order. Returns None when there is nothing to do.

        ``quotes`` lets a caller settling many orders reuse one quote per asset.
        """
        order = await self._orders.get_by_id(order_id, db)
        if order is None:
            logger.warning("Settle skipped: order %s not found", order_id)
            return None
        if not order.is_active:
            logger.debug("Settle no-op: order %s already %s", order.order_no, order.status)
            return None
        if not order.is_due(self._clock()):
            logger.debug("Settle skipped: order %s not due until %s", order.order_no, order.expires_at)
            return None
        # Release the read snapshot before the oracle call.
        await db.rollback()

        exit_quote = await self._exit_quote(order, quotes)
        if exit_quote is None:
            exit_price, exit_source = order.entry_price, PriceSource.FLAT
        else:
            exit_price, exit_source = exit_quote.price, exit_quote.source

        outcome = resolve_outcome(
            order.direction, order.entry_price, exit_price, order.amount, order.duration
        )
        credit = outcome.principal_return(order.amount)

        try:
            settled = await self._orders.mark_settled(
                order.id,
                outcome.result.value,
                exit_price,
                exit_source.value,
                outcome.balance_impact,
                db,
            )
            if settled is None:
                await db.rollback()
                logger.info("Settle no-op: order %s settled by a concurrent trigger", order.order_no)
                return None
            account = await self._accounts.adjust_balances(
                db,
                order.user_id,
                BalanceDelta(
                    available=credit,
                    frozen=-order.amount,
                    reputation=outcome.reputation_delta,
                ),
            )
            await self._accounts.append_ledger_entry(
                db,
                order.user_id,
                LedgerEntryType.SETTLEMENT_PNL.value,
                credit,
                account.available_balance,
                _REF_TYPE,
                order.id,
                f"{order.order_no} {outcome.result.value} {cents_to_str(outcome.balance_impact)}",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Order %s settled %s: entry=%s (%s) exit=%s (%s) impact=%s available=%s reputation=%d",
            order.order_no,
            outcome.result.value,
            order.entry_price,
            order.entry_price_source,
            exit_price,
            exit_source.value,
            cents_to_str(outcome.balance_impact),
            cents_to_str(account.available_balance),
            account.reputation,
        )
        if self.timer is not None:
            self.timer.discard(order.id)
        return settled

    async def _exit_quote(self, order: BettingOrder, quotes: QuoteMemo | None) -> Quote | None:
        """Oracle quote observed near ``expires_at``, or None to settle flat."""
        if not order.entry_from_oracle:
            logger.warning(
                "Order %s entry price came from %s, settling flat",
                order.order_no,
                order.entry_price_source,
            )
            return None
        lateness = (self._clock() - order.expires_at).total_seconds()
        if lateness > self._max_age:
            logger.warning(
                "Order %s settling %.0fs after expiry, settling flat", order.order_no, lateness
            )
            return None

        if quotes is not None and order.asset in quotes:
            quote = quotes[order.asset]
        else:
            quote = await self.oracle.get_quote(order.asset)
            if quotes is not None:
                quotes[order.asset] = quote

        if quote is None:
            logger.warning(
                "No quote for %s at settlement of %s, settling flat", order.asset, order.order_no
            )
            return None
        if not quote.prices(order.expires_at, self._max_age):
            logger.warning(
                "Quote for %s from %s is %.0fs from the deadline of %s, settling flat",
                order.asset,
                quote.source.value,
                quote.skew_seconds(order.expires_at),
                order.order_no,
            )
            return None
        return quote

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    async def cancel(self, db: AsyncSession, order_id: str, reason: str) -> BettingOrder:
        """Admin cancellation: refund the escrowed principal, no P&L, no reputation change."""
        order = await self._orders.get_by_id(order_id, db)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not order.is_active:
            raise OrderNotCancellableError(order_id, order.status)

        try:
            cancelled = await self._orders.mark_cancelled(order.id, reason, db)
            if cancelled is None:
                raise OrderNotCancellableError(order_id, "completed")
            account = await self._accounts.adjust_balances(
                db, order.user_id, BalanceDelta(available=order.amount, frozen=-order.amount)
            )
            await self._accounts.append_ledger_entry(
                db,
                order.user_id,
                LedgerEntryType.ORDER_CANCEL_REFUND.value,
                order.amount,
                account.available_balance,
                _REF_TYPE,
                order.id,
                f"Cancelled {order.order_no}: {reason}",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Order %s cancelled (%s), refunded %s", order.order_no, reason, cents_to_str(order.amount))
        if self.timer is not None:
            self.timer.discard(order.id)
        return cancelled
