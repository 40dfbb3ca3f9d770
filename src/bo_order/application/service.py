# src/bo_order/application/service.py
"""Order API composition: request → engine/repository → response schemas.

Also owns the process-wide SettlementEngine and ExpirationScheduler.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_common.database import async_session_factory
from src.bo_common.errors import OrderForbiddenError, OrderNotFoundError
from src.bo_gateway.user.db_models import UserModel
from src.bo_order.application.engine import SettlementEngine
from src.bo_order.application.scheduler import ExpirationScheduler
from src.bo_order.application.schemas import (
    BettingOrderListResponse,
    BettingOrderResponse,
    PlaceBettingOrderRequest,
    UpdateBettingOrderRequest,
)
from src.bo_order.domain.models import BettingOrder
from src.bo_order.infrastructure.persistence import BettingOrderRepository

_repo = BettingOrderRepository()
_engine: SettlementEngine | None = None
_scheduler: ExpirationScheduler | None = None


def _build_runtime() -> tuple[SettlementEngine, ExpirationScheduler]:
    global _engine, _scheduler  # noqa: PLW0603
    if _engine is None or _scheduler is None:
        _engine = SettlementEngine(order_repo=_repo)
        _scheduler = ExpirationScheduler(_engine, async_session_factory, order_repo=_repo)
        _engine.timer = _scheduler
    return _engine, _scheduler


def get_settlement_engine() -> SettlementEngine:
    return _build_runtime()[0]


def get_expiration_scheduler() -> ExpirationScheduler:
    return _build_runtime()[1]


def _page(orders: list[BettingOrder], limit: int) -> BettingOrderListResponse:
    has_more = len(orders) > limit
    if has_more:
        orders = orders[:limit]
    return BettingOrderListResponse(
        items=[BettingOrderResponse.from_order(o) for o in orders],
        next_cursor=orders[-1].id if has_more else None,
        has_more=has_more,
    )


async def place_order(
    req: PlaceBettingOrderRequest, user_id: str, db: AsyncSession
) -> BettingOrderResponse:
    order = await get_settlement_engine().place_order(
        db,
        user_id=user_id,
        asset=req.asset,
        amount_cents=req.amount,
        direction=req.direction,
        duration=req.duration,
        entry_price_hint=req.entry_price,
    )
    return BettingOrderResponse.from_order(order)


async def list_orders(
    user: UserModel,
    status: str | None,
    limit: int,
    cursor: str | None,
    db: AsyncSession,
) -> BettingOrderListResponse:
    """Admins see every order (with username); customers see their own."""
    if user.is_admin:
        orders = await _repo.list_all(status, limit + 1, cursor, db)
    else:
        orders = await _repo.list_by_user(str(user.id), status, limit + 1, cursor, db)
    return _page(orders, limit)


async def list_active_orders(
    limit: int, cursor: str | None, db: AsyncSession
) -> BettingOrderListResponse:
    orders = await _repo.list_all("active", limit + 1, cursor, db)
    return _page(orders, limit)


async def get_order(order_id: str, user: UserModel, db: AsyncSession) -> BettingOrderResponse:
    order = await _repo.get_by_id(order_id, db)
    if order is None:
        raise OrderNotFoundError(order_id)
    if order.user_id != str(user.id) and not user.is_admin:
        raise OrderForbiddenError(order_id)
    return BettingOrderResponse.from_order(order)


async def update_order(
    order_id: str, req: UpdateBettingOrderRequest, db: AsyncSession
) -> BettingOrderResponse:
    order = await get_settlement_engine().cancel(db, order_id, req.cancel_reason)
    return BettingOrderResponse.from_order(order)
