"""BettingOrderRepository Protocol — interface contract for persistence layer."""
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_order.domain.models import BettingOrder


class BettingOrderRepositoryProtocol(Protocol):
    async def save(self, order: BettingOrder, db: AsyncSession) -> None: ...

    async def get_by_id(self, order_id: str, db: AsyncSession) -> BettingOrder | None: ...

    async def list_by_user(
        self,
        user_id: str,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[BettingOrder]: ...

    async def list_all(
        self,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[BettingOrder]: ...

    async def list_expired_active(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[BettingOrder]: ...

    async def mark_settled(
        self,
        order_id: str,
        result: str,
        exit_price: Decimal,
        exit_price_source: str,
        profit_loss: int,
        db: AsyncSession,
    ) -> BettingOrder | None: ...

    async def mark_cancelled(
        self, order_id: str, reason: str, db: AsyncSession
    ) -> BettingOrder | None: ...
