"""BettingOrderRepository — raw SQL persistence implementation.

Status transitions out of ``active`` are compare-and-swap UPDATEs
(``WHERE id = :id AND status = 'active'``). Whichever caller's UPDATE returns
the row owns the transition; every other caller gets None and must apply no
side effects. This is what makes the timer and the sweep safe to race.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_order.domain.models import BettingOrder

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, order_no, user_id, asset, amount, direction, duration,
    entry_price, entry_price_source, exit_price, exit_price_source, profit_loss,
    status, result, cancel_reason, created_at, expires_at, settled_at
"""

_INSERT_ORDER_SQL = text("""
    INSERT INTO betting_orders (id, order_no, user_id, asset, amount, direction,
        duration, entry_price, entry_price_source, status, created_at, expires_at)
    VALUES (:id, :order_no, :user_id, :asset, :amount, :direction,
        :duration, :entry_price, :entry_price_source, :status, :created_at, :expires_at)
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM betting_orders WHERE id = :id
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM betting_orders
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text("""
    SELECT o.id, o.order_no, o.user_id, o.asset, o.amount, o.direction, o.duration,
           o.entry_price, o.entry_price_source, o.exit_price, o.exit_price_source,
           o.profit_loss, o.status, o.result, o.cancel_reason,
           o.created_at, o.expires_at, o.settled_at, u.username
    FROM betting_orders o
    LEFT JOIN users u ON u.id = CAST(o.user_id AS UUID)
    WHERE (CAST(:status AS TEXT) IS NULL OR o.status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR o.id < :cursor_id)
    ORDER BY o.id DESC
    LIMIT :limit
""")

_LIST_EXPIRED_ACTIVE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM betting_orders
    WHERE status = 'active' AND expires_at <= :now
    ORDER BY expires_at
    LIMIT :limit
""")

_MARK_SETTLED_SQL = text(f"""
    UPDATE betting_orders
    SET status = 'completed', result = :result, exit_price = :exit_price,
        exit_price_source = :exit_price_source, profit_loss = :profit_loss,
        settled_at = NOW()
    WHERE id = :id AND status = 'active'
    RETURNING {_COLUMNS}
""")

_MARK_CANCELLED_SQL = text(f"""
    UPDATE betting_orders
    SET status = 'cancelled', cancel_reason = :reason, settled_at = NOW()
    WHERE id = :id AND status = 'active'
    RETURNING {_COLUMNS}
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> BettingOrder:
    return BettingOrder(
        id=row.id,
        order_no=row.order_no,
        user_id=row.user_id,
        asset=row.asset,
        amount=row.amount,
        direction=row.direction,
        duration=row.duration,
        entry_price=row.entry_price,
        entry_price_source=row.entry_price_source,
        exit_price=row.exit_price,
        exit_price_source=row.exit_price_source,
        profit_loss=row.profit_loss,
        status=row.status,
        result=row.result,
        cancel_reason=row.cancel_reason,
        created_at=row.created_at,
        expires_at=row.expires_at,
        settled_at=row.settled_at,
        username=getattr(row, "username", None),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BettingOrderRepository:
    """Concrete implementation of BettingOrderRepositoryProtocol using raw SQL."""

    async def save(self, order: BettingOrder, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_no": order.order_no,
                "user_id": order.user_id,
                "asset": order.asset,
                "amount": order.amount,
                "direction": order.direction,
                "duration": order.duration,
                "entry_price": order.entry_price,
                "entry_price_source": order.entry_price_source,
                "status": order.status,
                "created_at": order.created_at,
                "expires_at": order.expires_at,
            },
        )

    async def get_by_id(self, order_id: str, db: AsyncSession) -> BettingOrder | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_by_user(
        self,
        user_id: str,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[BettingOrder]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_all(
        self,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[BettingOrder]:
        result = await db.execute(
            _LIST_ALL_SQL,
            {"status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_expired_active(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[BettingOrder]:
        result = await db.execute(_LIST_EXPIRED_ACTIVE_SQL, {"now": now, "limit": limit})
        return [_row_to_order(row) for row in result.fetchall()]

    async def mark_settled(
        self,
        order_id: str,
        result: str,
        exit_price: Decimal,
        exit_price_source: str,
        profit_loss: int,
        db: AsyncSession,
    ) -> BettingOrder | None:
        res = await db.execute(
            _MARK_SETTLED_SQL,
            {
                "id": order_id,
                "result": result,
                "exit_price": exit_price,
                "exit_price_source": exit_price_source,
                "profit_loss": profit_loss,
            },
        )
        row = res.fetchone()
        return _row_to_order(row) if row else None

    async def mark_cancelled(
        self, order_id: str, reason: str, db: AsyncSession
    ) -> BettingOrder | None:
        res = await db.execute(_MARK_CANCELLED_SQL, {"id": order_id, "reason": reason})
        row = res.fetchone()
        return _row_to_order(row) if row else None
