# src/bo_order/application/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.bo_common.enums import OrderDirection
from src.bo_common.money import AmountCents, cents_to_str, price_to_str
from src.bo_order.domain.models import BettingOrder
from src.bo_order.domain.payout import PROFIT_PERCENT_BY_DURATION


class PlaceBettingOrderRequest(BaseModel):
    asset: str = Field("BTC/USDT", min_length=1, max_length=20)
    amount: AmountCents
    direction: OrderDirection
    duration: int
    # Used only when the price oracle and its cache are both unavailable; such
    # an order settles flat (principal returned) whatever the market does.
    entry_price: Decimal | None = Field(
        None, gt=0, validation_alias=AliasChoices("entry_price", "entryPrice")
    )


class UpdateBettingOrderRequest(BaseModel):
    """Admin correction. Only cancellation is accepted; outcomes are never edited by hand."""

    model_config = ConfigDict(extra="forbid")

    status: Literal["cancelled"]
    cancel_reason: str = Field("Cancelled by admin", min_length=1, max_length=200)


class BettingOrderResponse(BaseModel):
    id: str
    order_no: str
    user_id: str
    username: str | None = None
    asset: str
    amount: str
    direction: str
    duration: int
    profit_percentage: int
    entry_price: str
    entry_price_source: str = "live"
    exit_price: str | None = None
    exit_price_source: str | None = None
    profit_loss: str | None = None
    status: str
    result: str | None = None
    cancel_reason: str | None = None
    created_at: datetime | None = None
    expires_at: datetime
    settled_at: datetime | None = None

    @classmethod
    def from_order(cls, order: BettingOrder) -> "BettingOrderResponse":
        return cls(
            id=order.id,
            order_no=order.order_no,
            user_id=order.user_id,
            username=order.username,
            asset=order.asset,
            amount=cents_to_str(order.amount),
            direction=order.direction,
            duration=order.duration,
            profit_percentage=PROFIT_PERCENT_BY_DURATION.get(order.duration, 0),
            entry_price=price_to_str(order.entry_price) or "",
            entry_price_source=order.entry_price_source,
            exit_price=price_to_str(order.exit_price),
            exit_price_source=order.exit_price_source,
            profit_loss=cents_to_str(order.profit_loss) if order.profit_loss is not None else None,
            status=order.status,
            result=order.result,
            cancel_reason=order.cancel_reason,
            created_at=order.created_at,
            expires_at=order.expires_at,
            settled_at=order.settled_at,
        )


class BettingOrderListResponse(BaseModel):
    items: list[BettingOrderResponse]
    next_cursor: str | None
    has_more: bool
