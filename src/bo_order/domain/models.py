"""Betting order domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.bo_common.enums import OrderStatus, PriceSource


@dataclass
class BettingOrder:
    id: str
    order_no: str
    user_id: str
    asset: str  # "BTC/USDT"
    amount: int  # cents, escrowed principal
    direction: str  # "Buy Up" / "Buy Down" — always the customer's own choice
    duration: int  # seconds
    entry_price: Decimal
    expires_at: datetime
    entry_price_source: str = PriceSource.LIVE.value
    status: str = OrderStatus.ACTIVE.value
    result: str | None = None  # win / loss / draw, set at settlement
    exit_price: Decimal | None = None
    exit_price_source: str | None = None  # live / cache / flat
    profit_loss: int | None = None  # cents, signed ledger impact
    cancel_reason: str | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None
    # Populated only by admin listings (JOIN users)
    username: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == OrderStatus.ACTIVE.value

    def is_due(self, now: datetime) -> bool:
        return self.is_active and now >= self.expires_at

    @property
    def entry_from_oracle(self) -> bool:
        return PriceSource(self.entry_price_source).from_oracle
