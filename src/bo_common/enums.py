"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OrderDirection(str, Enum):
    BUY_UP = "Buy Up"
    BUY_DOWN = "Buy Down"


class OrderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class PriceSource(str, Enum):
    """Where an order's entry or exit price came from."""

    LIVE = "live"  # oracle HTTP quote
    CACHE = "cache"  # last-known oracle quote from Redis
    HINT = "hint"  # client-supplied entry price
    DEFAULT = "default"  # static per-asset constant
    FLAT = "flat"  # exit only: no usable quote, exit set to the entry price

    @property
    def from_oracle(self) -> bool:
        return self in (PriceSource.LIVE, PriceSource.CACHE)


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LedgerEntryType(str, Enum):
    # Deposit/Withdraw
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    WITHDRAW_REJECT_REFUND = "WITHDRAW_REJECT_REFUND"
    # Admin hold (available <-> frozen)
    ADMIN_FREEZE = "ADMIN_FREEZE"
    ADMIN_UNFREEZE = "ADMIN_UNFREEZE"
    # Order escrow (available <-> frozen)
    ORDER_FREEZE = "ORDER_FREEZE"
    ORDER_CANCEL_REFUND = "ORDER_CANCEL_REFUND"
    # Settlement: principal returned plus/minus realized P&L
    SETTLEMENT_PNL = "SETTLEMENT_PNL"
