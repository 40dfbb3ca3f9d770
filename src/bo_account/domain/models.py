"""Domain models for bo_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.bo_common.enums import WithdrawalStatus

REPUTATION_MIN = 0
REPUTATION_MAX = 100


@dataclass
class Account:
    id: str
    user_id: str
    available_balance: int   # cents
    frozen_balance: int      # cents, order escrow plus held_balance
    reputation: int          # 0..100
    version: int
    created_at: datetime
    updated_at: datetime
    held_balance: int = 0    # cents, part of frozen_balance under an admin freeze

    @property
    def total_balance(self) -> int:
        # Derived, never stored: escrow moves and admin freezes leave it
        # unchanged, P&L, deposits and withdrawal requests move it.
        return self.available_balance + self.frozen_balance


@dataclass(frozen=True)
class BalanceDelta:
    """Signed changes applied to one account in a single atomic UPDATE."""

    available: int = 0   # cents
    frozen: int = 0      # cents
    reputation: int = 0
    held: int = 0        # cents, admin freeze/unfreeze only

    @property
    def total(self) -> int:
        return self.available + self.frozen


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # cents, signed change to available_balance
    balance_after: int               # cents, available_balance after the change
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


def clamp_reputation(value: int) -> int:
    return max(REPUTATION_MIN, min(REPUTATION_MAX, value))


@dataclass
class WithdrawalRequest:
    """Funds leave available_balance when requested; a rejection refunds them."""

    id: str
    user_id: str
    amount: int                      # cents
    status: str = WithdrawalStatus.PENDING.value
    review_note: str | None = None
    reviewed_by: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == WithdrawalStatus.PENDING.value
