"""Pydantic schemas and cursor utilities for bo_account API.

Money goes out as fixed 2-decimal strings ("10600.00").
"""

import base64
import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.bo_account.domain.models import Account, WithdrawalRequest
from src.bo_common.money import AmountCents, cents_to_str

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: AmountCents


class WithdrawRequest(BaseModel):
    amount: AmountCents


class BalanceHoldRequest(BaseModel):
    """Admin freeze / unfreeze of part of a customer's available balance."""

    amount: AmountCents
    reason: str = Field(..., min_length=1, max_length=200)


class ReviewWithdrawalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["approved", "rejected"]
    note: str | None = Field(None, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    total_balance: str
    available_balance: str
    frozen_balance: str
    held_balance: str = "0.00"
    reputation: int

    @classmethod
    def from_account(cls, account: Account) -> "BalanceResponse":
        return cls(
            user_id=account.user_id,
            total_balance=cents_to_str(account.total_balance),
            available_balance=cents_to_str(account.available_balance),
            frozen_balance=cents_to_str(account.frozen_balance),
            held_balance=cents_to_str(account.held_balance),
            reputation=account.reputation,
        )


class BalanceChangeResponse(BaseModel):
    """Result of a deposit or an admin freeze/unfreeze."""

    amount: str
    available_balance: str
    frozen_balance: str
    held_balance: str
    total_balance: str
    ledger_entry_id: int


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: str
    balance_after: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class WithdrawalRequestResponse(BaseModel):
    id: str
    user_id: str
    amount: str
    status: str
    review_note: str | None = None
    reviewed_by: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_request(cls, request: WithdrawalRequest) -> "WithdrawalRequestResponse":
        return cls(
            id=request.id,
            user_id=request.user_id,
            amount=cents_to_str(request.amount),
            status=request.status,
            review_note=request.review_note,
            reviewed_by=request.reviewed_by,
            created_at=request.created_at,
            reviewed_at=request.reviewed_at,
        )


class WithdrawalListResponse(BaseModel):
    items: list[WithdrawalRequestResponse]
    next_cursor: str | None
    has_more: bool
