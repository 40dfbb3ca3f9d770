"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake conforming to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_account.domain.models import (
    Account,
    BalanceDelta,
    LedgerEntry,
    WithdrawalRequest,
)


class AccountRepositoryProtocol(Protocol):
    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def adjust_balances(
        self, db: AsyncSession, user_id: str, delta: BalanceDelta
    ) -> Account: ...

    async def append_ledger_entry(
        self,
        db: AsyncSession,
        user_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        ref_type: str | None,
        ref_id: str | None,
        description: str | None,
    ) -> LedgerEntry: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...


class WithdrawalRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, request: WithdrawalRequest) -> None: ...

    async def get_by_id(
        self, db: AsyncSession, request_id: str
    ) -> WithdrawalRequest | None: ...

    async def list_requests(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[WithdrawalRequest]: ...

    async def mark_reviewed(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        reviewed_by: str,
        note: str | None,
    ) -> WithdrawalRequest | None: ...
