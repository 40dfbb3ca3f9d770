"""AccountApplicationService — deposits, withdrawal requests, admin holds, reads.

Mutations share ``adjust_balances`` with the settlement engine so a deposit,
a withdrawal review or an admin freeze racing a settlement on the same user
is serialized by the account row lock.

Withdrawal lifecycle:

    request   available -= amount                    status pending
    approve   (funds already left)                   status approved
    reject    available += amount                    status rejected

Admin hold:

    freeze    available -= amount  frozen += amount  held += amount
    unfreeze  available += amount  frozen -= amount  held -= amount
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_account.application.schemas import (
    BalanceChangeResponse,
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    WithdrawalListResponse,
    WithdrawalRequestResponse,
    cursor_decode,
    cursor_encode,
)
from src.bo_account.domain.models import BalanceDelta, WithdrawalRequest
from src.bo_account.domain.repository import (
    AccountRepositoryProtocol,
    WithdrawalRepositoryProtocol,
)
from src.bo_account.infrastructure.persistence import AccountRepository, WithdrawalRepository
from src.bo_common.enums import LedgerEntryType, WithdrawalStatus
from src.bo_common.errors import (
    UserNotFoundError,
    WithdrawalNotFoundError,
    WithdrawalNotPendingError,
)
from src.bo_common.id_generator import generate_id
from src.bo_common.money import cents_to_str

_WITHDRAWAL_REF = "WITHDRAWAL_REQUEST"
_ADMIN_REF = "ADMIN"


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        withdrawals: WithdrawalRepositoryProtocol | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._withdrawals: WithdrawalRepositoryProtocol = withdrawals or WithdrawalRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account_by_user_id(db, user_id)
        if account is None:
            raise UserNotFoundError(user_id)
        return BalanceResponse.from_account(account)

    async def deposit(
        self, db: AsyncSession, user_id: str, amount_cents: int
    ) -> BalanceChangeResponse:
        return await self._apply(
            db,
            user_id,
            BalanceDelta(available=amount_cents),
            LedgerEntryType.DEPOSIT,
            "Deposit",
        )

    # ------------------------------------------------------------------
    # admin hold
    # ------------------------------------------------------------------

    async def freeze(
        self, db: AsyncSession, user_id: str, amount_cents: int, reason: str, admin_id: str
    ) -> BalanceChangeResponse:
        return await self._apply(
            db,
            user_id,
            BalanceDelta(available=-amount_cents, frozen=amount_cents, held=amount_cents),
            LedgerEntryType.ADMIN_FREEZE,
            f"Frozen by admin: {reason}",
            _ADMIN_REF,
            admin_id,
        )

    async def unfreeze(
        self, db: AsyncSession, user_id: str, amount_cents: int, reason: str, admin_id: str
    ) -> BalanceChangeResponse:
        return await self._apply(
            db,
            user_id,
            BalanceDelta(available=amount_cents, frozen=-amount_cents, held=-amount_cents),
            LedgerEntryType.ADMIN_UNFREEZE,
            f"Unfrozen by admin: {reason}",
            _ADMIN_REF,
            admin_id,
        )

    async def _apply(
        self,
        db: AsyncSession,
        user_id: str,
        delta: BalanceDelta,
        entry_type: LedgerEntryType,
        description: str,
        ref_type: str | None = None,
        ref_id: str | None = None,
    ) -> BalanceChangeResponse:
        try:
            account = await self._repo.adjust_balances(db, user_id, delta)
            entry = await self._repo.append_ledger_entry(
                db,
                user_id,
                entry_type.value,
                delta.available,
                account.available_balance,
                ref_type or entry_type.value,
                ref_id,
                description,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BalanceChangeResponse(
            amount=cents_to_str(abs(delta.available)),
            available_balance=cents_to_str(account.available_balance),
            frozen_balance=cents_to_str(account.frozen_balance),
            held_balance=cents_to_str(account.held_balance),
            total_balance=cents_to_str(account.total_balance),
            ledger_entry_id=entry.id,
        )

    # ------------------------------------------------------------------
    # withdrawal requests
    # ------------------------------------------------------------------

    async def request_withdrawal(
        self, db: AsyncSession, user_id: str, amount_cents: int
    ) -> WithdrawalRequestResponse:
        request = WithdrawalRequest(id=generate_id(), user_id=user_id, amount=amount_cents)
        try:
            await self._withdrawals.create(db, request)
            account = await self._repo.adjust_balances(
                db, user_id, BalanceDelta(available=-amount_cents)
            )
            await self._repo.append_ledger_entry(
                db,
                user_id,
                LedgerEntryType.WITHDRAW.value,
                -amount_cents,
                account.available_balance,
                _WITHDRAWAL_REF,
                request.id,
                "Withdrawal requested",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WithdrawalRequestResponse.from_request(request)

    async def review_withdrawal(
        self,
        db: AsyncSession,
        request_id: str,
        status: WithdrawalStatus,
        admin_id: str,
        note: str | None,
    ) -> WithdrawalRequestResponse:
        """Approve or reject a pending request; a rejection refunds the amount."""
        existing = await self._withdrawals.get_by_id(db, request_id)
        if existing is None:
            raise WithdrawalNotFoundError(request_id)
        if not existing.is_pending:
            raise WithdrawalNotPendingError(request_id, existing.status)

        try:
            reviewed = await self._withdrawals.mark_reviewed(
                db, request_id, status.value, admin_id, note
            )
            if reviewed is None:
                raise WithdrawalNotPendingError(request_id, "reviewed")
            if status is WithdrawalStatus.REJECTED:
                account = await self._repo.adjust_balances(
                    db, reviewed.user_id, BalanceDelta(available=reviewed.amount)
                )
                await self._repo.append_ledger_entry(
                    db,
                    reviewed.user_id,
                    LedgerEntryType.WITHDRAW_REJECT_REFUND.value,
                    reviewed.amount,
                    account.available_balance,
                    _WITHDRAWAL_REF,
                    reviewed.id,
                    f"Withdrawal rejected: {note}" if note else "Withdrawal rejected",
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WithdrawalRequestResponse.from_request(reviewed)

    async def list_withdrawals(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> WithdrawalListResponse:
        """``user_id=None`` lists every user's requests (admin review queue)."""
        requests = await self._withdrawals.list_requests(db, user_id, status, cursor, limit + 1)
        has_more = len(requests) > limit
        page = requests[:limit]
        return WithdrawalListResponse(
            items=[WithdrawalRequestResponse.from_request(r) for r in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # ledger
    # ------------------------------------------------------------------

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                amount=cents_to_str(e.amount),
                balance_after=cents_to_str(e.balance_after),
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
