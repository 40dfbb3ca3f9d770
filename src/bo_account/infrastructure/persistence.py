"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

Every balance mutation is one atomic PostgreSQL ``UPDATE ... RETURNING``. The
row lock taken by the UPDATE serializes concurrent mutations of the same user
(settlement vs. deposit vs. withdrawal request vs. admin freeze), and the WHERE
guard is re-evaluated after the lock is acquired, so no lost updates and no
negative balances. ``held_balance`` never exceeds ``frozen_balance``, so an
admin unfreeze cannot release order escrow. A result of 0 rows means the
account is missing or a guard failed.

Transaction ownership: the CALLER (application service or engine) commits or
rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_account.domain.models import (
    REPUTATION_MAX,
    REPUTATION_MIN,
    Account,
    BalanceDelta,
    LedgerEntry,
    WithdrawalRequest,
)
from src.bo_common.errors import (
    InsufficientBalanceError,
    InsufficientHeldBalanceError,
    InternalError,
    UserNotFoundError,
)
from src.bo_common.money import cents_to_str

_ACCOUNT_COLUMNS = (
    "id, user_id, available_balance, frozen_balance, held_balance, reputation, version, "
    "created_at, updated_at"
)

_ADJUST_BALANCES_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance + :available_delta,
        frozen_balance    = frozen_balance    + :frozen_delta,
        held_balance      = held_balance      + :held_delta,
        reputation = LEAST(:rep_max, GREATEST(:rep_min, reputation + :reputation_delta)),
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND available_balance + :available_delta >= 0
      AND frozen_balance    + :frozen_delta    >= 0
      AND held_balance      + :held_delta      >= 0
      AND held_balance + :held_delta <= frozen_balance + :frozen_delta
    RETURNING {_ACCOUNT_COLUMNS}
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_id = :user_id
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


_WITHDRAWAL_COLUMNS = (
    "id, user_id, amount, status, review_note, reviewed_by, created_at, reviewed_at"
)

_INSERT_WITHDRAWAL_SQL = text("""
    INSERT INTO withdrawal_requests (id, user_id, amount, status)
    VALUES (:id, :user_id, :amount, :status)
""")

_GET_WITHDRAWAL_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawal_requests
    WHERE id = :id
""")

_LIST_WITHDRAWALS_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawal_requests
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id = :user_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# Compare-and-swap out of pending: exactly one review wins.
_MARK_WITHDRAWAL_REVIEWED_SQL = text(f"""
    UPDATE withdrawal_requests
    SET status = :status, reviewed_by = :reviewed_by, review_note = :note,
        reviewed_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_WITHDRAWAL_COLUMNS}
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        frozen_balance=row.frozen_balance,  # type: ignore[attr-defined]
        held_balance=row.held_balance,  # type: ignore[attr-defined]
        reputation=row.reputation,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_withdrawal(row: object) -> WithdrawalRequest:
    return WithdrawalRequest(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        review_note=row.review_note,  # type: ignore[attr-defined]
        reviewed_by=row.reviewed_by,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        reviewed_at=row.reviewed_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def adjust_balances(
        self, db: AsyncSession, user_id: str, delta: BalanceDelta
    ) -> Account:
        result = await db.execute(
            _ADJUST_BALANCES_SQL,
            {
                "user_id": user_id,
                "available_delta": delta.available,
                "frozen_delta": delta.frozen,
                "held_delta": delta.held,
                "reputation_delta": delta.reputation,
                "rep_min": REPUTATION_MIN,
                "rep_max": REPUTATION_MAX,
            },
        )
        row = result.fetchone()
        if row is not None:
            return _row_to_account(row)

        current = await self.get_account_by_user_id(db, user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        if current.available_balance + delta.available < 0:
            raise InsufficientBalanceError(
                cents_to_str(-delta.available), cents_to_str(current.available_balance)
            )
        if current.held_balance + delta.held < 0:
            raise InsufficientHeldBalanceError(
                cents_to_str(-delta.held), cents_to_str(current.held_balance)
            )
        raise InsufficientBalanceError(
            cents_to_str(-delta.frozen), cents_to_str(current.frozen_balance)
        )

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
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_ledger(row)

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]


class WithdrawalRepository:
    """Withdrawal requests; the review transition is a CAS on ``pending``."""

    async def create(self, db: AsyncSession, request: WithdrawalRequest) -> None:
        await db.execute(
            _INSERT_WITHDRAWAL_SQL,
            {
                "id": request.id,
                "user_id": request.user_id,
                "amount": request.amount,
                "status": request.status,
            },
        )

    async def get_by_id(
        self, db: AsyncSession, request_id: str
    ) -> WithdrawalRequest | None:
        result = await db.execute(_GET_WITHDRAWAL_SQL, {"id": request_id})
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None

    async def list_requests(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[WithdrawalRequest]:
        result = await db.execute(
            _LIST_WITHDRAWALS_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_withdrawal(row) for row in result.fetchall()]

    async def mark_reviewed(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        reviewed_by: str,
        note: str | None,
    ) -> WithdrawalRequest | None:
        result = await db.execute(
            _MARK_WITHDRAWAL_REVIEWED_SQL,
            {"id": request_id, "status": status, "reviewed_by": reviewed_by, "note": note},
        )
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None
