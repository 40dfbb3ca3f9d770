"""Unit tests for AccountApplicationService using a mock repository."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bo_account.application.schemas import BalanceResponse, cursor_encode
from src.bo_account.application.service import AccountApplicationService
from src.bo_account.domain.models import Account, BalanceDelta, LedgerEntry, WithdrawalRequest
from src.bo_common.enums import WithdrawalStatus
from src.bo_common.errors import (
    InsufficientBalanceError,
    InsufficientHeldBalanceError,
    UserNotFoundError,
    WithdrawalNotFoundError,
    WithdrawalNotPendingError,
)


def _make_account(available: int = 1000000, frozen: int = 0, reputation: int = 100) -> Account:
    return Account(
        id="uuid-1",
        user_id="user-1",
        available_balance=available,
        frozen_balance=frozen,
        reputation=reputation,
        version=1,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )


def _make_ledger_entry(entry_id: int = 1, amount: int = 10000, entry_type: str = "DEPOSIT") -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        user_id="user-1",
        entry_type=entry_type,
        amount=amount,
        balance_after=1010000,
        created_at=datetime.now(UTC),
    )


def _make_request(request_id: str = "wd-1", status: str = "pending", **kwargs: str) -> WithdrawalRequest:
    return WithdrawalRequest(
        id=request_id, user_id="user-1", amount=50000, status=status, **kwargs
    )


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _service(repo: AsyncMock, withdrawals: AsyncMock | None = None) -> AccountApplicationService:
    return AccountApplicationService(repo=repo, withdrawals=withdrawals or AsyncMock())


class TestGetBalance:
    async def test_returns_string_money_and_reputation(self) -> None:
        repo = AsyncMock()
        repo.get_account_by_user_id.return_value = _make_account(800000, 200000, 95)
        svc = AccountApplicationService(repo=repo)

        result = await svc.get_balance(_db(), "user-1")

        assert isinstance(result, BalanceResponse)
        assert result.available_balance == "8000.00"
        assert result.frozen_balance == "2000.00"
        assert result.total_balance == "10000.00"
        assert result.reputation == 95

    async def test_missing_account(self) -> None:
        repo = AsyncMock()
        repo.get_account_by_user_id.return_value = None
        with pytest.raises(UserNotFoundError):
            await AccountApplicationService(repo=repo).get_balance(_db(), "ghost")


class TestDeposit:
    async def test_credits_and_writes_ledger(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.return_value = _make_account(1010000)
        repo.append_ledger_entry.return_value = _make_ledger_entry(7)
        db = _db()

        result = await AccountApplicationService(repo=repo).deposit(db, "user-1", 10000)

        repo.adjust_balances.assert_awaited_once_with(db, "user-1", BalanceDelta(available=10000))
        assert repo.append_ledger_entry.await_args.args[2] == "DEPOSIT"
        assert result.amount == "100.00"
        assert result.available_balance == "10100.00"
        assert result.ledger_entry_id == 7
        db.commit.assert_awaited_once()


class TestAdminHold:
    async def test_freeze_moves_available_into_held(self) -> None:
        repo = AsyncMock()
        account = _make_account(900000, 100000)
        account.held_balance = 100000
        repo.adjust_balances.return_value = account
        repo.append_ledger_entry.return_value = _make_ledger_entry(9, -100000, "ADMIN_FREEZE")
        db = _db()

        result = await _service(repo).freeze(db, "user-1", 100000, "chargeback", "admin-1")

        repo.adjust_balances.assert_awaited_once_with(
            db, "user-1", BalanceDelta(available=-100000, frozen=100000, held=100000)
        )
        args = repo.append_ledger_entry.await_args.args
        assert args[2] == "ADMIN_FREEZE"
        assert args[3] == -100000
        assert args[5:7] == ("ADMIN", "admin-1")
        assert "chargeback" in args[7]
        assert result.held_balance == "1000.00"
        assert result.total_balance == "10000.00"
        db.commit.assert_awaited_once()

    async def test_unfreeze_releases_held_only(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.return_value = _make_account(1000000)
        repo.append_ledger_entry.return_value = _make_ledger_entry(10, 100000, "ADMIN_UNFREEZE")
        db = _db()

        result = await _service(repo).unfreeze(db, "user-1", 100000, "cleared", "admin-1")

        repo.adjust_balances.assert_awaited_once_with(
            db, "user-1", BalanceDelta(available=100000, frozen=-100000, held=-100000)
        )
        assert repo.append_ledger_entry.await_args.args[2] == "ADMIN_UNFREEZE"
        assert result.amount == "1000.00"

    async def test_unfreeze_beyond_hold_rolls_back(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.side_effect = InsufficientHeldBalanceError("2000.00", "0.00")
        db = _db()

        with pytest.raises(InsufficientHeldBalanceError):
            await _service(repo).unfreeze(db, "user-1", 200000, "release escrow", "admin-1")

        db.rollback.assert_awaited_once()
        repo.append_ledger_entry.assert_not_awaited()


class TestRequestWithdrawal:
    async def test_debits_and_records_pending_request(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.return_value = _make_account(990000)
        repo.append_ledger_entry.return_value = _make_ledger_entry(8, -10000, "WITHDRAW")
        withdrawals = AsyncMock()
        db = _db()

        result = await _service(repo, withdrawals).request_withdrawal(db, "user-1", 10000)

        created = withdrawals.create.await_args.args[1]
        assert created.user_id == "user-1"
        assert created.amount == 10000
        assert created.is_pending
        repo.adjust_balances.assert_awaited_once_with(db, "user-1", BalanceDelta(available=-10000))
        args = repo.append_ledger_entry.await_args.args
        assert args[2] == "WITHDRAW"
        assert args[3] == -10000
        assert args[5:7] == ("WITHDRAWAL_REQUEST", created.id)
        assert result.status == "pending"
        assert result.amount == "100.00"
        assert result.id == created.id
        db.commit.assert_awaited_once()

    async def test_insufficient_rolls_back(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.side_effect = InsufficientBalanceError("100.00", "50.00")
        db = _db()

        with pytest.raises(InsufficientBalanceError):
            await _service(repo).request_withdrawal(db, "user-1", 10000)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
        repo.append_ledger_entry.assert_not_awaited()


class TestReviewWithdrawal:
    async def test_approve_leaves_balance_alone(self) -> None:
        repo = AsyncMock()
        withdrawals = AsyncMock()
        withdrawals.get_by_id.return_value = _make_request()
        withdrawals.mark_reviewed.return_value = _make_request(
            status="approved", reviewed_by="admin-1"
        )
        db = _db()

        result = await _service(repo, withdrawals).review_withdrawal(
            db, "wd-1", WithdrawalStatus.APPROVED, "admin-1", None
        )

        withdrawals.mark_reviewed.assert_awaited_once_with(
            db, "wd-1", "approved", "admin-1", None
        )
        repo.adjust_balances.assert_not_awaited()
        repo.append_ledger_entry.assert_not_awaited()
        assert result.status == "approved"
        db.commit.assert_awaited_once()

    async def test_reject_refunds_amount(self) -> None:
        repo = AsyncMock()
        repo.adjust_balances.return_value = _make_account(1000000)
        repo.append_ledger_entry.return_value = _make_ledger_entry(11, 50000, "WITHDRAW_REJECT_REFUND")
        withdrawals = AsyncMock()
        withdrawals.get_by_id.return_value = _make_request()
        withdrawals.mark_reviewed.return_value = _make_request(
            status="rejected", reviewed_by="admin-1", review_note="KYC"
        )
        db = _db()

        result = await _service(repo, withdrawals).review_withdrawal(
            db, "wd-1", WithdrawalStatus.REJECTED, "admin-1", "KYC"
        )

        repo.adjust_balances.assert_awaited_once_with(db, "user-1", BalanceDelta(available=50000))
        args = repo.append_ledger_entry.await_args.args
        assert args[2] == "WITHDRAW_REJECT_REFUND"
        assert args[3] == 50000
        assert args[5:7] == ("WITHDRAWAL_REQUEST", "wd-1")
        assert "KYC" in args[7]
        assert result.status == "rejected"
        assert result.review_note == "KYC"

    async def test_unknown_request(self) -> None:
        withdrawals = AsyncMock()
        withdrawals.get_by_id.return_value = None
        with pytest.raises(WithdrawalNotFoundError):
            await _service(AsyncMock(), withdrawals).review_withdrawal(
                _db(), "wd-x", WithdrawalStatus.APPROVED, "admin-1", None
            )

    async def test_already_reviewed(self) -> None:
        withdrawals = AsyncMock()
        withdrawals.get_by_id.return_value = _make_request(status="approved")

        with pytest.raises(WithdrawalNotPendingError) as exc_info:
            await _service(AsyncMock(), withdrawals).review_withdrawal(
                _db(), "wd-1", WithdrawalStatus.REJECTED, "admin-1", None
            )

        assert exc_info.value.code == 2005
        withdrawals.mark_reviewed.assert_not_awaited()

    async def test_concurrent_review_loses_without_refund(self) -> None:
        repo = AsyncMock()
        withdrawals = AsyncMock()
        withdrawals.get_by_id.return_value = _make_request()
        withdrawals.mark_reviewed.return_value = None
        db = _db()

        with pytest.raises(WithdrawalNotPendingError):
            await _service(repo, withdrawals).review_withdrawal(
                db, "wd-1", WithdrawalStatus.REJECTED, "admin-2", None
            )

        repo.adjust_balances.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestListWithdrawals:
    async def test_has_more_uses_last_id_as_cursor(self) -> None:
        withdrawals = AsyncMock()
        withdrawals.list_requests.return_value = [
            _make_request("wd-3"), _make_request("wd-2"), _make_request("wd-1")
        ]

        result = await _service(AsyncMock(), withdrawals).list_withdrawals(
            _db(), None, "pending", None, 2
        )

        assert [item.id for item in result.items] == ["wd-3", "wd-2"]
        assert result.has_more is True
        assert result.next_cursor == "wd-2"
        assert withdrawals.list_requests.await_args.args[1:] == (None, "pending", None, 3)


class TestListLedger:
    async def test_has_more_sets_cursor(self) -> None:
        repo = AsyncMock()
        repo.list_ledger_entries.return_value = [
            _make_ledger_entry(3), _make_ledger_entry(2), _make_ledger_entry(1)
        ]

        result = await AccountApplicationService(repo=repo).list_ledger(
            _db(), "user-1", None, 2, None
        )

        assert len(result.items) == 2
        assert result.has_more is True
        assert result.next_cursor == cursor_encode(2)
        assert repo.list_ledger_entries.await_args.args[3] == 3

    async def test_last_page(self) -> None:
        repo = AsyncMock()
        repo.list_ledger_entries.return_value = [_make_ledger_entry(1)]

        result = await AccountApplicationService(repo=repo).list_ledger(
            _db(), "user-1", cursor_encode(2), 20, "DEPOSIT"
        )

        assert result.has_more is False
        assert result.next_cursor is None
        assert result.items[0].amount == "100.00"
        assert repo.list_ledger_entries.await_args.args[2] == 2
