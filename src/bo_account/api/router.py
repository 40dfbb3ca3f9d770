"""bo_account REST API — balance, deposit, withdrawal requests, ledger, admin holds (JWT required)."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_account.application.schemas import (
    BalanceHoldRequest,
    DepositRequest,
    ReviewWithdrawalRequest,
    WithdrawRequest,
)
from src.bo_account.application.service import AccountApplicationService
from src.bo_common.database import get_db_session
from src.bo_common.enums import WithdrawalStatus
from src.bo_common.response import ApiResponse, success_response
from src.bo_gateway.auth.dependencies import get_current_user, require_admin
from src.bo_gateway.middleware.request_log import get_request_id
from src.bo_gateway.user.db_models import UserModel

router = APIRouter(prefix="/account", tags=["account"])

_service = AccountApplicationService()

WithdrawalStatusFilter = Literal["pending", "approved", "rejected"]


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/deposit")
async def deposit(
    body: DepositRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.deposit(db, str(current_user.id), body.amount)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/withdrawals", status_code=201)
async def request_withdrawal(
    body: WithdrawRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_withdrawal(db, str(current_user.id), body.amount)
    return success_response(data.model_dump(mode="json"), get_request_id(request))


@router.get("/withdrawals")
async def list_my_withdrawals(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: WithdrawalStatusFilter | None = Query(None, description="Filter by status"),
    cursor: str | None = Query(None, description="Pagination cursor (request ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_withdrawals(db, str(current_user.id), status, cursor, limit)
    return success_response(data.model_dump(mode="json"), get_request_id(request))


@router.get("/ledger")
async def list_ledger(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(db, str(current_user.id), cursor, limit, entry_type)
    return success_response(data.model_dump(), get_request_id(request))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin/withdrawals")
async def list_withdrawals_for_review(
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: WithdrawalStatusFilter | None = Query("pending", description="Filter by status"),
    cursor: str | None = Query(None, description="Pagination cursor (request ID)"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_withdrawals(db, None, status, cursor, limit)
    return success_response(data.model_dump(mode="json"), get_request_id(request))


@router.patch("/admin/withdrawals/{request_id}")
async def review_withdrawal(
    request_id: str,
    body: ReviewWithdrawalRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.review_withdrawal(
        db, request_id, WithdrawalStatus(body.status), str(admin.id), body.note
    )
    return success_response(data.model_dump(mode="json"), get_request_id(request))


@router.post("/admin/users/{user_id}/freeze")
async def freeze_balance(
    user_id: str,
    body: BalanceHoldRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.freeze(db, user_id, body.amount, body.reason, str(admin.id))
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/admin/users/{user_id}/unfreeze")
async def unfreeze_balance(
    user_id: str,
    body: BalanceHoldRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.unfreeze(db, user_id, body.amount, body.reason, str(admin.id))
    return success_response(data.model_dump(), get_request_id(request))
