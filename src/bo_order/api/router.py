# src/bo_order/api/router.py
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.bo_common.database import get_db_session
from src.bo_gateway.auth.dependencies import get_current_user, require_admin
from src.bo_gateway.user.db_models import UserModel
from src.bo_order.application import service as svc
from src.bo_order.application.schemas import (
    BettingOrderListResponse,
    BettingOrderResponse,
    PlaceBettingOrderRequest,
    UpdateBettingOrderRequest,
)

router = APIRouter(prefix="/betting-orders", tags=["betting-orders"])

StatusFilter = Literal["active", "completed", "cancelled"]


@router.post("", response_model=BettingOrderResponse, status_code=201)
async def place_order(
    req: PlaceBettingOrderRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> BettingOrderResponse:
    return await svc.place_order(req, str(current_user.id), db)


@router.get("", response_model=BettingOrderListResponse)
async def list_orders(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: StatusFilter | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> BettingOrderListResponse:
    return await svc.list_orders(current_user, status, limit, cursor, db)


@router.get("/active", response_model=BettingOrderListResponse)
async def list_active_orders(
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> BettingOrderListResponse:
    return await svc.list_active_orders(limit, cursor, db)


@router.get("/{order_id}", response_model=BettingOrderResponse)
async def get_order(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> BettingOrderResponse:
    return await svc.get_order(order_id, current_user, db)


@router.patch("/{order_id}", response_model=BettingOrderResponse)
async def update_order(
    order_id: str,
    req: UpdateBettingOrderRequest,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> BettingOrderResponse:
    return await svc.update_order(order_id, req, db)
