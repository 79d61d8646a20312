# src/pm_amm/api/router.py
"""Trading endpoints.

POST /trades/buy    — spend dollars on YES or NO shares
POST /trades/sell   — sell shares back to the pool
GET  /trades        — caller's trade history (cursor = last trade_id)
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.application.schemas import BuyRequest, SellRequest
from src.pm_amm.application.service import TradeApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentUser, get_current_user

router = APIRouter(prefix="/trades", tags=["trades"])

_service = TradeApplicationService()


def _respond(request: Request, data: object) -> ApiResponse:
    return success_response(data, getattr(request.state, "request_id", None))


@router.post("/buy")
async def buy(
    body: BuyRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.buy(db, current_user.id, body)
    return _respond(request, result.model_dump(mode="json"))


@router.post("/sell")
async def sell(
    body: SellRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.sell(db, current_user.id, body)
    return _respond(request, result.model_dump(mode="json"))


@router.get("")
async def list_my_trades(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    market_id: str | None = Query(None, description="Filter by market ID"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Pagination cursor (trade ID)"),
) -> ApiResponse:
    result = await _service.list_my_trades(db, current_user.id, market_id, limit, cursor)
    return _respond(request, result.model_dump(mode="json"))
