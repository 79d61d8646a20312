# src/pm_account/api/positions_router.py
"""Positions REST API — 2 endpoints. Only non-zero holdings are returned."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentUser, get_current_user

router = APIRouter(prefix="/positions", tags=["positions"])
_service = AccountApplicationService()


@router.get("")
async def list_positions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.list_positions(db, current_user.id)
    return success_response(data.model_dump(mode="json"))


@router.get("/{market_id}")
async def get_market_positions(
    market_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.list_positions(db, current_user.id, market_id)
    return success_response(data.model_dump(mode="json"))
