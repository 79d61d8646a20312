# src/pm_admin/api/router.py
"""Admin REST API. Every endpoint requires a caller listed in ADMIN_USER_IDS."""
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.enums import Outcome
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentUser, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class CreateMarketRequest(BaseModel):
    question: str
    pool_k: Decimal | None = None
    yes_price: Decimal | None = None
    no_price: Decimal | None = None


class ResolveRequest(BaseModel):
    outcome: Outcome


class GrantRequest(BaseModel):
    amount: Decimal


@router.post("/markets", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(
        body.question, body.pool_k, body.yes_price, body.no_price, db
    )
    return success_response(result)


@router.post("/markets/lock-all")
async def lock_all_markets(
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.lock_all_markets(db))


@router.post("/markets/{market_id}/lock")
async def lock_market(
    market_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.set_market_locked(market_id, True, db))


@router.post("/markets/{market_id}/unlock")
async def unlock_market(
    market_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.set_market_locked(market_id, False, db))


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(market_id, body.outcome, db)
    return success_response(result)


@router.get("/markets/{market_id}/stats")
async def market_stats(
    market_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.get_market_stats(market_id, db))


@router.post("/accounts/{user_id}/grant")
async def grant_funds(
    user_id: str,
    body: GrantRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.grant_funds(user_id, body.amount, db))


@router.get("/verify-invariants")
async def verify_invariants(
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.verify_all_invariants(db))
