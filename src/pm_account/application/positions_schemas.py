# src/pm_account/application/positions_schemas.py
"""Pydantic schemas for positions API."""
from decimal import Decimal

from pydantic import BaseModel

from src.pm_account.domain.models import Position


class PositionResponse(BaseModel):
    market_id: str
    outcome: str
    shares_owned: Decimal
    total_paid: Decimal
    avg_cost: Decimal

    @classmethod
    def from_domain(cls, p: Position) -> "PositionResponse":
        return cls(
            market_id=p.market_id,
            outcome=p.outcome,
            shares_owned=p.shares_owned,
            total_paid=p.total_paid,
            avg_cost=p.avg_cost,
        )


class PositionListResponse(BaseModel):
    items: list[PositionResponse]
    total: int
