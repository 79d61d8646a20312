"""Pydantic schemas for pm_market API responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.pm_common.amounts import dollars_to_display, price_to_display
from src.pm_market.domain.models import Market


class MarketItem(BaseModel):
    id: str
    question: str
    state: str
    yes_price: Decimal
    no_price: Decimal
    yes_price_display: str
    no_price_display: str
    pool_k: Decimal
    total_volume: Decimal
    total_volume_display: str
    is_locked: bool
    outcome: str | None
    resolved_at: datetime | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketItem":
        return cls(
            id=m.id,
            question=m.question,
            state=m.state.value,
            yes_price=m.yes_price,
            no_price=m.no_price,
            yes_price_display=price_to_display(m.yes_price),
            no_price_display=price_to_display(m.no_price),
            pool_k=m.pool_k,
            total_volume=m.total_volume,
            total_volume_display=dollars_to_display(m.total_volume),
            is_locked=m.is_locked,
            outcome=m.outcome,
            resolved_at=m.resolved_at,
            created_at=m.created_at,
        )


class MarketListResponse(BaseModel):
    items: list[MarketItem]
