# src/pm_amm/application/schemas.py
"""Request/response models for trading endpoints.

Amounts, prices and share counts are Decimal and serialize as strings
(model_dump(mode="json")) so no precision is lost to JSON floats.
Positivity and precision are enforced by pm_risk, not here, so bad input
comes back as a coded AppError instead of a FastAPI 422 body.
"""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.pm_amm.domain.models import (
    BuyPreview,
    BuyResult,
    SellPreview,
    SellResult,
    TradeRecord,
)
from src.pm_common.enums import Outcome


class BuyRequest(BaseModel):
    market_id: str
    outcome: Outcome
    amount: Decimal


class SellRequest(BaseModel):
    market_id: str
    outcome: Outcome
    shares: Decimal


class PreviewBuyRequest(BaseModel):
    outcome: Outcome
    amount: Decimal


class PreviewSellRequest(BaseModel):
    outcome: Outcome
    shares: Decimal


class BuyPreviewResponse(BaseModel):
    market_id: str
    outcome: Outcome
    old_price: Decimal
    new_price: Decimal
    avg_price: Decimal
    shares: Decimal
    spend: Decimal
    max_payout: Decimal

    @classmethod
    def from_domain(
        cls, market_id: str, outcome: Outcome, p: BuyPreview
    ) -> "BuyPreviewResponse":
        return cls(
            market_id=market_id,
            outcome=outcome,
            old_price=p.old_price,
            new_price=p.new_price,
            avg_price=p.avg_price,
            shares=p.shares,
            spend=p.spend,
            max_payout=p.max_payout,
        )


class SellPreviewResponse(BaseModel):
    market_id: str
    outcome: Outcome
    old_price: Decimal
    new_price: Decimal
    avg_price: Decimal
    dollars: Decimal
    shares: Decimal

    @classmethod
    def from_domain(
        cls, market_id: str, outcome: Outcome, p: SellPreview
    ) -> "SellPreviewResponse":
        return cls(
            market_id=market_id,
            outcome=outcome,
            old_price=p.old_price,
            new_price=p.new_price,
            avg_price=p.avg_price,
            dollars=p.dollars,
            shares=p.shares,
        )


class BuyResponse(BaseModel):
    trade_id: str
    market_id: str
    outcome: str
    shares: Decimal
    avg_price: Decimal
    spend: Decimal
    new_price: Decimal
    balance: Decimal

    @classmethod
    def from_domain(cls, r: BuyResult) -> "BuyResponse":
        return cls(
            trade_id=r.trade_id,
            market_id=r.market_id,
            outcome=r.outcome,
            shares=r.shares,
            avg_price=r.avg_price,
            spend=r.spend,
            new_price=r.new_price,
            balance=r.balance,
        )


class SellResponse(BaseModel):
    trade_id: str
    market_id: str
    outcome: str
    dollars: Decimal
    avg_price: Decimal
    shares_sold: Decimal
    new_price: Decimal
    balance: Decimal

    @classmethod
    def from_domain(cls, r: SellResult) -> "SellResponse":
        return cls(
            trade_id=r.trade_id,
            market_id=r.market_id,
            outcome=r.outcome,
            dollars=r.dollars,
            avg_price=r.avg_price,
            shares_sold=r.shares_sold,
            new_price=r.new_price,
            balance=r.balance,
        )


class TradeItem(BaseModel):
    trade_id: str
    market_id: str
    user_id: str
    outcome: str
    mode: str
    dollars: Decimal
    shares: Decimal
    price_after: Decimal
    executed_at: datetime

    @classmethod
    def from_domain(cls, t: TradeRecord) -> "TradeItem":
        return cls(
            trade_id=t.trade_id,
            market_id=t.market_id,
            user_id=t.user_id,
            outcome=t.outcome,
            mode=t.mode,
            dollars=t.dollars,
            shares=t.shares,
            price_after=t.price_after,
            executed_at=t.executed_at,
        )


class TradeListResponse(BaseModel):
    items: list[TradeItem]
    next_cursor: str | None
    has_more: bool
