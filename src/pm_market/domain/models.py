"""Domain models for pm_market — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import clamp_price
from src.pm_common.enums import MarketState, Outcome


@dataclass(frozen=True)
class Market:
    id: str
    question: str
    yes_price: Decimal
    no_price: Decimal
    pool_k: Decimal              # liquidity constant, immutable after creation
    total_volume: Decimal        # cumulative BUY dollars; sells are not counted
    is_locked: bool
    outcome: str | None          # None while open; "yes" | "no" once resolved
    resolved_at: datetime | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def state(self) -> MarketState:
        if self.outcome is not None:
            return MarketState.RESOLVED
        if self.is_locked:
            return MarketState.LOCKED
        return MarketState.OPEN

    @property
    def is_resolved(self) -> bool:
        return self.outcome is not None

    def price_for(self, outcome: Outcome) -> Decimal:
        return self.yes_price if outcome == Outcome.YES else self.no_price

    def with_price(
        self, outcome: Outcome, new_price: Decimal, volume_delta: Decimal
    ) -> "Market":
        """Copy with one outcome's price moved. The other outcome's price is untouched."""
        price = clamp_price(new_price)
        if outcome == Outcome.YES:
            return replace(self, yes_price=price, total_volume=self.total_volume + volume_delta)
        return replace(self, no_price=price, total_volume=self.total_volume + volume_delta)

    def resolved(self, outcome: Outcome, at: datetime) -> "Market":
        return replace(self, outcome=outcome.value, resolved_at=at)
