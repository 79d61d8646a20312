"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import ZERO, quantize_even


@dataclass(frozen=True)
class Account:
    user_id: str
    balance: Decimal   # dollars, never negative
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Position:
    """Holdings of one outcome of one market for one user.

    Invariant: shares_owned == 0 implies total_paid == 0 (no dangling cost basis).
    """

    user_id: str
    market_id: str
    outcome: str
    shares_owned: Decimal = ZERO
    total_paid: Decimal = ZERO   # cost basis of the shares currently held
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def avg_cost(self) -> Decimal:
        if self.shares_owned <= 0:
            return ZERO
        return quantize_even(self.total_paid / self.shares_owned)

    def after_buy(self, shares: Decimal, spend: Decimal) -> "Position":
        return replace(
            self,
            shares_owned=self.shares_owned + shares,
            total_paid=self.total_paid + spend,
        )

    def after_sell(self, shares: Decimal) -> "Position":
        """Average-cost reduction: the remaining shares keep the same avg_cost."""
        if shares > self.shares_owned:
            raise ValueError(f"Cannot sell {shares} of {self.shares_owned} shares")
        remaining = self.shares_owned - shares
        if remaining == 0:
            return replace(self, shares_owned=ZERO, total_paid=ZERO)
        released = quantize_even(self.total_paid * shares / self.shares_owned)
        return replace(
            self,
            shares_owned=remaining,
            total_paid=max(self.total_paid - released, ZERO),
        )


@dataclass(frozen=True)
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: Decimal                  # positive=income negative=expense
    balance_after: Decimal           # balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
