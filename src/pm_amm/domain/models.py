"""Domain models for pm_amm — previews, trade results and trade records."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class BuyPreview:
    old_price: Decimal
    new_price: Decimal
    avg_price: Decimal
    shares: Decimal
    spend: Decimal       # effective_spend: dollars actually absorbed, <= requested amount
    max_payout: Decimal  # 1.0 per winning share


@dataclass(frozen=True)
class SellPreview:
    old_price: Decimal
    new_price: Decimal
    avg_price: Decimal
    dollars: Decimal
    shares: Decimal


@dataclass(frozen=True)
class BuyResult:
    trade_id: str
    market_id: str
    outcome: str
    shares: Decimal
    avg_price: Decimal
    spend: Decimal
    new_price: Decimal
    balance: Decimal


@dataclass(frozen=True)
class SellResult:
    trade_id: str
    market_id: str
    outcome: str
    dollars: Decimal
    avg_price: Decimal
    shares_sold: Decimal
    new_price: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TradeRecord:
    """Append-only audit fact; never mutated after insert."""

    trade_id: str
    market_id: str
    user_id: str
    outcome: str
    mode: str          # TradeMode value
    dollars: Decimal
    shares: Decimal
    price_after: Decimal
    executed_at: datetime
