"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Outcome(str, Enum):
    YES = "yes"
    NO = "no"


class TradeMode(str, Enum):
    BUY = "buy"
    SELL = "sell"


class MarketState(str, Enum):
    """Derived from (is_locked, outcome); not stored as a column."""
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    RESOLVED = "RESOLVED"


class LedgerEntryType(str, Enum):
    # Trading (user side)
    TRADE_BUY = "TRADE_BUY"
    TRADE_SELL = "TRADE_SELL"
    # Resolution
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
    # Funding
    SIGNUP_GRANT = "SIGNUP_GRANT"
    ADMIN_GRANT = "ADMIN_GRANT"


class EventType(str, Enum):
    MARKET_UPDATED = "market.updated"
    MARKET_RESOLVED = "market.resolved"
    POSITION_UPDATED = "position.updated"
    BALANCE_UPDATED = "balance.updated"
