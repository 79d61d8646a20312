"""Persist a single trade record to the trades table (append-only)."""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import TradeRecord

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (
        trade_id, market_id, user_id, outcome, mode,
        dollars, shares, price_after, executed_at
    ) VALUES (
        :trade_id, :market_id, :user_id, :outcome, :mode,
        :dollars, :shares, :price_after, :executed_at
    )
""")


class TradesWriter:
    async def write_trade(self, db: AsyncSession, trade: TradeRecord) -> None:
        """Insert one row into the trades table within the caller's transaction."""
        await db.execute(
            _INSERT_TRADE_SQL,
            {
                "trade_id": trade.trade_id,
                "market_id": trade.market_id,
                "user_id": trade.user_id,
                "outcome": trade.outcome,
                "mode": trade.mode,
                "dollars": trade.dollars,
                "shares": trade.shares,
                "price_after": trade.price_after,
                "executed_at": trade.executed_at,
            },
        )
