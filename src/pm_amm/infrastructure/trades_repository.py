"""Read-only trades queries — market feed, user history and admin stats."""
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import TradeRecord

_COLUMNS = """
    trade_id, market_id, user_id, outcome, mode,
    dollars, shares, price_after, executed_at
"""

# Snowflake ids are fixed-width and time-ordered, so they double as the cursor
_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trades
    WHERE user_id = :user_id
      AND (CAST(:market_id AS TEXT) IS NULL OR market_id = CAST(:market_id AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR trade_id < CAST(:cursor_id AS TEXT))
    ORDER BY trade_id DESC
    LIMIT :limit
""")

_LIST_BY_MARKET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trades
    WHERE market_id = :market_id
    ORDER BY executed_at DESC, trade_id DESC
    LIMIT :limit
""")

_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total_trades,
        COALESCE(SUM(dollars) FILTER (WHERE mode = 'buy'), 0) AS buy_volume,
        COALESCE(SUM(dollars) FILTER (WHERE mode = 'sell'), 0) AS sell_flow,
        COUNT(DISTINCT user_id) AS unique_traders
    FROM trades
    WHERE market_id = :market_id
""")


def _row_to_trade(row: Any) -> TradeRecord:
    return TradeRecord(
        trade_id=row.trade_id,
        market_id=row.market_id,
        user_id=row.user_id,
        outcome=row.outcome,
        mode=row.mode,
        dollars=Decimal(row.dollars),
        shares=Decimal(row.shares),
        price_after=Decimal(row.price_after),
        executed_at=row.executed_at,
    )


class TradesRepository:
    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(
                _LIST_BY_USER_SQL,
                {
                    "user_id": user_id,
                    "market_id": market_id,
                    "limit": limit,
                    "cursor_id": cursor_id,
                },
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def list_by_market(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(_LIST_BY_MARKET_SQL, {"market_id": market_id, "limit": limit})
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def market_stats(self, db: AsyncSession, market_id: str) -> dict[str, Any]:
        row = (await db.execute(_STATS_SQL, {"market_id": market_id})).fetchone()
        return {
            "total_trades": int(row.total_trades) if row else 0,
            "buy_volume": Decimal(row.buy_volume) if row else Decimal("0"),
            "sell_flow": Decimal(row.sell_flow) if row else Decimal("0"),
            "unique_traders": int(row.unique_traders) if row else 0,
        }
