"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
Writes happen inside the caller's transaction; the caller commits.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, question, yes_price, no_price, pool_k, total_volume,
    is_locked, outcome, resolved_at, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id")

_LOCK_MARKET_SQL = text(f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE")

# Open markets first, then newest first
_LIST_MARKETS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM markets
    WHERE (CAST(:include_resolved AS BOOLEAN) OR outcome IS NULL)
    ORDER BY (outcome IS NOT NULL), created_at DESC, id DESC
    LIMIT :limit
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets (id, question, yes_price, no_price, pool_k)
    VALUES (:id, :question, :yes_price, :no_price, :pool_k)
    RETURNING {_COLUMNS}
""")

_SAVE_PRICES_SQL = text("""
    UPDATE markets
    SET yes_price = :yes_price,
        no_price = :no_price,
        total_volume = :total_volume,
        updated_at = NOW()
    WHERE id = :id AND outcome IS NULL
""")

_SAVE_RESOLUTION_SQL = text("""
    UPDATE markets
    SET outcome = :outcome,
        resolved_at = :resolved_at,
        updated_at = NOW()
    WHERE id = :id AND outcome IS NULL
""")

_SET_LOCKED_SQL = text(f"""
    UPDATE markets
    SET is_locked = :locked, updated_at = NOW()
    WHERE id = :market_id
    RETURNING {_COLUMNS}
""")

_LOCK_ALL_SQL = text("""
    UPDATE markets
    SET is_locked = TRUE, updated_at = NOW()
    WHERE outcome IS NULL AND is_locked = FALSE
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        yes_price=Decimal(row.yes_price),  # type: ignore[attr-defined]
        no_price=Decimal(row.no_price),  # type: ignore[attr-defined]
        pool_k=Decimal(row.pool_k),  # type: ignore[attr-defined]
        total_volume=Decimal(row.total_volume),  # type: ignore[attr-defined]
        is_locked=row.is_locked,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MarketRepository:
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def lock_market_for_update(
        self, db: AsyncSession, market_id: str, timeout_ms: int
    ) -> Market | None:
        """Row-lock the market for the rest of the transaction.

        SET LOCAL bounds the wait; on expiry PostgreSQL raises 55P03 which the
        caller maps to ConflictError. SET does not accept bind parameters.
        """
        await db.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))
        result = await db.execute(_LOCK_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self, db: AsyncSession, include_resolved: bool, limit: int
    ) -> list[Market]:
        result = await db.execute(
            _LIST_MARKETS_SQL, {"include_resolved": include_resolved, "limit": limit}
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def create_market(
        self,
        db: AsyncSession,
        market_id: str,
        question: str,
        pool_k: Decimal,
        yes_price: Decimal,
        no_price: Decimal,
    ) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market_id,
                "question": question,
                "yes_price": yes_price,
                "no_price": no_price,
                "pool_k": pool_k,
            },
        )
        return _row_to_market(result.fetchone())

    async def save_prices(self, db: AsyncSession, market: Market) -> None:
        await db.execute(
            _SAVE_PRICES_SQL,
            {
                "id": market.id,
                "yes_price": market.yes_price,
                "no_price": market.no_price,
                "total_volume": market.total_volume,
            },
        )

    async def save_resolution(self, db: AsyncSession, market: Market) -> None:
        await db.execute(
            _SAVE_RESOLUTION_SQL,
            {"id": market.id, "outcome": market.outcome, "resolved_at": market.resolved_at},
        )

    async def set_locked(
        self, db: AsyncSession, market_id: str, locked: bool
    ) -> Market | None:
        result = await db.execute(_SET_LOCKED_SQL, {"market_id": market_id, "locked": locked})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def lock_all_open(self, db: AsyncSession) -> int:
        result = await db.execute(_LOCK_ALL_SQL)
        return int(result.rowcount or 0)  # type: ignore[attr-defined]
