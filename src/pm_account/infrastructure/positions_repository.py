# src/pm_account/infrastructure/positions_repository.py
"""PositionRepository — one row per (user, market, outcome).

Rows are created lazily on first buy and never deleted; a fully sold
position stays with shares_owned = 0 and total_paid = 0.
"""
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Position
from src.pm_common.errors import InternalError

_COLUMNS = "user_id, market_id, outcome, shares_owned, total_paid, created_at, updated_at"

_LOCK_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM positions
    WHERE user_id = :user_id AND market_id = :market_id AND outcome = :outcome
    FOR UPDATE
""")

_UPSERT_SQL = text(f"""
    INSERT INTO positions (user_id, market_id, outcome, shares_owned, total_paid)
    VALUES (:user_id, :market_id, :outcome, :shares_owned, :total_paid)
    ON CONFLICT (user_id, market_id, outcome) DO UPDATE
        SET shares_owned = EXCLUDED.shares_owned,
            total_paid = EXCLUDED.total_paid,
            updated_at = NOW()
    RETURNING {_COLUMNS}
""")

# Ordered by user_id so concurrent resolutions credit accounts in one fixed order
_LOCK_WINNERS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM positions
    WHERE market_id = :market_id AND outcome = :outcome AND shares_owned > 0
    ORDER BY user_id
    FOR UPDATE
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM positions
    WHERE user_id = :user_id
      AND shares_owned > 0
      AND (CAST(:market_id AS TEXT) IS NULL OR market_id = CAST(:market_id AS TEXT))
    ORDER BY market_id, outcome
""")


def _row_to_position(row: object) -> Position:
    return Position(
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        shares_owned=Decimal(row.shares_owned),  # type: ignore[attr-defined]
        total_paid=Decimal(row.total_paid),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PositionRepository:
    async def lock_position_for_update(
        self, db: AsyncSession, user_id: str, market_id: str, outcome: str
    ) -> Position | None:
        row = (
            await db.execute(
                _LOCK_SQL, {"user_id": user_id, "market_id": market_id, "outcome": outcome}
            )
        ).fetchone()
        return _row_to_position(row) if row else None

    async def save_position(self, db: AsyncSession, position: Position) -> Position:
        row = (
            await db.execute(
                _UPSERT_SQL,
                {
                    "user_id": position.user_id,
                    "market_id": position.market_id,
                    "outcome": position.outcome,
                    "shares_owned": position.shares_owned,
                    "total_paid": position.total_paid,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows — this should never happen")
        return _row_to_position(row)

    async def lock_winning_positions(
        self, db: AsyncSession, market_id: str, outcome: str
    ) -> list[Position]:
        rows = (
            await db.execute(_LOCK_WINNERS_SQL, {"market_id": market_id, "outcome": outcome})
        ).fetchall()
        return [_row_to_position(r) for r in rows]

    async def list_by_user(
        self, db: AsyncSession, user_id: str, market_id: str | None
    ) -> list[Position]:
        rows = (
            await db.execute(_LIST_BY_USER_SQL, {"user_id": user_id, "market_id": market_id})
        ).fetchall()
        return [_row_to_position(r) for r in rows]
