"""Ledger consistency checks, run on demand from the admin API.

  - no position with shares_owned = 0 keeps a cost basis
  - every account balance equals the sum of its ledger entries
  - every quoted price is inside [0.01, 0.99]
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_DANGLING_COST_SQL = text("""
    SELECT user_id, market_id, outcome, total_paid
    FROM positions
    WHERE shares_owned = 0 AND total_paid <> 0
""")

_LEDGER_MISMATCH_SQL = text("""
    SELECT a.user_id, a.balance, COALESCE(SUM(l.amount), 0) AS ledger_sum
    FROM accounts a
    LEFT JOIN ledger_entries l ON l.user_id = a.user_id
    GROUP BY a.user_id, a.balance
    HAVING a.balance <> COALESCE(SUM(l.amount), 0)
""")

_PRICE_RANGE_SQL = text("""
    SELECT id, yes_price, no_price
    FROM markets
    WHERE yes_price < 0.01 OR yes_price > 0.99
       OR no_price < 0.01 OR no_price > 0.99
""")


async def verify_invariants(db: AsyncSession) -> list[str]:
    """Return a list of violation strings; empty means consistent."""
    violations: list[str] = []

    for row in (await db.execute(_DANGLING_COST_SQL)).fetchall():
        violations.append(
            f"Dangling cost basis: position {row.user_id}/{row.market_id}/{row.outcome} "
            f"has 0 shares but total_paid={row.total_paid}"
        )
    for row in (await db.execute(_LEDGER_MISMATCH_SQL)).fetchall():
        violations.append(
            f"Ledger mismatch: account {row.user_id} balance={row.balance} "
            f"!= ledger_sum={row.ledger_sum}"
        )
    for row in (await db.execute(_PRICE_RANGE_SQL)).fetchall():
        violations.append(
            f"Price out of range: market {row.id} yes={row.yes_price} no={row.no_price}"
        )

    for msg in violations:
        logger.error(msg)
    return violations
