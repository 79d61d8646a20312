"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def lock_market_for_update(
        self, db: AsyncSession, market_id: str, timeout_ms: int
    ) -> Market | None: ...

    async def list_markets(
        self, db: AsyncSession, include_resolved: bool, limit: int
    ) -> list[Market]: ...

    async def create_market(
        self,
        db: AsyncSession,
        market_id: str,
        question: str,
        pool_k: Decimal,
        yes_price: Decimal,
        no_price: Decimal,
    ) -> Market: ...

    async def save_prices(self, db: AsyncSession, market: Market) -> None: ...

    async def save_resolution(self, db: AsyncSession, market: Market) -> None: ...

    async def set_locked(
        self, db: AsyncSession, market_id: str, locked: bool
    ) -> Market | None: ...

    async def lock_all_open(self, db: AsyncSession) -> int: ...
