# src/pm_amm/application/service.py
"""Trading application service — account provisioning + executor wiring."""
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_amm.application.schemas import (
    BuyRequest,
    BuyResponse,
    SellRequest,
    SellResponse,
    TradeItem,
    TradeListResponse,
)
from src.pm_amm.engine.executor import TradeExecutor
from src.pm_amm.infrastructure.trades_repository import TradesRepository

_executor: TradeExecutor | None = None


def get_trade_executor() -> TradeExecutor:
    global _executor  # noqa: PLW0603
    if _executor is None:
        _executor = TradeExecutor()
    return _executor


class TradeApplicationService:
    def __init__(
        self,
        executor: TradeExecutor | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        trades: TradesRepository | None = None,
    ) -> None:
        self._executor = executor
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._trades = trades or TradesRepository()

    @property
    def executor(self) -> TradeExecutor:
        return self._executor or get_trade_executor()

    async def _provision(self, db: AsyncSession, user_id: str) -> None:
        """First trade for a new player creates the account with the starting grant."""
        try:
            _, created = await self._accounts.ensure_account(
                db, user_id, settings.STARTING_BALANCE
            )
            if created:
                await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def buy(self, db: AsyncSession, user_id: str, req: BuyRequest) -> BuyResponse:
        await self._provision(db, user_id)
        result = await self.executor.execute_buy(
            db, user_id, req.market_id, req.outcome, req.amount
        )
        return BuyResponse.from_domain(result)

    async def sell(self, db: AsyncSession, user_id: str, req: SellRequest) -> SellResponse:
        result = await self.executor.execute_sell(
            db, user_id, req.market_id, req.outcome, req.shares
        )
        return SellResponse.from_domain(result)

    async def list_my_trades(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        limit: int,
        cursor: str | None,
    ) -> TradeListResponse:
        # Fetch limit+1 to detect has_more without COUNT(*)
        rows = await self._trades.list_by_user(db, user_id, market_id, limit + 1, cursor)
        has_more = len(rows) > limit
        page = rows[:limit]
        return TradeListResponse(
            items=[TradeItem.from_domain(t) for t in page],
            next_cursor=page[-1].trade_id if has_more and page else None,
            has_more=has_more,
        )
