"""MarketApplicationService — thin composition layer.

All methods are read-only; no commit/rollback needed.
The caller (router) passes db session; service delegates to repository.
Previews never lock: they quote against the last committed prices.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.application.schemas import (
    BuyPreviewResponse,
    SellPreviewResponse,
    TradeItem,
    TradeListResponse,
)
from src.pm_amm.engine.pricing import preview_buy, preview_sell
from src.pm_amm.infrastructure.trades_repository import TradesRepository
from src.pm_common.enums import Outcome
from src.pm_common.errors import MarketNotFoundError
from src.pm_market.application.schemas import MarketItem, MarketListResponse
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_risk.rules.trade_input import check_buy_amount, check_sell_shares


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        trades: TradesRepository | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._trades = trades or TradesRepository()

    async def _require(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def list_markets(
        self, db: AsyncSession, include_resolved: bool, limit: int
    ) -> MarketListResponse:
        markets = await self._repo.list_markets(db, include_resolved, limit)
        return MarketListResponse(items=[MarketItem.from_domain(m) for m in markets])

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketItem:
        return MarketItem.from_domain(await self._require(db, market_id))

    async def preview_buy(
        self, db: AsyncSession, market_id: str, outcome: Outcome, amount: Decimal
    ) -> BuyPreviewResponse:
        check_buy_amount(amount)
        market = await self._require(db, market_id)
        return BuyPreviewResponse.from_domain(
            market_id, outcome, preview_buy(market, outcome, amount)
        )

    async def preview_sell(
        self, db: AsyncSession, market_id: str, outcome: Outcome, shares: Decimal
    ) -> SellPreviewResponse:
        check_sell_shares(shares)
        market = await self._require(db, market_id)
        return SellPreviewResponse.from_domain(
            market_id, outcome, preview_sell(market, outcome, shares)
        )

    async def list_market_trades(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> TradeListResponse:
        await self._require(db, market_id)
        rows = await self._trades.list_by_market(db, market_id, limit)
        return TradeListResponse(
            items=[TradeItem.from_domain(t) for t in rows],
            next_cursor=None,
            has_more=False,
        )
