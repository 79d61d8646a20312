"""TradeExecutor — validated, serialized, atomic buy/sell against the AMM.

One trade is one database transaction:
  market row (FOR UPDATE) -> account row -> position row -> trade + ledger rows
Lock order is always market -> account -> position, so trades never deadlock
against each other or against resolution.

Events are published only after commit.
"""
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import Position
from src.pm_account.domain.repository import (
    AccountRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_account.infrastructure.positions_repository import PositionRepository
from src.pm_amm.domain.models import BuyResult, SellResult, TradeRecord
from src.pm_amm.engine.locks import MarketLocks, get_market_locks
from src.pm_amm.engine.pricing import compute_buy, compute_sell
from src.pm_amm.infrastructure.trades_writer import TradesWriter
from src.pm_common import events
from src.pm_common.database import is_retryable_db_error
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import LedgerEntryType, Outcome, TradeMode
from src.pm_common.errors import (
    AccountNotFoundError,
    ConflictError,
    InsufficientSharesError,
    InvalidAmountError,
)
from src.pm_common.events import DomainEvent, EventPublisherProtocol, RedisEventPublisher
from src.pm_common.id_generator import generate_id
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_risk.rules.market_status import check_market_tradable
from src.pm_risk.rules.trade_input import (
    check_balance_covers,
    check_buy_amount,
    check_sell_shares,
    check_shares_owned,
)

logger = logging.getLogger(__name__)


class TradeExecutor:
    def __init__(
        self,
        markets: MarketRepositoryProtocol | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        positions: PositionRepositoryProtocol | None = None,
        trades: TradesWriter | None = None,
        publisher: EventPublisherProtocol | None = None,
        locks: MarketLocks | None = None,
        lock_timeout_ms: int | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()
        self._trades = trades or TradesWriter()
        self._publisher: EventPublisherProtocol = publisher or RedisEventPublisher()
        self._locks = locks or get_market_locks()
        self._lock_timeout_ms = lock_timeout_ms or settings.MARKET_LOCK_TIMEOUT_MS

    async def execute_buy(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        outcome: Outcome,
        amount: Decimal,
    ) -> BuyResult:
        """Spend up to `amount` dollars on `outcome` shares.

        Charges the dollars the price move actually absorbed (equal to
        `amount` except when the 0.99 cap truncates the move).
        """
        check_buy_amount(amount)
        async with self._locks.hold(market_id, self._lock_timeout_ms):
            try:
                result, pending = await self._buy_inner(db, user_id, market_id, outcome, amount)
                await db.commit()
            except Exception as e:
                await db.rollback()
                if is_retryable_db_error(e):
                    logger.warning("Buy conflict: market=%s user=%s", market_id, user_id)
                    raise ConflictError() from e
                raise
        logger.info(
            "BUY committed: trade=%s market=%s user=%s outcome=%s spend=%s shares=%s price=%s",
            result.trade_id, market_id, user_id, outcome.value,
            result.spend, result.shares, result.new_price,
        )
        await self._publisher.publish(pending)
        return result

    async def execute_sell(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        outcome: Outcome,
        shares: Decimal,
    ) -> SellResult:
        """Sell `shares` of `outcome` back to the pool at the AMM's quote."""
        check_sell_shares(shares)
        async with self._locks.hold(market_id, self._lock_timeout_ms):
            try:
                result, pending = await self._sell_inner(db, user_id, market_id, outcome, shares)
                await db.commit()
            except Exception as e:
                await db.rollback()
                if is_retryable_db_error(e):
                    logger.warning("Sell conflict: market=%s user=%s", market_id, user_id)
                    raise ConflictError() from e
                raise
        logger.info(
            "SELL committed: trade=%s market=%s user=%s outcome=%s shares=%s dollars=%s price=%s",
            result.trade_id, market_id, user_id, outcome.value,
            result.shares_sold, result.dollars, result.new_price,
        )
        await self._publisher.publish(pending)
        return result

    async def _buy_inner(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        outcome: Outcome,
        amount: Decimal,
    ) -> tuple[BuyResult, list[DomainEvent]]:
        # 1. Lock + validate (no writes before this block finishes)
        market = await self._markets.lock_market_for_update(db, market_id, self._lock_timeout_ms)
        market = check_market_tradable(market, market_id)
        account = await self._accounts.lock_account_for_update(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        check_balance_covers(amount, account.balance)

        preview = compute_buy(market.price_for(outcome), market.pool_k, amount)
        if preview.shares <= 0:
            raise InvalidAmountError(
                f"{outcome.value} price is at the cap; no shares can be bought"
            )

        trade_id = generate_id()

        # 2. Mutate: balance -> position -> market -> audit
        account, _ = await self._accounts.debit(
            db,
            user_id,
            preview.spend,
            LedgerEntryType.TRADE_BUY,
            "TRADE",
            trade_id,
            f"Buy {outcome.value.upper()} in {market_id}",
        )
        position = await self._positions.lock_position_for_update(
            db, user_id, market_id, outcome.value
        )
        if position is None:
            position = Position(user_id=user_id, market_id=market_id, outcome=outcome.value)
        position = await self._positions.save_position(
            db, position.after_buy(preview.shares, preview.spend)
        )
        market = market.with_price(outcome, preview.new_price, volume_delta=preview.spend)
        await self._markets.save_prices(db, market)
        await self._trades.write_trade(
            db,
            TradeRecord(
                trade_id=trade_id,
                market_id=market_id,
                user_id=user_id,
                outcome=outcome.value,
                mode=TradeMode.BUY.value,
                dollars=preview.spend,
                shares=preview.shares,
                price_after=market.price_for(outcome),
                executed_at=utc_now(),
            ),
        )

        result = BuyResult(
            trade_id=trade_id,
            market_id=market_id,
            outcome=outcome.value,
            shares=preview.shares,
            avg_price=preview.avg_price,
            spend=preview.spend,
            new_price=market.price_for(outcome),
            balance=account.balance,
        )
        return result, self._trade_events(market, position, account.user_id, account.balance)

    async def _sell_inner(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        outcome: Outcome,
        shares: Decimal,
    ) -> tuple[SellResult, list[DomainEvent]]:
        market = await self._markets.lock_market_for_update(db, market_id, self._lock_timeout_ms)
        market = check_market_tradable(market, market_id)
        account = await self._accounts.lock_account_for_update(db, user_id)
        if account is None:
            # No account means no position was ever opened
            raise InsufficientSharesError(shares, Decimal("0"))
        position = await self._positions.lock_position_for_update(
            db, user_id, market_id, outcome.value
        )
        if position is None:
            raise InsufficientSharesError(shares, Decimal("0"))
        check_shares_owned(shares, position.shares_owned)

        preview = compute_sell(market.price_for(outcome), market.pool_k, shares)
        trade_id = generate_id()

        account, _ = await self._accounts.credit(
            db,
            user_id,
            preview.dollars,
            LedgerEntryType.TRADE_SELL,
            "TRADE",
            trade_id,
            f"Sell {outcome.value.upper()} in {market_id}",
        )
        position = await self._positions.save_position(db, position.after_sell(shares))
        # Sells move the price but are not counted in total_volume
        market = market.with_price(outcome, preview.new_price, volume_delta=Decimal("0"))
        await self._markets.save_prices(db, market)
        await self._trades.write_trade(
            db,
            TradeRecord(
                trade_id=trade_id,
                market_id=market_id,
                user_id=user_id,
                outcome=outcome.value,
                mode=TradeMode.SELL.value,
                dollars=preview.dollars,
                shares=shares,
                price_after=market.price_for(outcome),
                executed_at=utc_now(),
            ),
        )

        result = SellResult(
            trade_id=trade_id,
            market_id=market_id,
            outcome=outcome.value,
            dollars=preview.dollars,
            avg_price=preview.avg_price,
            shares_sold=shares,
            new_price=market.price_for(outcome),
            balance=account.balance,
        )
        return result, self._trade_events(market, position, account.user_id, account.balance)

    @staticmethod
    def _trade_events(
        market: Market, position: Position, user_id: str, balance: Decimal
    ) -> list[DomainEvent]:
        return [
            events.market_updated(
                market.id,
                market.yes_price,
                market.no_price,
                market.total_volume,
            ),
            events.position_updated(
                user_id,
                position.market_id,
                position.outcome,
                position.shares_owned,
                position.total_paid,
            ),
            events.balance_updated(user_id, balance),
        ]
