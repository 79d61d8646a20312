# src/pm_admin/application/service.py
"""Admin application service.

Every method assumes the caller already passed require_admin.
"""
import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_amm.engine.locks import MarketLocks, get_market_locks
from src.pm_amm.infrastructure.trades_repository import TradesRepository
from src.pm_clearing.domain.invariants import verify_invariants
from src.pm_clearing.domain.settlement import SettlementService
from src.pm_common import events
from src.pm_common.amounts import PRICE_CAP, PRICE_FLOOR, exceeds_scale
from src.pm_common.enums import LedgerEntryType, Outcome
from src.pm_common.database import is_retryable_db_error
from src.pm_common.errors import (
    ConflictError,
    InvalidAmountError,
    InvalidMarketParamsError,
    MarketNotFoundError,
    MarketResolvedError,
)
from src.pm_common.events import EventPublisherProtocol, RedisEventPublisher
from src.pm_common.id_generator import generate_id
from src.pm_market.application.schemas import MarketItem
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)

_DEFAULT_PRICE = Decimal("0.50")


class AdminService:
    def __init__(
        self,
        markets: MarketRepositoryProtocol | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        trades: TradesRepository | None = None,
        settlement: SettlementService | None = None,
        publisher: EventPublisherProtocol | None = None,
        locks: MarketLocks | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._trades = trades or TradesRepository()
        self._publisher: EventPublisherProtocol = publisher or RedisEventPublisher()
        self._locks = locks or get_market_locks()
        self._settlement = settlement or SettlementService(
            markets=self._markets,
            accounts=self._accounts,
            publisher=self._publisher,
            locks=self._locks,
        )

    async def create_market(
        self,
        question: str,
        pool_k: Decimal | None,
        yes_price: Decimal | None,
        no_price: Decimal | None,
        db: AsyncSession,
    ) -> dict[str, Any]:
        question = question.strip()
        pool_k = settings.DEFAULT_POOL_K if pool_k is None else pool_k
        yes_price = _DEFAULT_PRICE if yes_price is None else yes_price
        no_price = _DEFAULT_PRICE if no_price is None else no_price

        if not question:
            raise InvalidMarketParamsError("question must not be empty")
        if not pool_k.is_finite() or pool_k <= 0:
            raise InvalidMarketParamsError(f"pool_k must be positive, got {pool_k}")
        for name, price in (("yes_price", yes_price), ("no_price", no_price)):
            if not price.is_finite() or not (PRICE_FLOOR <= price <= PRICE_CAP):
                raise InvalidMarketParamsError(
                    f"{name} must be between {PRICE_FLOOR} and {PRICE_CAP}, got {price}"
                )

        try:
            market = await self._markets.create_market(
                db, generate_id(), question, pool_k, yes_price, no_price
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market created: market=%s pool_k=%s", market.id, market.pool_k)
        return MarketItem.from_domain(market).model_dump(mode="json")

    async def set_market_locked(
        self, market_id: str, locked: bool, db: AsyncSession
    ) -> dict[str, Any]:
        """Freeze or unfreeze trading on one market. Resolved markets are final."""
        async with self._locks.hold(market_id, settings.MARKET_LOCK_TIMEOUT_MS):
            try:
                market = await self._markets.lock_market_for_update(
                    db, market_id, settings.MARKET_LOCK_TIMEOUT_MS
                )
                if market is None:
                    raise MarketNotFoundError(market_id)
                if market.is_resolved:
                    raise MarketResolvedError(market_id)
                updated = await self._markets.set_locked(db, market_id, locked)
                await db.commit()
            except Exception as e:
                await db.rollback()
                if is_retryable_db_error(e):
                    raise ConflictError() from e
                raise
        logger.info("Market %s: market=%s", "locked" if locked else "unlocked", market_id)
        return MarketItem.from_domain(updated or market).model_dump(mode="json")

    async def lock_all_markets(self, db: AsyncSession) -> dict[str, Any]:
        try:
            count = await self._markets.lock_all_open(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("All open markets locked: count=%d", count)
        return {"locked": count}

    async def grant_funds(
        self, user_id: str, amount: Decimal, db: AsyncSession
    ) -> dict[str, Any]:
        if not amount.is_finite() or amount <= 0 or exceeds_scale(amount):
            raise InvalidAmountError(f"grant must be a positive 8 dp amount, got {amount}")
        try:
            await self._accounts.ensure_account(db, user_id, settings.STARTING_BALANCE)
            account, entry = await self._accounts.credit(
                db,
                user_id,
                amount,
                LedgerEntryType.ADMIN_GRANT,
                "ADMIN",
                user_id,
                "Admin grant",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Funds granted: user=%s amount=%s", user_id, amount)
        await self._publisher.publish([events.balance_updated(user_id, account.balance)])
        return {
            "user_id": user_id,
            "amount": str(amount),
            "balance": str(account.balance),
            "ledger_entry_id": entry.id,
        }

    async def resolve_market(
        self, market_id: str, outcome: Outcome, db: AsyncSession
    ) -> dict[str, Any]:
        summary = await self._settlement.resolve_market(db, market_id, outcome)
        return {
            "market_id": summary.market_id,
            "outcome": summary.outcome,
            "winners": summary.winners,
            "total_payout": str(summary.total_payout),
        }

    async def get_market_stats(self, market_id: str, db: AsyncSession) -> dict[str, Any]:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        stats = await self._trades.market_stats(db, market_id)
        return {
            "market_id": market_id,
            "state": market.state.value,
            "yes_price": str(market.yes_price),
            "no_price": str(market.no_price),
            "total_volume": str(market.total_volume),
            "total_trades": stats["total_trades"],
            "buy_volume": str(stats["buy_volume"]),
            "sell_flow": str(stats["sell_flow"]),
            "unique_traders": stats["unique_traders"],
        }

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        violations = await verify_invariants(db)
        return {"ok": len(violations) == 0, "violations": violations}
