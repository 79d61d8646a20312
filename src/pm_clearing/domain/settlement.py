"""Market resolution — pay out winners and close the market for good.

OPEN --resolve(outcome)--> RESOLVED (terminal).

Each winning share pays 1.0. Losing positions are left as they are: the
market is terminal, so they can never be traded again. The payout fan-out
and the market transition commit together or not at all.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import (
    AccountRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_account.infrastructure.positions_repository import PositionRepository
from src.pm_amm.engine.locks import MarketLocks, get_market_locks
from src.pm_common import events
from src.pm_common.amounts import ZERO
from src.pm_common.database import is_retryable_db_error
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import LedgerEntryType, Outcome
from src.pm_common.errors import AlreadyResolvedError, ConflictError, MarketNotFoundError
from src.pm_common.events import DomainEvent, EventPublisherProtocol, RedisEventPublisher
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)

PAYOUT_PER_SHARE = Decimal("1")


@dataclass(frozen=True)
class ResolutionSummary:
    market_id: str
    outcome: str
    winners: int
    total_payout: Decimal


class SettlementService:
    def __init__(
        self,
        markets: MarketRepositoryProtocol | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        positions: PositionRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
        locks: MarketLocks | None = None,
        lock_timeout_ms: int | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()
        self._publisher: EventPublisherProtocol = publisher or RedisEventPublisher()
        self._locks = locks or get_market_locks()
        self._lock_timeout_ms = lock_timeout_ms or settings.MARKET_LOCK_TIMEOUT_MS

    async def resolve_market(
        self, db: AsyncSession, market_id: str, winning_outcome: Outcome
    ) -> ResolutionSummary:
        """Resolve once. Caller must have checked authorization."""
        async with self._locks.hold(market_id, self._lock_timeout_ms):
            try:
                summary, pending = await self._resolve_inner(db, market_id, winning_outcome)
                await db.commit()
            except Exception as e:
                await db.rollback()
                if is_retryable_db_error(e):
                    logger.warning("Resolve conflict: market=%s", market_id)
                    raise ConflictError() from e
                raise
        logger.info(
            "Market resolved: market=%s outcome=%s winners=%d payout=%s",
            market_id, summary.outcome, summary.winners, summary.total_payout,
        )
        await self._publisher.publish(pending)
        return summary

    async def _resolve_inner(
        self, db: AsyncSession, market_id: str, winning_outcome: Outcome
    ) -> tuple[ResolutionSummary, list[DomainEvent]]:
        market = await self._markets.lock_market_for_update(db, market_id, self._lock_timeout_ms)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.is_resolved:
            raise AlreadyResolvedError(market_id, str(market.outcome))

        pending: list[DomainEvent] = []
        winners = await self._positions.lock_winning_positions(
            db, market_id, winning_outcome.value
        )
        total_payout = ZERO
        for position in winners:
            payout = position.shares_owned * PAYOUT_PER_SHARE
            account, _ = await self._accounts.credit(
                db,
                position.user_id,
                payout,
                LedgerEntryType.SETTLEMENT_PAYOUT,
                "MARKET",
                market_id,
                f"Payout for {position.shares_owned} {winning_outcome.value.upper()} shares",
            )
            total_payout += payout
            pending.append(events.balance_updated(account.user_id, account.balance))

        resolved = market.resolved(winning_outcome, utc_now())
        await self._markets.save_resolution(db, resolved)

        summary = ResolutionSummary(
            market_id=market_id,
            outcome=winning_outcome.value,
            winners=len(winners),
            total_payout=total_payout,
        )
        pending.insert(
            0,
            events.market_resolved(market_id, summary.outcome, summary.winners, total_payout),
        )
        return summary, pending
