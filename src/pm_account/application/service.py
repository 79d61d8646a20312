"""AccountApplicationService — thin composition layer.

Combines repository calls with schema transformations.
get_balance may provision the account (first visit), so it commits;
the other operations are read-only.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.application.positions_schemas import (
    PositionListResponse,
    PositionResponse,
)
from src.pm_account.application.schemas import (
    BalanceResponse,
    LeaderboardItem,
    LeaderboardResponse,
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_account.domain.repository import (
    AccountRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_account.infrastructure.positions_repository import PositionRepository
from src.pm_common.amounts import dollars_to_display


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        positions: PositionRepositoryProtocol | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        try:
            account, created = await self._repo.ensure_account(
                db, user_id, settings.STARTING_BALANCE
            )
            if created:
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BalanceResponse.from_domain(account)

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def leaderboard(self, db: AsyncSession, limit: int) -> LeaderboardResponse:
        accounts = await self._repo.list_top_balances(db, limit)
        return LeaderboardResponse(
            items=[
                LeaderboardItem(
                    rank=i,
                    user_id=a.user_id,
                    balance=a.balance,
                    balance_display=dollars_to_display(a.balance),
                )
                for i, a in enumerate(accounts, start=1)
            ]
        )

    async def list_positions(
        self, db: AsyncSession, user_id: str, market_id: str | None = None
    ) -> PositionListResponse:
        positions = await self._positions.list_by_user(db, user_id, market_id)
        return PositionListResponse(
            items=[PositionResponse.from_domain(p) for p in positions],
            total=len(positions),
        )
