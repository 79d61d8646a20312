"""Repository Protocols — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry, Position


class AccountRepositoryProtocol(Protocol):
    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def lock_account_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def ensure_account(
        self, db: AsyncSession, user_id: str, starting_balance: Decimal
    ) -> tuple[Account, bool]: ...

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...

    async def list_top_balances(self, db: AsyncSession, limit: int) -> list[Account]: ...


class PositionRepositoryProtocol(Protocol):
    async def lock_position_for_update(
        self, db: AsyncSession, user_id: str, market_id: str, outcome: str
    ) -> Position | None: ...

    async def save_position(self, db: AsyncSession, position: Position) -> Position: ...

    async def lock_winning_positions(
        self, db: AsyncSession, market_id: str, outcome: str
    ) -> list[Position]: ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, market_id: str | None
    ) -> list[Position]: ...
