"""In-memory fakes for the repository Protocols.

FakeSession gives each transaction real commit/rollback semantics over a
shared FakeStore: the store is snapshotted at the first read-for-update or
write, restored on rollback, and the snapshot dropped on commit.
"""

import asyncio
import copy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.pm_account.domain.models import Account, LedgerEntry, Position
from src.pm_amm.domain.models import TradeRecord
from src.pm_amm.engine.executor import TradeExecutor
from src.pm_amm.engine.locks import MarketLocks
from src.pm_clearing.domain.settlement import SettlementService
from src.pm_common.errors import AccountNotFoundError, InsufficientBalanceError
from src.pm_market.domain.models import Market

PositionKey = tuple[str, str, str]


@dataclass
class FakeStore:
    markets: dict[str, Market] = field(default_factory=dict)
    accounts: dict[str, Account] = field(default_factory=dict)
    positions: dict[PositionKey, Position] = field(default_factory=dict)
    trades: list[TradeRecord] = field(default_factory=list)
    ledger: list[LedgerEntry] = field(default_factory=list)

    def snapshot(self) -> tuple:
        return copy.deepcopy(
            (self.markets, self.accounts, self.positions, self.trades, self.ledger)
        )

    def restore(self, snap: tuple) -> None:
        self.markets, self.accounts, self.positions, self.trades, self.ledger = snap

    def balance(self, user_id: str) -> Decimal:
        return self.accounts[user_id].balance


class FakeSession:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self._snapshot: tuple | None = None

    def touch(self) -> None:
        if self._snapshot is None:
            self._snapshot = self.store.snapshot()

    async def commit(self) -> None:
        self._snapshot = None
        self.commits += 1

    async def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.restore(self._snapshot)
        self._snapshot = None
        self.rollbacks += 1


class FakeMarketRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_market_by_id(self, db, market_id):
        return self.store.markets.get(market_id)

    async def lock_market_for_update(self, db, market_id, timeout_ms):
        # Yield so concurrent callers genuinely interleave
        await asyncio.sleep(0)
        db.touch()
        return self.store.markets.get(market_id)

    async def list_markets(self, db, include_resolved, limit):
        items = [m for m in self.store.markets.values() if include_resolved or not m.is_resolved]
        items.sort(key=lambda m: (m.is_resolved, -(m.created_at or _EPOCH).timestamp()))
        return items[:limit]

    async def create_market(self, db, market_id, question, pool_k, yes_price, no_price):
        db.touch()
        market = Market(
            id=market_id,
            question=question,
            yes_price=yes_price,
            no_price=no_price,
            pool_k=pool_k,
            total_volume=Decimal("0"),
            is_locked=False,
            outcome=None,
            resolved_at=None,
            created_at=datetime.now(UTC),
        )
        self.store.markets[market_id] = market
        return market

    async def save_prices(self, db, market):
        db.touch()
        current = self.store.markets[market.id]
        if current.outcome is None:
            self.store.markets[market.id] = replace(
                current,
                yes_price=market.yes_price,
                no_price=market.no_price,
                total_volume=market.total_volume,
            )

    async def save_resolution(self, db, market):
        db.touch()
        current = self.store.markets[market.id]
        if current.outcome is None:
            self.store.markets[market.id] = replace(
                current, outcome=market.outcome, resolved_at=market.resolved_at
            )

    async def set_locked(self, db, market_id, locked):
        db.touch()
        current = self.store.markets.get(market_id)
        if current is None:
            return None
        self.store.markets[market_id] = replace(current, is_locked=locked)
        return self.store.markets[market_id]

    async def lock_all_open(self, db):
        db.touch()
        count = 0
        for mid, m in list(self.store.markets.items()):
            if m.outcome is None and not m.is_locked:
                self.store.markets[mid] = replace(m, is_locked=True)
                count += 1
        return count


class FakeAccountRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_account_by_user_id(self, db, user_id):
        return self.store.accounts.get(user_id)

    async def lock_account_for_update(self, db, user_id):
        db.touch()
        return self.store.accounts.get(user_id)

    async def ensure_account(self, db, user_id, starting_balance):
        db.touch()
        existing = self.store.accounts.get(user_id)
        if existing is not None:
            return existing, False
        account = Account(user_id=user_id, balance=starting_balance, version=0)
        self.store.accounts[user_id] = account
        self._write_ledger(user_id, "SIGNUP_GRANT", starting_balance, account.balance, "ACCOUNT", user_id, "Starting balance")
        return account, True

    async def debit(self, db, user_id, amount, entry_type, ref_type, ref_id, description):
        db.touch()
        current = self.store.accounts.get(user_id)
        if current is None:
            raise AccountNotFoundError(user_id)
        if current.balance < amount:
            raise InsufficientBalanceError(amount, current.balance)
        account = replace(current, balance=current.balance - amount, version=current.version + 1)
        self.store.accounts[user_id] = account
        entry = self._write_ledger(user_id, entry_type, -amount, account.balance, ref_type, ref_id, description)
        return account, entry

    async def credit(self, db, user_id, amount, entry_type, ref_type, ref_id, description):
        db.touch()
        current = self.store.accounts.get(user_id)
        if current is None:
            raise AccountNotFoundError(user_id)
        account = replace(current, balance=current.balance + amount, version=current.version + 1)
        self.store.accounts[user_id] = account
        entry = self._write_ledger(user_id, entry_type, amount, account.balance, ref_type, ref_id, description)
        return account, entry

    async def list_ledger_entries(self, db, user_id, cursor_id, limit, entry_type):
        rows = [
            e for e in reversed(self.store.ledger)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return rows[:limit]

    async def list_top_balances(self, db, limit):
        ranked = sorted(self.store.accounts.values(), key=lambda a: (-a.balance, a.user_id))
        return ranked[:limit]

    def _write_ledger(self, user_id, entry_type, amount, balance_after, ref_type, ref_id, description):
        entry = LedgerEntry(
            id=len(self.store.ledger) + 1,
            user_id=user_id,
            entry_type=str(getattr(entry_type, "value", entry_type)),
            amount=amount,
            balance_after=balance_after,
            reference_type=ref_type,
            reference_id=ref_id,
            description=description,
            created_at=datetime.now(UTC),
        )
        self.store.ledger.append(entry)
        return entry


class FakePositionRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def lock_position_for_update(self, db, user_id, market_id, outcome):
        db.touch()
        return self.store.positions.get((user_id, market_id, outcome))

    async def save_position(self, db, position):
        db.touch()
        self.store.positions[(position.user_id, position.market_id, position.outcome)] = position
        return position

    async def lock_winning_positions(self, db, market_id, outcome):
        db.touch()
        winners = [
            p for (_, mid, out), p in self.store.positions.items()
            if mid == market_id and out == outcome and p.shares_owned > 0
        ]
        return sorted(winners, key=lambda p: p.user_id)

    async def list_by_user(self, db, user_id, market_id):
        return sorted(
            (
                p for (uid, mid, _), p in self.store.positions.items()
                if uid == user_id and p.shares_owned > 0
                and (market_id is None or mid == market_id)
            ),
            key=lambda p: (p.market_id, p.outcome),
        )


class FakeTradesWriter:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def write_trade(self, db, trade):
        db.touch()
        self.store.trades.append(trade)


_EPOCH = datetime(2020, 1, 1, tzinfo=UTC)


class Seeder:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def market(
        self,
        market_id: str = "mkt-1",
        yes_price: str = "0.50",
        no_price: str = "0.50",
        pool_k: str = "10000",
        is_locked: bool = False,
        outcome: str | None = None,
    ) -> Market:
        market = Market(
            id=market_id,
            question=f"Will {market_id} happen?",
            yes_price=Decimal(yes_price),
            no_price=Decimal(no_price),
            pool_k=Decimal(pool_k),
            total_volume=Decimal("0"),
            is_locked=is_locked,
            outcome=outcome,
            resolved_at=datetime.now(UTC) if outcome else None,
            created_at=datetime.now(UTC),
        )
        self.store.markets[market_id] = market
        return market

    def account(self, user_id: str = "alice", balance: str = "1000") -> Account:
        account = Account(user_id=user_id, balance=Decimal(balance), version=0)
        self.store.accounts[user_id] = account
        return account

    def position(
        self,
        user_id: str,
        market_id: str,
        outcome: str,
        shares: str,
        paid: str | None = None,
    ) -> Position:
        position = Position(
            user_id=user_id,
            market_id=market_id,
            outcome=outcome,
            shares_owned=Decimal(shares),
            total_paid=Decimal(paid if paid is not None else shares),
        )
        self.store.positions[(user_id, market_id, outcome)] = position
        return position


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def db(store: FakeStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def seed(store: FakeStore) -> Seeder:
    return Seeder(store)


@pytest.fixture
def publisher() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def locks() -> MarketLocks:
    return MarketLocks()


@pytest.fixture
def market_repo(store: FakeStore) -> FakeMarketRepository:
    return FakeMarketRepository(store)


@pytest.fixture
def account_repo(store: FakeStore) -> FakeAccountRepository:
    return FakeAccountRepository(store)


@pytest.fixture
def position_repo(store: FakeStore) -> FakePositionRepository:
    return FakePositionRepository(store)


@pytest.fixture
def trades_writer(store: FakeStore) -> FakeTradesWriter:
    return FakeTradesWriter(store)


@pytest.fixture
def executor(
    market_repo, account_repo, position_repo, trades_writer, publisher, locks
) -> TradeExecutor:
    return TradeExecutor(
        markets=market_repo,
        accounts=account_repo,
        positions=position_repo,
        trades=trades_writer,
        publisher=publisher,
        locks=locks,
        lock_timeout_ms=1000,
    )


@pytest.fixture
def settlement(market_repo, account_repo, position_repo, publisher, locks) -> SettlementService:
    return SettlementService(
        markets=market_repo,
        accounts=account_repo,
        positions=position_repo,
        publisher=publisher,
        locks=locks,
        lock_timeout_ms=1000,
    )


@pytest.fixture
def new_session(store: FakeStore):
    """Factory for extra sessions over the same store (one per concurrent caller)."""
    return lambda: FakeSession(store)
