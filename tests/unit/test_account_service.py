"""AccountApplicationService against in-memory repositories."""
from decimal import Decimal

import pytest

from src.pm_account.application.schemas import cursor_decode, cursor_encode
from src.pm_account.application.service import AccountApplicationService


@pytest.fixture
def svc(account_repo, position_repo) -> AccountApplicationService:
    return AccountApplicationService(repo=account_repo, positions=position_repo)


class TestGetBalance:
    async def test_first_visit_provisions_starting_balance(self, svc, db, store) -> None:
        result = await svc.get_balance(db, "newbie")
        assert result.balance == Decimal("1000")
        assert result.balance_display == "$1,000.00"
        assert store.ledger[0].entry_type == "SIGNUP_GRANT"
        assert db.commits == 1

    async def test_existing_account_is_read_only(self, svc, db, seed) -> None:
        seed.account("alice", "12.34")
        result = await svc.get_balance(db, "alice")
        assert result.balance == Decimal("12.34")
        assert db.commits == 0


class TestLedger:
    async def test_cursor_pagination(self, svc, db, store, account_repo) -> None:
        await svc.get_balance(db, "alice")
        for n in range(4):
            await account_repo.credit(db, "alice", Decimal(n + 1), "ADMIN_GRANT", "ADMIN", "x", "g")

        page1 = await svc.list_ledger(db, "alice", None, 3, None)
        assert page1.has_more is True
        assert [i.amount for i in page1.items] == [Decimal("4"), Decimal("3"), Decimal("2")]

        page2 = await svc.list_ledger(db, "alice", page1.next_cursor, 3, None)
        assert page2.has_more is False
        assert page2.next_cursor is None
        assert [i.entry_type for i in page2.items] == ["ADMIN_GRANT", "SIGNUP_GRANT"]

    async def test_filter_by_type(self, svc, db) -> None:
        await svc.get_balance(db, "alice")
        page = await svc.list_ledger(db, "alice", None, 10, "TRADE_BUY")
        assert page.items == []

    def test_cursor_codec(self) -> None:
        assert cursor_decode(cursor_encode(42)) == 42
        assert cursor_decode("%%%") is None
        assert cursor_decode(None) is None


class TestLeaderboardAndPositions:
    async def test_leaderboard_ranks_by_balance(self, svc, db, seed) -> None:
        seed.account("a", "10")
        seed.account("b", "30")
        seed.account("c", "20")
        board = await svc.leaderboard(db, 2)
        assert [(i.rank, i.user_id) for i in board.items] == [(1, "b"), (2, "c")]

    async def test_positions_only_non_zero(self, svc, db, seed) -> None:
        seed.position("alice", "m1", "yes", shares="10", paid="4")
        seed.position("alice", "m1", "no", shares="0", paid="0")
        seed.position("alice", "m2", "no", shares="3", paid="1")
        seed.position("bob", "m1", "yes", shares="1")

        all_pos = await svc.list_positions(db, "alice")
        assert [(p.market_id, p.outcome) for p in all_pos.items] == [("m1", "yes"), ("m2", "no")]
        assert all_pos.items[0].avg_cost == Decimal("0.4")

        m2 = await svc.list_positions(db, "alice", "m2")
        assert m2.total == 1
