"""Trade and market application services over the in-memory fakes."""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_amm.application.schemas import BuyRequest, SellRequest
from src.pm_amm.application.service import TradeApplicationService
from src.pm_common.enums import Outcome
from src.pm_common.errors import InvalidAmountError, MarketNotFoundError
from src.pm_market.application.service import MarketApplicationService


@pytest.fixture
def trades_repo(store) -> MagicMock:
    repo = MagicMock()

    async def list_by_user(db, user_id, market_id, limit, cursor_id):
        rows = [t for t in reversed(store.trades) if t.user_id == user_id]
        return rows[:limit]

    async def list_by_market(db, market_id, limit):
        return [t for t in reversed(store.trades) if t.market_id == market_id][:limit]

    repo.list_by_user = AsyncMock(side_effect=list_by_user)
    repo.list_by_market = AsyncMock(side_effect=list_by_market)
    return repo


@pytest.fixture
def trading(executor, account_repo, trades_repo) -> TradeApplicationService:
    return TradeApplicationService(executor=executor, accounts=account_repo, trades=trades_repo)


@pytest.fixture
def markets(market_repo, trades_repo) -> MarketApplicationService:
    return MarketApplicationService(repo=market_repo, trades=trades_repo)


class TestTradeApplicationService:
    async def test_first_buy_provisions_account(self, trading, db, store, seed) -> None:
        seed.market("mkt-1")
        resp = await trading.buy(
            db, "newbie", BuyRequest(market_id="mkt-1", outcome=Outcome.YES, amount=Decimal("500"))
        )
        assert resp.balance == Decimal("500")
        assert store.ledger[0].entry_type == "SIGNUP_GRANT"
        # provisioning commit + trade commit
        assert db.commits == 2

    async def test_buy_then_sell_and_history(self, trading, db, seed) -> None:
        seed.market("mkt-1")
        seed.account("alice", "100")
        buy = await trading.buy(
            db, "alice", BuyRequest(market_id="mkt-1", outcome=Outcome.NO, amount=Decimal("10"))
        )
        await trading.sell(
            db, "alice", SellRequest(market_id="mkt-1", outcome=Outcome.NO, shares=buy.shares)
        )
        history = await trading.list_my_trades(db, "alice", None, 1, None)
        assert history.has_more is True
        assert history.items[0].mode == "sell"
        assert history.next_cursor == history.items[0].trade_id

    def test_response_serializes_decimals_as_strings(self) -> None:
        req = BuyRequest(market_id="m", outcome="yes", amount="12.5")
        assert req.model_dump(mode="json") == {
            "market_id": "m",
            "outcome": "yes",
            "amount": "12.5",
        }


class TestMarketApplicationService:
    async def test_list_open_first(self, markets, db, seed) -> None:
        seed.market("old-open")
        seed.market("closed", outcome="yes")
        seed.market("new-open")
        result = await markets.list_markets(db, True, 10)
        ids = [m.id for m in result.items]
        assert ids[-1] == "closed"
        assert set(ids[:2]) == {"old-open", "new-open"}

        open_only = await markets.list_markets(db, False, 10)
        assert "closed" not in [m.id for m in open_only.items]

    async def test_get_market(self, markets, db, seed) -> None:
        seed.market("mkt-1", yes_price="0.42")
        item = await markets.get_market(db, "mkt-1")
        assert item.yes_price == Decimal("0.42")
        assert item.yes_price_display == "42.000¢"
        with pytest.raises(MarketNotFoundError):
            await markets.get_market(db, "nope")

    async def test_previews_do_not_mutate(self, markets, db, store, seed) -> None:
        seed.market("mkt-1")
        buy = await markets.preview_buy(db, "mkt-1", Outcome.YES, Decimal("500"))
        assert buy.new_price == Decimal("0.55")
        assert buy.shares == Decimal("952.38095238")
        sell = await markets.preview_sell(db, "mkt-1", Outcome.YES, Decimal("100"))
        assert sell.new_price < Decimal("0.50")
        assert store.markets["mkt-1"].yes_price == Decimal("0.50")

    async def test_preview_validates_amount(self, markets, db, seed) -> None:
        seed.market("mkt-1")
        with pytest.raises(InvalidAmountError):
            await markets.preview_buy(db, "mkt-1", Outcome.YES, Decimal("0"))

    async def test_trade_feed(self, markets, executor, db, seed) -> None:
        seed.market("mkt-1")
        seed.account("alice")
        await executor.execute_buy(db, "alice", "mkt-1", Outcome.YES, Decimal("5"))
        feed = await markets.list_market_trades(db, "mkt-1", 10)
        assert len(feed.items) == 1
        assert feed.items[0].user_id == "alice"
