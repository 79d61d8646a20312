"""Unit tests for AMM pricing (pure functions, no I/O)."""
from decimal import Decimal

import pytest

from src.pm_amm.engine.pricing import compute_buy, compute_sell, preview_buy, preview_sell
from src.pm_common.amounts import PRICE_CAP, PRICE_FLOOR
from src.pm_common.enums import Outcome
from src.pm_common.errors import InvalidAmountError, InvalidMarketParamsError, InvalidSharesError
from src.pm_market.domain.models import Market

K = Decimal("10000")


def _market(yes: str = "0.50", no: str = "0.50") -> Market:
    return Market(
        id="mkt-1",
        question="q",
        yes_price=Decimal(yes),
        no_price=Decimal(no),
        pool_k=K,
        total_volume=Decimal("0"),
        is_locked=False,
        outcome=None,
        resolved_at=None,
    )


class TestComputeBuy:
    def test_five_hundred_dollars_at_even_odds(self) -> None:
        p = compute_buy(Decimal("0.50"), K, Decimal("500"))
        assert p.new_price == Decimal("0.55")
        assert p.avg_price == Decimal("0.525")
        assert p.shares == Decimal("952.38095238")
        assert p.spend == Decimal("500")
        assert p.max_payout == p.shares

    def test_price_capped_and_spend_truncated(self) -> None:
        p = compute_buy(Decimal("0.98"), K, Decimal("500"))
        assert p.new_price == PRICE_CAP
        assert p.spend == Decimal("100")
        assert p.shares == Decimal("101.52284263")

    def test_at_cap_buys_nothing(self) -> None:
        p = compute_buy(PRICE_CAP, K, Decimal("10"))
        assert p.shares == 0
        assert p.spend == 0
        assert p.new_price == PRICE_CAP

    def test_spend_never_exceeds_amount(self) -> None:
        for amount in ("0.01", "1", "33.33333333", "250", "4999.99999999"):
            p = compute_buy(Decimal("0.37"), K, Decimal(amount))
            assert p.spend <= Decimal(amount)

    def test_price_monotone_in_amount(self) -> None:
        prices = [
            compute_buy(Decimal("0.30"), K, Decimal(a)).new_price
            for a in ("1", "10", "100", "1000", "10000")
        ]
        assert prices == sorted(prices)
        assert all(p <= PRICE_CAP for p in prices)

    def test_non_positive_amount_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            compute_buy(Decimal("0.50"), K, Decimal("0"))
        with pytest.raises(InvalidAmountError):
            compute_buy(Decimal("0.50"), K, Decimal("-5"))

    def test_non_positive_pool_k_rejected(self) -> None:
        with pytest.raises(InvalidMarketParamsError):
            compute_buy(Decimal("0.50"), Decimal("0"), Decimal("5"))


class TestComputeSell:
    def test_hyperbolic_proceeds(self) -> None:
        p = compute_sell(Decimal("0.55"), K, Decimal("100"))
        assert p.dollars == Decimal("54.72636815")
        assert p.new_price == Decimal("0.54452736")
        assert p.shares == Decimal("100")

    def test_floor_clamps_price_and_proceeds(self) -> None:
        p = compute_sell(Decimal("0.02"), K, Decimal("100000"))
        assert p.new_price == PRICE_FLOOR
        assert p.dollars == Decimal("100")

    def test_price_monotone_and_floored(self) -> None:
        prices = [
            compute_sell(Decimal("0.60"), K, Decimal(s)).new_price
            for s in ("1", "10", "100", "1000", "100000")
        ]
        assert prices == sorted(prices, reverse=True)
        assert all(p >= PRICE_FLOOR for p in prices)

    def test_non_positive_shares_rejected(self) -> None:
        with pytest.raises(InvalidSharesError):
            compute_sell(Decimal("0.50"), K, Decimal("0"))

    def test_non_positive_pool_k_rejected(self) -> None:
        with pytest.raises(InvalidMarketParamsError):
            compute_sell(Decimal("0.50"), Decimal("-1"), Decimal("5"))


class TestRoundTrip:
    @pytest.mark.parametrize("price", ["0.05", "0.50", "0.73", "0.97"])
    @pytest.mark.parametrize("amount", ["0.37", "12", "500", "2500"])
    def test_buy_then_sell_never_profits(self, price: str, amount: str) -> None:
        buy = compute_buy(Decimal(price), K, Decimal(amount))
        if buy.shares == 0:
            return
        sell = compute_sell(buy.new_price, K, buy.shares)
        assert sell.dollars <= buy.spend


class TestPreview:
    def test_buy_preview_uses_outcome_price(self) -> None:
        market = _market(yes="0.50", no="0.20")
        yes = preview_buy(market, Outcome.YES, Decimal("100"))
        no = preview_buy(market, Outcome.NO, Decimal("100"))
        assert yes.old_price == Decimal("0.50")
        assert no.old_price == Decimal("0.20")
        assert no.new_price == Decimal("0.21")

    def test_sell_preview_uses_outcome_price(self) -> None:
        market = _market(yes="0.80", no="0.30")
        p = preview_sell(market, Outcome.NO, Decimal("10"))
        assert p.old_price == Decimal("0.30")
        assert p.new_price < Decimal("0.30")
