"""AMM pricing — pure functions, no I/O.

Each outcome pool is priced on its own: buying YES moves only yes_price.
yes_price + no_price is NOT held at 1.

Buy: linear impact, price capped at 0.99.
    impact          = amount / pool_k
    new_price       = min(old_price + impact, 0.99)
    effective_spend = (new_price - old_price) * pool_k
    avg_price       = (old_price + new_price) / 2
    shares          = effective_spend / avg_price

Sell: hyperbolic curve, price floored at 0.01.
    dollars   = shares * price * 2k / (2k + shares)
    new_price = price - dollars / k
    if new_price < 0.01: new_price = 0.01, dollars = (price - 0.01) * k

Rounding: shares and sale proceeds are truncated to 8 dp (never in the
trader's favour); charges and prices use banker's rounding. Charges never
exceed the requested amount.
"""

from decimal import Decimal

from src.pm_amm.domain.models import BuyPreview, SellPreview
from src.pm_common.amounts import (
    PRICE_CAP,
    PRICE_FLOOR,
    ZERO,
    quantize_down,
    quantize_even,
)
from src.pm_common.enums import Outcome
from src.pm_common.errors import InvalidAmountError, InvalidMarketParamsError, InvalidSharesError
from src.pm_market.domain.models import Market

_TWO = Decimal("2")


def _check_pool_k(pool_k: Decimal) -> None:
    if pool_k <= 0:
        raise InvalidMarketParamsError(f"pool_k must be positive, got {pool_k}")


def compute_buy(old_price: Decimal, pool_k: Decimal, amount: Decimal) -> BuyPreview:
    """Price a buy of `amount` dollars against one outcome pool."""
    _check_pool_k(pool_k)
    if amount <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount}")

    impact = amount / pool_k
    new_price = min(old_price + impact, PRICE_CAP)
    effective_spend = (new_price - old_price) * pool_k
    avg_price = (old_price + new_price) / _TWO
    shares = effective_spend / avg_price if avg_price > 0 else ZERO

    spend = min(quantize_even(effective_spend), amount)
    shares = quantize_down(shares)
    if spend <= 0:
        # old_price already at the cap: nothing can be absorbed
        shares = ZERO
        spend = ZERO
    return BuyPreview(
        old_price=old_price,
        new_price=quantize_even(new_price),
        avg_price=quantize_even(avg_price),
        shares=shares,
        spend=spend,
        max_payout=shares,
    )


def compute_sell(current_price: Decimal, pool_k: Decimal, shares: Decimal) -> SellPreview:
    """Price a sale of `shares` back into one outcome pool."""
    _check_pool_k(pool_k)
    if shares <= 0:
        raise InvalidSharesError(f"shares must be positive, got {shares}")

    two_k = _TWO * pool_k
    dollars = shares * current_price * two_k / (two_k + shares)
    new_price = current_price - dollars / pool_k
    if new_price < PRICE_FLOOR:
        new_price = PRICE_FLOOR
        dollars = (current_price - PRICE_FLOOR) * pool_k
    if dollars < 0:
        # current_price already below the floor (legacy data); nothing to pay
        dollars = ZERO

    dollars = quantize_down(dollars)
    avg_price = dollars / shares
    return SellPreview(
        old_price=current_price,
        new_price=quantize_even(new_price),
        avg_price=quantize_even(avg_price),
        dollars=dollars,
        shares=shares,
    )


def preview_buy(market: Market, outcome: Outcome, amount: Decimal) -> BuyPreview:
    """Read-only quote for buying `amount` dollars of `outcome` shares."""
    return compute_buy(market.price_for(outcome), market.pool_k, amount)


def preview_sell(market: Market, outcome: Outcome, shares: Decimal) -> SellPreview:
    """Read-only quote for selling `shares` of `outcome` back to the pool."""
    return compute_sell(market.price_for(outcome), market.pool_k, shares)
