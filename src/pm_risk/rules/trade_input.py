from decimal import Decimal

from src.pm_common.amounts import exceeds_scale
from src.pm_common.errors import (
    InsufficientBalanceError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidSharesError,
)


def check_buy_amount(amount: Decimal) -> None:
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount}")
    if exceeds_scale(amount):
        raise InvalidAmountError(f"at most 8 decimal places allowed, got {amount}")


def check_sell_shares(shares: Decimal) -> None:
    if not shares.is_finite() or shares <= 0:
        raise InvalidSharesError(f"shares must be positive, got {shares}")
    if exceeds_scale(shares):
        raise InvalidSharesError(f"at most 8 decimal places allowed, got {shares}")


def check_balance_covers(amount: Decimal, balance: Decimal) -> None:
    if amount > balance:
        raise InsufficientBalanceError(amount, balance)


def check_shares_owned(shares: Decimal, owned: Decimal) -> None:
    if shares > owned:
        raise InsufficientSharesError(shares, owned)
