"""Fixed-point Decimal helpers for prices, dollars and share counts.

All money, share and price values are Decimal, persisted as NUMERIC(20, 8).
No float anywhere on the write path.
"""

from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal, InvalidOperation

SCALE = Decimal("0.00000001")  # 8 decimal places, matches NUMERIC(20, 8)

PRICE_FLOOR = Decimal("0.01")
PRICE_CAP = Decimal("0.99")

ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: object) -> Decimal:
    """Coerce int/str/Decimal to Decimal. Floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e


def quantize_down(value: Decimal) -> Decimal:
    """Truncate to 8 dp. Used for anything paid or credited to a trader."""
    return value.quantize(SCALE, rounding=ROUND_DOWN)


def quantize_even(value: Decimal) -> Decimal:
    """Banker's rounding to 8 dp. Used for prices and exact charges."""
    return value.quantize(SCALE, rounding=ROUND_HALF_EVEN)


def exceeds_scale(value: Decimal) -> bool:
    """True if a finite value carries non-zero digits past the 8th decimal place.

    Reads the digit tuple instead of quantizing, so values of any magnitude
    are accepted without tripping the context precision.
    """
    _, digits, exponent = value.as_tuple()
    extra = -8 - exponent  # type: ignore[operator]
    if extra <= 0:
        return False
    return any(digits[-extra:])


def clamp_price(price: Decimal) -> Decimal:
    """Keep a quoted price inside [0.01, 0.99]."""
    if price < PRICE_FLOOR:
        return PRICE_FLOOR
    if price > PRICE_CAP:
        return PRICE_CAP
    return price


def validate_price(price: Decimal) -> None:
    """Validate that a price is in the range [0.01, 0.99]."""
    if not (PRICE_FLOOR <= price <= PRICE_CAP):
        raise ValueError(f"Price must be between {PRICE_FLOOR} and {PRICE_CAP}, got {price}")


def dollars_to_display(amount: Decimal) -> str:
    """Convert dollars to display string: 65 -> '$65.00', -12.5 -> '-$12.50'."""
    cents = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    if cents < 0:
        return f"-${-cents:,.2f}"
    return f"${cents:,.2f}"


def price_to_display(price: Decimal) -> str:
    """Price as cents with three decimals: 0.525 -> '52.500¢'."""
    return f"{(price * 100).quantize(Decimal('0.001'), rounding=ROUND_HALF_EVEN)}¢"
