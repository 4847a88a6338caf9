from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Optional

DISCOUNT_FACTOR = Decimal("0.90")
CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest price accepted on input or from a stored record.
MAX_PRICE = Decimal("1e15")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric value or numeric text into a finite Decimal, else None."""
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, (float, str)):
            number = Decimal(str(value).strip())
        else:
            return None
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None
    return number


def _to_cents(amount: Decimal) -> Decimal:
    # quantize fails once the digits up to the cents exceed the context precision
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def derive_discounted_price(original_price: Any) -> Decimal:
    """Price after the 10% discount, rounded half-up to cents.

    Anything that is not a positive finite number derives to 0.00, which is
    what a half-typed price field previews as.
    """
    price = to_decimal(original_price)
    if price is None or price <= 0:
        return ZERO
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(price.as_tuple().digits) + len(DISCOUNT_FACTOR.as_tuple().digits))
        discounted = price * DISCOUNT_FACTOR
    return _to_cents(discounted)


def format_money(amount: Decimal) -> str:
    return str(_to_cents(amount))
