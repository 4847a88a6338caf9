import re
from decimal import Decimal
from typing import Any, List

from .enums import ValidationErrorKind
from .errors import InventoryValidationError
from .pricing import MAX_PRICE, to_decimal
from .schemas.product import PriceStockUpdate, ValidatedProduct

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _require(**fields: Any) -> None:
    missing: List[str] = [name for name, value in fields.items() if _is_blank(value)]
    if missing:
        raise InventoryValidationError(
            ValidationErrorKind.MISSING_FIELD,
            f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )


def parse_price(raw: Any) -> Decimal:
    price = to_decimal(raw)
    if price is None or price <= 0:
        raise InventoryValidationError(
            ValidationErrorKind.INVALID_PRICE,
            "Price must be a positive number",
            fields=["original_price"],
        )
    if price > MAX_PRICE:
        raise InventoryValidationError(
            ValidationErrorKind.INVALID_PRICE,
            f"Price must not exceed {MAX_PRICE:f}",
            fields=["original_price"],
        )
    return price


def parse_stock(raw: Any) -> int:
    stock = None
    if isinstance(raw, bool):
        stock = None
    elif isinstance(raw, int):
        stock = raw
    elif isinstance(raw, str) and _INTEGER_PATTERN.fullmatch(raw.strip()):
        stock = int(raw.strip())
    elif isinstance(raw, (float, Decimal)):
        number = to_decimal(raw)
        if number is not None and number == number.to_integral_value():
            stock = int(number)

    if stock is None or stock < 0:
        raise InventoryValidationError(
            ValidationErrorKind.INVALID_STOCK,
            "Stock must be a non-negative integer",
            fields=["stock"],
        )
    return stock


def validate_product_input(
    name: Any, category: Any, original_price_raw: Any, stock_raw: Any
) -> ValidatedProduct:
    """Validate create-form input.

    Raises:
        InventoryValidationError: MISSING_FIELD if any field is empty,
            INVALID_PRICE if the price is not a positive decimal,
            INVALID_STOCK if the stock is not a non-negative integer.
    """
    _require(
        name=name,
        category=category,
        original_price=original_price_raw,
        stock=stock_raw,
    )
    return ValidatedProduct(
        name=str(name).strip(),
        category=str(category).strip(),
        original_price=parse_price(original_price_raw),
        stock=parse_stock(stock_raw),
    )


def validate_price_and_stock(original_price_raw: Any, stock_raw: Any) -> PriceStockUpdate:
    """Validate edit-form input; name and category are not editable."""
    _require(original_price=original_price_raw, stock=stock_raw)
    return PriceStockUpdate(
        original_price=parse_price(original_price_raw),
        stock=parse_stock(stock_raw),
    )
