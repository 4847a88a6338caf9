from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from inventory_sync.config import LOW_STOCK_THRESHOLD
from inventory_sync.utils.logging import get_logger
from ..enums import SyncState
from ..pricing import MAX_PRICE, derive_discounted_price, format_money, to_decimal
from .base import InputModel, RecordModel, coerce_money

logger = get_logger(__name__)

RawValue = Union[str, int, float, Decimal, None]


class ProductInput(InputModel):
    """Unvalidated create-form fields, exactly as typed."""
    name: RawValue = ""
    category: RawValue = ""
    original_price: RawValue = ""
    stock: RawValue = ""


class PriceStockInput(InputModel):
    """Unvalidated edit-form fields."""
    original_price: RawValue = ""
    stock: RawValue = ""


class PriceStockUpdate(RecordModel):
    original_price: Decimal = Field(..., gt=0, le=MAX_PRICE)
    stock: int = Field(..., ge=0)

    @computed_field
    @property
    def discounted_price(self) -> Decimal:
        return derive_discounted_price(self.original_price)

    def to_patch(self) -> Dict[str, Any]:
        """Merge-patch payload touching only the pricing and stock fields."""
        return {
            "precioOriginal": float(self.original_price),
            "precioConDescuento": float(self.discounted_price),
            "stock": self.stock,
        }


class ValidatedProduct(PriceStockUpdate):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)

    def to_record(self, key: str) -> Dict[str, Any]:
        """Full record with the store key embedded as `id`."""
        return {
            "id": key,
            "nombre": self.name,
            "precioOriginal": float(self.original_price),
            "precioConDescuento": float(self.discounted_price),
            "categoria": self.category,
            "stock": self.stock,
        }


class Product(RecordModel):
    """Inventory item as mirrored from the store.

    `discounted_price` is always derived from `original_price`; a persisted
    `precioConDescuento` is never used, a stale one is only logged.
    """
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, alias="nombre")
    category: str = Field(..., min_length=1, alias="categoria")
    original_price: Decimal = Field(..., gt=0, le=MAX_PRICE, alias="precioOriginal")
    stock: int = Field(..., ge=0)

    @field_validator("original_price", mode="before")
    @classmethod
    def validate_original_price(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("price must be a number")
        return coerce_money(v)

    @field_validator("stock", mode="before")
    @classmethod
    def validate_stock(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("stock must be an integer")
        return v

    @computed_field
    @property
    def discounted_price(self) -> Decimal:
        return derive_discounted_price(self.original_price)

    @property
    def is_low_stock(self) -> bool:
        return self.stock < LOW_STOCK_THRESHOLD

    @property
    def inventory_value(self) -> Decimal:
        return self.original_price * self.stock

    @classmethod
    def from_record(cls, key: str, record: Any) -> "Product":
        """Build a Product from a stored record; the store key wins over any embedded id."""
        if not isinstance(record, dict):
            raise ValueError(f"record '{key}' is not an object")
        product = cls.model_validate({**record, "id": key})
        stored = record.get("precioConDescuento")
        if stored is not None and to_decimal(stored) != product.discounted_price:
            logger.debug(f"Ignoring stored discounted price {stored!r} of {key}, derived {product.discounted_price}")
        return product

    def with_pricing(self, update: PriceStockUpdate) -> "Product":
        return self.model_copy(update={
            "original_price": update.original_price,
            "stock": update.stock,
        })

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nombre": self.name,
            "precioOriginal": float(self.original_price),
            "precioConDescuento": float(self.discounted_price),
            "categoria": self.category,
            "stock": self.stock,
        }


class AggregateStats(BaseModel):
    total_inventory_value: Decimal = Decimal("0")
    product_count: int = 0
    low_stock_count: int = 0

    @classmethod
    def from_products(cls, products: List[Product]) -> "AggregateStats":
        return cls(
            total_inventory_value=sum((p.inventory_value for p in products), Decimal("0")),
            product_count=len(products),
            low_stock_count=sum(1 for p in products if p.is_low_stock),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalInventoryValue": format_money(self.total_inventory_value),
            "productCount": self.product_count,
            "lowStockCount": self.low_stock_count,
        }


class InventoryView(BaseModel):
    """What a list screen renders: the (optionally filtered) products plus totals."""
    state: SyncState
    low_stock_only: bool = False
    products: List[Product] = Field(default_factory=list)
    stats: AggregateStats = Field(default_factory=AggregateStats)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "lowStockOnly": self.low_stock_only,
            "products": [p.to_record() for p in self.products],
            "stats": self.stats.to_dict(),
            "error": self.error,
        }
