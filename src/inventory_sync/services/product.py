# services/product.py
from typing import Any, Dict, Mapping, Optional, Union

from inventory_sync.config import PRODUCTS_PATH
from inventory_sync.models.enums import FailureReason, SyncState, ValidationErrorKind
from inventory_sync.models.errors import (
    InventoryValidationError,
    NotFoundError,
    StoreFailure,
)
from inventory_sync.models.pricing import derive_discounted_price, format_money
from inventory_sync.models.result import Result
from inventory_sync.models.schemas.product import PriceStockInput, Product, ProductInput
from inventory_sync.models.validation import validate_price_and_stock, validate_product_input
from inventory_sync.utils.logging import get_logger

from .base import BaseService
from .store import RemoteStore
from .synchronizer import InventorySynchronizer

logger = get_logger(__name__)


class ProductService(BaseService[Product]):
    """Create, edit and delete products in the remote store.

    Writes go straight to the store; the synchronizer picks the change up
    from its own subscription, eventually. Every outcome comes back as a
    Result, nothing is raised for expected failures.
    """

    def __init__(
        self,
        store: RemoteStore,
        path: str = PRODUCTS_PATH,
        synchronizer: Optional[InventorySynchronizer] = None,
    ):
        super().__init__(store, path)
        self.synchronizer = synchronizer
        self._fetched: Dict[str, Product] = {}

    def _cached(self, key: str) -> Optional[Product]:
        """The product loaded by the last fetch, unless the live snapshot no longer has it."""
        product = self._fetched.get(key)
        sync = self.synchronizer
        if product is None or sync is None or sync.state != SyncState.READY:
            return product
        if key not in sync.snapshot:
            logger.info(f"Dropping cached product {key}, it is gone from {self.path}")
            self._fetched.pop(key, None)
            return None
        return product

    @staticmethod
    def preview_discount(original_price_raw: Any) -> str:
        """Discounted price for a half-typed price field, e.g. "18.00"."""
        return format_money(derive_discounted_price(original_price_raw))

    async def fetch_by_key(self, key: Optional[str]) -> Result[Product]:
        """Point read used to load the product an edit will apply to."""
        key = (key or "").strip()
        if not key:
            logger.warning("fetch_by_key called with an empty key; skipping lookup")
            return Result.failure(NotFoundError(key, "No product id supplied"))

        result = await self._handle_store_operation(
            f"get {self.path}/{key}",
            lambda: self.store.get_by_key(self.path, key),
        )
        if not result.ok:
            return result
        if result.value is None:
            self._fetched.pop(key, None)
            return Result.failure(NotFoundError(key))

        try:
            product = Product.from_record(key, result.value)
        except ValueError as e:
            logger.error(f"Record {self.path}/{key} is malformed: {e}")
            return Result.failure(StoreFailure(FailureReason.INVALID_RESPONSE, f"Record '{key}' is malformed"))

        self._fetched[key] = product
        return Result.success(product)

    async def create(self, fields: Union[ProductInput, Mapping[str, Any]]) -> Result[Product]:
        data = fields if isinstance(fields, ProductInput) else ProductInput.model_validate(dict(fields))
        try:
            validated = validate_product_input(data.name, data.category, data.original_price, data.stock)
        except InventoryValidationError as e:
            logger.warning(f"Rejected new product: {e.message}")
            return Result.failure(e)

        key = self.store.generate_key(self.path)
        if not key:
            return Result.failure(StoreFailure(FailureReason.KEY_GENERATION, "Could not generate a unique product id"))

        record = validated.to_record(key)
        result = await self._handle_store_operation(
            f"set {self.path}/{key}",
            lambda: self.store.set_by_key(self.path, key, record),
        )
        if not result.ok:
            return result

        product = Product.from_record(key, record)
        logger.info(f"Created product {key} ({product.name})")
        return Result.success(product)

    async def edit(self, key: Optional[str], fields: Union[PriceStockInput, Mapping[str, Any]]) -> Result[Product]:
        """Update price and stock of an existing product.

        Input is validated before the store is touched. The product must exist:
        the one loaded by the last `fetch_by_key` is used, or it is fetched now.
        """
        data = fields if isinstance(fields, PriceStockInput) else PriceStockInput.model_validate(dict(fields))
        try:
            update = validate_price_and_stock(data.original_price, data.stock)
        except InventoryValidationError as e:
            logger.warning(f"Rejected edit of {key}: {e.message}")
            return Result.failure(e)

        key = (key or "").strip()
        current = self._cached(key)
        if current is None:
            lookup = await self.fetch_by_key(key)
            if not lookup.ok:
                return lookup
            current = lookup.value

        result = await self._handle_store_operation(
            f"update {self.path}/{key}",
            lambda: self.store.update_by_key(self.path, key, update.to_patch()),
        )
        if not result.ok:
            return result

        product = current.with_pricing(update)
        self._fetched[key] = product
        logger.info(f"Updated product {key}: price {product.original_price}, stock {product.stock}")
        return Result.success(product)

    async def remove(self, key: Optional[str]) -> Result[str]:
        """Delete a product. Confirmation is the caller's job; deleting twice succeeds."""
        key = (key or "").strip()
        if not key:
            return Result.failure(InventoryValidationError(
                ValidationErrorKind.MISSING_FIELD,
                "Missing required fields: id",
                fields=["id"],
            ))

        result = await self._handle_store_operation(
            f"delete {self.path}/{key}",
            lambda: self.store.delete_by_key(self.path, key),
        )
        if not result.ok:
            return result

        self._fetched.pop(key, None)
        logger.info(f"Deleted product {key}")
        return Result.success(key)
