# routes/product.py
import asyncio
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from inventory_sync.config import SYNC_READY_TIMEOUT
from inventory_sync.database.dependencies import get_product_service, get_synchronizer
from inventory_sync.models.enums import FailureReason
from inventory_sync.models.errors import (
    InventoryError,
    InventoryValidationError,
    NotFoundError,
    StoreFailure,
)
from inventory_sync.models.result import Result
from inventory_sync.models.schemas.product import PriceStockInput, ProductInput
from inventory_sync.services.product import ProductService
from inventory_sync.services.synchronizer import InventorySynchronizer
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

_FAILURE_STATUS = {
    FailureReason.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    FailureReason.AUTH_REVOKED: status.HTTP_403_FORBIDDEN,
    FailureReason.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def _http_error(error: InventoryError) -> HTTPException:
    if isinstance(error, InventoryValidationError):
        detail = {"kind": error.kind.value, "message": error.message, "fields": error.fields}
        return HTTPException(status_code=422, detail=detail)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, StoreFailure):
        code = _FAILURE_STATUS.get(error.reason, status.HTTP_502_BAD_GATEWAY)
        return HTTPException(status_code=code, detail={"reason": error.reason.value, "message": error.message})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)


def _unwrap(result: Result) -> Any:
    if not result.ok:
        raise _http_error(result.error)
    return result.value


class DiscountPreview(BaseModel):
    originalPrice: str
    discountedPrice: str


@router.get("/")
async def list_products(
    low_stock: bool = False,
    sync: InventorySynchronizer = Depends(get_synchronizer),
):
    """List the mirrored inventory, optionally only products with low stock."""
    return sync.view(low_stock_only=low_stock).to_dict()


@router.get("/status")
async def sync_status(sync: InventorySynchronizer = Depends(get_synchronizer)):
    return {
        "state": sync.state.value,
        "revision": sync.revision,
        "error": str(sync.last_error) if sync.last_error else None,
    }


@router.post("/sync/restart")
async def restart_sync(sync: InventorySynchronizer = Depends(get_synchronizer)):
    """Resubscribe after a subscription error."""
    await sync.restart()
    try:
        await sync.wait_until_ready(timeout=SYNC_READY_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Restarted subscription has not delivered a snapshot yet")
    return {"state": sync.state.value}


@router.get("/discount-preview", response_model=DiscountPreview)
async def discount_preview(original_price: Optional[str] = ""):
    return DiscountPreview(
        originalPrice=original_price or "",
        discountedPrice=ProductService.preview_discount(original_price),
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductInput,
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    """Create a new product."""
    product = _unwrap(await service.create(data))
    return product.to_record()


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    """Get a specific product by ID, straight from the store."""
    product = _unwrap(await service.fetch_by_key(product_id))
    return product.to_record()


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    data: PriceStockInput,
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    """Update price and stock of an existing product."""
    product = _unwrap(await service.edit(product_id, data))
    return product.to_record()


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
):
    """Delete a product."""
    _unwrap(await service.remove(product_id))
    return {"status": "success"}
