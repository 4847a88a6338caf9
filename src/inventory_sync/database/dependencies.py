from fastapi import Request

from inventory_sync.services.product import ProductService
from inventory_sync.services.synchronizer import InventorySynchronizer


def get_synchronizer(request: Request) -> InventorySynchronizer:
    return request.app.state.synchronizer


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service
