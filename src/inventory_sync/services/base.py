# services/base.py
from typing import Awaitable, Callable, Generic, TypeVar

from inventory_sync.config import PRODUCTS_PATH
from inventory_sync.models.errors import StoreFailure
from inventory_sync.models.result import Result
from inventory_sync.utils.logging import get_logger

from .store import RemoteStore

T = TypeVar("T")

logger = get_logger(__name__)


class BaseService(Generic[T]):
    def __init__(self, store: RemoteStore, path: str = PRODUCTS_PATH):
        self.store = store
        self.path = path

    async def _handle_store_operation(
        self, description: str, operation: Callable[[], Awaitable[T]]
    ) -> Result[T]:
        try:
            result = await operation()
            return Result.success(result)
        except StoreFailure as e:
            logger.error(f"Store operation '{description}' failed: {e}")
            return Result.failure(e)
