import asyncio
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from inventory_sync.config import LOW_STOCK_THRESHOLD, PRODUCTS_PATH
from inventory_sync.models.enums import FailureReason, SyncState
from inventory_sync.models.errors import StoreFailure, SubscriptionError
from inventory_sync.models.events import ErrorEvent, SnapshotEvent, SubscriptionEvent
from inventory_sync.models.schemas.product import AggregateStats, InventoryView, Product
from inventory_sync.utils.logging import get_logger

from .store import RemoteStore
from .subscription import Subscription

logger = get_logger(__name__)

ProductPredicate = Callable[[Product], bool]


def low_stock(threshold: int = LOW_STOCK_THRESHOLD) -> ProductPredicate:
    """Predicate for products with fewer than `threshold` units in stock."""
    return lambda product: product.stock < threshold


class InventorySynchronizer:
    """Mirrors the remote product collection in memory.

    Holds one subscription per session. Every snapshot replaces the local
    collection wholesale and recomputes the aggregate stats. Subscription
    errors move the synchronizer to ERROR but keep the last good snapshot;
    getting back to READY needs an explicit `restart()`.

    Usage:
        async with InventorySynchronizer(store) as sync:
            await sync.wait_until_ready()
            sync.filtered_view(low_stock())
    """

    def __init__(self, store: RemoteStore, path: str = PRODUCTS_PATH):
        self.store = store
        self.path = path

        self.state = SyncState.UNINITIALIZED
        self.last_error: Optional[SubscriptionError] = None
        self.revision = 0

        self._products: Dict[str, Product] = {}
        self._stats = AggregateStats()
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._changed = asyncio.Condition()

    async def __aenter__(self) -> "InventorySynchronizer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    @property
    def snapshot(self) -> Dict[str, Product]:
        return dict(self._products)

    @property
    def stats(self) -> AggregateStats:
        return self._stats

    @property
    def total_inventory_value(self) -> Decimal:
        return self._stats.total_inventory_value

    async def start(self) -> None:
        """Subscribe to the collection. A no-op while a subscription is live."""
        if self.state in (SyncState.LOADING, SyncState.READY):
            return

        await self._release()
        self._set_state(SyncState.LOADING)
        try:
            subscription = await self.store.subscribe_collection(self.path)
        except StoreFailure as e:
            self._record_error(e.reason, e.message)
            return

        self._subscription = subscription
        self._consumer = asyncio.create_task(self._consume(subscription))

    async def stop(self) -> None:
        """Cancel the subscription. Safe to call at any time, including twice."""
        await self._release()
        if self.state != SyncState.UNINITIALIZED:
            self._set_state(SyncState.CLOSED)

    async def restart(self) -> None:
        await self._release()
        self.last_error = None
        self._set_state(SyncState.UNINITIALIZED)
        await self.start()

    async def _release(self) -> None:
        subscription, self._subscription = self._subscription, None
        consumer, self._consumer = self._consumer, None

        if subscription is not None:
            await subscription.cancel()
        if consumer is not None and consumer is not asyncio.current_task():
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass

    async def _consume(self, subscription: Subscription) -> None:
        try:
            async for event in subscription:
                if subscription is not self._subscription:
                    break
                self.apply(event)
                await self._notify()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected failure while reconciling {self.path}")
            self._record_error(FailureReason.INVALID_RESPONSE, str(e))
            await self._notify()

    def apply(self, event: SubscriptionEvent) -> None:
        """Reconcile one event into local state."""
        if isinstance(event, SnapshotEvent):
            self._replace(event.records)
        elif isinstance(event, ErrorEvent):
            self._record_error(event.reason, event.message)

    def _replace(self, records: Dict) -> None:
        products: Dict[str, Product] = {}
        for key, record in (records or {}).items():
            try:
                products[key] = Product.from_record(key, record)
            except ValueError as e:
                logger.warning(f"Skipping malformed record {self.path}/{key}: {e}")

        self._products = products
        self._stats = AggregateStats.from_products(list(products.values()))
        self.revision += 1
        logger.debug(
            f"Snapshot {self.revision} of {self.path}: {len(products)} products, "
            f"total value {self._stats.total_inventory_value}"
        )
        if self.state != SyncState.READY:
            self._set_state(SyncState.READY)

    def _record_error(self, reason: FailureReason, message: str) -> None:
        self.last_error = SubscriptionError(reason, message)
        logger.error(f"Subscription to {self.path} failed: {self.last_error}")
        self._set_state(SyncState.ERROR)

    def _set_state(self, state: SyncState) -> None:
        if state != self.state:
            logger.info(f"Inventory sync {self.path}: {self.state.value} -> {state.value}")
            self.state = state

    async def _notify(self) -> None:
        async with self._changed:
            self._changed.notify_all()

    async def wait_until_ready(self, timeout: Optional[float] = None) -> SyncState:
        """Wait until the first snapshot or an error arrives; returns the resulting state."""
        await self._wait_for(lambda: self.state not in (SyncState.UNINITIALIZED, SyncState.LOADING), timeout)
        return self.state

    async def wait_for_revision(self, revision: int, timeout: Optional[float] = None) -> None:
        """Wait until at least `revision` snapshots have been applied."""
        await self._wait_for(lambda: self.revision >= revision or self.state == SyncState.ERROR, timeout)

    async def _wait_for(self, predicate: Callable[[], bool], timeout: Optional[float]) -> None:
        async def _wait() -> None:
            async with self._changed:
                await self._changed.wait_for(predicate)

        await asyncio.wait_for(_wait(), timeout)

    def filtered_view(self, predicate: Optional[ProductPredicate] = None) -> List[Product]:
        """Current products matching `predicate` (all when None), ordered by id."""
        products = sorted(self._products.values(), key=lambda product: product.id)
        if predicate is None:
            return products
        return [product for product in products if predicate(product)]

    def view(self, low_stock_only: bool = False) -> InventoryView:
        predicate = low_stock() if low_stock_only else None
        return InventoryView(
            state=self.state,
            low_stock_only=low_stock_only,
            products=self.filtered_view(predicate),
            stats=self._stats,
            error=str(self.last_error) if self.last_error else None,
        )
