import copy
from typing import Any, Dict, List, Optional, Tuple

from inventory_sync.models.enums import FailureReason
from inventory_sync.models.errors import StoreFailure
from inventory_sync.models.events import ErrorEvent, SnapshotEvent
from inventory_sync.utils.common import generate_store_key, join_path
from inventory_sync.utils.logging import get_logger

from .subscription import Subscription

logger = get_logger(__name__)


class MemoryStore:
    """In-process realtime store.

    Used when no Firebase database is configured and as the store in tests.
    Snapshots are pushed to subscribers synchronously on every write.
    """

    def __init__(
        self,
        collections: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
        record_calls: bool = False,
    ):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            join_path(path): copy.deepcopy(records)
            for path, records in (collections or {}).items()
        }
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._pending_failures: Dict[str, StoreFailure] = {}
        # Only filled when record_calls is set.
        self.record_calls = record_calls
        self.calls: List[Tuple[str, str, Optional[str]]] = []

    # ----- test hooks -------------------------------------------------------
    def fail_next(self, operation: str, reason: FailureReason, message: str) -> None:
        """Make the next call of `operation` (e.g. "set_by_key") raise StoreFailure."""
        self._pending_failures[operation] = StoreFailure(reason, message)

    def emit_error(self, path: str, reason: FailureReason, message: str) -> None:
        """Fail every live subscription on `path`."""
        path = join_path(path)
        for subscription in list(self._subscriptions.get(path, [])):
            subscription.push(ErrorEvent(path=path, reason=reason, message=message))
        self._subscriptions.pop(path, None)

    def records(self, path: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._collections.get(join_path(path), {}))

    @property
    def writes(self) -> List[Tuple[str, str, Optional[str]]]:
        return [call for call in self.calls if call[0] in ("set_by_key", "update_by_key", "delete_by_key")]

    # ----- RemoteStore ------------------------------------------------------
    async def subscribe_collection(self, path: str) -> Subscription:
        path = join_path(path)
        self._record("subscribe_collection", path)

        subscription = Subscription(path)
        self._subscriptions.setdefault(path, []).append(subscription)

        async def _release() -> None:
            live = self._subscriptions.get(path, [])
            if subscription in live:
                live.remove(subscription)

        subscription.add_cancel_callback(_release)
        subscription.push(self._snapshot(path))
        return subscription

    async def get_by_key(self, path: str, key: str) -> Optional[Dict[str, Any]]:
        path = join_path(path)
        self._record("get_by_key", path, key)
        record = self._collections.get(path, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    async def set_by_key(self, path: str, key: str, record: Dict[str, Any]) -> None:
        path = join_path(path)
        self._record("set_by_key", path, key)
        self._collections.setdefault(path, {})[key] = copy.deepcopy(record)
        self._publish(path)

    async def update_by_key(self, path: str, key: str, fields: Dict[str, Any]) -> None:
        path = join_path(path)
        self._record("update_by_key", path, key)
        collection = self._collections.setdefault(path, {})
        collection.setdefault(key, {}).update(copy.deepcopy(fields))
        self._publish(path)

    async def delete_by_key(self, path: str, key: str) -> None:
        path = join_path(path)
        self._record("delete_by_key", path, key)
        if self._collections.get(path, {}).pop(key, None) is not None:
            self._publish(path)

    def generate_key(self, path: str) -> str:
        return generate_store_key(path)

    async def close(self) -> None:
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                await subscription.cancel()
        self._subscriptions.clear()

    # ----- internals --------------------------------------------------------
    def _record(self, operation: str, path: str, key: Optional[str] = None) -> None:
        failure = self._pending_failures.pop(operation, None)
        if self.record_calls:
            self.calls.append((operation, path, key))
        if failure is not None:
            logger.debug(f"Injected failure for {operation} on {path}: {failure}")
            raise failure

    def _snapshot(self, path: str) -> SnapshotEvent:
        return SnapshotEvent(path=path, records=self.records(path))

    def _publish(self, path: str) -> None:
        for subscription in list(self._subscriptions.get(path, [])):
            subscription.push(self._snapshot(path))
