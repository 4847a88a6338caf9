from typing import Any, Dict, Optional, Protocol

from .subscription import Subscription


class RemoteStore(Protocol):
    """Capabilities the inventory core needs from a realtime store.

    Every remote problem surfaces as `StoreFailure`; implementations do not
    retry.
    """

    async def subscribe_collection(self, path: str) -> Subscription:
        """Start a stream of full snapshots of `path` (first one immediately)."""
        ...

    async def get_by_key(self, path: str, key: str) -> Optional[Dict[str, Any]]:
        """Point read of one record; None when absent."""
        ...

    async def set_by_key(self, path: str, key: str, record: Dict[str, Any]) -> None:
        """Overwrite one record."""
        ...

    async def update_by_key(self, path: str, key: str, fields: Dict[str, Any]) -> None:
        """Merge-patch the named fields of one record."""
        ...

    async def delete_by_key(self, path: str, key: str) -> None:
        """Delete one record; deleting an absent record succeeds."""
        ...

    def generate_key(self, path: str) -> str:
        """Collision-resistant key for a record about to be created under `path`."""
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...
