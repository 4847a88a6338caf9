from typing import Any, Dict, Optional
import asyncio
import json

import aiohttp

from inventory_sync.config import (
    FIREBASE_AUTH_TOKEN,
    FIREBASE_DATABASE_URL,
    STORE_REQUEST_TIMEOUT,
)
from inventory_sync.models.enums import FailureReason
from inventory_sync.models.errors import StoreFailure
from inventory_sync.models.events import ErrorEvent, SnapshotEvent
from inventory_sync.utils.common import generate_store_key, join_path
from inventory_sync.utils.firebase.sse import ServerSentEvent, ServerSentEventParser
from inventory_sync.utils.firebase.tree import CollectionTree
from inventory_sync.utils.logging import get_logger

from .subscription import Subscription

logger = get_logger(__name__)


def reason_for_status(status: int) -> FailureReason:
    if status in (401, 403):
        return FailureReason.PERMISSION_DENIED
    if status == 404:
        return FailureReason.NOT_FOUND
    if status == 408:
        return FailureReason.TIMEOUT
    if status == 429 or status >= 500:
        return FailureReason.UNAVAILABLE
    return FailureReason.REJECTED


def _error_message(body: str, status: int) -> str:
    """Firebase error bodies look like {"error": "Permission denied"}."""
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return body.strip() or f"HTTP {status}"


class FirebaseStore:
    """Firebase Realtime Database over its REST and streaming API."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: float = STORE_REQUEST_TIMEOUT,
    ):
        """
        Initialize the Firebase store.

        Args:
            database_url: Base URL, e.g. https://<project>-default-rtdb.firebaseio.com
            auth_token: Optional credential sent as the `auth` query parameter
            timeout: Total timeout in seconds for point reads and writes
        """
        self.database_url = (database_url or FIREBASE_DATABASE_URL or "").rstrip("/")
        if not self.database_url:
            raise ValueError("Database URL must be provided or set in FIREBASE_DATABASE_URL environment variable")

        self.auth_token = auth_token or FIREBASE_AUTH_TOKEN
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {"Content-Type": "application/json"}
        self.session = None

    async def __aenter__(self):
        """Context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        await self.close()

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if not self.session or self.session.closed:
            self.session = aiohttp.ClientSession(headers=self.headers)
        return self.session

    def _url(self, path: str, key: Optional[str] = None) -> str:
        location = join_path(path, key) if key else join_path(path)
        return f"{self.database_url}/{location}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    async def _request(
        self,
        method: str,
        path: str,
        key: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        session = self._ensure_session()
        url = self._url(path, key)

        try:
            async with session.request(
                method,
                url,
                params=self._params(),
                json=payload,
                timeout=self.timeout,
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise StoreFailure(
                        reason_for_status(response.status),
                        _error_message(body, response.status),
                    )
                return await response.json(content_type=None)
        except StoreFailure as e:
            logger.error(f"{method} {url} failed: {e}")
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"{method} {url} timed out")
            raise StoreFailure(FailureReason.TIMEOUT, f"{method} {path} timed out") from e
        except aiohttp.ContentTypeError as e:
            logger.error(f"{method} {url} returned an undecodable body: {e}")
            raise StoreFailure(FailureReason.INVALID_RESPONSE, str(e)) from e
        except aiohttp.ClientError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise StoreFailure(FailureReason.NETWORK, str(e)) from e
        except ValueError as e:
            logger.error(f"{method} {url} returned invalid JSON: {e}")
            raise StoreFailure(FailureReason.INVALID_RESPONSE, str(e)) from e

    async def get_by_key(self, path: str, key: str) -> Optional[Dict[str, Any]]:
        data = await self._request("GET", path, key)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StoreFailure(FailureReason.INVALID_RESPONSE, f"Record {path}/{key} is not an object")
        return data

    async def set_by_key(self, path: str, key: str, record: Dict[str, Any]) -> None:
        await self._request("PUT", path, key, record)

    async def update_by_key(self, path: str, key: str, fields: Dict[str, Any]) -> None:
        await self._request("PATCH", path, key, fields)

    async def delete_by_key(self, path: str, key: str) -> None:
        await self._request("DELETE", path, key)

    def generate_key(self, path: str) -> str:
        return generate_store_key(path)

    async def subscribe_collection(self, path: str) -> Subscription:
        path = join_path(path)
        subscription = Subscription(path)
        task = asyncio.create_task(self._stream(path, subscription))

        async def _release() -> None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Stream task for {path} ended with {e!r}")

        subscription.add_cancel_callback(_release)
        return subscription

    async def _stream(self, path: str, subscription: Subscription) -> None:
        """Read the event stream for `path` until it ends, fails, or is cancelled."""
        session = self._ensure_session()
        url = self._url(path)
        tree = CollectionTree()
        parser = ServerSentEventParser()

        try:
            async with session.get(
                url,
                params=self._params(),
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self.timeout.total),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    self._fail(subscription, reason_for_status(response.status), _error_message(body, response.status))
                    return

                logger.info(f"Streaming {url}")
                async for raw_line in response.content:
                    event = parser.feed(raw_line.decode("utf-8"))
                    if event is None:
                        continue
                    if not self._handle_event(event, tree, subscription):
                        return

            self._fail(subscription, FailureReason.UNAVAILABLE, "Stream closed by server")
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            self._fail(subscription, FailureReason.TIMEOUT, f"Connecting to {path} timed out")
        except aiohttp.ClientError as e:
            self._fail(subscription, FailureReason.NETWORK, str(e))
        except ValueError as e:
            self._fail(subscription, FailureReason.INVALID_RESPONSE, f"Unreadable stream data on {path}: {e}")

    def _handle_event(
        self, event: ServerSentEvent, tree: CollectionTree, subscription: Subscription
    ) -> bool:
        """Apply one streamed event. Returns False when the stream must stop."""
        path = subscription.path

        if event.event == "keep-alive":
            return True
        if event.event == "cancel":
            self._fail(subscription, FailureReason.PERMISSION_DENIED, event.data or "Subscription cancelled by server")
            return False
        if event.event == "auth_revoked":
            self._fail(subscription, FailureReason.AUTH_REVOKED, event.data or "Credential revoked")
            return False
        if event.event not in ("put", "patch"):
            logger.debug(f"Ignoring stream event {event.event} on {path}")
            return True

        try:
            payload = json.loads(event.data)
            if event.event == "put":
                tree.put(payload["path"], payload["data"])
            else:
                tree.patch(payload["path"], payload["data"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self._fail(subscription, FailureReason.INVALID_RESPONSE, f"Malformed {event.event} event: {e}")
            return False

        logger.debug(f"Applied {event.event} on {path}{payload['path']}")
        subscription.push(SnapshotEvent(path=path, records=tree.snapshot()))
        return True

    @staticmethod
    def _fail(subscription: Subscription, reason: FailureReason, message: str) -> None:
        logger.error(f"Subscription to {subscription.path} failed: {reason.value}: {message}")
        subscription.push(ErrorEvent(path=subscription.path, reason=reason, message=message))
