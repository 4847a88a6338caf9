from typing import Optional

from inventory_sync.config import FIREBASE_AUTH_TOKEN, FIREBASE_DATABASE_URL
from inventory_sync.services.firebase import FirebaseStore
from inventory_sync.services.memory import MemoryStore
from inventory_sync.services.store import RemoteStore
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


def create_store(
    database_url: Optional[str] = FIREBASE_DATABASE_URL,
    auth_token: Optional[str] = FIREBASE_AUTH_TOKEN,
) -> RemoteStore:
    """Build the process-wide store handle from configuration."""
    if database_url:
        logger.info(f"Using Firebase Realtime Database at {database_url}")
        return FirebaseStore(database_url=database_url, auth_token=auth_token)

    logger.warning("FIREBASE_DATABASE_URL is not set; using the in-memory store")
    return MemoryStore()
