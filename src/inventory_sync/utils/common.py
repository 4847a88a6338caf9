# utils/common.py
from cuid2 import cuid_wrapper

from inventory_sync.utils.logging import get_logger


logger = get_logger(__name__)

_generate_cuid = cuid_wrapper()


def generate_store_key(path: str) -> str:
    """Generate a collision-resistant key for a new record under `path`."""
    key = _generate_cuid()
    logger.debug(f"Generated key {key} for {path}")
    return key


def join_path(*parts: str) -> str:
    """Join store path segments, e.g. ("products/", "abc") -> "products/abc"."""
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))
