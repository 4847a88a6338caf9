import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from inventory_sync.config import GZIP_MINIMUM_SIZE, PRODUCTS_PATH, SYNC_READY_TIMEOUT
from inventory_sync.database.database import create_store
from inventory_sync.routes import product
from inventory_sync.services.product import ProductService
from inventory_sync.services.store import RemoteStore
from inventory_sync.services.synchronizer import InventorySynchronizer
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(store: Optional[RemoteStore] = None) -> FastAPI:
    """Build the application; the store is opened once at startup and closed at shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store if store is not None else create_store()
        app.state.synchronizer = InventorySynchronizer(app.state.store, PRODUCTS_PATH)
        app.state.product_service = ProductService(app.state.store, PRODUCTS_PATH, app.state.synchronizer)

        await app.state.synchronizer.start()
        try:
            state = await app.state.synchronizer.wait_until_ready(timeout=SYNC_READY_TIMEOUT)
            logger.info(f"Inventory synchronizer started in state {state.value}")
        except asyncio.TimeoutError:
            logger.warning("No inventory snapshot received yet; serving while loading")

        try:
            yield
        finally:
            try:
                await app.state.synchronizer.stop()
            finally:
                await app.state.store.close()

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(product.router)
    return app


app = create_app()
