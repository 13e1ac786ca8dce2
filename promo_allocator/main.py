from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
import uvicorn
from fastapi import FastAPI

from promo_allocator.api.routes.health import router as health_router
from promo_allocator.api.routes.internal_codes import router as internal_codes_router
from promo_allocator.codes.keys import CodeStorageKeys
from promo_allocator.codes.service import PromoCodeManager
from promo_allocator.core.config import Settings, get_settings
from promo_allocator.core.logging import configure_logging
from promo_allocator.storage.base import KeyValueStore
from promo_allocator.storage.factory import build_key_value_store

logger = structlog.get_logger(__name__)


def build_code_manager(settings: Settings, store: KeyValueStore) -> PromoCodeManager:
    return PromoCodeManager(
        store,
        keys=CodeStorageKeys(namespace=settings.storage_namespace),
        default_validity=timedelta(days=settings.promo_default_validity_days),
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if store is None:
        store = build_key_value_store(settings)
    code_manager = build_code_manager(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.promo_auto_initialize:
            initialized = await code_manager.auto_initialize_your_codes()
            logger.info("app_code_pool_bootstrap", initialized=initialized)
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(
        title="Promo Allocator API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.code_manager = code_manager
    app.include_router(health_router)
    app.include_router(internal_codes_router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "promo_allocator.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
