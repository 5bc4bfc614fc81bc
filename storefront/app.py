"""FastAPI application: composition root of the storefront catalog.

Run with:
    uvicorn storefront.app:app --port 8080
"""

from __future__ import annotations

import asyncio
import logging as _logging
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Optional

import structlog
from fastapi import FastAPI

from storefront.api.catalog import router as catalog_router
from storefront.application.catalog.catalog_service import CatalogService
from storefront.config import Settings, get_settings
from storefront.domain.catalog.models import Product
from storefront.infrastructure.cache.ttl_cache import TTLCache
from storefront.infrastructure.shopify.graphql_client import ShopifyGraphQLClient

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure stdlib logging and structlog once, from LOG_LEVEL / LOG_FORMAT."""
    log_level = getattr(_logging, level.upper(), _logging.INFO)
    _logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def create_client(settings: Settings) -> ShopifyGraphQLClient:
    """Create an uninitialized Shopify client (enter it with ``async with``).

    Raises:
        ConfigurationError: If store URL or access token are missing
    """
    return ShopifyGraphQLClient(
        store_domain=settings.store_url,
        access_token=settings.admin_api_key,
        api_version=settings.api_version,
        timeout_seconds=settings.timeout_seconds,
        max_attempts=settings.max_attempts,
        max_backoff_seconds=settings.max_backoff_seconds,
    )


def build_catalog_service(client: ShopifyGraphQLClient, settings: Settings) -> CatalogService:
    vendor_cache: TTLCache[tuple[str, ...]] = TTLCache(
        name="vendors", ttl_seconds=settings.cache_ttl_seconds
    )
    product_cache: TTLCache[tuple[Product, ...]] = TTLCache(
        name="products", ttl_seconds=settings.cache_ttl_seconds
    )
    return CatalogService(
        client,
        vendor_cache=vendor_cache,
        product_cache=product_cache,
        options=settings.catalog_options(),
    )


def mask_token(token: Optional[str]) -> str:
    """Mask an access token for logs, keeping its last 4 characters.

    Example:
        >>> mask_token("shpat_abcdef1234")
        '****1234'
    """
    if not token:
        return "<unset>"
    if len(token) <= 8:
        return "****"
    return f"****{token[-4:]}"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifecycle: Shopify session, caches, service, preload.

    Startup fails with ConfigurationError when credentials are missing.
    """
    settings = get_settings()
    client = create_client(settings)

    logger.info(
        "lifespan.startup",
        store=client.store_domain,
        api_version=settings.api_version,
        access_token=mask_token(settings.admin_api_key),
        cache_ttl_s=settings.cache_ttl_seconds,
    )

    async with client as session:
        service = build_catalog_service(session, settings)
        app.state.catalog_service = service

        preload_task: Optional[asyncio.Task[None]] = None
        if settings.preload_on_startup:
            preload_task = asyncio.create_task(service.preload())

        logger.info("lifespan.ready", preload=settings.preload_on_startup)
        try:
            yield
        finally:
            logger.info("lifespan.shutdown")
            if preload_task is not None and not preload_task.done():
                preload_task.cancel()
                with suppress(asyncio.CancelledError):
                    await preload_task
            app.state.catalog_service = None


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    application = FastAPI(
        title="Storefront Catalog",
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.include_router(catalog_router)

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @application.get("/version")
    async def version() -> dict[str, str]:
        return {"version": settings.app_version}

    return application


app = create_app()
