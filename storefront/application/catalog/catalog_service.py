"""
Catalog service.

Cache gate and aggregation for vendors and products:

    get_vendors / get_products
      → cache fresh?  → return cached value (no network)
      → sweep all pages through the Shopify client
          complete → replace cache, origin=upstream
          partial  → return items, cache untouched, origin=partial
          failed   → previous value as origin=stale, else origin=unavailable
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar

import structlog

from storefront.application.catalog.pagination import (
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_FAN_OUT,
    PaginationSweep,
)
from storefront.domain.catalog.mapper import CatalogMapper, collect_vendors
from storefront.domain.catalog.models import (
    Catalog,
    CatalogResult,
    Page,
    Product,
    ResultOrigin,
    SweepResult,
    SweepStatus,
)
from storefront.domain.catalog.queries import (
    MAX_PAGE_SIZE,
    VENDOR_PAGE_QUERY,
    MetafieldRef,
    build_product_page_query,
    page_variables,
)
from storefront.infrastructure.cache.ttl_cache import TTLCache
from storefront.infrastructure.shopify.graphql_client import ShopifyGraphQLClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CatalogOptions:
    """Query and sweep parameters of the catalog service."""

    vendor_product_type: str = "DISPOSABLES"
    page_size: int = MAX_PAGE_SIZE
    variants_per_product: int = 1
    capacity_metafield: MetafieldRef = MetafieldRef("custom", "ml")
    battery_metafield: MetafieldRef = MetafieldRef("custom", "battery_capacity")
    partitions: tuple[Optional[str], ...] = (None,)
    fan_out: int = DEFAULT_FAN_OUT
    deadline_seconds: Optional[float] = DEFAULT_DEADLINE_SECONDS


class CatalogService:
    """Vendor and product catalog backed by two TTL caches.

    Errors from the upstream API never propagate out of ``get_vendors`` or
    ``get_products``; they show up as the ``origin`` of the result.

    Example:
        >>> service = CatalogService(client, vendor_cache, product_cache)
        >>> vendors = await service.get_vendors()
        >>> vendors.items
        ('Acme', 'Zeta')
    """

    def __init__(
        self,
        client: ShopifyGraphQLClient,
        vendor_cache: TTLCache[tuple[str, ...]],
        product_cache: TTLCache[tuple[Product, ...]],
        options: CatalogOptions = CatalogOptions(),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize service.

        Args:
            client: Initialized Shopify client (inside its async context)
            vendor_cache: Cache of the sorted vendor names
            product_cache: Cache of the products in upstream order
            options: Query and sweep parameters
            clock: Monotonic time source for sweep deadlines
        """
        self.client = client
        self.vendor_cache = vendor_cache
        self.product_cache = product_cache
        self.options = options
        self._clock = clock
        self._product_query = build_product_page_query(
            options.capacity_metafield,
            options.battery_metafield,
            options.variants_per_product,
        )

    async def get_vendors(self) -> CatalogResult[str]:
        """Unique trimmed vendor names of the configured product type, sorted."""
        cached = self.vendor_cache.get()
        if cached is not None:
            return CatalogResult(items=cached, origin=ResultOrigin.CACHE)

        sweep = await self._sweep(self._fetch_vendor_page, "vendors")
        return self._settle(self.vendor_cache, sweep, _reduce_vendors)

    async def get_products(self) -> CatalogResult[Product]:
        """All products, in upstream order."""
        cached = self.product_cache.get()
        if cached is not None:
            return CatalogResult(items=cached, origin=ResultOrigin.CACHE)

        sweep = await self._sweep(self._fetch_product_page, "products")
        return self._settle(self.product_cache, sweep, tuple)

    async def get_catalog(self) -> Catalog:
        """Vendors and products, fetched concurrently."""
        vendors, products = await asyncio.gather(self.get_vendors(), self.get_products())
        return Catalog(vendors=vendors, products=products)

    async def find_products(self, vendor: Optional[str] = None) -> CatalogResult[Product]:
        """Products whose vendor contains ``vendor`` (case-insensitive).

        A missing or blank ``vendor`` returns every product.
        """
        result = await self.get_products()
        return CatalogResult(
            items=filter_products_by_vendor(result.items, vendor),
            origin=result.origin,
            error=result.error,
        )

    async def preload(self) -> None:
        """Warm both caches. Failures are logged, never raised."""
        logger.info("Catalog preload started")
        try:
            catalog = await self.get_catalog()
        except Exception as e:
            logger.exception("Catalog preload failed", error=str(e))
            return

        logger.info(
            "Catalog preload finished",
            vendors=len(catalog.vendors.items),
            vendors_origin=catalog.vendors.origin.value,
            products=len(catalog.products.items),
            products_origin=catalog.products.origin.value,
        )

    async def _sweep(self, fetch_page, name: str) -> SweepResult:
        sweep = PaginationSweep(
            fetch_page,
            name=name,
            fan_out=self.options.fan_out,
            deadline_seconds=self.options.deadline_seconds,
            clock=self._clock,
        )
        return await sweep.run(self.options.partitions)

    async def _fetch_vendor_page(self, cursor: Optional[str], search: Optional[str]) -> Page[str]:
        data = await self.client.execute(
            VENDOR_PAGE_QUERY,
            page_variables(self.options.page_size, cursor, search),
        )
        return CatalogMapper.parse_vendor_page(data, self.options.vendor_product_type)

    async def _fetch_product_page(
        self, cursor: Optional[str], search: Optional[str]
    ) -> Page[Product]:
        data = await self.client.execute(
            self._product_query,
            page_variables(self.options.page_size, cursor, search),
        )
        return CatalogMapper.parse_product_page(data)

    def _settle(
        self,
        cache: TTLCache[tuple[T, ...]],
        sweep: SweepResult,
        reduce: Callable[[Sequence], tuple[T, ...]],
    ) -> CatalogResult[T]:
        if sweep.status is SweepStatus.COMPLETE:
            items = reduce(sweep.items)
            cache.set(items)
            return CatalogResult(items=items, origin=ResultOrigin.UPSTREAM)

        if sweep.status is SweepStatus.PARTIAL:
            items = reduce(sweep.items)
            logger.warning(
                "Serving partial catalog, cache not updated",
                cache=cache.name,
                items=len(items),
            )
            return CatalogResult(items=items, origin=ResultOrigin.PARTIAL)

        previous = cache.peek()
        if previous is not None:
            logger.warning(
                "Serving stale catalog after failed refresh",
                cache=cache.name,
                age=round(cache.age() or 0.0, 2),
                error=sweep.error,
            )
            return CatalogResult(items=previous, origin=ResultOrigin.STALE, error=sweep.error)

        logger.error("Catalog unavailable", cache=cache.name, error=sweep.error)
        return CatalogResult(items=(), origin=ResultOrigin.UNAVAILABLE, error=sweep.error)


def filter_products_by_vendor(
    products: Sequence[Product], vendor: Optional[str]
) -> tuple[Product, ...]:
    """Keep products whose vendor contains ``vendor``, ignoring case.

    Example:
        >>> items = (Product(id="1", vendor="Acme Labs"), Product(id="2", vendor="Zeta"))
        >>> [p.id for p in filter_products_by_vendor(items, "acme")]
        ['1']
    """
    if vendor is None or not vendor.strip():
        return tuple(products)
    return tuple(product for product in products if product.matches_vendor(vendor))


def _reduce_vendors(names: Sequence[str]) -> tuple[str, ...]:
    return tuple(collect_vendors(names))
