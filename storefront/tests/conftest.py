"""
Shared fixtures for storefront tests.

Time and HTTP are always faked: no test talks to Shopify or sleeps.
"""

from typing import Any, Callable

import pytest

from storefront.config import get_settings
from storefront.domain.catalog.models import Product
from storefront.infrastructure.shopify.graphql_client import ShopifyGraphQLClient
from storefront.tests.factories import (
    ACCESS_TOKEN,
    STORE_DOMAIN,
    FakeClock,
    RecordingSleep,
    ShopifyStub,
)


# ═══════════════════════════════════════════════════════════
# ENVIRONMENT
# ═══════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Any:
    """Settings are cached per process; reset them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ═══════════════════════════════════════════════════════════
# TIME
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    """Sleep that advances the fake clock by the requested delay."""
    return RecordingSleep(clock)


# ═══════════════════════════════════════════════════════════
# SHOPIFY CLIENT
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def make_client(sleep: RecordingSleep) -> Callable[..., ShopifyGraphQLClient]:
    """Factory for a client wired to a ShopifyStub."""

    def _make(stub: ShopifyStub, **kwargs: Any) -> ShopifyGraphQLClient:
        return ShopifyGraphQLClient(
            store_domain=kwargs.pop("store_domain", STORE_DOMAIN),
            access_token=kwargs.pop("access_token", ACCESS_TOKEN),
            sleep=kwargs.pop("sleep", sleep),
            transport=stub.transport,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_products() -> tuple[Product, ...]:
    return (
        Product(id="gid://shopify/Product/1", title="Mango Ice", vendor="Acme Vapor", price="19.99"),
        Product(id="gid://shopify/Product/2", title="Blue Razz", vendor="Zeta", price="14.50"),
        Product(id="gid://shopify/Product/3", title="Watermelon", vendor="ACME Labs", price="9.99"),
    )
