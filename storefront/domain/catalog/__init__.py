"""Catalog domain: products, vendors, pagination."""

from storefront.domain.catalog.mapper import CatalogMapper, collect_vendors
from storefront.domain.catalog.models import (
    Catalog,
    CatalogResult,
    Page,
    PageInfo,
    Product,
    ResultOrigin,
    SweepResult,
    SweepStatus,
)

__all__ = [
    "Catalog",
    "CatalogMapper",
    "CatalogResult",
    "Page",
    "PageInfo",
    "Product",
    "ResultOrigin",
    "SweepResult",
    "SweepStatus",
    "collect_vendors",
]
