"""Catalog use cases: cached vendor/product aggregation."""

from storefront.application.catalog.catalog_service import (
    CatalogOptions,
    CatalogService,
    filter_products_by_vendor,
)
from storefront.application.catalog.pagination import PaginationSweep

__all__ = [
    "CatalogOptions",
    "CatalogService",
    "PaginationSweep",
    "filter_products_by_vendor",
]
