"""HTTP API routes."""

from storefront.api.catalog import get_catalog_service, router

__all__ = ["get_catalog_service", "router"]
