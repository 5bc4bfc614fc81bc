"""
Storefront catalog service.

Browses vendor/product catalog data from the Shopify Admin GraphQL API.

Structure:
- domain/: Catalog models, mapper, GraphQL documents, errors
- infrastructure/: Shopify transport and in-memory caches
- application/: Pagination sweeps and the catalog service
- api/: REST routes
- tests/: Test suite
"""

__version__ = "0.1.0"
