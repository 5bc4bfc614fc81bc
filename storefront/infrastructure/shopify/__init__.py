"""Shopify Admin API integration."""

from storefront.infrastructure.shopify.graphql_client import ShopifyGraphQLClient

__all__ = ["ShopifyGraphQLClient"]
