"""
Shopify catalog data mapper.

Transforms Shopify Admin GraphQL responses to domain models.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from storefront.domain.catalog.models import (
    DEFAULT_PRICE,
    FALLBACK_IMAGE,
    MISSING_ATTRIBUTE,
    Page,
    PageInfo,
    Product,
)
from storefront.domain.shared.errors import MalformedResponseError


class CatalogMapper:
    """Maps Shopify ``products`` connection pages to domain models."""

    @staticmethod
    def products_connection(response_data: dict[str, Any]) -> dict[str, Any]:
        """Extract ``data.products`` from a GraphQL response.

        Raises:
            MalformedResponseError: If the connection is missing
        """
        data = response_data.get("data") if isinstance(response_data, dict) else None
        connection = data.get("products") if isinstance(data, dict) else None

        if not isinstance(connection, dict):
            raise MalformedResponseError("Invalid API response structure: data.products missing")

        return connection

    @staticmethod
    def parse_page_info(connection: dict[str, Any]) -> PageInfo:
        """Parse ``pageInfo`` of a connection.

        Raises:
            MalformedResponseError: If pageInfo or hasNextPage is missing
        """
        page_info = connection.get("pageInfo")
        if not isinstance(page_info, dict) or not isinstance(page_info.get("hasNextPage"), bool):
            raise MalformedResponseError("Invalid API response structure: pageInfo missing")

        end_cursor = page_info.get("endCursor")
        return PageInfo(
            has_next_page=page_info["hasNextPage"],
            end_cursor=end_cursor if isinstance(end_cursor, str) else None,
        )

    @staticmethod
    def nodes(connection: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the ``node`` of every edge, skipping empty edges."""
        edges = connection.get("edges")
        if not isinstance(edges, list):
            raise MalformedResponseError("Invalid API response structure: edges missing")

        return [
            edge["node"]
            for edge in edges
            if isinstance(edge, dict) and isinstance(edge.get("node"), dict)
        ]

    @staticmethod
    def parse_vendor_page(response_data: dict[str, Any], product_type: str) -> Page[str]:
        """Parse a vendor page into trimmed vendor names of one product type.

        Example:
            >>> response = {
            ...     "data": {
            ...         "products": {
            ...             "edges": [
            ...                 {"node": {"vendor": " Acme ", "productType": "DISPOSABLES"}},
            ...                 {"node": {"vendor": "Other", "productType": "PODS"}},
            ...             ],
            ...             "pageInfo": {"hasNextPage": False, "endCursor": None},
            ...         }
            ...     }
            ... }
            >>> page = CatalogMapper.parse_vendor_page(response, "DISPOSABLES")
            >>> assert page.items == ("Acme",)
        """
        connection = CatalogMapper.products_connection(response_data)
        vendors = []

        for node in CatalogMapper.nodes(connection):
            if node.get("productType") != product_type:
                continue
            vendor = (node.get("vendor") or "").strip()
            if vendor:
                vendors.append(vendor)

        return Page(items=tuple(vendors), page_info=CatalogMapper.parse_page_info(connection))

    @staticmethod
    def parse_product_page(response_data: dict[str, Any]) -> Page[Product]:
        """Parse a product page into ``Product`` entities, in upstream order."""
        connection = CatalogMapper.products_connection(response_data)
        products = tuple(CatalogMapper.to_product(node) for node in CatalogMapper.nodes(connection))
        return Page(items=products, page_info=CatalogMapper.parse_page_info(connection))

    @staticmethod
    def to_product(node: dict[str, Any]) -> Product:
        """Convert one product node, substituting defaults for absent fields.

        Raises:
            MalformedResponseError: If the node has no id
        """
        product_id = node.get("id")
        if not product_id:
            raise MalformedResponseError("Product node without id")

        raw_prices = [_money(variant.get("price")) for variant in _variant_nodes(node.get("variants"))]
        variant_prices = tuple(price for price in raw_prices if price)
        image = (node.get("featuredImage") or {}).get("url")

        return Product(
            id=str(product_id),
            title=node.get("title") or "",
            vendor=node.get("vendor") or "",
            image=image or FALLBACK_IMAGE,
            price=(raw_prices[0] if raw_prices else None) or DEFAULT_PRICE,
            ml=_metafield_value(node.get("capacity")),
            battery=_metafield_value(node.get("battery")),
            variants=variant_prices,
        )


def collect_vendors(names: Iterable[str]) -> list[str]:
    """Deduplicate trimmed vendor names, sorted case-sensitively.

    Example:
        >>> collect_vendors(["Zeta", "Acme ", "acme", " Acme"])
        ['Acme', 'Zeta', 'acme']
    """
    return sorted({name.strip() for name in names if name and name.strip()})


def _variant_nodes(variants: Any) -> list[dict[str, Any]]:
    if not isinstance(variants, dict):
        return []
    edges = variants.get("edges") or []
    return [edge["node"] for edge in edges if isinstance(edge, dict) and isinstance(edge.get("node"), dict)]


def _money(value: Any) -> Optional[str]:
    # Older API versions return a scalar, newer ones a MoneyV2 object
    if isinstance(value, dict):
        value = value.get("amount")
    if value is None or value == "":
        return None
    return str(value)


def _metafield_value(metafield: Any) -> str:
    if not isinstance(metafield, dict):
        return MISSING_ATTRIBUTE
    value = metafield.get("value")
    return str(value) if value else MISSING_ATTRIBUTE
