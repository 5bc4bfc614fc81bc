"""
GraphQL documents for the Shopify Admin API.

Both documents page through ``products`` with ``first``/``after`` and an
optional search ``query`` used for sweep partitions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

MAX_PAGE_SIZE = 250

VENDOR_PAGE_QUERY = """
query VendorPage($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    edges {
      node {
        vendor
        productType
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

_PRODUCT_PAGE_TEMPLATE = """
query ProductPage($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    edges {
      node {
        id
        title
        vendor
        featuredImage {
          url
        }
        variants(first: %(variants)d) {
          edges {
            node {
              price
            }
          }
        }
        capacity: metafield(namespace: %(capacity_ns)s, key: %(capacity_key)s) {
          value
        }
        battery: metafield(namespace: %(battery_ns)s, key: %(battery_key)s) {
          value
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""


@dataclass(frozen=True)
class MetafieldRef:
    """Namespace + key of a product metafield."""

    namespace: str
    key: str


def build_product_page_query(
    capacity: MetafieldRef,
    battery: MetafieldRef,
    variants_per_product: int = 1,
) -> str:
    """Render the product page document.

    Metafield namespaces and keys are JSON-quoted so they are valid GraphQL
    string literals.

    Args:
        capacity: Metafield holding the capacity attribute (aliased ``capacity``)
        battery: Metafield holding the battery capacity (aliased ``battery``)
        variants_per_product: Number of variants requested per product

    Returns:
        GraphQL document string
    """
    if variants_per_product < 1:
        raise ValueError("variants_per_product must be at least 1")

    return _PRODUCT_PAGE_TEMPLATE % {
        "variants": variants_per_product,
        "capacity_ns": json.dumps(capacity.namespace),
        "capacity_key": json.dumps(capacity.key),
        "battery_ns": json.dumps(battery.namespace),
        "battery_key": json.dumps(battery.key),
    }


def page_variables(
    page_size: int, cursor: Optional[str] = None, search: Optional[str] = None
) -> dict[str, Any]:
    """Variables for one page request.

    ``cursor=None`` requests the first page.
    """
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    return {"first": page_size, "after": cursor, "query": search}
