"""
Catalog domain models.

Products and pagination structures mapped from the Shopify Admin API.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

FALLBACK_IMAGE = "/fallback.jpg"
DEFAULT_PRICE = "0.00"
MISSING_ATTRIBUTE = "N/A"

T = TypeVar("T")


class Product(BaseModel):
    """Catalog product as served to the storefront.

    Every optional upstream field is replaced by a string default, so no
    field is ever ``None``.

    Example:
        >>> product = Product(id="gid://shopify/Product/1", title="Bar", vendor="Acme")
        >>> assert product.image == "/fallback.jpg"
        >>> assert product.price == "0.00"
        >>> assert product.ml == "N/A"
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque Shopify product GID")
    title: str = Field("", description="Product title")
    vendor: str = Field("", description="Vendor name")
    image: str = Field(FALLBACK_IMAGE, description="Featured image URL")
    price: str = Field(DEFAULT_PRICE, description="First variant price")
    ml: str = Field(MISSING_ATTRIBUTE, description="Capacity metafield")
    battery: str = Field(MISSING_ATTRIBUTE, description="Battery capacity metafield")
    variants: tuple[str, ...] = Field(default=(), description="Per-variant prices")

    def matches_vendor(self, needle: str) -> bool:
        """Case-insensitive substring match on vendor name."""
        return needle.lower() in self.vendor.lower()


@dataclass(frozen=True)
class PageInfo:
    """Upstream pagination metadata."""

    has_next_page: bool
    end_cursor: Optional[str] = None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One fetched page: its items plus the page-info that came with it."""

    items: tuple[T, ...]
    page_info: PageInfo


class SweepStatus(str, Enum):
    """Outcome of a pagination sweep."""

    COMPLETE = "complete"
    PARTIAL = "partial"  # stopped by the wall-clock ceiling
    FAILED = "failed"


@dataclass(frozen=True)
class SweepResult(Generic[T]):
    """Items gathered by one sweep and how the sweep ended."""

    items: tuple[T, ...]
    status: SweepStatus
    pages: int = 0
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str, pages: int = 0) -> "SweepResult[T]":
        return cls(items=(), status=SweepStatus.FAILED, pages=pages, error=error)

    @property
    def is_complete(self) -> bool:
        return self.status is SweepStatus.COMPLETE


class ResultOrigin(str, Enum):
    """Where a value returned by the catalog service came from."""

    CACHE = "cache"
    UPSTREAM = "upstream"
    PARTIAL = "partial"
    STALE = "stale"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CatalogResult(Generic[T]):
    """Value handed to callers of the catalog service.

    Distinguishes a genuinely empty catalog (``origin=UPSTREAM``) from an
    empty one caused by a failed sweep (``origin=UNAVAILABLE``).
    """

    items: tuple[T, ...]
    origin: ResultOrigin
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.origin in (
            ResultOrigin.PARTIAL,
            ResultOrigin.STALE,
            ResultOrigin.UNAVAILABLE,
        )


@dataclass(frozen=True)
class Catalog:
    """Vendors and products fetched together."""

    vendors: CatalogResult[str]
    products: CatalogResult[Product]
