"""REST endpoints for the storefront catalog.

Degraded results (partial, stale, unavailable) are served with HTTP 200;
only unexpected failures become HTTP 500 with an ``error`` body.
"""

from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storefront.application.catalog.catalog_service import CatalogService
from storefront.domain.catalog.models import CatalogResult, Product

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


class ProductsResponse(BaseModel):
    """Response model for the product list."""

    products: list[Product]


class VendorsResponse(BaseModel):
    """Response model for the vendor list."""

    vendors: list[str]


class CatalogResponse(BaseModel):
    """Response model for vendors and products together."""

    vendors: list[str]
    products: list[Product]


class ErrorResponse(BaseModel):
    """Response model for catalog errors."""

    error: str


def get_catalog_service(request: Request) -> Optional[CatalogService]:
    """Catalog service built by the app lifespan, None outside of it."""
    return getattr(request.app.state, "catalog_service", None)


def _require(service: Optional[CatalogService]) -> CatalogService:
    if service is None:
        raise RuntimeError("Catalog service not initialized")
    return service


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content=ErrorResponse(error=message).model_dump())


def _log_degraded(endpoint: str, result: CatalogResult) -> None:
    if result.degraded:
        logger.warning(
            "Serving degraded catalog data",
            endpoint=endpoint,
            origin=result.origin.value,
            items=len(result.items),
            error=result.error,
        )


@router.get(
    "/products",
    response_model=ProductsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_products(
    vendor: Optional[str] = Query(None, description="Case-insensitive vendor substring"),
    service: Optional[CatalogService] = Depends(get_catalog_service),
) -> Union[ProductsResponse, JSONResponse]:
    """List products, optionally filtered by vendor.

    Example:
        ```bash
        curl "http://localhost:8080/api/products?vendor=acme"
        ```
    """
    try:
        result = await _require(service).find_products(vendor)
    except Exception as e:
        logger.exception("Failed to fetch products", vendor=vendor, error=str(e))
        return _error("Failed to fetch products")

    _log_degraded("products", result)
    return ProductsResponse(products=list(result.items))


@router.get(
    "/vendors",
    response_model=VendorsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_vendors(
    service: Optional[CatalogService] = Depends(get_catalog_service),
) -> Union[VendorsResponse, JSONResponse]:
    """List unique vendor names, sorted."""
    try:
        result = await _require(service).get_vendors()
    except Exception as e:
        logger.exception("Failed to fetch vendors", error=str(e))
        return _error("Failed to fetch vendors")

    _log_degraded("vendors", result)
    return VendorsResponse(vendors=list(result.items))


@router.get(
    "/catalog",
    response_model=CatalogResponse,
    responses={500: {"model": ErrorResponse}},
)
async def get_catalog(
    service: Optional[CatalogService] = Depends(get_catalog_service),
) -> Union[CatalogResponse, JSONResponse]:
    """Vendors and products in one call."""
    try:
        catalog = await _require(service).get_catalog()
    except Exception as e:
        logger.exception("Failed to fetch catalog", error=str(e))
        return _error("Failed to fetch catalog")

    _log_degraded("vendors", catalog.vendors)
    _log_degraded("products", catalog.products)
    return CatalogResponse(
        vendors=list(catalog.vendors.items),
        products=list(catalog.products.items),
    )
