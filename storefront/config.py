"""Environment-based configuration.

Values come from process environment, with ``.env`` in the working directory
loaded first (existing variables win).

Usage:
    from storefront.config import get_settings

    settings = get_settings()
    settings.cache_ttl_seconds  # 600.0
"""

import os
from functools import lru_cache
from typing import Callable, Mapping, Optional, TypeVar

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from storefront.application.catalog.catalog_service import CatalogOptions
from storefront.domain.catalog.queries import MAX_PAGE_SIZE, MetafieldRef
from storefront.domain.shared.errors import ConfigurationError

N = TypeVar("N", int, float)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseModel):
    """Runtime settings of the storefront service."""

    model_config = ConfigDict(frozen=True)

    store_url: Optional[str] = None
    admin_api_key: Optional[str] = Field(default=None, repr=False)
    api_version: str = "2023-10"
    timeout_seconds: float = 10.0
    max_attempts: int = 5
    max_backoff_seconds: float = 30.0
    page_size: int = MAX_PAGE_SIZE
    variants_per_product: int = 1
    cache_ttl_seconds: float = 600.0
    sweep_deadline_seconds: float = 30.0
    sweep_fan_out: int = 3
    sweep_partitions: tuple[str, ...] = ()
    vendor_product_type: str = "DISPOSABLES"
    metafield_namespace: str = "custom"
    capacity_metafield_key: str = "ml"
    battery_metafield_key: str = "battery_capacity"
    preload_on_startup: bool = True
    log_level: str = "INFO"
    log_format: str = "console"
    app_version: str = "0.0.0-dev"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric or boolean variable is invalid
        """
        env = os.environ if environ is None else environ

        settings = cls(
            store_url=env.get("SHOPIFY_STORE_URL") or None,
            admin_api_key=env.get("SHOPIFY_ADMIN_API_KEY") or None,
            api_version=env.get("SHOPIFY_API_VERSION", "2023-10"),
            timeout_seconds=_number(env, "SHOPIFY_TIMEOUT_S", 10.0, float),
            max_attempts=_number(env, "SHOPIFY_MAX_ATTEMPTS", 5, int),
            max_backoff_seconds=_number(env, "SHOPIFY_MAX_BACKOFF_S", 30.0, float),
            page_size=_number(env, "SHOPIFY_PAGE_SIZE", MAX_PAGE_SIZE, int),
            variants_per_product=_number(env, "SHOPIFY_VARIANTS_PER_PRODUCT", 1, int),
            cache_ttl_seconds=_number(env, "CATALOG_CACHE_TTL_S", 600.0, float),
            sweep_deadline_seconds=_number(env, "SWEEP_DEADLINE_S", 30.0, float),
            sweep_fan_out=_number(env, "SWEEP_FAN_OUT", 3, int),
            sweep_partitions=parse_partitions(env.get("SWEEP_PARTITIONS")),
            vendor_product_type=env.get("VENDOR_PRODUCT_TYPE", "DISPOSABLES"),
            metafield_namespace=env.get("METAFIELD_NAMESPACE", "custom"),
            capacity_metafield_key=env.get("CAPACITY_METAFIELD_KEY", "ml"),
            battery_metafield_key=env.get("BATTERY_METAFIELD_KEY", "battery_capacity"),
            preload_on_startup=_flag(env, "PRELOAD_ON_STARTUP", True),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_format=env.get("LOG_FORMAT", "console").lower(),
            app_version=env.get("APP_VERSION", "0.0.0-dev"),
        )
        settings.validate_limits()
        return settings

    def validate_limits(self) -> None:
        """Check ranges that would otherwise fail deep inside a request."""
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(f"SHOPIFY_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}")
        if self.max_attempts < 1:
            raise ConfigurationError("SHOPIFY_MAX_ATTEMPTS must be at least 1")
        if self.variants_per_product < 1:
            raise ConfigurationError("SHOPIFY_VARIANTS_PER_PRODUCT must be at least 1")
        if self.sweep_fan_out < 1:
            raise ConfigurationError("SWEEP_FAN_OUT must be at least 1")
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError("CATALOG_CACHE_TTL_S must be positive")
        if self.sweep_deadline_seconds <= 0:
            raise ConfigurationError("SWEEP_DEADLINE_S must be positive")

    def catalog_options(self) -> CatalogOptions:
        return CatalogOptions(
            vendor_product_type=self.vendor_product_type,
            page_size=self.page_size,
            variants_per_product=self.variants_per_product,
            capacity_metafield=MetafieldRef(self.metafield_namespace, self.capacity_metafield_key),
            battery_metafield=MetafieldRef(self.metafield_namespace, self.battery_metafield_key),
            partitions=self.sweep_partitions or (None,),
            fan_out=self.sweep_fan_out,
            deadline_seconds=self.sweep_deadline_seconds,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings (loads ``.env`` on first call)."""
    load_dotenv()
    return Settings.from_env()


def parse_partitions(raw: Optional[str]) -> tuple[str, ...]:
    """Split ``;``-separated search filters, dropping blanks.

    Example:
        >>> parse_partitions("vendor:A* ; vendor:B*;")
        ('vendor:A*', 'vendor:B*')
    """
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(";") if part.strip())


def _number(env: Mapping[str, str], name: str, default: N, cast: Callable[[str], N]) -> N:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
