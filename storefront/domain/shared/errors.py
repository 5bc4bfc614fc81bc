"""
Domain exceptions.

Typed exceptions for explicit error handling across the catalog
ingestion layer.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All storefront exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CONFIGURATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ConfigurationError(DomainError):
    """
    Process configuration is missing or invalid.

    Raised when:
    - Store domain or access token not set
    - Numeric setting cannot be parsed

    Always raised before any network call.

    Example:
        >>> raise ConfigurationError("SHOPIFY_ADMIN_API_KEY is not set")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    Upstream call failed.

    Base class for all Shopify Admin API errors.
    """

    pass


class RateLimitError(ExternalServiceError):
    """
    Upstream rate limit hit (HTTP 429 or GraphQL THROTTLED).

    Recoverable: the transport waits and retries.

    Example:
        >>> raise RateLimitError("Shopify rate limit", retry_after=2.0)
    """

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(ExternalServiceError):
    """
    Non-2xx, non-429 response or transport failure.

    Retried within the same attempt limit as rate limits.

    Example:
        >>> raise UpstreamError("Shopify API error: 502", status_code=502)
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetriesExhaustedError(ExternalServiceError):
    """
    Attempt limit reached without a successful response.

    Fatal to the calling sweep.
    """

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class GraphQLQueryError(ExternalServiceError):
    """
    GraphQL ``errors`` payload returned without data.

    Not retried: the same document would fail again.
    """

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


# ═══════════════════════════════════════════════════════════
# RESPONSE SHAPE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class MalformedResponseError(DomainError):
    """
    Upstream JSON is missing expected nested fields.

    Raised when:
    - Body is not JSON
    - ``data.products`` or ``pageInfo`` missing
    - Cursor does not advance while ``hasNextPage`` is true

    Example:
        >>> raise MalformedResponseError("data.products missing")
    """

    pass
