"""Shared domain primitives."""

from storefront.domain.shared.errors import (
    ConfigurationError,
    DomainError,
    ExternalServiceError,
    GraphQLQueryError,
    MalformedResponseError,
    RateLimitError,
    RetriesExhaustedError,
    UpstreamError,
)

__all__ = [
    "ConfigurationError",
    "DomainError",
    "ExternalServiceError",
    "GraphQLQueryError",
    "MalformedResponseError",
    "RateLimitError",
    "RetriesExhaustedError",
    "UpstreamError",
]
