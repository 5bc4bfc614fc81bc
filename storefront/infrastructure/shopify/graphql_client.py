"""
Shopify Admin GraphQL client.

Authenticated POST of GraphQL documents with rate-limit aware retries.

Key Features:
- HTTP 429 and GraphQL THROTTLED handling (Retry-After or query cost)
- Exponential backoff capped at 30s
- At most 5 attempts per call, then RetriesExhaustedError
"""

import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.domain.shared.errors import (
    ConfigurationError,
    GraphQLQueryError,
    MalformedResponseError,
    RateLimitError,
    RetriesExhaustedError,
    UpstreamError,
)

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ShopifyGraphQLClient:
    """
    Shopify Admin GraphQL API client.

    Each call is retried independently; no rate-limit state is shared
    between concurrent calls.

    Example:
        >>> async with ShopifyGraphQLClient("shop.myshopify.com", "shpat_...") as client:
        ...     data = await client.execute("{ shop { name } }")
    """

    ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"
    DEFAULT_API_VERSION = "2023-10"
    THROTTLED_CODE = "THROTTLED"

    def __init__(
        self,
        store_domain: Optional[str],
        access_token: Optional[str],
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = 10.0,
        max_attempts: int = 5,
        max_backoff_seconds: float = 30.0,
        sleep: Sleep = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize client.

        Args:
            store_domain: Store domain (``shop.myshopify.com``)
            access_token: Admin API access token
            api_version: Admin API version segment of the endpoint
            timeout_seconds: Per-request timeout
            max_attempts: Total attempts per call, first one included
            max_backoff_seconds: Upper bound of every wait between attempts
            sleep: Awaitable used to wait between attempts
            transport: Optional httpx transport (tests)

        Raises:
            ConfigurationError: If credentials are missing or limits invalid
        """
        if not store_domain or not store_domain.strip():
            raise ConfigurationError("Missing Shopify API credentials: SHOPIFY_STORE_URL is not set")
        if not access_token or not access_token.strip():
            raise ConfigurationError("Missing Shopify API credentials: SHOPIFY_ADMIN_API_KEY is not set")
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")

        self.store_domain = _normalize_domain(store_domain)
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.max_backoff_seconds = max_backoff_seconds
        self._access_token = access_token.strip()
        self._sleep = sleep
        self._transport = transport
        self._backoff = wait_exponential(multiplier=1, max=max_backoff_seconds)
        self._session: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"

    async def __aenter__(self) -> "ShopifyGraphQLClient":
        """Async context manager entry."""
        self._session = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            headers={
                "Content-Type": "application/json",
                self.ACCESS_TOKEN_HEADER: self._access_token,
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.aclose()
            self._session = None

    async def execute(
        self, query: str, variables: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """POST a GraphQL document and return the parsed JSON body.

        Args:
            query: GraphQL document
            variables: GraphQL variables

        Returns:
            Parsed response body

        Raises:
            RetriesExhaustedError: If every attempt was rate limited or failed
            GraphQLQueryError: If the document was rejected
            MalformedResponseError: If the body is not a JSON object
        """
        if not self._session:
            raise RuntimeError("Client not initialized. Use async context manager.")

        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((RateLimitError, UpstreamError)),
            sleep=self._sleep,
            before_sleep=self._log_retry,
        )

        result: dict[str, Any] = {}
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._post(payload, attempt.retry_state.attempt_number)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                "Shopify API retries exhausted",
                attempts=self.max_attempts,
                error=str(last_error),
            )
            msg = f"Shopify API throttled: gave up after {self.max_attempts} attempts"
            raise RetriesExhaustedError(msg, attempts=self.max_attempts) from last_error

        return result

    async def _post(self, payload: dict[str, Any], attempt: int) -> dict[str, Any]:
        assert self._session is not None

        try:
            response = await self._session.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Shopify request failed", attempt=attempt, error=str(e))
            raise UpstreamError(f"Shopify transport error: {e}") from e

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(
                "Shopify rate limited",
                attempt=attempt,
                retry_after=retry_after,
            )
            raise RateLimitError("Shopify API rate limit (HTTP 429)", retry_after=retry_after)

        if not response.is_success:
            logger.error(
                "Shopify API error",
                attempt=attempt,
                status=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(
                f"Shopify API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Shopify response is not valid JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("Shopify response is not a JSON object")

        self._check_graphql_errors(data, attempt)

        logger.debug("Shopify request complete", attempt=attempt, status=response.status_code)
        return data

    def _check_graphql_errors(self, data: dict[str, Any], attempt: int) -> None:
        errors = data.get("errors")
        if not errors:
            return
        if not isinstance(errors, list):
            errors = [errors]

        if any(_error_code(error) == self.THROTTLED_CODE for error in errors):
            retry_after = throttle_wait_seconds(data)
            logger.warning("Shopify query throttled", attempt=attempt, retry_after=retry_after)
            raise RateLimitError("Shopify API throttled (query cost)", retry_after=retry_after)

        messages = "; ".join(_error_message(error) for error in errors)
        if data.get("data") is None:
            raise GraphQLQueryError(f"Shopify GraphQL error: {messages}", errors=errors)

        logger.warning("Shopify GraphQL partial errors", attempt=attempt, errors=messages)

    def _wait(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None

        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return min(error.retry_after, self.max_backoff_seconds)

        return float(self._backoff(retry_state))

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        wait = retry_state.next_action.sleep if retry_state.next_action else None
        logger.info(
            "Retrying Shopify request",
            wait=wait,
            attempt=retry_state.attempt_number,
            error=str(outcome.exception()) if outcome is not None else None,
        )


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` header (delta-seconds or HTTP date).

    Returns:
        Seconds to wait, or None if absent or unparseable

    Example:
        >>> parse_retry_after("2.0")
        2.0
        >>> parse_retry_after(None) is None
        True
    """
    if not value:
        return None

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None

    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def throttle_wait_seconds(data: dict[str, Any]) -> Optional[float]:
    """Seconds until enough query cost is restored, from ``extensions.cost``."""
    cost = (data.get("extensions") or {}).get("cost") or {}
    status = cost.get("throttleStatus") or {}

    try:
        requested = float(cost["requestedQueryCost"])
        available = float(status["currentlyAvailable"])
        restore_rate = float(status["restoreRate"])
    except (KeyError, TypeError, ValueError):
        return None

    if restore_rate <= 0:
        return None
    return max(0.0, (requested - available) / restore_rate)


def _normalize_domain(store_domain: str) -> str:
    domain = store_domain.strip()
    for scheme in ("https://", "http://"):
        if domain.startswith(scheme):
            domain = domain[len(scheme):]
    return domain.rstrip("/")


def _error_code(error: Any) -> Optional[str]:
    if isinstance(error, dict):
        return (error.get("extensions") or {}).get("code")
    return None


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)
