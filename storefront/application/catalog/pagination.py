"""
Cursor pagination sweep.

Walks a ``products`` connection from the first page to
``hasNextPage=false``. A sweep may be split into partitions (Shopify search
filters); each partition is an independent cursor chain and up to
``fan_out`` chains run concurrently. Pages are folded in partition order,
then cursor order, so the result never depends on which response arrives
first. The deadline bounds each page request as well as when one may start.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

import structlog

from storefront.domain.catalog.models import Page, SweepResult, SweepStatus
from storefront.domain.shared.errors import ExternalServiceError, MalformedResponseError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# (cursor, search filter) -> page
PageFetcher = Callable[[Optional[str], Optional[str]], Awaitable[Page[T]]]

DEFAULT_FAN_OUT = 3
DEFAULT_DEADLINE_SECONDS = 30.0


@dataclass(frozen=True)
class _ChainOutcome(Generic[T]):
    pages: tuple[Page[T], ...]
    truncated: bool


class PaginationSweep(Generic[T]):
    """Drives one full traversal of a paginated query.

    Example:
        >>> sweep = PaginationSweep(fetch_vendor_page, name="vendors")
        >>> result = await sweep.run()
        >>> assert result.status is SweepStatus.COMPLETE
    """

    def __init__(
        self,
        fetch_page: PageFetcher[T],
        name: str,
        fan_out: int = DEFAULT_FAN_OUT,
        deadline_seconds: Optional[float] = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize sweep.

        Args:
            fetch_page: Fetches one page for a cursor and partition filter
            name: Label used in log events
            fan_out: Max partition chains in flight at once
            deadline_seconds: Wall-clock ceiling for the whole sweep (None disables)
            clock: Monotonic time source in seconds
        """
        if fan_out < 1:
            raise ValueError("fan_out must be at least 1")

        self._fetch_page = fetch_page
        self.name = name
        self.fan_out = fan_out
        self.deadline_seconds = deadline_seconds
        self._clock = clock

    async def run(self, partitions: Sequence[Optional[str]] = (None,)) -> SweepResult[T]:
        """Run the sweep.

        Upstream and response-shape errors do not propagate: they end the
        sweep with ``status=FAILED`` and cancel the chains still running.

        Args:
            partitions: Search filters, one cursor chain each; ``None`` means unfiltered

        Returns:
            Sweep result with items in partition order, then page order
        """
        partitions = tuple(partitions) or (None,)
        started_at = self._clock()
        semaphore = asyncio.Semaphore(self.fan_out)

        logger.info("Sweep started", sweep=self.name, partitions=len(partitions))

        tasks = [
            asyncio.ensure_future(self._walk(search, started_at, semaphore))
            for search in partitions
        ]
        try:
            chains: list[_ChainOutcome[T]] = await asyncio.gather(*tasks)
        except (ExternalServiceError, MalformedResponseError) as e:
            await self._cancel(tasks)
            logger.error(
                "Sweep failed",
                sweep=self.name,
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=self._elapsed_ms(started_at),
            )
            return SweepResult.failed(str(e))
        except BaseException:
            await self._cancel(tasks)
            raise

        pages = [page for chain in chains for page in chain.pages]
        items = tuple(item for page in pages for item in page.items)
        truncated = any(chain.truncated for chain in chains)
        status = SweepStatus.PARTIAL if truncated else SweepStatus.COMPLETE

        logger.info(
            "Sweep finished",
            sweep=self.name,
            status=status.value,
            pages=len(pages),
            items=len(items),
            elapsed_ms=self._elapsed_ms(started_at),
        )

        return SweepResult(items=items, status=status, pages=len(pages))

    async def _walk(
        self,
        search: Optional[str],
        started_at: float,
        semaphore: asyncio.Semaphore,
    ) -> _ChainOutcome[T]:
        pages: list[Page[T]] = []
        cursor: Optional[str] = None

        async with semaphore:
            while True:
                remaining = self._remaining(started_at)
                if remaining is not None and remaining <= 0:
                    return self._truncate(search, pages)

                try:
                    page = await asyncio.wait_for(self._fetch_page(cursor, search), remaining)
                except asyncio.TimeoutError:
                    return self._truncate(search, pages)
                pages.append(page)

                if not page.page_info.has_next_page:
                    return _ChainOutcome(pages=tuple(pages), truncated=False)

                next_cursor = page.page_info.end_cursor
                if not next_cursor or next_cursor == cursor:
                    raise MalformedResponseError(
                        f"Pagination cursor did not advance after page {len(pages)}"
                    )
                cursor = next_cursor

    def _truncate(self, search: Optional[str], pages: list[Page[T]]) -> _ChainOutcome[T]:
        logger.warning(
            "Sweep deadline exceeded, stopping pagination",
            sweep=self.name,
            partition=search,
            pages=len(pages),
            deadline_s=self.deadline_seconds,
        )
        return _ChainOutcome(pages=tuple(pages), truncated=True)

    def _remaining(self, started_at: float) -> Optional[float]:
        if self.deadline_seconds is None:
            return None
        return self.deadline_seconds - (self._clock() - started_at)

    def _elapsed_ms(self, started_at: float) -> float:
        return round((self._clock() - started_at) * 1000, 2)

    @staticmethod
    async def _cancel(tasks: Sequence["asyncio.Future[Any]"]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
