"""
Unit tests for PaginationSweep.

Pages are served by in-memory fetchers; no HTTP involved.
"""

import asyncio
from typing import Optional

import pytest

from storefront.application.catalog.pagination import PaginationSweep
from storefront.domain.catalog.models import Page, PageInfo, SweepStatus
from storefront.domain.shared.errors import RetriesExhaustedError, UpstreamError
from storefront.tests.factories import FakeClock


def page(*items: str, next_cursor: Optional[str] = None) -> Page[str]:
    return Page(
        items=items,
        page_info=PageInfo(has_next_page=next_cursor is not None, end_cursor=next_cursor),
    )


class ChainFetcher:
    """Serves pages of one or more partitions keyed by (search, cursor)."""

    def __init__(self, pages: dict[tuple[Optional[str], Optional[str]], Page[str]]) -> None:
        self.pages = pages
        self.calls: list[tuple[Optional[str], Optional[str]]] = []

    async def __call__(self, cursor: Optional[str], search: Optional[str]) -> Page[str]:
        self.calls.append((cursor, search))
        return self.pages[(search, cursor)]


class TestSinglePartition:
    """Tests for a plain cursor chain."""

    @pytest.mark.asyncio
    async def test_single_page_makes_one_request(self) -> None:
        """Test hasNextPage=false on the first page stops after one fetch."""
        fetch = ChainFetcher({(None, None): page("Acme")})

        result = await PaginationSweep(fetch, name="vendors").run()

        assert fetch.calls == [(None, None)]
        assert result.status is SweepStatus.COMPLETE
        assert result.items == ("Acme",)
        assert result.pages == 1

    @pytest.mark.asyncio
    async def test_follows_cursor_until_last_page(self) -> None:
        """Test each request carries the previous endCursor."""
        fetch = ChainFetcher(
            {
                (None, None): page("Acme ", "Zeta", next_cursor="c1"),
                (None, "c1"): page("acme", next_cursor="c2"),
                (None, "c2"): page(),
            }
        )

        result = await PaginationSweep(fetch, name="vendors").run()

        assert fetch.calls == [(None, None), ("c1", None), ("c2", None)]
        assert result.items == ("Acme ", "Zeta", "acme")
        assert result.pages == 3
        assert result.is_complete

    @pytest.mark.asyncio
    async def test_missing_cursor_fails(self) -> None:
        """Test hasNextPage=true without endCursor fails the sweep."""

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            return Page(items=("Acme",), page_info=PageInfo(has_next_page=True, end_cursor=None))

        result = await PaginationSweep(fetch, name="vendors").run()

        assert result.status is SweepStatus.FAILED
        assert result.items == ()
        assert "cursor" in (result.error or "")

    @pytest.mark.asyncio
    async def test_repeated_cursor_fails(self) -> None:
        """Test a cursor that does not advance fails instead of looping."""
        fetch = ChainFetcher(
            {
                (None, None): page("Acme", next_cursor="c1"),
                (None, "c1"): page("Zeta", next_cursor="c1"),
            }
        )

        result = await PaginationSweep(fetch, name="vendors").run()

        assert result.status is SweepStatus.FAILED
        assert len(fetch.calls) == 2


class TestFailures:
    """Tests for upstream errors during a sweep."""

    @pytest.mark.asyncio
    async def test_upstream_error_fails_sweep(self) -> None:
        """Test RetriesExhaustedError mid-sweep discards gathered pages."""
        calls = []

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            calls.append(cursor)
            if cursor is None:
                return page("Acme", next_cursor="c1")
            raise RetriesExhaustedError("Shopify API throttled: gave up after 5 attempts", 5)

        result = await PaginationSweep(fetch, name="vendors").run()

        assert result.status is SweepStatus.FAILED
        assert result.items == ()
        assert result.error == "Shopify API throttled: gave up after 5 attempts"
        assert calls == [None, "c1"]

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self) -> None:
        """Test programming errors are not converted to a failed sweep."""

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await PaginationSweep(fetch, name="vendors").run()

    def test_rejects_zero_fan_out(self) -> None:
        with pytest.raises(ValueError):
            PaginationSweep(ChainFetcher({}), name="vendors", fan_out=0)


class TestDeadline:
    """Tests for the wall-clock ceiling."""

    @pytest.mark.asyncio
    async def test_deadline_returns_partial(self, clock: FakeClock) -> None:
        """Test pagination stops once the deadline has elapsed.

        GIVEN: Each page takes 20s and the deadline is 30s
        WHEN: The sweep runs over a 3-page chain
        THEN: Two pages are fetched and the result is partial
        """
        pages = {
            (None, None): page("Acme", next_cursor="c1"),
            (None, "c1"): page("Zeta", next_cursor="c2"),
            (None, "c2"): page("acme"),
        }
        calls = []

        async def slow_fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            calls.append(cursor)
            clock.advance(20)
            return pages[(search, cursor)]

        sweep = PaginationSweep(slow_fetch, name="vendors", deadline_seconds=30, clock=clock)
        result = await sweep.run()

        assert result.status is SweepStatus.PARTIAL
        assert result.items == ("Acme", "Zeta")
        assert calls == [None, "c1"]

    @pytest.mark.asyncio
    async def test_deadline_interrupts_page_in_flight(self) -> None:
        """Test a page request still running at the deadline is abandoned.

        GIVEN: The second page never answers and the deadline is 50ms
        WHEN: The sweep runs on the real monotonic clock
        THEN: The first page is returned as partial and the hung request is cancelled
        """
        cancelled = asyncio.Event()

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            if cursor is None:
                return page("Acme", next_cursor="c1")
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return page("Zeta")

        result = await PaginationSweep(fetch, name="vendors", deadline_seconds=0.05).run()

        assert result.status is SweepStatus.PARTIAL
        assert result.items == ("Acme",)
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_page_finishing_past_deadline_stops_chain(self, clock: FakeClock) -> None:
        """Test a page that overran the deadline is kept but ends the chain."""
        calls = []

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            calls.append(cursor)
            clock.advance(120)
            return page("Acme", next_cursor="c1")

        sweep = PaginationSweep(fetch, name="vendors", deadline_seconds=30, clock=clock)
        result = await sweep.run()

        assert result.status is SweepStatus.PARTIAL
        assert result.items == ("Acme",)
        assert calls == [None]

    @pytest.mark.asyncio
    async def test_no_deadline(self, clock: FakeClock) -> None:
        """Test deadline_seconds=None never truncates."""
        pages = {
            (None, None): page("Acme", next_cursor="c1"),
            (None, "c1"): page("Zeta"),
        }

        async def slow_fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            clock.advance(3600)
            return pages[(search, cursor)]

        sweep = PaginationSweep(slow_fetch, name="vendors", deadline_seconds=None, clock=clock)
        result = await sweep.run()

        assert result.status is SweepStatus.COMPLETE
        assert result.items == ("Acme", "Zeta")


class TestPartitions:
    """Tests for fan-out over partitions."""

    @pytest.mark.asyncio
    async def test_results_follow_partition_order(self) -> None:
        """Test item order is partition order even when later partitions finish first."""

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            if search == "vendor:A*":
                # let the other partitions complete first
                for _ in range(5):
                    await asyncio.sleep(0)
                return page("Acme")
            if search == "vendor:B*":
                return page("Bolt")
            return page("Zeta")

        sweep = PaginationSweep(fetch, name="vendors", fan_out=3)
        result = await sweep.run(["vendor:A*", "vendor:B*", "vendor:Z*"])

        assert result.items == ("Acme", "Bolt", "Zeta")
        assert result.pages == 3

    @pytest.mark.asyncio
    async def test_fan_out_is_bounded(self) -> None:
        """Test no more than fan_out chains run at once."""
        in_flight = 0
        peak = 0

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            in_flight -= 1
            return page(search or "")

        sweep = PaginationSweep(fetch, name="products", fan_out=2)
        result = await sweep.run(["a", "b", "c", "d", "e"])

        assert peak == 2
        assert result.items == ("a", "b", "c", "d", "e")

    @pytest.mark.asyncio
    async def test_one_failed_partition_fails_sweep(self) -> None:
        """Test a failure in any partition fails the sweep and stops its siblings.

        GIVEN: Partition "a" fails on its first page and "b" has 50 pages
        WHEN: Both chains run concurrently
        THEN: The sweep fails and "b" is cancelled long before its last page
        """
        calls: dict[str, int] = {"a": 0, "b": 0}

        async def fetch(cursor: Optional[str], search: Optional[str]) -> Page[str]:
            assert search is not None
            calls[search] += 1
            if search == "a":
                raise UpstreamError("Shopify API error: HTTP 500", status_code=500)
            await asyncio.sleep(0)
            n = calls["b"]
            return page(f"b{n}", next_cursor=f"c{n}" if n < 50 else None)

        result = await PaginationSweep(fetch, name="products").run(["a", "b"])

        assert result.status is SweepStatus.FAILED
        assert result.items == ()
        assert calls["a"] == 1
        assert calls["b"] < 10

    @pytest.mark.asyncio
    async def test_empty_partitions_means_unfiltered(self) -> None:
        """Test an empty partition list sweeps once without filter."""
        fetch = ChainFetcher({(None, None): page("Acme")})

        result = await PaginationSweep(fetch, name="vendors").run([])

        assert fetch.calls == [(None, None)]
        assert result.items == ("Acme",)
