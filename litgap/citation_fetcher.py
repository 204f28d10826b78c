"""Semantic Scholar citation fetcher.

Queries the Semantic Scholar Graph API once per source paper for the
paper's own record plus its citation list. Requests are strictly serialized:
the unauthenticated API shares one low-volume rate budget, so every source
waits for the previous one and a fixed delay separates consecutive requests.

Rate limiting (HTTP 429) is retried with backoff inside the fetcher and
surfaces only as a failed source once retries are exhausted. No single
source failure aborts the run; all outcomes are counted in FetchStats.

Example Usage:
    fetcher = CitationFetcher(delay=3.0)
    result = await fetcher.fetch(sources, progress_callback=print)
    print(result.stats.successful, len(result.citations))
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import quote

import aiohttp

from .config import (
    API_MAX_RETRIES,
    API_REQUEST_DELAY,
    API_REQUEST_TIMEOUT,
    CITATION_FIELDS,
    CITED_BY_TITLE_LENGTH,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_TOO_MANY_REQUESTS,
    IDENTIFIER_SCHEME,
    SEMANTIC_SCHOLAR_API_URL,
)
from .library import has_identifier
from .models import (
    CitationFetchResult,
    CitationRecord,
    FailureReason,
    FetchFailure,
    FetchNotFound,
    FetchOutcome,
    FetchStats,
    FetchSuccess,
    SourcePaper,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class _RateLimited:
    """Transient 429 state; resolved by retry, never returned from fetch()."""


_RATE_LIMITED = _RateLimited()


class CitationFetcher:
    """Serialized citation lookups with retry on rate limiting.

    Attributes:
        base_url (str): Semantic Scholar Graph API root
        delay (float): Seconds to wait between sources, also the backoff base
        max_retries (int): Total attempts per source when rate limited
        timeout (float): Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = SEMANTIC_SCHOLAR_API_URL,
        delay: float = API_REQUEST_DELAY,
        max_retries: int = API_MAX_RETRIES,
        timeout: float = API_REQUEST_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize fetcher.

        Args:
            base_url: API root URL without trailing slash
            delay: Inter-request delay in seconds (>= 0)
            max_retries: Attempts per source on HTTP 429 (>= 1)
            timeout: Request timeout in seconds
            session: Optional externally managed aiohttp session. When omitted
                     a session is opened and closed for every fetch() call.

        Raises:
            ValueError: If delay is negative or max_retries is below 1.
        """
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        self.base_url = base_url.rstrip("/")
        self.delay = delay
        self.max_retries = max_retries
        self.timeout = timeout
        self._session = session

    def paper_url(self, identifier: str) -> str:
        """Lookup URL for one source identifier."""
        return f"{self.base_url}/paper/{IDENTIFIER_SCHEME}:{quote(identifier.strip(), safe='')}"

    async def fetch(
        self, sources: Sequence[SourcePaper], progress_callback: ProgressCallback | None = None
    ) -> CitationFetchResult:
        """Fetch citation lists for all sources, strictly in input order.

        Args:
            sources: Source papers to query
            progress_callback: Called once per source with (index, total, title)
                               after the source's outcome is known

        Returns:
            CitationFetchResult with raw citation records, the sources' own
            Semantic Scholar ids and fresh per-run statistics
        """
        logger.info("Starting citation fetch for %d sources (%.1fs delay)", len(sources), self.delay)

        if self._session is not None:
            return await self._fetch_all(self._session, sources, progress_callback)

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            return await self._fetch_all(session, sources, progress_callback)

    async def _fetch_all(
        self,
        session: aiohttp.ClientSession,
        sources: Sequence[SourcePaper],
        progress_callback: ProgressCallback | None,
    ) -> CitationFetchResult:
        stats = FetchStats()
        citations: list[CitationRecord] = []
        own_identifiers: set[str] = set()
        total = len(sources)

        for index, source in enumerate(sources, 1):
            logger.debug("[%d/%d] Processing: %s", index, total, source.title[:50])

            requested = has_identifier(source)
            if not requested:
                stats.no_identifier += 1
                logger.debug("  Skipped: no identifier")
            else:
                outcome = await self._fetch_with_retry(session, source, stats)
                self._record_outcome(outcome, stats, citations, own_identifiers)

            if progress_callback:
                progress_callback(index, total, source.title)

            if requested and index < total and self.delay > 0:
                await asyncio.sleep(self.delay)

        stats.total_citations = len(citations)
        self._log_stats(stats)

        return CitationFetchResult(
            citations=citations,
            own_identifiers=own_identifiers,
            stats=stats,
            sources_processed=total,
        )

    def _record_outcome(
        self,
        outcome: FetchOutcome,
        stats: FetchStats,
        citations: list[CitationRecord],
        own_identifiers: set[str],
    ) -> None:
        if isinstance(outcome, FetchSuccess):
            stats.successful += 1
            if outcome.own_identifier:
                own_identifiers.add(outcome.own_identifier)
            citations.extend(outcome.citations)
            logger.debug("  Found %d citations", len(outcome.citations))
        elif isinstance(outcome, FetchNotFound):
            stats.not_found += 1
            logger.debug("  Not found")
        elif outcome.reason is FailureReason.RATE_LIMITED:
            stats.rate_limited += 1
            logger.warning("  Rate limited after %d attempts, skipping source", self.max_retries)
        else:
            stats.failed += 1
            logger.debug("  Failed (%s): %s", outcome.reason.value, outcome.detail)

    async def _fetch_with_retry(
        self, session: aiohttp.ClientSession, source: SourcePaper, stats: FetchStats
    ) -> FetchOutcome:
        """Look up one source, retrying on HTTP 429 with growing waits.

        Before retry N (N = 1, 2, ...) the fetcher waits delay x N x 2 seconds.
        """
        for attempt in range(1, self.max_retries + 1):
            outcome = await self._request_once(session, source, stats)
            if not isinstance(outcome, _RateLimited):
                return outcome

            if attempt < self.max_retries:
                wait_time = self.delay * attempt * 2
                logger.warning(
                    "Rate limited, waiting %.1fs before retry %d/%d", wait_time, attempt, self.max_retries
                )
                await asyncio.sleep(wait_time)

        return FetchFailure(FailureReason.RATE_LIMITED, f"HTTP 429 after {self.max_retries} attempts")

    async def _request_once(
        self, session: aiohttp.ClientSession, source: SourcePaper, stats: FetchStats
    ) -> FetchOutcome | _RateLimited:
        url = self.paper_url(source.identifier or "")
        stats.total_requests += 1

        try:
            async with session.get(url, params={"fields": CITATION_FIELDS}) as response:
                if response.status == HTTP_OK:
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        logger.debug("Error parsing JSON for %s: %s", source.identifier, e)
                        return FetchFailure(FailureReason.PARSE_ERROR, str(e))
                    return self._parse_paper(data, source)

                if response.status == HTTP_NOT_FOUND:
                    return FetchNotFound()

                if response.status == HTTP_TOO_MANY_REQUESTS:
                    stats.rate_limit_hits += 1
                    return _RATE_LIMITED

                logger.debug("HTTP error %d for %s", response.status, source.identifier)
                return FetchFailure(FailureReason.HTTP_ERROR, f"HTTP {response.status}")

        except TimeoutError:
            return FetchFailure(FailureReason.NETWORK_ERROR, f"Timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            logger.debug("Request failed for %s: %s", source.identifier, e)
            return FetchFailure(FailureReason.NETWORK_ERROR, str(e))

    def _parse_paper(self, data: Any, source: SourcePaper) -> FetchOutcome:
        if not isinstance(data, dict):
            return FetchFailure(FailureReason.PARSE_ERROR, "Response body is not a JSON object")

        cited_by = source.title[:CITED_BY_TITLE_LENGTH]
        records = []
        for cite in data.get("citations") or []:
            if not isinstance(cite, dict):
                continue
            count = cite.get("citationCount")
            records.append(
                CitationRecord(
                    paper_id=cite.get("paperId"),
                    title=cite.get("title") or "",
                    year=cite.get("year"),
                    citation_count=count if isinstance(count, int) else 0,
                    cited_by=cited_by,
                )
            )

        return FetchSuccess(citations=tuple(records), own_identifier=data.get("paperId"))

    def _log_stats(self, stats: FetchStats) -> None:
        logger.info("=" * 60)
        logger.info("API Statistics:")
        logger.info("  Total requests: %d", stats.total_requests)
        logger.info("  Successful: %d", stats.successful)
        logger.info("  Failed: %d", stats.failed)
        logger.info("  Not found: %d", stats.not_found)
        logger.info("  Rate limited: %d (%d hits)", stats.rate_limited, stats.rate_limit_hits)
        logger.info("  No identifier: %d", stats.no_identifier)
        logger.info("  Citations collected: %d", stats.total_citations)
        logger.info("=" * 60)
