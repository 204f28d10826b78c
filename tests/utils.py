"""Shared test utilities for LitGap tests.

Fake aiohttp session/response objects so the fetcher and AI client can be
exercised without network access, plus builders for common records.
"""

from typing import Any

from litgap.models import CandidateAggregate, CitationRecord, LibraryItem, SourcePaper


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse used as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        text: str = "",
        json_error: Exception | None = None,
    ):
        self.status = status
        self._payload = payload
        self._text = text
        self._json_error = json_error

    async def json(self, content_type: str | None = None) -> Any:
        if self._json_error is not None:
            raise self._json_error
        return self._payload

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class _RaisingContext:
    """Context manager that raises on entry, like a failed connection."""

    def __init__(self, error: BaseException):
        self._error = error

    async def __aenter__(self) -> None:
        raise self._error

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """Replays queued responses in order for get() and post().

    Queue entries are FakeResponse objects or exceptions to raise on entry.
    Every call is recorded in ``calls`` as (method, url, kwargs).
    """

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses or [])
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def _next(self, method: str, url: str, kwargs: dict[str, Any]) -> Any:
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected {method} request to {url}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            return _RaisingContext(item)
        return item

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._next("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._next("POST", url, kwargs)

    @property
    def urls(self) -> list[str]:
        return [url for _, url, _ in self.calls]


def paper_payload(paper_id: str, citations: list[tuple[str | None, str, Any, int]]) -> dict[str, Any]:
    """Semantic Scholar paper body with (paperId, title, year, citationCount) citations."""
    return {
        "paperId": paper_id,
        "title": f"Source {paper_id}",
        "year": 2020,
        "citationCount": len(citations),
        "citations": [
            {"paperId": pid, "title": title, "year": year, "citationCount": count}
            for pid, title, year, count in citations
        ],
    }


def make_item(key: str, title: str, doi: str = "", item_type: str = "journalArticle", **kwargs: Any) -> LibraryItem:
    return LibraryItem(key=key, item_type=item_type, title=title, doi=doi, **kwargs)


def make_source(id: str, title: str | None = None, identifier: str | None = None) -> SourcePaper:
    return SourcePaper(id=id, title=title or f"Paper {id}", identifier=identifier)


def make_record(paper_id: str | None, title: str = "", year: Any = 2020, citation_count: int = 0) -> CitationRecord:
    return CitationRecord(paper_id=paper_id, title=title or f"Title {paper_id}", year=year, citation_count=citation_count)


def make_candidate(
    paper_id: str, year: Any = 2020, citation_count: int = 0, mention_count: int = 2, title: str = ""
) -> CandidateAggregate:
    return CandidateAggregate(
        paper_id=paper_id,
        title=title or f"Title {paper_id}",
        year=year,
        citation_count=citation_count,
        mention_count=mention_count,
    )
