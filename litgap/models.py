"""Typed records flowing through the gap analysis pipeline.

Library items come in, become source papers, produce raw citation records
through the fetcher, collapse into candidate aggregates, and leave as scored
recommendations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import GAP_ANALYSIS_MIN_MENTIONS, GAP_ANALYSIS_MIN_YEAR, GAP_ANALYSIS_TOP_N


@dataclass(frozen=True)
class Creator:
    """Single creator entry on a library item."""

    creator_type: str = "author"
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class LibraryItem:
    """Item from the host reference manager's library snapshot."""

    key: str
    item_type: str
    title: str = ""
    year: str | None = None
    date: str | None = None
    doi: str = ""
    abstract: str = ""
    creators: tuple[Creator, ...] = ()
    publication: str = ""
    url: str = ""


@dataclass(frozen=True)
class SourcePaper:
    """Paper from the user's library used as a citation seed."""

    id: str
    title: str
    identifier: str | None = None
    year: int | None = None
    abstract: str = ""
    authors: tuple[str, ...] = ()
    item_type: str = ""


@dataclass(frozen=True)
class CitationRecord:
    """One raw citation edge returned for a single source query."""

    paper_id: str | None
    title: str = ""
    year: Any = None  # May be missing or non-numeric in API responses
    citation_count: int = 0
    cited_by: str = ""


@dataclass
class CandidateAggregate:
    """One unique candidate paper after aggregation.

    Score fields and the early influential flag are set by gap_scoring only.
    """

    paper_id: str
    title: str
    year: Any
    citation_count: int
    mention_count: int = 1
    total_score: float = 0.0
    mentioned_score: int = 0
    impact_score: float = 0.0
    recency_score: int = 0
    is_early_influential: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reports and JSON export."""
        return {
            "paperId": self.paper_id,
            "title": self.title,
            "year": self.year,
            "citationCount": self.citation_count,
            "mentionCount": self.mention_count,
            "totalScore": round(self.total_score, 2),
            "mentionedScore": self.mentioned_score,
            "impactScore": self.impact_score,
            "recencyScore": self.recency_score,
            "isEarlyInfluential": self.is_early_influential,
        }


# ============================================================================
# FETCH OUTCOMES
# ============================================================================


class FailureReason(Enum):
    """Why a single source lookup failed."""

    RATE_LIMITED = "rate_limited"  # 429 after all retries
    HTTP_ERROR = "http_error"  # Any other non-2xx status
    NETWORK_ERROR = "network_error"  # Transport failure or timeout
    PARSE_ERROR = "parse_error"  # 200 with an unreadable body


@dataclass(frozen=True)
class FetchSuccess:
    citations: tuple[CitationRecord, ...]
    own_identifier: str | None = None


@dataclass(frozen=True)
class FetchNotFound:
    pass


@dataclass(frozen=True)
class FetchFailure:
    reason: FailureReason
    detail: str = ""


FetchOutcome = FetchSuccess | FetchNotFound | FetchFailure


@dataclass
class FetchStats:
    """Per-run fetch statistics, created fresh for every fetch() call."""

    total_requests: int = 0
    successful: int = 0
    failed: int = 0
    not_found: int = 0
    rate_limited: int = 0
    rate_limit_hits: int = 0
    no_identifier: int = 0
    total_citations: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalRequests": self.total_requests,
            "successful": self.successful,
            "failed": self.failed,
            "notFound": self.not_found,
            "rateLimited": self.rate_limited,
            "rateLimitHits": self.rate_limit_hits,
            "noIdentifier": self.no_identifier,
            "totalCitations": self.total_citations,
        }


@dataclass
class CitationFetchResult:
    """Everything collected by one fetch run."""

    citations: list[CitationRecord]
    own_identifiers: set[str]
    stats: FetchStats
    sources_processed: int = 0

    @property
    def has_data(self) -> bool:
        """False when the run collected zero citations (run-level failure)."""
        return len(self.citations) > 0


@dataclass
class AggregationResult:
    candidates: list[CandidateAggregate]
    own_identifiers: frozenset[str] = frozenset()


# ============================================================================
# SAMPLING, SCORING OPTIONS AND RUN RESULTS
# ============================================================================


@dataclass(frozen=True)
class SamplingDecision:
    """Sampling strategy for a library of a given size."""

    should_sample: bool
    sample_size: int | None
    mandatory: bool
    warning_level: str
    message: str
    estimated_minutes: int
    reason: str | None = None
    suggestion: str | None = None


@dataclass(frozen=True)
class GapScoringOptions:
    """Filter and truncation knobs for gap scoring."""

    min_year: int = GAP_ANALYSIS_MIN_YEAR
    top_n: int = GAP_ANALYSIS_TOP_N
    min_mentions: int = GAP_ANALYSIS_MIN_MENTIONS

    def __post_init__(self) -> None:
        if self.top_n < 0:
            raise ValueError(f"top_n must be non-negative, got {self.top_n}")
        if self.min_mentions < 0:
            raise ValueError(f"min_mentions must be non-negative, got {self.min_mentions}")
        if self.min_year < 0:
            raise ValueError(f"min_year must be non-negative, got {self.min_year}")


class AnalysisStatus(Enum):
    """Run-level outcome the caller must branch on."""

    COMPLETED = "completed"
    NO_ACADEMIC_ITEMS = "no_academic_items"
    NO_IDENTIFIERS = "no_identifiers"
    NO_CITATIONS = "no_citations"


@dataclass
class GapAnalysisResult:
    """Outcome of one end-to-end gap analysis run."""

    status: AnalysisStatus
    recommendations: list[CandidateAggregate] = field(default_factory=list)
    sources: list[SourcePaper] = field(default_factory=list)
    sampling: SamplingDecision | None = None
    fetch_stats: FetchStats = field(default_factory=FetchStats)
    unique_citations: int = 0
    items_without_identifier: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is AnalysisStatus.COMPLETED


# ============================================================================
# KNOWLEDGE GAP MAPPING
# ============================================================================


@dataclass(frozen=True)
class MissingPaper:
    """Recommendation read back from a gap report."""

    title: str
    mention_count: int


@dataclass
class LibraryData:
    """Library context sent to the AI provider."""

    collection_name: str
    all_titles: list[str] = field(default_factory=list)
    top_abstracts: list[tuple[str, str]] = field(default_factory=list)  # (title, abstract)


@dataclass(frozen=True)
class KGMResult:
    framework: str
    gap_analysis: str


@dataclass(frozen=True)
class ConnectionCheck:
    ok: bool
    error: str | None = None
