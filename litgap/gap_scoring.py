"""Gap candidate filtering, scoring and early influential marking.

Scoring Formula:
    total_score = mentioned_score + impact_score + recency_score
    - mentioned_score: mention_count x 10 (highest weight)
    - impact_score: min(citation_count / 100, 5) (capped at 5)
    - recency_score: 3/2/1/0 for ages <=3, <=5, <=10 and older

Candidates are ranked by total score with ties broken by paper id, so a
given input always produces the same ordering.
"""

import logging
import math
import re
from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

from .config import (
    EARLY_INFLUENTIAL_MAX_MARKED,
    EARLY_INFLUENTIAL_MIN_CITATIONS,
    EARLY_INFLUENTIAL_WINDOW_FACTOR,
    EARLY_INFLUENTIAL_YEAR_CUTOFF,
    IMPACT_SCORE_CAP,
    IMPACT_SCORE_DIVISOR,
    MENTION_SCORE_WEIGHT,
    RECENCY_SCORE_BANDS,
)
from .models import CandidateAggregate, GapScoringOptions

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_year(value: Any) -> int | None:
    """Read a publication year, tolerating strings like "2019" or "2019-05"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def recency_score(year: int | None, current_year: int) -> int:
    if year is None:
        return 0
    age = current_year - year
    for max_age, points in RECENCY_SCORE_BANDS:
        if age <= max_age:
            return points
    return 0


def calculate_score(candidate: CandidateAggregate, current_year: int | None = None) -> CandidateAggregate:
    """Compute and store the score breakdown on a candidate.

    The stored impact score is rounded to two decimals for display; the
    total uses the unrounded value.
    """
    if current_year is None:
        current_year = datetime.now().year

    mentioned = candidate.mention_count * MENTION_SCORE_WEIGHT
    impact = min((candidate.citation_count or 0) / IMPACT_SCORE_DIVISOR, IMPACT_SCORE_CAP)
    recency = recency_score(parse_year(candidate.year), current_year)

    candidate.mentioned_score = mentioned
    candidate.impact_score = round(impact, 2)
    candidate.recency_score = recency
    candidate.total_score = mentioned + impact + recency
    return candidate


def filter_candidates(
    candidates: Sequence[CandidateAggregate],
    own_identifiers: Collection[str],
    options: GapScoringOptions,
) -> list[CandidateAggregate]:
    """Apply the three filter stages in order: owned, year, mentions."""
    logger.debug("Total candidates: %d", len(candidates))

    # Filter 1: papers already in the library
    remaining = [c for c in candidates if c.paper_id not in own_identifiers]
    logger.debug("After removing existing papers: %d", len(remaining))

    # Filter 2: year threshold, unknown years dropped
    remaining = [
        c for c in remaining if (year := parse_year(c.year)) is not None and year >= options.min_year
    ]
    logger.debug("After year filter (>=%d): %d", options.min_year, len(remaining))

    # Filter 3: minimum mentions
    remaining = [c for c in remaining if c.mention_count >= options.min_mentions]
    logger.debug("After mention filter (>=%d): %d", options.min_mentions, len(remaining))

    return remaining


def mark_early_influential(sorted_candidates: Sequence[CandidateAggregate], top_n: int) -> None:
    """Flag the oldest highly cited papers near the top of the ranking.

    Looks at the first ``2 x top_n`` candidates so papers just below the cut
    can still be flagged. Scores and order are never changed.
    """
    if not sorted_candidates:
        return

    window = sorted_candidates[: min(top_n * EARLY_INFLUENTIAL_WINDOW_FACTOR, len(sorted_candidates))]

    early = []
    for candidate in window:
        year = parse_year(candidate.year)
        if (
            year is not None
            and year < EARLY_INFLUENTIAL_YEAR_CUTOFF
            and (candidate.citation_count or 0) >= EARLY_INFLUENTIAL_MIN_CITATIONS
        ):
            early.append((year, candidate))

    if not early:
        return

    early.sort(key=lambda pair: pair[0])
    for year, candidate in early[:EARLY_INFLUENTIAL_MAX_MARKED]:
        candidate.is_early_influential = True
        logger.debug("Marked as early influential: %s (%d)", candidate.title[:40], year)


def score_candidates(
    candidates: Sequence[CandidateAggregate],
    own_identifiers: Collection[str],
    options: GapScoringOptions | None = None,
    current_year: int | None = None,
) -> list[CandidateAggregate]:
    """Filter, score, rank and annotate candidates; return the top N.

    Args:
        candidates: Aggregated candidates with mention counts
        own_identifiers: Ids of the library's own papers (never recommended)
        options: Filter thresholds and result size
        current_year: Reference year for recency (defaults to today)

    Returns:
        Up to ``options.top_n`` candidates, best first. Empty when nothing
        survives filtering.
    """
    options = options or GapScoringOptions()
    if current_year is None:
        current_year = datetime.now().year

    filtered = filter_candidates(candidates, own_identifiers, options)
    if not filtered:
        logger.info("No candidates found after filtering")
        return []

    for candidate in filtered:
        calculate_score(candidate, current_year)

    ranked = sorted(filtered, key=lambda c: (-c.total_score, c.paper_id))

    mark_early_influential(ranked, options.top_n)

    top = ranked[: options.top_n]
    logger.info("Found %d candidates, returning top %d", len(ranked), len(top))
    for i, rec in enumerate(top[:3], 1):
        logger.debug(
            "%d. %s | Score: %.1f (M:%d + I:%s + R:%d)",
            i,
            rec.title[:50],
            rec.total_score,
            rec.mentioned_score,
            rec.impact_score,
            rec.recency_score,
        )
    return top
