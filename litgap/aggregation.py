"""Citation deduplication and mention counting."""

import logging
from collections.abc import Iterable

from .models import AggregationResult, CandidateAggregate, CitationRecord

logger = logging.getLogger(__name__)


def aggregate_citations(
    records: Iterable[CitationRecord], own_identifiers: Iterable[str] = ()
) -> AggregationResult:
    """Merge raw citation records into one candidate per paper id.

    Records are visited in arrival order. The first record seen for an id
    provides the title/year/citation count snapshot; every further record
    for the same id adds one mention. Records without an id are dropped.

    Args:
        records: Raw citation records from all sources
        own_identifiers: Semantic Scholar ids of the sources themselves

    Returns:
        AggregationResult with candidates in first-seen order
    """
    candidates: dict[str, CandidateAggregate] = {}
    total = 0

    for record in records:
        total += 1
        if not record.paper_id:
            continue

        existing = candidates.get(record.paper_id)
        if existing is None:
            candidates[record.paper_id] = CandidateAggregate(
                paper_id=record.paper_id,
                title=record.title,
                year=record.year,
                citation_count=record.citation_count,
            )
        else:
            # Counted per record: a source listing the same paper twice adds two mentions
            existing.mention_count += 1

    logger.info("Deduplicated %d citations into %d unique candidates", total, len(candidates))
    return AggregationResult(candidates=list(candidates.values()), own_identifiers=frozenset(own_identifiers))
