#!/usr/bin/env python3
"""Gap Detection Module for LitGap.

Core workflow for identifying missing papers in a reference library through
citation network analysis: papers frequently cited by your library's papers
but absent from it.

Pipeline:

1. **Source selection**: Keep academic item types and split off papers
   without a DOI (they cannot seed a lookup).
2. **Sampling**: Large libraries are subsampled with a seeded shuffle to
   keep the run within the API budget.
3. **Citation fetch**: One serialized Semantic Scholar request per source,
   with a fixed inter-request delay and backoff on rate limiting.
4. **Aggregation**: Deduplicate citations and count how many sources mention
   each candidate.
5. **Scoring**: Drop owned, old and rarely mentioned candidates, score the
   rest, rank them and flag early influential papers.

Per-source failures never abort a run. A run only fails as a whole when no
usable data exists: no academic items, no DOIs, or zero citations collected.
Those cases come back as a GapAnalysisResult status, distinct from a
successful run with an empty recommendation list.

Example Usage:
    analyzer = GapAnalyzer(options=GapScoringOptions(top_n=15))
    result = await analyzer.run(load_library("library.json"))
    if result.succeeded:
        for rec in result.recommendations:
            print(rec.title, rec.total_score)
"""

import logging
from collections.abc import Sequence

from .aggregation import aggregate_citations
from .citation_fetcher import CitationFetcher, ProgressCallback
from .config import SAMPLING_DEFAULT_SEED
from .gap_scoring import score_candidates
from .library import filter_academic_items, partition_by_identifier, to_source_paper
from .models import (
    AnalysisStatus,
    GapAnalysisResult,
    GapScoringOptions,
    LibraryItem,
)
from .sampling import apply_sampling, determine_sampling_strategy

logger = logging.getLogger(__name__)


class GapAnalyzer:
    """Citation gap analysis engine.

    Holds only configuration; every run() keeps its state local, so one
    analyzer can be reused across collections.

    Attributes:
        fetcher (CitationFetcher): Semantic Scholar client used for lookups
        options (GapScoringOptions): Filter thresholds and result size
        sampling_seed (int): Seed for reproducible subsampling
        include_advisory_sampling (bool): Apply sampling when it is only
            recommended (31-100 sources), not just when it is required
    """

    def __init__(
        self,
        fetcher: CitationFetcher | None = None,
        options: GapScoringOptions | None = None,
        sampling_seed: int = SAMPLING_DEFAULT_SEED,
        include_advisory_sampling: bool = True,
    ):
        if sampling_seed < 0:
            raise ValueError(f"sampling_seed must be non-negative, got {sampling_seed}")

        self.fetcher = fetcher or CitationFetcher()
        self.options = options or GapScoringOptions()
        self.sampling_seed = sampling_seed
        self.include_advisory_sampling = include_advisory_sampling

    async def run(
        self,
        items: Sequence[LibraryItem],
        progress_callback: ProgressCallback | None = None,
        current_year: int | None = None,
    ) -> GapAnalysisResult:
        """Run the full gap analysis workflow on a library snapshot.

        Args:
            items: Library items from the reference manager
            progress_callback: Called with (index, total, title) once per source
            current_year: Reference year for recency scoring (defaults to today)

        Returns:
            GapAnalysisResult; check ``status`` before using recommendations
        """
        logger.info("=" * 60)
        logger.info("Starting gap analysis on %d library items", len(items))

        academic = filter_academic_items(items)
        if not academic:
            logger.warning("No academic items found in library")
            return GapAnalysisResult(status=AnalysisStatus.NO_ACADEMIC_ITEMS)

        papers = [to_source_paper(item) for item in academic]
        with_id, without_id = partition_by_identifier(papers)
        logger.info("Found %d papers (%d with DOI)", len(papers), len(with_id))

        if not with_id:
            logger.warning("No papers with DOI found")
            return GapAnalysisResult(
                status=AnalysisStatus.NO_IDENTIFIERS,
                items_without_identifier=len(without_id),
            )

        decision = determine_sampling_strategy(len(with_id))
        logger.info("Sampling strategy: %s", decision.message)
        sources = apply_sampling(with_id, decision, self.sampling_seed, self.include_advisory_sampling)

        fetch_result = await self.fetcher.fetch(sources, progress_callback)

        if not fetch_result.has_data:
            logger.warning("No citations collected from %d sources", len(sources))
            return GapAnalysisResult(
                status=AnalysisStatus.NO_CITATIONS,
                sources=list(sources),
                sampling=decision,
                fetch_stats=fetch_result.stats,
                items_without_identifier=len(without_id),
            )

        aggregation = aggregate_citations(fetch_result.citations, fetch_result.own_identifiers)
        recommendations = score_candidates(
            aggregation.candidates,
            aggregation.own_identifiers,
            self.options,
            current_year=current_year,
        )

        logger.info("Gap analysis complete: %d recommendations", len(recommendations))
        return GapAnalysisResult(
            status=AnalysisStatus.COMPLETED,
            recommendations=recommendations,
            sources=list(sources),
            sampling=decision,
            fetch_stats=fetch_result.stats,
            unique_citations=len(aggregation.candidates),
            items_without_identifier=len(without_id),
        )
