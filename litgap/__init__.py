"""LitGap - Citation gap discovery for personal reference libraries.

Finds papers that are frequently cited by the papers already in your
library but are missing from it. Citation networks come from the
Semantic Scholar Graph API.

Main modules:
- gap_detection: End-to-end gap analysis workflow (GapAnalyzer)
- citation_fetcher: Serialized, rate-limited Semantic Scholar client
- aggregation: Citation deduplication and mention counting
- gap_scoring: Candidate filtering, scoring and early-influential marking
- sampling: Library-size sampling strategy with seeded sampling
- kgm_analyzer: Optional AI-written knowledge gap mapping
- cli: Command-line interface

Features:
- Multi-factor gap scoring (mentions, impact, recency)
- Reproducible seeded sampling for large collections
- Markdown and JSON gap reports
- Multi-provider AI narrative (Anthropic, OpenAI, Google, custom)
"""

__version__ = "1.4.0"
