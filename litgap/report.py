"""Gap analysis report generation.

Renders a GapAnalysisResult as a Markdown report for people and as a plain
dict for JSON export. Each recommendation is written as a ``#### N. Title``
block with a ``- Mentioned by: N of your papers`` line; the knowledge gap
mapping step reads reports back through that structure.
"""

import json
import logging
import re
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from .config import REPORT_PREFIX, SEMANTIC_SCHOLAR_PAPER_URL
from .models import GapAnalysisResult

logger = logging.getLogger(__name__)


def default_report_filename(collection_name: str, today: date | None = None, prefix: str = REPORT_PREFIX) -> str:
    """Report file name like ``litgap_my_collection_2025-03-01.md``."""
    today = today or datetime.now(UTC).date()
    safe_name = re.sub(r"[^a-z0-9]", "_", collection_name.lower()) or "library"
    return f"{prefix}_{safe_name}_{today.isoformat()}.md"


def generate_markdown_report(
    result: GapAnalysisResult, collection_name: str, generated_at: datetime | None = None
) -> str:
    """Render a completed analysis as Markdown.

    Args:
        result: Output of GapAnalyzer.run()
        collection_name: Shown in the report title
        generated_at: Timestamp for the header (defaults to now, UTC)

    Returns:
        Markdown document as a string
    """
    generated_at = generated_at or datetime.now(UTC)
    stats = result.fetch_stats

    lines = [
        f"# LitGap Report: {collection_name}",
        "",
        f"**Generated**: {generated_at.strftime('%Y-%m-%d %H:%M UTC')}",
        f"**Papers analyzed**: {len(result.sources)}",
        f"**Papers without DOI (skipped)**: {result.items_without_identifier}",
        f"**Unique citations found**: {result.unique_citations:,}",
        "",
    ]

    if result.sampling and result.sampling.should_sample:
        lines.append(f"> {result.sampling.message}")
        if result.sampling.suggestion:
            lines.append(f"> {result.sampling.suggestion}")
        lines.append("")

    lines.extend(
        [
            "## Run Statistics",
            "",
            f"- API requests: {stats.total_requests}",
            f"- Successful: {stats.successful}",
            f"- Not found: {stats.not_found}",
            f"- Rate limited: {stats.rate_limited}",
            f"- Failed: {stats.failed}",
            "",
            "---",
            "",
            f"## Recommended Papers ({len(result.recommendations)})",
            "",
        ]
    )

    if not result.recommendations:
        lines.append("No papers met the filtering criteria. Try lowering the minimum mentions or year.")
        lines.append("")

    for rank, rec in enumerate(result.recommendations, 1):
        lines.append(f"#### {rank}. {rec.title or 'Untitled'}")
        lines.append("")
        if rec.is_early_influential:
            lines.append("- **Early influential work**: foundational paper in this area")
        lines.append(f"- Year: {rec.year if rec.year is not None else 'Unknown'}")
        lines.append(f"- Citations: {rec.citation_count:,}")
        lines.append(f"- Mentioned by: {rec.mention_count} of your papers")
        lines.append(
            f"- Score: {rec.total_score:.1f} "
            f"(mentions {rec.mentioned_score} + impact {rec.impact_score} + recency {rec.recency_score})"
        )
        lines.append(f"- Link: {SEMANTIC_SCHOLAR_PAPER_URL}/{rec.paper_id}")
        lines.append("")

    return "\n".join(lines)


def generate_json_report(result: GapAnalysisResult, collection_name: str) -> dict[str, Any]:
    """Serializable summary of a run, for --json output."""
    sampling = result.sampling
    return {
        "collection": collection_name,
        "status": result.status.value,
        "papersAnalyzed": len(result.sources),
        "papersWithoutIdentifier": result.items_without_identifier,
        "uniqueCitations": result.unique_citations,
        "sampling": (
            {
                "sampled": sampling.should_sample,
                "sampleSize": sampling.sample_size,
                "mandatory": sampling.mandatory,
                "message": sampling.message,
            }
            if sampling
            else None
        ),
        "stats": result.fetch_stats.to_dict(),
        "recommendations": [rec.to_dict() for rec in result.recommendations],
    }


def save_report(content: str | dict[str, Any], path: str | Path) -> Path:
    """Write a report to disk, creating parent directories.

    Dict content is written as indented JSON.
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(content, dict):
        content = json.dumps(content, indent=2, ensure_ascii=False)

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info("Report saved to %s", output_path)
    return output_path
