"""Knowledge Gap Mapping (KGM) analysis.

Turns a finished gap report into a narrative: what the research domain
looks like, and which conceptual areas the library is missing.

Workflow:
    1. collect_library_data: titles and a few abstracts from the library
    2. parse_gap_report: missing papers read back from a LitGap Markdown report
    3. detect_topic: one-sentence domain description from the AI provider
    4. run_kgm_analysis: step A builds a domain framework, step B maps gaps

The AI client is passed in, so tests can substitute any object with an
async ``complete(prompt)`` method.
"""

import logging
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol

from .config import (
    KGM_ABSTRACT_MAX_CHARS,
    KGM_MAX_ABSTRACT_PAPERS,
    KGM_MAX_MISSING_PAPERS,
    NON_REGULAR_ITEM_TYPES,
)
from .models import KGMResult, LibraryData, LibraryItem, MissingPaper
from .prompt_builder import build_framework_prompt, build_gap_prompt, build_topic_prompt

logger = logging.getLogger(__name__)

KGMProgressCallback = Callable[[int, int, str], None]

# "#### N. Title" followed, possibly lines later, by "- Mentioned by: N"
_SECTION_PATTERN = re.compile(r"####\s+\d+\.\s+(.+?)(?:\n[\s\S]*?)?[-*]\s*Mentioned by:\s*(\d+)")
_TITLE_PATTERN = re.compile(r"####\s+\d+\.\s+(.+)")
_MENTION_PATTERN = re.compile(r"Mentioned by:\s*(\d+)")


class CompletionClient(Protocol):
    async def complete(self, prompt: str, system_prompt: str = "") -> str: ...


def _clean(text: str | None) -> str:
    return (text or "").replace("\n", " ").strip()


def collect_library_data(items: Sequence[LibraryItem], collection_name: str) -> LibraryData:
    """Gather titles and leading abstracts from regular library items.

    Attachments, notes and annotations are skipped. All non-empty titles are
    kept; abstracts come from the first 15 regular items, cut to 150
    characters with a trailing ``...`` when shortened.
    """
    regular = [item for item in items if item.item_type not in NON_REGULAR_ITEM_TYPES]
    logger.debug("Found %d regular items in %s", len(regular), collection_name)

    all_titles = [title for title in (_clean(item.title) for item in regular) if title]

    top_abstracts = []
    for item in regular[:KGM_MAX_ABSTRACT_PAPERS]:
        title = _clean(item.title)
        if not title:
            continue
        full = item.abstract or ""
        abstract = full[:KGM_ABSTRACT_MAX_CHARS].strip()
        if len(full) > KGM_ABSTRACT_MAX_CHARS:
            abstract += "..."
        top_abstracts.append((title, abstract))

    logger.info("Collected %d titles, %d abstracts", len(all_titles), len(top_abstracts))
    return LibraryData(collection_name=collection_name, all_titles=all_titles, top_abstracts=top_abstracts)


def parse_gap_report(markdown: str) -> list[MissingPaper]:
    """Extract missing papers from a LitGap Markdown report.

    Each ``#### N. Title`` heading is paired with the next
    ``Mentioned by: N`` line. If that finds nothing, titles and mention
    lines are paired by position instead.

    Returns:
        Up to 15 papers sorted by mention count, highest first
    """
    if not markdown or not markdown.strip():
        logger.debug("Empty report content")
        return []

    results = []
    for match in _SECTION_PATTERN.finditer(markdown):
        title = _clean(match.group(1))
        if title:
            results.append(MissingPaper(title=title, mention_count=int(match.group(2))))

    if not results:
        logger.debug("Primary pattern found nothing, trying fallback")
        titles = [m.strip() for m in _TITLE_PATTERN.findall(markdown)]
        mentions = [int(m) for m in _MENTION_PATTERN.findall(markdown)]
        results = [MissingPaper(title=t, mention_count=n) for t, n in zip(titles, mentions)]

    results.sort(key=lambda p: p.mention_count, reverse=True)
    limited = results[:KGM_MAX_MISSING_PAPERS]

    logger.info("Parsed %d missing papers from report", len(limited))
    for i, paper in enumerate(limited, 1):
        logger.debug("  %d. [%dx] %s", i, paper.mention_count, paper.title[:60])
    return limited


async def detect_topic(library_data: LibraryData, client: CompletionClient) -> str:
    """Ask the AI provider for a one-sentence research domain."""
    response = await client.complete(build_topic_prompt(library_data.all_titles))

    topic = response.strip().strip("\"'")
    topic = re.sub(r"\s+", " ", topic).strip()
    logger.info("Detected topic: %s", topic)
    return topic


async def run_kgm_analysis(
    library_data: LibraryData,
    missing_papers: Sequence[MissingPaper],
    domain: str,
    client: CompletionClient,
    progress_callback: KGMProgressCallback | None = None,
) -> KGMResult:
    """Run the two-step analysis: domain framework, then conceptual gaps.

    Args:
        library_data: From collect_library_data()
        missing_papers: From parse_gap_report()
        domain: Confirmed research domain description
        client: AI client with an async complete() method
        progress_callback: Called with (step, 2, message) before each step

    Returns:
        KGMResult with the raw Markdown of both steps

    Raises:
        AIClientError: Propagated from the client; a failed step aborts the analysis
    """
    logger.info("=" * 60)
    logger.info("Starting two-step KGM analysis")
    logger.info("  Domain: %s", domain)
    logger.info("  Titles: %d, missing papers: %d", len(library_data.all_titles), len(missing_papers))

    if progress_callback:
        progress_callback(1, 2, "Generating domain knowledge framework...")
    framework = await client.complete(build_framework_prompt(library_data.all_titles, domain))
    logger.debug("Framework step complete (%d chars)", len(framework))

    if progress_callback:
        progress_callback(2, 2, "Identifying conceptual gaps...")
    gap_analysis = await client.complete(
        build_gap_prompt(framework, library_data.all_titles, missing_papers, domain)
    )
    logger.debug("Gap step complete (%d chars)", len(gap_analysis))

    return KGMResult(framework=framework, gap_analysis=gap_analysis)


def generate_kgm_report(
    result: KGMResult,
    domain: str,
    collection_name: str,
    missing_papers: Sequence[MissingPaper] = (),
    provider_name: str = "",
    generated_at: datetime | None = None,
) -> str:
    """Combine both analysis steps into a single Markdown document."""
    generated_at = generated_at or datetime.now(UTC)

    lines = [
        f"# Knowledge Gap Map: {collection_name}",
        "",
        f"**Generated**: {generated_at.strftime('%Y-%m-%d %H:%M UTC')}",
        f"**Research domain**: {domain}",
    ]
    if provider_name:
        lines.append(f"**AI provider**: {provider_name}")
    lines.extend(["", "---", "", result.framework.strip(), "", "---", "", result.gap_analysis.strip(), ""])

    if missing_papers:
        lines.extend(["---", "", "## Missing Papers Considered", ""])
        for i, paper in enumerate(missing_papers, 1):
            lines.append(f"{i}. {paper.title} (mentioned by {paper.mention_count} of your papers)")
        lines.append("")

    return "\n".join(lines)
