#!/usr/bin/env python3
"""LitGap command-line interface.

Commands:
    gaps      Find papers your library cites often but does not contain
    sampling  Show how a library of a given size would be sampled
    kgm       Turn a gap report into a knowledge gap map with an AI provider

Usage Examples:
    litgap gaps library.json                         # Default analysis
    litgap gaps library.json --min-mentions 3        # Stronger signal only
    litgap gaps library.json --top-n 20 --json out.json
    litgap sampling 120
    litgap kgm library.json --report litgap_library_2025-03-01.md --provider anthropic
    litgap kgm library.json --provider openai       # Runs the gap analysis first
"""

import asyncio
import logging
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from .ai_client import (
    AIClient,
    AIClientError,
    AINetworkError,
    AIRateLimitError,
    InvalidKeyError,
    UnknownProviderError,
)
from .citation_fetcher import CitationFetcher
from .config import (
    API_MAX_RETRIES,
    API_REQUEST_DELAY,
    GAP_ANALYSIS_MIN_MENTIONS,
    GAP_ANALYSIS_MIN_YEAR,
    GAP_ANALYSIS_TOP_N,
    KGM_REPORT_PREFIX,
    SAMPLING_DEFAULT_SEED,
)
from .error_formatting import exit_with_common_error, safe_exit
from .gap_detection import GapAnalyzer
from .kgm_analyzer import (
    collect_library_data,
    detect_topic,
    generate_kgm_report,
    parse_gap_report,
    run_kgm_analysis,
)
from .library import LibraryLoadError, load_library
from .models import GapAnalysisResult, GapScoringOptions, KGMResult, LibraryData, LibraryItem, MissingPaper
from .output_formatting import ProgressTracker, print_header, print_status, print_summary
from .report import default_report_filename, generate_json_report, generate_markdown_report, save_report
from .sampling import determine_sampling_strategy

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _load_library_or_exit(library_json: str, command: str) -> list[LibraryItem]:
    try:
        return load_library(library_json)
    except LibraryLoadError as e:
        safe_exit(
            "Failed to load library",
            "Export your library as JSON (a list of items or {\"items\": [...]})",
            "Loading library snapshot",
            technical_details=str(e),
            module=command,
        )


class _FetchProgress:
    """Adapts fetcher progress callbacks to a ProgressTracker created on first use."""

    def __init__(self) -> None:
        self.tracker: ProgressTracker | None = None

    def __call__(self, index: int, total: int, title: str) -> None:
        if self.tracker is None:
            self.tracker = ProgressTracker("Fetching citations", total=total)
        self.tracker.update(index, title)

    def complete(self, message: str = "") -> None:
        if self.tracker is not None:
            self.tracker.complete(message)


@click.group()
@click.version_option(__version__, prog_name="litgap")
def cli() -> None:
    r"""LitGap - Find the papers your library keeps citing but does not have.

    \b
    COMMANDS:
      gaps      Citation gap analysis over a library snapshot (JSON)
      sampling  Preview the sampling decision for a library size
      kgm       Knowledge gap map from a gap report (needs an AI provider)

    \b
    QUICK START:
      litgap gaps library.json
      litgap kgm library.json --report litgap_library_2025-03-01.md
    """


@cli.command()
@click.argument("library_json", type=click.Path(dir_okay=False))
@click.option("--collection", default=None, help="Collection name for the report (default: file name)")
@click.option(
    "--min-year",
    type=int,
    default=GAP_ANALYSIS_MIN_YEAR,
    show_default=True,
    metavar="YYYY",
    help="""Drop candidates published before this year.

    Candidates with a missing or unreadable year are always dropped.""",
)
@click.option(
    "--top-n",
    type=int,
    default=GAP_ANALYSIS_TOP_N,
    show_default=True,
    metavar="N",
    help="Number of recommendations to return.",
)
@click.option(
    "--min-mentions",
    type=int,
    default=GAP_ANALYSIS_MIN_MENTIONS,
    show_default=True,
    metavar="N",
    help="""Minimum number of your papers that must cite a candidate.

    • 1: Every cited paper qualifies (noisy)
    • 2 (default): Cited by at least two of your papers
    • 3+: Strong signal only, fewer results""",
)
@click.option(
    "--delay",
    type=float,
    default=API_REQUEST_DELAY,
    show_default=True,
    metavar="SECONDS",
    help="""Pause between Semantic Scholar requests.

    Also the base of the rate limit backoff. Lowering it below 3s makes
    HTTP 429 responses likely on the unauthenticated API.""",
)
@click.option(
    "--max-retries",
    type=int,
    default=API_MAX_RETRIES,
    show_default=True,
    metavar="N",
    help="Attempts per paper when rate limited.",
)
@click.option("--seed", type=int, default=SAMPLING_DEFAULT_SEED, show_default=True, help="Sampling seed.")
@click.option(
    "--no-advisory-sampling",
    is_flag=True,
    help="Process every paper in 31-100 paper libraries instead of sampling 50.",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Markdown report path")
@click.option("--json", "json_path", type=click.Path(dir_okay=False), help="Also write a JSON report here")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def gaps(
    library_json: str,
    collection: str | None,
    min_year: int,
    top_n: int,
    min_mentions: int,
    delay: float,
    max_retries: int,
    seed: int,
    no_advisory_sampling: bool,
    output: str | None,
    json_path: str | None,
    verbose: bool,
) -> None:
    r"""Citation gap analysis - papers your library cites but does not contain.

    \b
    WORKFLOW:
    1. Keeps academic items with a DOI as sources
    2. Samples 50 sources from large libraries (seeded, reproducible)
    3. Fetches each source's citations from Semantic Scholar (one request
       every 3s by default)
    4. Counts how many of your papers cite each candidate
    5. Scores: mentions x 10 + min(citations / 100, 5) + recency (0-3)

    \b
    OUTPUT:
    Markdown report litgap_<collection>_<date>.md in the current directory,
    unless --output is given.
    """
    _configure_logging(verbose)

    if delay < 0:
        safe_exit("--delay cannot be negative", "Use 0 or a positive number of seconds", module="gaps")
    if max_retries < 1:
        safe_exit("--max-retries must be at least 1", "Use 1 to disable retries", module="gaps")
    if seed < 0:
        safe_exit("--seed cannot be negative", "Use any non-negative integer", module="gaps")

    try:
        options = GapScoringOptions(min_year=min_year, top_n=top_n, min_mentions=min_mentions)
    except ValueError as e:
        safe_exit("Invalid analysis options", "Use non-negative values", technical_details=str(e), module="gaps")

    items = _load_library_or_exit(library_json, "gaps")
    collection_name = collection or Path(library_json).stem

    print_header("🔍 Running Citation Gap Analysis", f"Collection: {collection_name}")
    print_status(f"Library items: {len(items)}", "info")
    print_status(f"Filters: year >= {min_year}, mentions >= {min_mentions}, top {top_n}", "info")

    analyzer = GapAnalyzer(
        fetcher=CitationFetcher(delay=delay, max_retries=max_retries),
        options=options,
        sampling_seed=seed,
        include_advisory_sampling=not no_advisory_sampling,
    )
    result = _run_analysis_or_exit(analyzer, items, "gaps")
    _print_gap_results(result)

    report_path = Path(output) if output else Path(default_report_filename(collection_name))
    save_report(generate_markdown_report(result, collection_name), report_path)
    print_status(f"Report saved to: {report_path}", "success")

    if json_path:
        save_report(generate_json_report(result, collection_name), json_path)
        print_status(f"JSON report saved to: {json_path}", "success")


def _run_analysis_or_exit(analyzer: GapAnalyzer, items: list[LibraryItem], command: str) -> GapAnalysisResult:
    progress = _FetchProgress()

    try:
        result = asyncio.run(analyzer.run(items, progress_callback=progress))
    except KeyboardInterrupt:
        safe_exit("Analysis interrupted by user", "Re-run the command to start over", module=command)

    progress.complete()

    if not result.succeeded:
        exit_with_common_error(result.status.value, module=command)
    return result


def _print_gap_results(result: GapAnalysisResult) -> None:
    stats = result.fetch_stats
    if result.sampling and result.sampling.should_sample and len(result.sources) == result.sampling.sample_size:
        print_status(result.sampling.message, "warning" if result.sampling.mandatory else "info")

    print_summary(
        {
            "papers_analyzed": len(result.sources),
            "papers_without_doi": result.items_without_identifier,
            "successful_lookups": stats.successful,
            "not_found": stats.not_found,
            "rate_limited": stats.rate_limited,
            "failed": stats.failed,
            "unique_citations": result.unique_citations,
        },
        title="API Statistics",
    )

    if not result.recommendations:
        print_status("No papers met the filtering criteria", "warning")
        print("   Try --min-mentions 1 or an earlier --min-year")
        return

    print_header(f"Recommended Papers ({len(result.recommendations)})")
    for i, rec in enumerate(result.recommendations, 1):
        marker = " ⭐ early influential" if rec.is_early_influential else ""
        print(f"{i:2d}. {rec.title}{marker}")
        print(
            f"    Year: {rec.year} | Citations: {rec.citation_count:,} | "
            f"Mentioned by: {rec.mention_count} | Score: {rec.total_score:.1f}"
        )


@cli.command()
@click.argument("count", type=click.IntRange(min=0))
def sampling(count: int) -> None:
    """Show the sampling decision for COUNT papers with a DOI."""
    decision = determine_sampling_strategy(count)
    status_type = {"none": "success", "info": "info", "warning": "warning"}[decision.warning_level]

    print_status(decision.message, status_type)
    print(f"   Papers processed: {decision.sample_size if decision.should_sample else count}")
    print(f"   Estimated time: ~{decision.estimated_minutes} min")
    if decision.should_sample:
        print(f"   Sampling: {'required' if decision.mandatory else 'recommended'}")
    if decision.reason:
        print(f"   Reason: {decision.reason}")
    if decision.suggestion:
        print(f"   Suggestion: {decision.suggestion}")


@cli.command()
@click.argument("library_json", type=click.Path(dir_okay=False))
@click.option(
    "--report",
    "report_path",
    type=click.Path(exists=True, dir_okay=False),
    help="LitGap Markdown report produced by 'litgap gaps' (runs the gap analysis first when omitted)",
)
@click.option("--collection", default=None, help="Collection name (default: file name)")
@click.option("--domain", default=None, help="Research domain; detected by the AI provider when omitted")
@click.option(
    "--provider",
    default=None,
    help="anthropic, openai, google or custom (default: $LITGAP_AI_PROVIDER)",
)
@click.option("--api-key", default=None, help="Provider API key (default: $LITGAP_AI_API_KEY)")
@click.option("--model", default=None, help="Model override (default: provider default)")
@click.option("--base-url", default=None, help="Base URL for the custom provider (OpenAI-compatible)")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Knowledge gap map path")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def kgm(
    library_json: str,
    report_path: str | None,
    collection: str | None,
    domain: str | None,
    provider: str | None,
    api_key: str | None,
    model: str | None,
    base_url: str | None,
    output: str | None,
    verbose: bool,
) -> None:
    r"""Knowledge gap map - conceptual gaps in your library.

    \b
    WORKFLOW:
    1. Reads missing papers from a gap report, or runs the gap analysis
       first (default settings) and saves its report when --report is omitted
    2. Detects the research domain (or uses --domain)
    3. Step A: AI builds a domain knowledge framework
    4. Step B: AI maps conceptual gaps against framework and missing papers

    \b
    OUTPUT:
    Markdown file kgm_<collection>_<date>.md unless --output is given.
    """
    _configure_logging(verbose)

    items = _load_library_or_exit(library_json, "kgm")
    collection_name = collection or Path(library_json).stem

    library_data = collect_library_data(items, collection_name)
    if not library_data.all_titles:
        exit_with_common_error("no_library_titles", module="kgm")

    client = _build_client_or_exit(provider, api_key, model, base_url)

    if report_path:
        report_markdown = _read_report_or_exit(report_path)
    else:
        report_markdown = _run_gaps_for_kgm(items, collection_name)

    missing_papers = parse_gap_report(report_markdown)
    if not missing_papers:
        safe_exit(
            "No missing papers found in report",
            "Pass a report produced by 'litgap gaps' (litgap_*.md)",
            "Parsing gap report",
            module="kgm",
        )

    print_header("🧭 Knowledge Gap Mapping", f"Collection: {collection_name}")
    print_status(f"Library titles: {len(library_data.all_titles)}", "info")
    print_status(f"Missing papers from report: {len(missing_papers)}", "info")

    try:
        confirmed_domain, result = asyncio.run(_run_kgm(library_data, missing_papers, domain, client))
    except AIClientError as e:
        _exit_for_ai_error(e)
    except KeyboardInterrupt:
        safe_exit("Analysis interrupted by user", "Re-run the command to start over", module="kgm")

    content = generate_kgm_report(
        result,
        confirmed_domain,
        collection_name,
        missing_papers=missing_papers,
        provider_name=f"{client.provider.value} ({client.model})",
    )
    out_path = Path(output) if output else Path(default_report_filename(collection_name, prefix=KGM_REPORT_PREFIX))
    save_report(content, out_path)
    print_status(f"Knowledge gap map saved to: {out_path}", "success")


def _read_report_or_exit(report_path: str) -> str:
    try:
        with open(report_path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        safe_exit(
            "Failed to read report",
            "Pass a UTF-8 Markdown report produced by 'litgap gaps'",
            "Reading gap report",
            technical_details=str(e),
            module="kgm",
        )


def _run_gaps_for_kgm(items: list[LibraryItem], collection_name: str) -> str:
    """Run the gap analysis with default settings, save its report and return the Markdown."""
    print_header("🔍 Running Citation Gap Analysis", f"Collection: {collection_name}")
    result = _run_analysis_or_exit(GapAnalyzer(), items, "kgm")
    _print_gap_results(result)

    markdown = generate_markdown_report(result, collection_name)
    report_path = Path(default_report_filename(collection_name))
    save_report(markdown, report_path)
    print_status(f"Report saved to: {report_path}", "success")
    return markdown


async def _run_kgm(
    library_data: LibraryData, missing_papers: list[MissingPaper], domain: str | None, client: AIClient
) -> tuple[str, KGMResult]:
    if not domain:
        print_status("Detecting research domain...", "working")
        domain = await detect_topic(library_data, client)
        print_status(f"Research domain: {domain}", "info")

    def on_progress(step: int, total: int, message: str) -> None:
        print_status(f"[{step}/{total}] {message}", "working")

    result = await run_kgm_analysis(library_data, missing_papers, domain, client, on_progress)
    return domain, result


def _build_client_or_exit(
    provider: str | None, api_key: str | None, model: str | None, base_url: str | None
) -> AIClient:
    try:
        if provider or api_key:
            if not (provider and api_key):
                exit_with_common_error("ai_not_configured", module="kgm")
            return AIClient(provider, api_key, model=model, custom_base_url=base_url)

        client = AIClient.from_env()
    except UnknownProviderError as e:
        safe_exit(str(e), "Use one of: anthropic, openai, google, custom", module="kgm")
    except ValueError as e:
        safe_exit("Invalid AI provider settings", "Check --api-key and --base-url", technical_details=str(e), module="kgm")

    if client is None:
        exit_with_common_error("ai_not_configured", module="kgm")
    return client


def _exit_for_ai_error(error: AIClientError) -> NoReturn:
    if isinstance(error, InvalidKeyError):
        suggestion = "Check your API key and provider"
    elif isinstance(error, AIRateLimitError):
        suggestion = "Wait a minute and retry, or switch to another model"
    elif isinstance(error, AINetworkError):
        suggestion = "Check your network connection and --base-url"
    else:
        suggestion = "Retry later; the provider returned an unexpected response"
    safe_exit("AI request failed", suggestion, "Knowledge gap mapping", technical_details=str(error), module="kgm")


if __name__ == "__main__":
    cli()
