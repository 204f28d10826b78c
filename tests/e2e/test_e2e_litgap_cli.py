#!/usr/bin/env python3
"""
End-to-End tests for the litgap command line.

Drives the click commands through CliRunner with the network layer patched
out, checking console output, exit codes and the files users end up with.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from litgap.ai_client import AIClient, AIRateLimitError
from litgap.citation_fetcher import CitationFetcher
from litgap.cli import cli
from litgap.models import CitationFetchResult, CitationRecord, FetchStats

GAP_REPORT = """# LitGap Report: my_library

## Recommended Papers (2)

#### 1. Shared Foundations of Digital Health

- Year: 2020
- Mentioned by: 3 of your papers

#### 2. Remote Monitoring Revisited

- Year: 2019
- Mentioned by: 2 of your papers
"""


def _fetch_result(records):
    stats = FetchStats(total_requests=3, successful=3, total_citations=len(records))
    return CitationFetchResult(citations=records, own_identifiers={"S1", "S2", "S3"}, stats=stats, sources_processed=3)


def _shared_citations():
    records = []
    for source in ("Paper 1", "Paper 2", "Paper 3"):
        records.append(CitationRecord("SH1", "Shared Foundations of Digital Health", 2020, 400, source))
        records.append(CitationRecord("SH2", "Remote Monitoring Revisited", 2019, 80, source))
    records.append(CitationRecord("U1", "Only Once", 2021, 5, "Paper 1"))
    return records


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def gap_report_file(temp_dir):
    path = temp_dir / "litgap_my_library_2025-03-01.md"
    path.write_text(GAP_REPORT, encoding="utf-8")
    return path


class TestGapsCommand:
    """User journeys through 'litgap gaps'."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["gaps", "--help"])

        assert result.exit_code == 0
        assert "--min-mentions" in result.output
        assert "Semantic Scholar" in result.output

    def test_full_run_writes_reports(self, runner, library_file, temp_dir):
        output = temp_dir / "reports" / "gaps.md"
        json_output = temp_dir / "reports" / "gaps.json"

        with patch.object(CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result(_shared_citations())):
            result = runner.invoke(
                cli, ["gaps", str(library_file), "--output", str(output), "--json", str(json_output)]
            )

        assert result.exit_code == 0, result.output
        assert "Recommended Papers (2)" in result.output
        assert "Shared Foundations of Digital Health" in result.output
        assert "Report saved to:" in result.output

        report = output.read_text(encoding="utf-8")
        assert report.startswith("# LitGap Report: my_library")
        assert "**Papers without DOI (skipped)**: 1" in report

        data = json.loads(json_output.read_text(encoding="utf-8"))
        assert [r["paperId"] for r in data["recommendations"]] == ["SH1", "SH2"]
        assert data["recommendations"][0]["mentionCount"] == 3

    def test_default_report_name_in_current_directory(self, runner, library_file, temp_dir):
        with runner.isolated_filesystem(temp_dir=temp_dir) as cwd:
            with patch.object(
                CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result(_shared_citations())
            ):
                result = runner.invoke(cli, ["gaps", str(library_file), "--collection", "Thesis Ch 2"])

            assert result.exit_code == 0, result.output
            reports = list(Path(cwd).glob("litgap_thesis_ch_2_*.md"))
            assert len(reports) == 1

    def test_empty_recommendations_still_succeed(self, runner, library_file, temp_dir):
        records = [CitationRecord("U1", "Only Once", 2021, 5, "Paper 1")]

        with patch.object(CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result(records)):
            result = runner.invoke(cli, ["gaps", str(library_file), "-o", str(temp_dir / "r.md")])

        assert result.exit_code == 0
        assert "No papers met the filtering criteria" in result.output
        assert (temp_dir / "r.md").exists()

    def test_no_citations_fails(self, runner, library_file, temp_dir):
        with patch.object(CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result([])):
            result = runner.invoke(cli, ["gaps", str(library_file), "-o", str(temp_dir / "r.md")])

        assert result.exit_code == 1
        assert "❌ gaps: No citation data retrieved" in result.output
        assert not (temp_dir / "r.md").exists()

    def test_library_without_dois_fails_before_network(self, runner, temp_dir):
        library = temp_dir / "nodoi.json"
        library.write_text(json.dumps([{"itemType": "journalArticle", "title": "No DOI"}]), encoding="utf-8")

        with patch.object(CitationFetcher, "fetch", new_callable=AsyncMock) as mock_fetch:
            result = runner.invoke(cli, ["gaps", str(library)])

        assert result.exit_code == 1
        assert "No papers with DOI found" in result.output
        mock_fetch.assert_not_awaited()

    def test_missing_library_file(self, runner, temp_dir):
        result = runner.invoke(cli, ["gaps", str(temp_dir / "missing.json")])

        assert result.exit_code == 1
        assert "Failed to load library" in result.output

    @pytest.mark.parametrize(
        "args,message",
        [
            (["--delay", "-1"], "--delay cannot be negative"),
            (["--max-retries", "0"], "--max-retries must be at least 1"),
            (["--top-n", "-5"], "Invalid analysis options"),
        ],
    )
    def test_invalid_options(self, runner, library_file, args, message):
        result = runner.invoke(cli, ["gaps", str(library_file), *args])

        assert result.exit_code == 1
        assert message in result.output


class TestSamplingCommand:
    def test_small_library(self, runner):
        result = runner.invoke(cli, ["sampling", "30"])

        assert result.exit_code == 0
        assert "Will process all papers" in result.output
        assert "Papers processed: 30" in result.output

    def test_advisory_band(self, runner):
        result = runner.invoke(cli, ["sampling", "31"])

        assert "Sampling: recommended" in result.output
        assert "Papers processed: 50" in result.output

    def test_mandatory_band(self, runner):
        result = runner.invoke(cli, ["sampling", "101"])

        assert "Sampling: required" in result.output
        assert "Suggestion: Consider splitting" in result.output

    def test_negative_count_rejected(self, runner):
        result = runner.invoke(cli, ["sampling", "--", "-1"])
        assert result.exit_code != 0


class TestKgmCommand:
    """User journeys through 'litgap kgm'."""

    def test_full_run_with_detected_domain(self, runner, library_file, gap_report_file, temp_dir):
        output = temp_dir / "kgm.md"
        responses = [
            "Digital health interventions",
            "## Domain Knowledge Framework\nCore dimensions",
            "## Conceptual Gap Analysis\nMissing areas",
        ]

        with patch.object(AIClient, "complete", new_callable=AsyncMock, side_effect=responses) as mock_complete:
            result = runner.invoke(
                cli,
                [
                    "kgm",
                    str(library_file),
                    "--report",
                    str(gap_report_file),
                    "--provider",
                    "anthropic",
                    "--api-key",
                    "sk-test",
                    "--output",
                    str(output),
                ],
            )

        assert result.exit_code == 0, result.output
        assert mock_complete.await_count == 3
        assert "Research domain: Digital health interventions" in result.output
        content = output.read_text(encoding="utf-8")
        assert content.startswith("# Knowledge Gap Map: my_library")
        assert "**AI provider**: anthropic (claude-haiku-4-5-20251001)" in content
        assert "## Conceptual Gap Analysis\nMissing areas" in content
        assert "1. Shared Foundations of Digital Health (mentioned by 3 of your papers)" in content

    def test_explicit_domain_skips_detection(self, runner, library_file, gap_report_file, temp_dir):
        env = {"LITGAP_AI_PROVIDER": "openai", "LITGAP_AI_API_KEY": "sk-env"}

        with patch.object(AIClient, "complete", new_callable=AsyncMock, side_effect=["F", "G"]) as mock_complete:
            result = runner.invoke(
                cli,
                ["kgm", str(library_file), "--report", str(gap_report_file), "--domain", "Health", "-o", str(temp_dir / "k.md")],
                env=env,
            )

        assert result.exit_code == 0, result.output
        assert mock_complete.await_count == 2
        assert "**Research domain**: Health" in (temp_dir / "k.md").read_text(encoding="utf-8")

    def test_provider_not_configured(self, runner, library_file, gap_report_file):
        env = {"LITGAP_AI_PROVIDER": None, "LITGAP_AI_API_KEY": None}

        result = runner.invoke(cli, ["kgm", str(library_file), "--report", str(gap_report_file)], env=env)

        assert result.exit_code == 1
        assert "AI provider not configured" in result.output

    def test_unknown_provider(self, runner, library_file, gap_report_file):
        result = runner.invoke(
            cli, ["kgm", str(library_file), "--report", str(gap_report_file), "--provider", "mistral", "--api-key", "k"]
        )

        assert result.exit_code == 1
        assert "mistral" in result.output

    def test_report_without_papers(self, runner, library_file, temp_dir):
        report = temp_dir / "empty.md"
        report.write_text("# LitGap Report: x\n\nNo papers met the filtering criteria.\n", encoding="utf-8")

        result = runner.invoke(cli, ["kgm", str(library_file), "--report", str(report), "--provider", "openai", "--api-key", "k"])

        assert result.exit_code == 1
        assert "No missing papers found in report" in result.output

    def test_ai_error_exits_cleanly(self, runner, library_file, gap_report_file, temp_dir):
        with patch.object(AIClient, "complete", new_callable=AsyncMock, side_effect=AIRateLimitError("Rate limit reached")):
            result = runner.invoke(
                cli,
                [
                    "kgm",
                    str(library_file),
                    "--report",
                    str(gap_report_file),
                    "--domain",
                    "Health",
                    "--provider",
                    "google",
                    "--api-key",
                    "k",
                    "-o",
                    str(temp_dir / "k.md"),
                ],
            )

        assert result.exit_code == 1
        assert "AI request failed" in result.output
        assert "Wait a minute" in result.output
        assert not (temp_dir / "k.md").exists()

    def test_unreadable_report_exits_cleanly(self, runner, library_file, temp_dir):
        report = temp_dir / "binary.md"
        report.write_bytes(b"\xff\xfe#### 1. Not UTF-8\n")

        result = runner.invoke(cli, ["kgm", str(library_file), "--report", str(report), "--provider", "openai", "--api-key", "k"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Failed to read report" in result.output

    def test_library_without_titles_makes_no_ai_calls(self, runner, gap_report_file, temp_dir):
        library = temp_dir / "notes_only.json"
        library.write_text(json.dumps([{"itemType": "note", "title": "A note"}]), encoding="utf-8")

        with patch.object(AIClient, "complete", new_callable=AsyncMock) as mock_complete:
            result = runner.invoke(
                cli,
                ["kgm", str(library), "--report", str(gap_report_file), "--provider", "openai", "--api-key", "k"],
            )

        assert result.exit_code == 1
        assert "No papers found in this collection" in result.output
        mock_complete.assert_not_awaited()

    def test_without_report_runs_gap_analysis_first(self, runner, library_file, temp_dir):
        with runner.isolated_filesystem(temp_dir=temp_dir) as cwd:
            with patch.object(
                CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result(_shared_citations())
            ) as mock_fetch, patch.object(
                AIClient, "complete", new_callable=AsyncMock, side_effect=["F", "G"]
            ) as mock_complete:
                result = runner.invoke(
                    cli,
                    ["kgm", str(library_file), "--domain", "Health", "--provider", "openai", "--api-key", "k", "-o", "k.md"],
                )

            assert result.exit_code == 0, result.output
            mock_fetch.assert_awaited_once()
            assert mock_complete.await_count == 2
            assert len(list(Path(cwd).glob("litgap_my_library_*.md"))) == 1
            gap_prompt = mock_complete.await_args_list[1].args[0]
            assert "Shared Foundations of Digital Health (cited by 3 papers in library)" in gap_prompt
            assert "1. Shared Foundations of Digital Health" in Path(cwd, "k.md").read_text(encoding="utf-8")

    def test_without_report_stops_on_failed_analysis(self, runner, library_file, temp_dir):
        with patch.object(CitationFetcher, "fetch", new_callable=AsyncMock, return_value=_fetch_result([])), patch.object(
            AIClient, "complete", new_callable=AsyncMock
        ) as mock_complete:
            result = runner.invoke(
                cli, ["kgm", str(library_file), "--provider", "openai", "--api-key", "k", "-o", str(temp_dir / "k.md")]
            )

        assert result.exit_code == 1
        assert "❌ kgm: No citation data retrieved" in result.output
        mock_complete.assert_not_awaited()
