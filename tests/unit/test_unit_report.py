#!/usr/bin/env python3
"""
Unit tests for gap report generation and saving.
"""

import json
from datetime import UTC, date, datetime

from litgap.kgm_analyzer import parse_gap_report
from litgap.models import AnalysisStatus, FetchStats, GapAnalysisResult, MissingPaper
from litgap.report import default_report_filename, generate_json_report, generate_markdown_report, save_report
from litgap.sampling import determine_sampling_strategy
from tests.utils import make_candidate, make_source


def _result(recommendations=None, sampling=None):
    recs = recommendations if recommendations is not None else []
    for rec in recs:
        rec.total_score = rec.mention_count * 10
        rec.mentioned_score = rec.mention_count * 10
    return GapAnalysisResult(
        status=AnalysisStatus.COMPLETED,
        recommendations=recs,
        sources=[make_source("1", identifier="10.1/a"), make_source("2", identifier="10.1/b")],
        sampling=sampling or determine_sampling_strategy(2),
        fetch_stats=FetchStats(total_requests=2, successful=2, total_citations=10),
        unique_citations=8,
        items_without_identifier=1,
    )


class TestDefaultReportFilename:
    def test_safe_name(self):
        assert default_report_filename("My Thesis: Ch.2", date(2025, 3, 1)) == "litgap_my_thesis__ch_2_2025-03-01.md"

    def test_prefix(self):
        assert default_report_filename("lib", date(2025, 1, 2), prefix="kgm") == "kgm_lib_2025-01-02.md"


class TestMarkdownReport:
    def test_recommendation_blocks(self):
        early = make_candidate("abc123", year=2012, citation_count=1500, mention_count=3, title="Old But Gold")
        early.is_early_influential = True
        result = _result([early, make_candidate("def456", year=2021, mention_count=2, title="New Work")])

        report = generate_markdown_report(result, "Thesis", generated_at=datetime(2025, 3, 1, 9, 0, tzinfo=UTC))

        assert report.startswith("# LitGap Report: Thesis")
        assert "**Generated**: 2025-03-01 09:00 UTC" in report
        assert "**Papers analyzed**: 2" in report
        assert "#### 1. Old But Gold" in report
        assert "- Mentioned by: 3 of your papers" in report
        assert "- Citations: 1,500" in report
        assert "Early influential" in report
        assert "https://www.semanticscholar.org/paper/abc123" in report
        assert "#### 2. New Work" in report

    def test_report_round_trips_through_kgm_parser(self):
        result = _result(
            [
                make_candidate("a", mention_count=4, title="Paper Four"),
                make_candidate("b", mention_count=2, title="Paper Two"),
            ]
        )

        papers = parse_gap_report(generate_markdown_report(result, "C"))

        assert papers == [MissingPaper("Paper Four", 4), MissingPaper("Paper Two", 2)]

    def test_empty_recommendations(self):
        report = generate_markdown_report(_result([]), "C")

        assert "## Recommended Papers (0)" in report
        assert "No papers met the filtering criteria" in report

    def test_sampling_note(self):
        report = generate_markdown_report(_result([], sampling=determine_sampling_strategy(150)), "C")
        assert "> Collection too large" in report


class TestJsonReport:
    def test_serializable(self):
        result = _result([make_candidate("a", mention_count=2)])

        data = generate_json_report(result, "C")

        assert data["status"] == "completed"
        assert data["stats"]["successful"] == 2
        assert data["recommendations"][0]["paperId"] == "a"
        assert data["recommendations"][0]["mentionCount"] == 2
        json.dumps(data)


class TestSaveReport:
    def test_creates_parent_dirs(self, temp_dir):
        path = save_report("# Report", temp_dir / "exports" / "nested" / "r.md")

        assert path.read_text(encoding="utf-8") == "# Report"

    def test_dict_written_as_json(self, temp_dir):
        path = save_report({"a": 1}, temp_dir / "r.json")
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}
