#!/usr/bin/env python3
"""
Unit tests for knowledge gap mapping prompt construction.
"""

from litgap.models import MissingPaper
from litgap.prompt_builder import (
    build_framework_prompt,
    build_gap_prompt,
    build_topic_prompt,
    format_missing_papers,
    format_title_list,
    sanitise_title,
)


class TestFormatting:
    def test_sanitise_title(self):
        assert sanitise_title("  A\nmulti   line\ttitle ") == "A multi line title"
        assert sanitise_title("") == "(untitled)"
        assert sanitise_title(None) == "(untitled)"

    def test_title_list_numbered(self):
        assert format_title_list(["First", "Second\nPart"]) == "1. First\n2. Second Part"

    def test_title_list_capped(self):
        block = format_title_list([f"T{i}" for i in range(30)], max_count=20)

        assert block.count("\n") == 19
        assert block.endswith("20. T19")

    def test_empty_lists(self):
        assert format_title_list([]) == "(no titles available)"
        assert format_missing_papers([]) == "(no missing papers identified)"

    def test_missing_papers_with_counts(self):
        block = format_missing_papers([MissingPaper("Attention Is All You Need", 4)])
        assert block == "1. Attention Is All You Need (cited by 4 papers in library)"


class TestBuildPrompts:
    def test_topic_prompt_includes_titles(self):
        prompt = build_topic_prompt(["Graph Neural Networks", "Message Passing"])

        assert "ONE sentence" in prompt
        assert "1. Graph Neural Networks" in prompt
        assert "2. Message Passing" in prompt

    def test_framework_prompt(self):
        prompt = build_framework_prompt(["Paper A"], "Graph learning for chemistry")

        assert "Research domain: Graph learning for chemistry" in prompt
        assert "## Domain Knowledge Framework" in prompt
        assert "## Commonly Overlooked Areas" in prompt
        assert "1. Paper A" in prompt

    def test_framework_prompt_has_all_titles(self):
        titles = [f"Title {i}" for i in range(50)]
        assert "50. Title 49" in build_framework_prompt(titles, "Domain")

    def test_gap_prompt_caps_titles_and_missing_papers(self):
        titles = [f"Library {i}" for i in range(30)]
        missing = [MissingPaper(f"Missing {i}", 20 - i) for i in range(20)]

        prompt = build_gap_prompt("## Domain Knowledge Framework\n...", titles, missing, "Domain")

        assert "20. Library 19" in prompt
        assert "Library 20" not in prompt
        assert "15. Missing 14" in prompt
        assert "Missing 15" not in prompt
        assert "## Domain Knowledge Framework\n..." in prompt
        assert "## Conceptual Gap Analysis" in prompt

    def test_gap_prompt_empty_inputs(self):
        prompt = build_gap_prompt("", [], [], "Domain")

        assert "(no titles available)" in prompt
        assert "(no missing papers identified)" in prompt
