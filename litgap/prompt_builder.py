"""Prompt construction for knowledge gap mapping.

Three builders, all pure functions:

- build_topic_prompt: detect the research domain from paper titles
- build_framework_prompt: step A, a domain knowledge framework
- build_gap_prompt: step B, conceptual gaps against that framework

Title lists are numbered and cleaned; the gap prompt caps the library sample
and the missing paper list to keep the request small.
"""

import re
from collections.abc import Sequence

from .config import KGM_MAX_MISSING_PAPERS, KGM_MAX_TITLES_GAP_PROMPT
from .models import MissingPaper

NO_TITLES = "(no titles available)"
NO_MISSING_PAPERS = "(no missing papers identified)"
UNTITLED = "(untitled)"


def sanitise_title(title: str | None) -> str:
    if not title:
        return UNTITLED
    return re.sub(r"\s+", " ", title.replace("\n", " ")).strip() or UNTITLED


def format_title_list(titles: Sequence[str], max_count: int | None = None) -> str:
    """Numbered Markdown list of titles, ``(no titles available)`` when empty."""
    if not titles:
        return NO_TITLES

    limited = titles[:max_count] if max_count is not None else titles
    return "\n".join(f"{i}. {sanitise_title(title)}" for i, title in enumerate(limited, 1))


def format_missing_papers(papers: Sequence[MissingPaper]) -> str:
    if not papers:
        return NO_MISSING_PAPERS

    return "\n".join(
        f"{i}. {sanitise_title(p.title)} (cited by {p.mention_count} papers in library)"
        for i, p in enumerate(papers, 1)
    )


def build_topic_prompt(titles: Sequence[str]) -> str:
    """Ask for the research domain in one short sentence."""
    return "\n".join(
        [
            "Based on the following paper titles from a researcher's reference library,",
            "identify the research domain in ONE sentence (maximum 20 words).",
            "Do not explain or add context. Output only the domain description sentence.",
            "",
            "Paper titles:",
            format_title_list(titles),
        ]
    )


def build_framework_prompt(titles: Sequence[str], domain: str) -> str:
    """Step A prompt; the response is expected to open with ``## Domain Knowledge Framework``."""
    return "\n".join(
        [
            "You are a research advisor helping a researcher understand their field.",
            "",
            f"Research domain: {domain}",
            "",
            "Based on the research domain above and the following paper titles from the",
            "researcher's library, generate a domain knowledge framework.",
            "",
            "Requirements:",
            "1. Identify 5-8 core dimensions of this research domain.",
            "2. For each dimension provide:",
            "   - Name (concise, 2-5 words)",
            "   - Description (1-2 sentences explaining what this dimension covers)",
            "   - Key concepts (3-5 terms or sub-topics)",
            '3. After the dimensions, add a section "## Commonly Overlooked Areas" that',
            "   lists 2-3 topics researchers in this field often miss.",
            "",
            "Format your entire response in Markdown.",
            "Start directly with the heading: ## Domain Knowledge Framework",
            "Do not add any preamble or explanation before that heading.",
            "",
            "Paper titles from researcher's library:",
            format_title_list(titles),
        ]
    )


def build_gap_prompt(
    framework: str,
    titles: Sequence[str],
    missing_papers: Sequence[MissingPaper],
    domain: str,
) -> str:
    """Step B prompt combining the framework, a library sample and missing papers.

    Only the first 20 titles and the first 15 missing papers are included.
    """
    title_block = format_title_list(titles, KGM_MAX_TITLES_GAP_PROMPT)
    missing_block = format_missing_papers(missing_papers[:KGM_MAX_MISSING_PAPERS])

    return "\n".join(
        [
            "You are a research advisor analyzing knowledge gaps in a researcher's library.",
            "",
            f"Research domain: {domain}",
            "",
            "---",
            "## Domain Knowledge Framework (generated in previous step)",
            "",
            framework,
            "",
            "---",
            f"## Researcher's Library Sample (up to {KGM_MAX_TITLES_GAP_PROMPT} papers)",
            "",
            title_block,
            "",
            "---",
            "## Papers Frequently Cited in This Field But Missing from Library",
            "(These are papers cited by multiple sources in the researcher's collection",
            "but not yet read by the researcher.)",
            "",
            missing_block,
            "",
            "---",
            "Task: Identify 3-5 conceptual gaps based on the framework, library sample,",
            "and missing papers above.",
            "",
            "For each gap provide ALL of the following sections:",
            "",
            "### Gap [N]: [Gap Name]",
            "**Gap type:** [Methodological / Theoretical / Empirical / Application / Interdisciplinary]",
            "",
            "**Why this gap matters:**",
            "[1-2 sentences explaining the significance of this gap in the research domain]",
            "",
            "**What the researcher likely doesn't know:**",
            "[2-3 specific knowledge items or concepts the researcher may be missing]",
            "",
            "**Related missing papers:**",
            "[List 1-3 paper titles from the missing papers list that are relevant to this gap]",
            "",
            "**Suggested question for your AI assistant:**",
            "[Write a complete, self-contained, copy-pasteable prompt the researcher can use",
            "immediately in any AI assistant to explore this gap.",
            "The prompt should include enough context so it works without any other information.",
            "Make it specific and actionable, not a vague question.]",
            "",
            "---",
            "",
            "Format your entire response in Markdown.",
            "Start directly with the heading: ## Conceptual Gap Analysis",
            "Do not add any preamble or explanation before that heading.",
            "Use the exact section structure shown above for each gap.",
        ]
    )
