#!/usr/bin/env python3
"""
Central configuration for LitGap.

This module contains all configuration constants used throughout the application.
Modify these values to customize behavior without changing code logic.

Categories:
- Semantic Scholar API: Endpoint, timeouts, retry and rate limiting
- Gap Analysis: Filter defaults and scoring weights
- Early Influential: Annotation policy constants
- Sampling: Library-size thresholds and seeded sampling
- Library: Accepted item types and field limits
- AI Narrative: Provider defaults and knowledge gap mapping limits
- Reports: File naming
"""

# ============================================================================
# SEMANTIC SCHOLAR API
# ============================================================================
# API Configuration - Critical Relationships:
# - API_REQUEST_DELAY keeps the unauthenticated shared pool under its limit
# - Backoff before retry N waits API_REQUEST_DELAY x N x 2 seconds
SEMANTIC_SCHOLAR_API_URL = "https://api.semanticscholar.org/graph/v1"
IDENTIFIER_SCHEME = "DOI"  # Prefix for /paper/{scheme}:{id} lookups
API_REQUEST_TIMEOUT = 10  # Timeout for individual API requests (seconds)
API_MAX_RETRIES = 3  # Total attempts per source when rate limited (429)
API_REQUEST_DELAY = 3.0  # Delay between sources (seconds), also the backoff base

# Fields requested per source: the source record plus its outbound citation list
CITATION_FIELDS = ",".join(
    [
        "paperId",
        "title",
        "year",
        "citationCount",
        "citations",
        "citations.paperId",
        "citations.title",
        "citations.year",
        "citations.citationCount",
    ]
)

HTTP_OK = 200
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429

# ============================================================================
# GAP ANALYSIS CONFIGURATION
# ============================================================================
GAP_ANALYSIS_MIN_YEAR = 2010  # Candidates published before this year are dropped
GAP_ANALYSIS_TOP_N = 10  # Recommendations returned per run
GAP_ANALYSIS_MIN_MENTIONS = 2  # Min library papers that must cite a candidate

# Scoring weights: total = mentions x 10 + min(citations / 100, 5) + recency
MENTION_SCORE_WEIGHT = 10  # Points per citing library paper (dominant term)
IMPACT_SCORE_DIVISOR = 100  # Citations per impact point
IMPACT_SCORE_CAP = 5  # Diminishing returns on global citation count

# Recency points by publication age in years, checked in order
RECENCY_SCORE_BANDS = [
    (3, 3),  # age <= 3  -> 3 points
    (5, 2),  # age <= 5  -> 2 points
    (10, 1),  # age <= 10 -> 1 point
]

CITED_BY_TITLE_LENGTH = 50  # Source title snapshot kept on each citation record

# ============================================================================
# EARLY INFLUENTIAL ANNOTATION
# ============================================================================
# Display-only flag for old, highly cited papers near the top of the ranking
EARLY_INFLUENTIAL_YEAR_CUTOFF = 2016  # Published strictly before this year
EARLY_INFLUENTIAL_MIN_CITATIONS = 200  # Global citation count threshold
EARLY_INFLUENTIAL_MAX_MARKED = 2  # Never flag more than this many papers
EARLY_INFLUENTIAL_WINDOW_FACTOR = 2  # Window is top_n x factor candidates

# ============================================================================
# SAMPLING CONFIGURATION
# ============================================================================
SAMPLING_NO_SAMPLE_MAX = 30  # Libraries up to this size are processed whole
SAMPLING_ADVISORY_MAX = 100  # Up to this size sampling is recommended only
SAMPLING_SAMPLE_SIZE = 50  # Sources kept when sampling
SAMPLING_DEFAULT_SEED = 42  # Seed for reproducible sampling
SAMPLING_SAMPLED_ESTIMATE_MINUTES = 2  # Estimated run time for a 50-paper sample
SECONDS_PER_PAPER_ESTIMATE = 1.5  # Used for unsampled time estimates

# Linear congruential generator for seeded sampling (must not change)
SEEDED_RANDOM_MULTIPLIER = 9301
SEEDED_RANDOM_INCREMENT = 49297
SEEDED_RANDOM_MODULUS = 233280

# ============================================================================
# LIBRARY CONFIGURATION
# ============================================================================
# Item types accepted as citation seeds
VALID_PAPER_TYPES = [
    "journalArticle",
    "book",
    "bookSection",
    "conferencePaper",
    "preprint",
]

# Item types that are never regular library entries
NON_REGULAR_ITEM_TYPES = {"attachment", "note", "annotation"}

MAX_AUTHORS_PER_PAPER = 3  # Author names kept per source paper
SOURCE_ABSTRACT_MAX_CHARS = 200  # Abstract truncation for source papers

# ============================================================================
# AI NARRATIVE (KNOWLEDGE GAP MAPPING)
# ============================================================================
AI_DEFAULT_MODELS = {
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-4o-mini",
    "google": "gemini-1.5-flash",
    "custom": "gpt-4o-mini",
}
AI_MAX_TOKENS = 4096  # Large enough for framework + gap analysis in one response
AI_REQUEST_TIMEOUT = 120  # LLM responses are slow (seconds)
AI_ERROR_DETAIL_LENGTH = 200  # Truncation for error bodies in logs
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_API_BASE_URL = "https://api.openai.com"
GOOGLE_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

# Environment variables read by AIClient.from_env()
AI_PROVIDER_ENV = "LITGAP_AI_PROVIDER"
AI_API_KEY_ENV = "LITGAP_AI_API_KEY"
AI_MODEL_ENV = "LITGAP_AI_MODEL"
AI_BASE_URL_ENV = "LITGAP_AI_BASE_URL"

KGM_MAX_MISSING_PAPERS = 15  # Missing papers parsed from a gap report
KGM_MAX_ABSTRACT_PAPERS = 15  # Library papers whose abstracts are collected
KGM_ABSTRACT_MAX_CHARS = 150  # Per-abstract token budget
KGM_MAX_TITLES_GAP_PROMPT = 20  # Library sample size in the gap prompt

# ============================================================================
# REPORTS
# ============================================================================
REPORT_PREFIX = "litgap"
KGM_REPORT_PREFIX = "kgm"
SEMANTIC_SCHOLAR_PAPER_URL = "https://www.semanticscholar.org/paper"
