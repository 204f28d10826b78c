#!/usr/bin/env python3
"""Unified error message formatting for LitGap.

Every user-facing failure is printed as the same block on stderr:

    ❌ module.command: Error description
       Context: What the user was trying to do
       Solution: Actionable next step
       Details: Technical information

Usage:
    from litgap.error_formatting import safe_exit, ErrorFormatter

    # Simple error with auto-exit
    safe_exit("Library file not found", "Export your library as JSON first")

    # Custom formatting
    formatter = ErrorFormatter(module="cli", command="gaps")
    formatter.error("Analysis failed", "Fetching citations", exit_code=2)
"""

import sys
from typing import Any, NoReturn


class ErrorFormatter:
    """Consistent error message formatter for LitGap modules."""

    def __init__(self, module: str = "unknown", command: str | None = None):
        self.module = module
        self.command = command

    def format_error(
        self, error_type: str, context: str = "", suggestion: str = "", technical_details: str = ""
    ) -> str:
        """Format error message with consistent structure.

        Args:
            error_type: Brief error description (e.g., "Library file not found")
            context: What the user was trying to do
            suggestion: Actionable next step
            technical_details: Optional technical information

        Returns:
            Formatted error message string
        """
        if self.command:
            lines = [f"❌ {self.module}.{self.command}: {error_type}"]
        else:
            lines = [f"❌ {self.module}: {error_type}"]

        if context:
            lines.append(f"   Context: {context}")
        if suggestion:
            lines.append(f"   Solution: {suggestion}")
        if technical_details:
            lines.append(f"   Details: {technical_details}")

        return "\n".join(lines)

    def error(
        self,
        error_type: str,
        context: str = "",
        suggestion: str = "",
        technical_details: str = "",
        exit_code: int = 1,
    ) -> NoReturn:
        """Print formatted error to stderr and exit with ``exit_code``."""
        message = self.format_error(error_type, context, suggestion, technical_details)
        print(message, file=sys.stderr)
        sys.exit(exit_code)


def format_error(
    error_type: str,
    context: str = "",
    suggestion: str = "",
    technical_details: str = "",
    module: str = "litgap",
) -> str:
    """Quick error formatting function."""
    return ErrorFormatter(module=module).format_error(error_type, context, suggestion, technical_details)


def safe_exit(
    error_type: str,
    suggestion: str = "",
    context: str = "",
    technical_details: str = "",
    module: str = "litgap",
    exit_code: int = 1,
) -> NoReturn:
    """Print formatted error and exit safely.

    Args:
        error_type: Brief error description
        suggestion: Actionable next step
        context: What the user was trying to do
        technical_details: Optional technical information
        module: Module name for context
        exit_code: Exit code (default: 1)
    """
    ErrorFormatter(module=module).error(error_type, context, suggestion, technical_details, exit_code)


# Run-level gap failures are keyed by their AnalysisStatus value
COMMON_ERRORS = {
    "no_academic_items": {
        "error_type": "No academic items found in library",
        "context": "Selecting source papers for gap analysis",
        "suggestion": "Library must contain journal articles, books, book sections, conference papers or preprints",
        "technical_details": "All items were filtered out by item type",
    },
    "no_identifiers": {
        "error_type": "No papers with DOI found",
        "context": "Selecting source papers for gap analysis",
        "suggestion": "Add DOIs to your library items; citation lookups are keyed by DOI",
        "technical_details": "Every academic item has an empty DOI field",
    },
    "no_citations": {
        "error_type": "No citation data retrieved",
        "context": "Fetching citations from Semantic Scholar",
        "suggestion": "Check your network connection, wait a few minutes if rate limited, and retry",
        "technical_details": "Zero citation records were collected from all sources",
    },
    "library_not_found": {
        "error_type": "Library file not found",
        "context": "Loading library snapshot",
        "suggestion": "Export your library as JSON and pass the file path",
        "technical_details": "",
    },
    "no_library_titles": {
        "error_type": "No papers found in this collection",
        "context": "Collecting library titles for knowledge gap mapping",
        "suggestion": "Pass a library export that contains regular items with titles",
        "technical_details": "Attachments, notes and untitled items are ignored",
    },
    "ai_not_configured": {
        "error_type": "AI provider not configured",
        "context": "Preparing knowledge gap narrative",
        "suggestion": "Pass --provider and --api-key, or set LITGAP_AI_PROVIDER and LITGAP_AI_API_KEY",
        "technical_details": "",
    },
}


def get_common_error(error_key: str, module: str = "litgap", **kwargs: Any) -> dict[str, Any]:
    """Get pre-configured common error with module context.

    Raises:
        ValueError: If ``error_key`` is not a known error.
    """
    if error_key not in COMMON_ERRORS:
        raise ValueError(f"Unknown error key: {error_key}")

    error_config: dict[str, Any] = COMMON_ERRORS[error_key].copy()
    error_config.update(kwargs)
    error_config["module"] = module
    return error_config


def exit_with_common_error(error_key: str, module: str = "litgap", exit_code: int = 1, **kwargs: Any) -> NoReturn:
    """Exit with pre-configured common error message."""
    error_config = get_common_error(error_key, module, **kwargs)
    ErrorFormatter(module=module).error(
        error_config["error_type"],
        error_config["context"],
        error_config["suggestion"],
        error_config["technical_details"],
        exit_code,
    )
