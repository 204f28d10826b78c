"""Library snapshot loading and source paper selection.

Reads a reference manager export, keeps academic item types only and turns
them into SourcePaper records. Papers without a usable external identifier
(DOI) are kept apart since they cannot seed a citation lookup.
"""

import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .config import MAX_AUTHORS_PER_PAPER, SOURCE_ABSTRACT_MAX_CHARS, VALID_PAPER_TYPES
from .models import Creator, LibraryItem, SourcePaper

logger = logging.getLogger(__name__)

ACADEMIC_ITEM_TYPES = frozenset(VALID_PAPER_TYPES)


class LibraryLoadError(Exception):
    """Library snapshot could not be read or parsed."""


def _clean_title(title: str | None) -> str:
    return re.sub(r"\s+", " ", (title or "").replace("\n", " ")).strip()


def filter_academic_items(items: Iterable[LibraryItem]) -> list[LibraryItem]:
    """Keep only items whose type is in the academic allowlist, in input order."""
    if not items:
        return []
    academic = [item for item in items if item.item_type in ACADEMIC_ITEM_TYPES]
    logger.debug("%d academic items after type filtering", len(academic))
    return academic


def has_identifier(paper: SourcePaper) -> bool:
    return bool(paper.identifier and paper.identifier.strip())


def partition_by_identifier(
    papers: Iterable[SourcePaper],
) -> tuple[list[SourcePaper], list[SourcePaper]]:
    """Split papers into (with identifier, without identifier)."""
    with_id: list[SourcePaper] = []
    without_id: list[SourcePaper] = []
    for paper in papers:
        (with_id if has_identifier(paper) else without_id).append(paper)
    return with_id, without_id


def _extract_year(item: LibraryItem) -> int | None:
    raw = item.year
    if not raw and item.date and len(item.date) >= 4:
        raw = item.date[:4]
    if not raw:
        return None
    match = re.match(r"\s*(\d{4})", str(raw))
    return int(match.group(1)) if match else None


def _format_authors(creators: Iterable[Creator]) -> tuple[str, ...]:
    authors = []
    for creator in creators:
        if creator.creator_type != "author":
            continue
        last_name = creator.last_name or ""
        authors.append(f"{last_name}, {creator.first_name}" if creator.first_name else last_name)
        if len(authors) == MAX_AUTHORS_PER_PAPER:
            break
    return tuple(authors)


def to_source_paper(item: LibraryItem) -> SourcePaper:
    """Extract the citation-seed view of a library item."""
    doi = (item.doi or "").strip()
    return SourcePaper(
        id=item.key,
        title=_clean_title(item.title),
        identifier=doi or None,
        year=_extract_year(item),
        abstract=(item.abstract or "")[:SOURCE_ABSTRACT_MAX_CHARS],
        authors=_format_authors(item.creators),
        item_type=item.item_type,
    )


def extract_source_papers(items: Iterable[LibraryItem]) -> list[SourcePaper]:
    """Filter to academic items and convert them to source papers."""
    return [to_source_paper(item) for item in filter_academic_items(list(items))]


# ============================================================================
# SNAPSHOT LOADING
# ============================================================================


def _parse_creator(raw: dict[str, Any]) -> Creator:
    last_name = raw.get("lastName") or ""
    # Single-field names (institutions) come through as "name"
    if not last_name and raw.get("name"):
        last_name = raw["name"]
    return Creator(
        creator_type=raw.get("creatorType", "author"),
        first_name=raw.get("firstName") or "",
        last_name=last_name,
    )


def parse_library_item(raw: dict[str, Any], index: int = 0) -> LibraryItem:
    """Build a LibraryItem from one exported item dict."""
    data = raw.get("data", raw)
    publication = (
        data.get("publicationTitle") or data.get("bookTitle") or data.get("proceedingsTitle") or ""
    )
    year = data.get("year")
    return LibraryItem(
        key=str(data.get("key") or raw.get("key") or f"item-{index:04d}"),
        item_type=data.get("itemType", ""),
        title=data.get("title") or "",
        year=str(year) if year is not None else None,
        date=data.get("date") or None,
        doi=data.get("DOI") or data.get("doi") or "",
        abstract=data.get("abstractNote") or "",
        creators=tuple(_parse_creator(c) for c in data.get("creators", []) or [] if isinstance(c, dict)),
        publication=publication,
        url=data.get("url") or "",
    )


def load_library(path: str | Path) -> list[LibraryItem]:
    """Load a library snapshot exported as JSON.

    Accepts either a top-level list of items or an object with an ``items``
    list. Item fields follow the reference manager export names
    (``itemType``, ``DOI``, ``abstractNote``, ``creators`` ...).

    Raises:
        LibraryLoadError: If the file is missing, unreadable or not valid JSON.
    """
    library_path = Path(path)
    if not library_path.exists():
        raise LibraryLoadError(f"Library file not found: {library_path}")

    try:
        with open(library_path, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        raise LibraryLoadError(f"Failed to read library file {library_path}: {e}") from e

    raw_items = payload.get("items") if isinstance(payload, dict) else payload
    if not isinstance(raw_items, list):
        raise LibraryLoadError(f"Expected a list of items in {library_path}")

    items = [parse_library_item(raw, i) for i, raw in enumerate(raw_items) if isinstance(raw, dict)]
    logger.info("Loaded %d items from %s", len(items), library_path)
    return items
