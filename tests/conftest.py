"""Test configuration and fixtures for LitGap tests."""

import json
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to path so tests run without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def temp_dir():
    """Create a temporary working directory for report and library files."""
    path = tempfile.mkdtemp(prefix="test_litgap_")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_library_items():
    """Raw library export items: three journal articles with DOIs, one without, plus non-academic items."""
    return [
        {
            "key": "AAAA1111",
            "itemType": "journalArticle",
            "title": "Digital Health Interventions for Diabetes Management",
            "date": "2021-03-15",
            "DOI": "10.1234/source1",
            "abstractNote": "This study examines digital health interventions for diabetes.",
            "creators": [
                {"creatorType": "author", "firstName": "Jane", "lastName": "Smith"},
                {"creatorType": "editor", "firstName": "Ed", "lastName": "Itor"},
            ],
            "publicationTitle": "Journal of Digital Health",
        },
        {
            "key": "BBBB2222",
            "itemType": "conferencePaper",
            "title": "Telemedicine in Rural Healthcare",
            "date": "2022",
            "DOI": "10.1234/source2",
            "creators": [{"creatorType": "author", "firstName": "Maria", "lastName": "Johnson"}],
        },
        {
            "key": "CCCC3333",
            "itemType": "preprint",
            "title": "Machine Learning for Clinical Triage",
            "year": "2023",
            "DOI": "10.1234/source3",
        },
        {
            "key": "DDDD4444",
            "itemType": "book",
            "title": "A Book Without DOI",
            "date": "2019",
        },
        {"key": "EEEE5555", "itemType": "webpage", "title": "Some Blog Post"},
        {"key": "FFFF6666", "itemType": "note", "title": ""},
    ]


@pytest.fixture
def library_file(temp_dir, sample_library_items):
    """Library snapshot written as ``{"items": [...]}`` JSON."""
    path = temp_dir / "my_library.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"items": sample_library_items}, f)
    return path
