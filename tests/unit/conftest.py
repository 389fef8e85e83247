"""Conftest for unit tests - automatically mark all tests as unit tests."""

import pytest

from documenter_search.domain.records import Record


def pytest_collection_modifyitems(config, items):
    """Automatically mark all tests in the unit directory as unit tests."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def guide_records() -> list[dict[str, str]]:
    """Two-record Guide page: a page-level root and one section."""
    return [
        {
            "location": "#intro",
            "page": "Guide",
            "title": "Intro",
            "category": "page",
            "text": "getting started guide",
        },
        {
            "location": "#api",
            "page": "Guide",
            "title": "API Reference",
            "category": "section",
            "text": "functions and types reference",
        },
    ]


@pytest.fixture
def documenter_payload() -> str:
    """Search-index payload shaped exactly like the generator output."""
    return (
        'var documenterSearchIndex = {"docs": [\n\n'
        "{\n"
        '    "location": "#",\n'
        '    "page": "Readme",\n'
        '    "title": "Readme",\n'
        '    "category": "page",\n'
        '    "text": ""\n'
        "},\n\n"
        "{\n"
        '    "location": "#The-Reaction-DSL-1",\n'
        '    "page": "Readme",\n'
        '    "title": "The Reaction DSL",\n'
        '    "category": "section",\n'
        '    "text": "The @reaction_network DSL allows you to define reaction networks in a more '
        'scientific format.\\nThe basic syntax is rn = @reaction_network rType begin"\n'
        "},\n\n"
        "{\n"
        '    "location": "autodocs/#",\n'
        '    "page": "Docstrings",\n'
        '    "title": "Docstrings",\n'
        '    "category": "page",\n'
        "    \"text\": \"Package doesn\\'t contain Documenter docs.\"\n"
        "},\n\n"
        "]}\n"
    )


@pytest.fixture
def record_factory():
    """Build section records with sensible defaults."""

    def factory(location: str, title: str, text: str = "", *, page: str = "Docs", category: str = "section") -> Record:
        return Record(location=location, page=page, title=title, category=category, text=text)

    return factory
