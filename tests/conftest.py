"""Shared fixtures for provenance decoding tests."""

from __future__ import annotations

import pytest

from provgraph import ParseOptions, ParseResult, parse_prov
from tests.test_helpers.prov_documents import build_document, document_text


@pytest.fixture
def prov_document() -> dict[str, object]:
    """Provide a mutable copy of the sample document."""
    return build_document()


@pytest.fixture
def prov_text() -> str:
    """Provide the sample document as JSON text."""
    return document_text()


@pytest.fixture
def lenient() -> ParseOptions:
    """Provide default (lenient) parse options independent of the environment."""
    return ParseOptions()


@pytest.fixture
def strict() -> ParseOptions:
    """Provide strict parse options."""
    return ParseOptions(strict=True)


@pytest.fixture
def parsed(prov_text: str, lenient: ParseOptions) -> ParseResult:
    """Provide the parse of the sample document."""
    return parse_prov(prov_text, options=lenient)
