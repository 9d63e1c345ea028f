"""Tests for document decoding, flattening and identifier routing."""

from __future__ import annotations

import json

import pytest

from obs.diagnostics import DiagnosticsCollector
from provgraph import MalformedInputError, ParseOptions
from provgraph.flatten import decode_document, flatten_document, strip_prefixes
from provgraph.routing import EntryCode, classify, route_entries
from tests.test_helpers.prov_documents import document_text

_PROCESS_COUNT = 4
_DATA_COUNT = 7


def _decode(text: str | bytes, options: ParseOptions | None = None) -> dict[str, object]:
    return decode_document(
        text,
        options=options or ParseOptions(),
        diagnostics=DiagnosticsCollector(),
    )


def test_strip_prefixes_removes_leading_namespaces_only() -> None:
    """Ensure only leading namespace prefixes are stripped."""
    prefixes = ("rdt:", "prov:")
    assert strip_prefixes("rdt:p1", prefixes) == "p1"
    assert strip_prefixes("prov:entity", prefixes) == "entity"
    assert strip_prefixes("x <- rdt:p1", prefixes) == "x <- rdt:p1"


def test_decode_document_strips_keys_and_references() -> None:
    """Ensure prefixes are removed from nested keys and identifier values."""
    document = _decode(document_text())
    used = document["used"]
    assert isinstance(used, dict)
    assert used["dp1"] == {"entity": "d1", "activity": "p2"}


def test_decode_document_accepts_bytes() -> None:
    """Ensure UTF-8 bytes decode like text."""
    document = _decode(document_text().encode("utf-8"))
    assert "activity" in document


def test_decode_document_rejects_invalid_json() -> None:
    """Ensure non-JSON input is a malformed-input error."""
    with pytest.raises(MalformedInputError, match="not valid JSON"):
        _decode('{"activity": ')


def test_decode_document_rejects_non_object_document() -> None:
    """Ensure a top-level array is rejected."""
    with pytest.raises(MalformedInputError, match="must be a JSON object"):
        _decode(json.dumps([1, 2, 3]))


def test_decode_document_blank_text_policy() -> None:
    """Ensure blank text is empty provenance unless empty input is disallowed."""
    collector = DiagnosticsCollector()
    assert decode_document("  \n", options=ParseOptions(), diagnostics=collector) == {}
    assert collector.kinds() == ("empty_provenance",)
    with pytest.raises(MalformedInputError, match="empty"):
        _decode("", ParseOptions(allow_empty=False))


def test_flatten_document_preserves_order_and_skips_scalars() -> None:
    """Ensure entries follow document order and scalar sections are skipped."""
    document: dict[str, object] = {
        "version": 2,
        "activity": {"p2": {"name": "b"}, "p1": {"name": "a"}},
        "entity": {"d1": {"name": "x"}},
    }
    entries = flatten_document(document)
    assert [entry.key for entry in entries] == ["p2", "p1", "d1"]
    assert entries[0].section == "activity"


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("p1", EntryCode.PROCESS),
        ("pp12", EntryCode.PROC_PROC),
        ("pd3", EntryCode.PROC_DATA),
        ("dp3", EntryCode.DATA_PROC),
        ("d10", EntryCode.DATA),
        ("fp1", EntryCode.FUNC_PROC),
        ("f2", EntryCode.FUNCTION),
        ("m1", EntryCode.FUNC_LIB),
        ("a1", EntryCode.AGENT),
        ("l4", EntryCode.LIBRARY),
        ("environment", None),
        ("prov", None),
        ("p", None),
    ],
)
def test_classify_identifier_codes(key: str, expected: EntryCode | None) -> None:
    """Ensure identifier codes require a trailing digit and prefer longer codes."""
    assert classify(key) == expected


def test_route_entries_groups_sample_document() -> None:
    """Ensure the sample document routes every entry to its code group."""
    routed = route_entries(flatten_document(_decode(document_text())))
    assert len(routed.group(EntryCode.PROCESS)) == _PROCESS_COUNT
    assert len(routed.group(EntryCode.DATA)) == _DATA_COUNT
    assert [entry.key for entry in routed.group(EntryCode.FUNC_LIB)] == ["m1", "m2"]
    assert routed.environment is not None
    assert routed.environment["provDirectory"] == "/tmp/prov"
    assert set(routed.unrouted) == {"prov", "rdt"}
