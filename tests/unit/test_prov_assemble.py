"""Tests for name-keyed record assembly."""

from __future__ import annotations

import pytest

from obs.diagnostics import DiagnosticsCollector
from provgraph import ParseOptions, SchemaMismatchError
from provgraph.assemble import (
    assemble_rows,
    assemble_table,
    decode_record,
    normalize_missing,
    prepare_body,
)
from provgraph.flatten import FlatEntry
from provgraph.records import DataNodeRecord, FuncLibEdgeRecord, FuncNodeRecord, ProcNodeRecord
from provgraph.routing import EntryCode
from provgraph.schemas import DATA_NODES_SCHEMA, FUNC_LIB_SCHEMA

_START_LINE = 3


def _entry(key: str, body: object, section: str = "entity") -> FlatEntry:
    return FlatEntry(key=key, body=body, section=section)


def _data_body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "name": "x",
        "value": "1",
        "valType": "numeric",
        "type": "Data",
        "scope": "R_GlobalEnv",
        "fromEnv": False,
        "hash": "",
        "timestamp": "",
        "location": "",
    }
    body.update(overrides)
    return body


def test_normalize_missing_maps_sentinel() -> None:
    """Ensure only the exact NA sentinel becomes None."""
    assert normalize_missing("NA") is None
    assert normalize_missing("NAN") == "NAN"
    assert normalize_missing(0) == 0


def test_prepare_body_coerces_text_and_flags() -> None:
    """Ensure numeric text values are stringified and R logicals decoded."""
    prepared = prepare_body(_data_body(value=5, fromEnv="TRUE", hash="NA"), DataNodeRecord)
    assert prepared["value"] == "5"
    assert prepared["fromEnv"] is True
    assert prepared["hash"] is None


def test_decode_record_is_keyed_by_name() -> None:
    """Ensure field order in the body does not affect decoding."""
    body = {
        "endCol": "NA",
        "startLine": _START_LINE,
        "type": "Operation",
        "name": "y <- 2",
        "elapsedTime": "0.1",
    }
    record = decode_record(_entry("p5", body, "activity"), ProcNodeRecord, code=EntryCode.PROCESS)
    assert record.name == "y <- 2"
    assert record.startLine == _START_LINE
    assert record.endCol is None
    assert record.scriptNum is None


def test_decode_record_missing_required_field_raises() -> None:
    """Ensure a record lacking a required field is a schema mismatch."""
    with pytest.raises(SchemaMismatchError, match="f9") as excinfo:
        decode_record(_entry("f9", {"label": "read.csv"}), FuncNodeRecord, code=EntryCode.FUNCTION)
    assert excinfo.value.code == "f"
    assert excinfo.value.entry_id == "f9"


def test_decode_record_rejects_non_object_body() -> None:
    """Ensure scalar entry bodies are rejected."""
    with pytest.raises(SchemaMismatchError, match="expected an object body"):
        decode_record(_entry("f1", "read.csv"), FuncNodeRecord, code=EntryCode.FUNCTION)


def test_func_lib_edge_reads_collection_as_library() -> None:
    """Ensure the collection endpoint is exposed as the library column."""
    group = (_entry("m1", {"collection": "l2", "entity": "f1"}, "hadMember"),)
    table = assemble_table(
        group,
        FuncLibEdgeRecord,
        FUNC_LIB_SCHEMA,
        code=EntryCode.FUNC_LIB,
        options=ParseOptions(),
        diagnostics=DiagnosticsCollector(),
    )
    assert table.to_pylist() == [{"id": "m1", "entity": "f1", "library": "l2"}]


def test_assemble_rows_lenient_mismatch_records_diagnostic() -> None:
    """Ensure lenient mode decodes mismatched entries by name and records why."""
    reduced = _data_body(name="y")
    del reduced["location"]
    group = (_entry("d1", _data_body()), _entry("d2", reduced))
    collector = DiagnosticsCollector()
    pairs = assemble_rows(
        group,
        DataNodeRecord,
        code=EntryCode.DATA,
        options=ParseOptions(),
        diagnostics=collector,
    )
    assert [entry_id for entry_id, _ in pairs] == ["d1", "d2"]
    assert pairs[1][1].location is None
    assert collector.kinds() == ("schema_mismatch",)
    assert collector.items[0].context["missing"] == "['location']"


def test_assemble_rows_strict_mismatch_raises() -> None:
    """Ensure strict mode rejects entries whose fields differ from the first."""
    group = (_entry("d1", _data_body()), _entry("d2", _data_body(extra="1")))
    with pytest.raises(SchemaMismatchError, match="expected fields") as excinfo:
        assemble_rows(
            group,
            DataNodeRecord,
            code=EntryCode.DATA,
            options=ParseOptions(strict=True),
            diagnostics=DiagnosticsCollector(),
        )
    assert "extra" in excinfo.value.actual
    assert "extra" not in excinfo.value.expected


def test_assemble_table_empty_group_keeps_schema() -> None:
    """Ensure an empty group yields an empty table with the fixed schema."""
    table = assemble_table(
        (),
        DataNodeRecord,
        DATA_NODES_SCHEMA,
        code=EntryCode.DATA,
        options=ParseOptions(),
        diagnostics=DiagnosticsCollector(),
    )
    assert table.num_rows == 0
    assert table.schema == DATA_NODES_SCHEMA
