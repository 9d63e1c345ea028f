"""Tests for elapsed-time repair and snapshot path resolution."""

from __future__ import annotations

import pyarrow as pa
import pytest

from provgraph import ElapsedTimeParseError, MalformedInputError
from provgraph.normalize import parse_elapsed_time, resolve_snapshot_paths
from provgraph.schemas import DATA_NODES_SCHEMA, table_from_rows

_PROV_DIR = "/tmp/prov"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("0.441", 0.441),
        ("1,234.5", 1234.5),
        ("1.234,5", 1234.5),
        ("0,5", 0.5),
        ("12", 12.0),
        (3, 3.0),
        (None, None),
    ],
)
def test_parse_elapsed_time(raw: str | float | None, expected: float | None) -> None:
    """Ensure elapsed times parse under either locale convention."""
    assert parse_elapsed_time(raw) == expected


def test_parse_elapsed_time_rejects_garbage() -> None:
    """Ensure unrepairable values raise a malformed-input error."""
    with pytest.raises(ElapsedTimeParseError, match="abc"):
        parse_elapsed_time("abc")
    with pytest.raises(MalformedInputError, match="repaired form"):
        parse_elapsed_time(",")


@pytest.mark.parametrize("raw", ["1_234", "nan", "infinity", "inf", "0x1A", "1.x,5"])
def test_parse_elapsed_time_requires_digits_and_separators(raw: str) -> None:
    """Ensure text other than digits and separators is rejected."""
    with pytest.raises(ElapsedTimeParseError):
        parse_elapsed_time(raw)


def _data_nodes() -> pa.Table:
    rows = [
        {"id": "d1", "name": "x", "value": "data/1-x.csv", "type": "Snapshot"},
        {"id": "d2", "name": "in.csv", "value": "data/2-in.csv", "type": "File"},
        {"id": "d3", "name": "output", "value": "data/3-out.txt", "type": "StandardOutputSnapshot"},
        {"id": "d4", "name": "y", "value": None, "type": "Snapshot"},
    ]
    return table_from_rows(rows, DATA_NODES_SCHEMA)


def test_resolve_snapshot_paths_prefixes_snapshots_only() -> None:
    """Ensure only snapshot values gain the provenance directory."""
    resolved = resolve_snapshot_paths(_data_nodes(), _PROV_DIR)
    assert resolved.column("value").to_pylist() == [
        "/tmp/prov/data/1-x.csv",
        "data/2-in.csv",
        "/tmp/prov/data/3-out.txt",
        None,
    ]
    assert resolved.schema == DATA_NODES_SCHEMA


def test_resolve_snapshot_paths_is_idempotent() -> None:
    """Ensure resolving twice does not prefix the directory again."""
    once = resolve_snapshot_paths(_data_nodes(), _PROV_DIR)
    twice = resolve_snapshot_paths(once, _PROV_DIR)
    assert twice.equals(once)


def test_resolve_snapshot_paths_without_directory() -> None:
    """Ensure a missing provenance directory leaves values untouched."""
    table = _data_nodes()
    assert resolve_snapshot_paths(table, None) is table
