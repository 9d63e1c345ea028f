"""Fixed Arrow schemas for provenance tables and table construction helpers.

Every table in the model carries one of these schemas, including tables with
zero rows, so callers can rely on column names and types rather than on row
counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Final

import pyarrow as pa

_STR = pa.string()
_INT = pa.int64()

PROC_NODES_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("id", _STR, nullable=False),
        pa.field("name", _STR),
        pa.field("type", _STR),
        pa.field("elapsedTime", pa.float64()),
        pa.field("scriptNum", _INT),
        pa.field("startLine", _INT),
        pa.field("startCol", _INT),
        pa.field("endLine", _INT),
        pa.field("endCol", _INT),
    ]
)

DATA_NODES_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("id", _STR, nullable=False),
        pa.field("name", _STR),
        pa.field("value", _STR),
        pa.field("valType", _STR),
        pa.field("type", _STR),
        pa.field("scope", _STR),
        pa.field("fromEnv", pa.bool_()),
        pa.field("hash", _STR),
        pa.field("timestamp", _STR),
        pa.field("location", _STR),
    ]
)

FUNC_NODES_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("id", _STR, nullable=False), pa.field("name", _STR)]
)


def _edge_schema(*endpoints: str) -> pa.Schema:
    return pa.schema(
        [pa.field("id", _STR, nullable=False), *(pa.field(name, _STR) for name in endpoints)]
    )


PROC_PROC_SCHEMA: Final[pa.Schema] = _edge_schema("informant", "informed")
PROC_DATA_SCHEMA: Final[pa.Schema] = _edge_schema("activity", "entity")
DATA_PROC_SCHEMA: Final[pa.Schema] = _edge_schema("entity", "activity")
FUNC_PROC_SCHEMA: Final[pa.Schema] = _edge_schema("entity", "activity")
FUNC_LIB_SCHEMA: Final[pa.Schema] = _edge_schema("entity", "library")

AGENTS_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("id", _STR, nullable=False),
        pa.field("tool.name", _STR),
        pa.field("tool.version", _STR),
        pa.field("json.version", _STR),
    ]
)
TOOL_INFO_SCHEMA: Final[pa.Schema] = pa.schema(
    [AGENTS_SCHEMA.field(name) for name in ("tool.name", "tool.version", "json.version")]
)

LIBS_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("id", _STR, nullable=False),
        pa.field("name", _STR),
        pa.field("version", _STR),
        pa.field("whereLoaded", _STR),
    ]
)

ENVIRONMENT_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("label", _STR, nullable=False), pa.field("value", _STR)]
)

SCRIPTS_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("script", _STR),
        pa.field("timestamp", _STR),
        pa.field("hash", _STR),
    ]
)
SAVED_SCRIPTS_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("script", _STR), pa.field("timestamp", _STR)]
)

FUNC_PROC_VIEW_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("func_id", _STR), pa.field("function", _STR), pa.field("activity", _STR)]
)
FUNC_LIB_VIEW_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("func_id", _STR), pa.field("function", _STR), pa.field("library", _STR)]
)
NODE_SUMMARY_SCHEMA: Final[pa.Schema] = pa.schema(
    [pa.field("id", _STR), pa.field("value", _STR), pa.field("timestamp", _STR)]
)
PREEXISTING_SCHEMA: Final[pa.Schema] = pa.schema([pa.field("name", _STR)])
VAL_TYPE_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("id", _STR),
        pa.field("container", _STR),
        pa.field("dimension", _STR),
        pa.field("type", _STR),
    ]
)


def empty_table(schema: pa.Schema) -> pa.Table:
    """Return an empty table with the provided schema.

    Parameters
    ----------
    schema:
        Target schema.

    Returns
    -------
    pyarrow.Table
        Empty table with the requested schema.
    """
    return pa.Table.from_arrays([pa.array([], type=field.type) for field in schema], schema=schema)


def table_from_rows(rows: Sequence[Mapping[str, object]], schema: pa.Schema) -> pa.Table:
    """Build a table from name-keyed rows, filling absent columns with nulls.

    Parameters
    ----------
    rows:
        Row mappings keyed by column name.
    schema:
        Target schema; keys outside it are ignored.

    Returns
    -------
    pyarrow.Table
        Table with exactly ``schema``.
    """
    if not rows:
        return empty_table(schema)
    arrays = [
        pa.array([row.get(field.name) for row in rows], type=field.type) for field in schema
    ]
    return pa.Table.from_arrays(arrays, schema=schema)


def extend_schema(schema: pa.Schema, extra_columns: Iterable[str]) -> pa.Schema:
    """Append nullable string columns not already present in ``schema``.

    Returns
    -------
    pyarrow.Schema
        Schema with the extra columns appended in the given order.
    """
    existing = set(schema.names)
    fields = list(schema)
    for name in extra_columns:
        if name in existing:
            continue
        existing.add(name)
        fields.append(pa.field(name, _STR))
    return pa.schema(fields)


def align_to_schema(table: pa.Table, schema: pa.Schema) -> pa.Table:
    """Select and cast ``table`` columns to ``schema``.

    Columns missing from ``table`` are filled with nulls; extra columns are
    dropped.

    Parameters
    ----------
    table:
        Input table.
    schema:
        Target schema.

    Returns
    -------
    pyarrow.Table
        Aligned table.
    """
    arrays: list[pa.Array | pa.ChunkedArray] = []
    for field in schema:
        if field.name in table.column_names:
            column = table[field.name]
            arrays.append(column if column.type == field.type else column.cast(field.type))
        else:
            arrays.append(pa.nulls(table.num_rows, type=field.type))
    return pa.Table.from_arrays(arrays, schema=schema)


__all__ = [
    "AGENTS_SCHEMA",
    "DATA_NODES_SCHEMA",
    "DATA_PROC_SCHEMA",
    "ENVIRONMENT_SCHEMA",
    "FUNC_LIB_SCHEMA",
    "FUNC_LIB_VIEW_SCHEMA",
    "FUNC_NODES_SCHEMA",
    "FUNC_PROC_SCHEMA",
    "FUNC_PROC_VIEW_SCHEMA",
    "LIBS_SCHEMA",
    "NODE_SUMMARY_SCHEMA",
    "PREEXISTING_SCHEMA",
    "PROC_DATA_SCHEMA",
    "PROC_NODES_SCHEMA",
    "PROC_PROC_SCHEMA",
    "SAVED_SCRIPTS_SCHEMA",
    "SCRIPTS_SCHEMA",
    "TOOL_INFO_SCHEMA",
    "VAL_TYPE_SCHEMA",
    "align_to_schema",
    "empty_table",
    "extend_schema",
    "table_from_rows",
]
