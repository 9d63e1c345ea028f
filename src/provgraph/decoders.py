"""Decoders for entries the generic assembler cannot handle.

Agents carry an embedded argument block, the environment nests the sourced
script history, and libraries gained a ``whereLoaded`` field in later
producer versions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Final, TypeAlias

import msgspec
import pyarrow as pa

from obs.diagnostics import DiagnosticsCollector
from provgraph.assemble import Row, assemble_rows, normalize_missing, record_row
from provgraph.errors import SchemaMismatchError
from provgraph.flatten import FlatEntry
from provgraph.options import ParseOptions
from provgraph.records import LibraryRecord
from provgraph.routing import EntryCode
from provgraph.schemas import (
    AGENTS_SCHEMA,
    ENVIRONMENT_SCHEMA,
    LIBS_SCHEMA,
    SCRIPTS_SCHEMA,
    empty_table,
    extend_schema,
    table_from_rows,
)
from utils.value_coercion import coerce_bool, coerce_float, coerce_int, coerce_str

logger = logging.getLogger(__name__)

ArgumentValue: TypeAlias = bool | int | float | str | None
ArgumentSet: TypeAlias = Mapping[str, ArgumentValue]

ARGS_MARKER: Final[str] = "args"
SOURCED_SCRIPTS: Final[str] = "sourcedScripts"
SOURCED_TIMESTAMPS: Final[str] = "sourcedScriptTimeStamps"
SOURCED_HASHES: Final[str] = "sourcedScriptHashes"
SCRIPT_HISTORY_KEYS: Final[frozenset[str]] = frozenset(
    {SOURCED_SCRIPTS, SOURCED_TIMESTAMPS, SOURCED_HASHES}
)
UNKNOWN_WHERE_LOADED: Final[str] = "unknown"

_ARGUMENT_COERCERS: Final[Mapping[str, Callable[[object], ArgumentValue]]] = {
    "logical": coerce_bool,
    "integer": coerce_int,
    "numeric": coerce_float,
}


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, bool, int, float))


def _as_list(value: object) -> list[object]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# -----------------------------------------------------------------------------
# Agents and arguments
# -----------------------------------------------------------------------------


def decode_agents(group: Sequence[FlatEntry]) -> pa.Table:
    """Decode agent entries, excluding their argument block.

    Every scalar field other than the argument arrays becomes a string column;
    fields beyond the tool name and versions are appended in first-seen order.

    Parameters
    ----------
    group
        Entries routed to the agent code.

    Returns
    -------
    pyarrow.Table
        Agent table whose leading columns are ``id, tool.name, tool.version,
        json.version``.
    """
    rows: list[Row] = []
    extras: list[str] = []
    for entry in group:
        if not isinstance(entry.body, Mapping):
            msg = f"expected an object body, got {type(entry.body).__name__}"
            raise SchemaMismatchError(EntryCode.AGENT, entry.key, reason=msg)
        row: Row = {"id": entry.key}
        for name, raw in entry.body.items():
            if ARGS_MARKER in name:
                continue
            if not _is_scalar(raw):
                logger.debug("Skipping nested agent field %s.%s", entry.key, name)
                continue
            row[name] = coerce_str(normalize_missing(raw))
            if name not in AGENTS_SCHEMA.names and name not in extras:
                extras.append(name)
        rows.append(row)
    return table_from_rows(rows, extend_schema(AGENTS_SCHEMA, extras))


def _argument_array(body: Mapping[str, object], suffix: str, entry_id: str) -> list[object]:
    for name, value in body.items():
        if ARGS_MARKER in name and name.endswith(suffix):
            return _as_list(value)
    msg = f"argument block lacks its {suffix!r} array"
    raise SchemaMismatchError(EntryCode.AGENT, entry_id, reason=msg)


def _coerce_argument(value: object, declared: object) -> ArgumentValue:
    value = normalize_missing(value)
    coercer = _ARGUMENT_COERCERS.get(str(declared))
    if coercer is None or value is None:
        return value if value is None else coerce_str(value)
    return coercer(value)


def decode_arguments(
    group: Sequence[FlatEntry],
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> Mapping[str, ArgumentSet]:
    """Reconstruct typed argument values for agents that recorded them.

    The names, values and declared types arrays are zipped positionally.
    ``logical`` values become ``bool``, ``integer`` become ``int`` and
    ``numeric`` become ``float``; any other declared type keeps the string.

    Parameters
    ----------
    group
        Entries routed to the agent code.
    options
        Parse options; in strict mode arrays of unequal length raise.
    diagnostics
        Collector for length mismatches and failed coercions.

    Returns
    -------
    Mapping[str, ArgumentSet]
        Argument sets keyed by agent id. Agents without arguments are absent.

    Raises
    ------
    SchemaMismatchError
        Raised when an argument array is missing, or in strict mode when the
        arrays differ in length.
    """
    result: dict[str, ArgumentSet] = {}
    for entry in group:
        body = entry.body
        if not isinstance(body, Mapping) or not any(ARGS_MARKER in name for name in body):
            continue
        names = _argument_array(body, "names", entry.key)
        values = _argument_array(body, "values", entry.key)
        declared = _argument_array(body, "types", entry.key)
        lengths = {len(names), len(values), len(declared)}
        if len(lengths) > 1:
            if options.strict:
                msg = (
                    f"argument arrays differ in length: names={len(names)}, "
                    f"values={len(values)}, types={len(declared)}"
                )
                raise SchemaMismatchError(EntryCode.AGENT, entry.key, reason=msg)
            diagnostics.record(
                "schema_mismatch",
                f"Argument arrays of {entry.key!r} differ in length; truncated to the shortest",
                entry_id=entry.key,
            )
        arguments: dict[str, ArgumentValue] = {}
        for name, raw, kind in zip(names, values, declared, strict=False):
            value = _coerce_argument(raw, kind)
            if value is None and normalize_missing(raw) is not None:
                diagnostics.record(
                    "argument_coercion",
                    f"Argument {name!r} of {entry.key!r} is not a valid {kind}",
                    entry_id=entry.key,
                    value=raw,
                )
            arguments[str(name)] = value
        result[entry.key] = MappingProxyType(arguments)
    return MappingProxyType(result)


# -----------------------------------------------------------------------------
# Environment and script history
# -----------------------------------------------------------------------------


def decode_environment(environment: Mapping[str, object] | None) -> pa.Table:
    """Transpose the environment object into ``label``/``value`` rows.

    Sourced-script history fields are excluded; they belong to the script
    table.

    Returns
    -------
    pyarrow.Table
        Environment table in document order.
    """
    if environment is None:
        return empty_table(ENVIRONMENT_SCHEMA)
    rows: list[Row] = []
    for label, raw in environment.items():
        if label in SCRIPT_HISTORY_KEYS:
            continue
        value = raw[0] if isinstance(raw, list) and len(raw) == 1 else raw
        if not _is_scalar(value):
            logger.debug("Skipping nested environment field %s", label)
            continue
        rows.append({"label": label, "value": coerce_str(normalize_missing(value))})
    return table_from_rows(rows, ENVIRONMENT_SCHEMA)


def _first(value: object) -> object:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _padded(values: list[object], size: int, fill: object) -> list[object]:
    return [*values[:size], *([fill] * max(size - len(values), 0))]


def decode_scripts(
    environment: Mapping[str, object] | None,
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> pa.Table:
    """Build the ordered script list: the main script then sourced scripts.

    Hashes default to ``""`` when the producer did not record them. A sourced
    script list starting with ``""`` means no scripts were sourced.

    Parameters
    ----------
    environment
        Environment object of the document.
    options
        Parse options; in strict mode misaligned history arrays raise.
    diagnostics
        Collector for hash fallbacks and misaligned arrays.

    Returns
    -------
    pyarrow.Table
        Table with ``script, timestamp, hash`` columns.

    Raises
    ------
    SchemaMismatchError
        Raised in strict mode when the timestamps or hashes do not line up
        with the sourced scripts.
    """
    if environment is None:
        return empty_table(SCRIPTS_SCHEMA)
    if "scriptHash" in environment:
        main_hash = coerce_str(normalize_missing(_first(environment["scriptHash"]))) or ""
    else:
        main_hash = ""
        diagnostics.record(
            "missing_optional_field",
            "scriptHash not recorded; using empty hash",
            field="scriptHash",
        )
    rows: list[Row] = [
        {
            "script": coerce_str(normalize_missing(_first(environment.get("script")))),
            "timestamp": coerce_str(normalize_missing(_first(environment.get("scriptTimeStamp")))),
            "hash": main_hash,
        }
    ]
    scripts = _as_list(environment.get(SOURCED_SCRIPTS))
    if not scripts or scripts[0] == "":
        return table_from_rows(rows, SCRIPTS_SCHEMA)

    timestamps = _as_list(environment.get(SOURCED_TIMESTAMPS))
    has_hashes = SOURCED_HASHES in environment
    hashes = _as_list(environment.get(SOURCED_HASHES)) if has_hashes else [""] * len(scripts)
    if len(timestamps) != len(scripts) or len(hashes) != len(scripts):
        if options.strict:
            msg = (
                f"sourced scripts={len(scripts)}, timestamps={len(timestamps)}, "
                f"hashes={len(hashes)}"
            )
            raise SchemaMismatchError("environment", "environment", reason=msg)
        diagnostics.record(
            "schema_mismatch",
            "Sourced script history arrays differ in length; padded with missing values",
        )
    timestamps = _padded(timestamps, len(scripts), None)
    hashes = _padded(hashes, len(scripts), "")
    rows.extend(
        {
            "script": coerce_str(script),
            "timestamp": coerce_str(normalize_missing(timestamp)),
            "hash": coerce_str(normalize_missing(script_hash)) or "",
        }
        for script, timestamp, script_hash in zip(scripts, timestamps, hashes, strict=True)
    )
    return table_from_rows(rows, SCRIPTS_SCHEMA)


# -----------------------------------------------------------------------------
# Libraries
# -----------------------------------------------------------------------------


def decode_libraries(
    group: Sequence[FlatEntry],
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> pa.Table:
    """Decode library entries to ``id, name, version, whereLoaded``.

    Libraries written before ``whereLoaded`` existed get ``"unknown"``.

    Returns
    -------
    pyarrow.Table
        Library table.
    """
    pairs = assemble_rows(
        group,
        LibraryRecord,
        code=EntryCode.LIBRARY,
        options=options,
        diagnostics=diagnostics,
    )
    rows: list[Row] = []
    fallback_ids: list[str] = []
    for entry_id, record in pairs:
        row = record_row(entry_id, record)
        if row["whereLoaded"] is msgspec.UNSET:
            row["whereLoaded"] = UNKNOWN_WHERE_LOADED
            fallback_ids.append(entry_id)
        rows.append(row)
    if fallback_ids:
        diagnostics.record(
            "missing_optional_field",
            f"whereLoaded not recorded for {len(fallback_ids)} libraries; using 'unknown'",
            field="whereLoaded",
        )
    return table_from_rows(rows, LIBS_SCHEMA)


__all__ = [
    "ARGS_MARKER",
    "SCRIPT_HISTORY_KEYS",
    "UNKNOWN_WHERE_LOADED",
    "ArgumentSet",
    "ArgumentValue",
    "decode_agents",
    "decode_arguments",
    "decode_environment",
    "decode_libraries",
    "decode_scripts",
]
