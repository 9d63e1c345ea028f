"""Assemble same-coded entries into name-keyed rows and typed tables.

Rows are decoded by field name into the record struct of their variant. The
first entry of a group is the reference field set; later entries that disagree
with it are a schema mismatch (raised in strict mode, recorded otherwise).
"""

from __future__ import annotations

import functools
import types
import typing
from collections.abc import Mapping, Sequence
from typing import Final, TypeAlias, TypeVar

import msgspec
import pyarrow as pa

from obs.diagnostics import DiagnosticsCollector
from provgraph.errors import SchemaMismatchError
from provgraph.flatten import FlatEntry
from provgraph.options import ParseOptions
from provgraph.schemas import table_from_rows
from utils.serde import convert, validation_error_payload
from utils.value_coercion import coerce_bool, coerce_str

MISSING_SENTINEL: Final[str] = "NA"

Row: TypeAlias = dict[str, object]

T = TypeVar("T", bound=msgspec.Struct)


def _field_kinds(tp: object) -> frozenset[type]:
    if isinstance(tp, types.UnionType) or typing.get_origin(tp) is typing.Union:
        return frozenset(arg for arg in typing.get_args(tp) if arg is not type(None))
    if isinstance(tp, type):
        return frozenset({tp})
    return frozenset()


@functools.cache
def _coercible_fields(record_type: type[msgspec.Struct]) -> tuple[frozenset[str], frozenset[str]]:
    """Return encoded names of pure-text and pure-boolean fields."""
    text: set[str] = set()
    flags: set[str] = set()
    for info in msgspec.structs.fields(record_type):
        kinds = _field_kinds(info.type) - {msgspec.UnsetType}
        if kinds == {str}:
            text.add(info.encode_name)
        elif kinds == {bool}:
            flags.add(info.encode_name)
    return frozenset(text), frozenset(flags)


def normalize_missing(value: object) -> object:
    """Map the ``"NA"`` sentinel to ``None``.

    Returns
    -------
    object
        ``None`` for the sentinel, the value otherwise.
    """
    if isinstance(value, str) and value == MISSING_SENTINEL:
        return None
    return value


def prepare_body(body: Mapping[str, object], record_type: type[msgspec.Struct]) -> Row:
    """Normalize raw field values ahead of struct conversion.

    The ``"NA"`` sentinel becomes ``None``; scalar values of text fields are
    stringified and boolean fields accept R logical spellings.

    Returns
    -------
    Row
        Field mapping ready for :func:`msgspec.convert`.
    """
    text_fields, flag_fields = _coercible_fields(record_type)
    prepared: Row = {}
    for name, raw in body.items():
        value = normalize_missing(raw)
        if value is not None and name in text_fields and isinstance(value, (int, float, bool)):
            value = coerce_str(value)
        elif value is not None and name in flag_fields and isinstance(value, str):
            coerced = coerce_bool(value)
            value = coerced if coerced is not None else value
        prepared[name] = value
    return prepared


def _check_field_set(
    entry: FlatEntry,
    reference: FlatEntry,
    *,
    code: str,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> None:
    expected = tuple(typing.cast("Mapping[str, object]", reference.body))
    actual = tuple(typing.cast("Mapping[str, object]", entry.body))
    if set(expected) == set(actual):
        return
    if options.strict:
        raise SchemaMismatchError(code, entry.key, expected=expected, actual=actual)
    diagnostics.record(
        "schema_mismatch",
        f"Entry {entry.key!r} fields differ from {reference.key!r}; decoded by name",
        code=code,
        entry_id=entry.key,
        missing=sorted(set(expected) - set(actual)),
        extra=sorted(set(actual) - set(expected)),
    )


def decode_record(
    entry: FlatEntry,
    record_type: type[T],
    *,
    code: str,
) -> T:
    """Decode one entry body into its record struct.

    Returns
    -------
    T
        Decoded record.

    Raises
    ------
    SchemaMismatchError
        Raised when the body is not an object or lacks a required field.
    """
    if not isinstance(entry.body, Mapping):
        msg = f"expected an object body, got {type(entry.body).__name__}"
        raise SchemaMismatchError(code, entry.key, reason=msg)
    try:
        return convert(prepare_body(entry.body, record_type), target_type=record_type, strict=False)
    except msgspec.ValidationError as exc:
        payload = validation_error_payload(exc)
        reason = payload.get("summary", str(exc))
        if "path" in payload:
            reason = f"{reason} at {payload['path']}"
        raise SchemaMismatchError(code, entry.key, reason=reason) from exc


def assemble_rows(
    group: Sequence[FlatEntry],
    record_type: type[T],
    *,
    code: str,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> list[tuple[str, T]]:
    """Decode a code group into ``(id, record)`` pairs in document order.

    Parameters
    ----------
    group
        Entries sharing one identifier code.
    record_type
        Record struct for the code's variant.
    code
        Identifier code, used in diagnostics.
    options
        Parse options; ``strict`` turns field-set disagreement into an error.
    diagnostics
        Collector for lenient-mode mismatches.

    Returns
    -------
    list[tuple[str, T]]
        Entry ids paired with decoded records.
    """
    if not group:
        return []
    reference = group[0]
    decoded: list[tuple[str, T]] = []
    for entry in group:
        record = decode_record(entry, record_type, code=code)
        if entry is not reference:
            _check_field_set(
                entry, reference, code=code, options=options, diagnostics=diagnostics
            )
        decoded.append((entry.key, record))
    return decoded


def record_row(entry_id: str, record: msgspec.Struct) -> Row:
    """Return a table row for a decoded record with ``id`` first.

    Returns
    -------
    Row
        Row keyed by attribute name.
    """
    return {"id": entry_id, **msgspec.structs.asdict(record)}


def assemble_table(
    group: Sequence[FlatEntry],
    record_type: type[msgspec.Struct],
    schema: pa.Schema,
    *,
    code: str,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> pa.Table:
    """Decode a code group straight into a fixed-schema table.

    Returns
    -------
    pyarrow.Table
        Table with ``schema``; empty when the group is empty.
    """
    pairs = assemble_rows(
        group, record_type, code=code, options=options, diagnostics=diagnostics
    )
    return table_from_rows([record_row(entry_id, record) for entry_id, record in pairs], schema)


__all__ = [
    "MISSING_SENTINEL",
    "Row",
    "assemble_rows",
    "assemble_table",
    "decode_record",
    "normalize_missing",
    "prepare_body",
    "record_row",
]
