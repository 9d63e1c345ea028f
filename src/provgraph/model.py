"""Immutable provenance model and its construction entry points."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Final

import pyarrow as pa
import pyarrow.compute as pc

from obs.diagnostics import Diagnostic, DiagnosticsCollector
from obs.tracing import set_span_attributes, stage_span
from provgraph.assemble import assemble_rows, assemble_table, record_row
from provgraph.decoders import (
    ArgumentSet,
    decode_agents,
    decode_arguments,
    decode_environment,
    decode_libraries,
    decode_scripts,
)
from provgraph.errors import DanglingReferenceError
from provgraph.flatten import decode_document, flatten_document
from provgraph.normalize import parse_elapsed_time, resolve_snapshot_paths
from provgraph.options import ParseOptions
from provgraph.records import (
    DataNodeRecord,
    DataProcEdgeRecord,
    FuncLibEdgeRecord,
    FuncNodeRecord,
    FuncProcEdgeRecord,
    ProcDataEdgeRecord,
    ProcNodeRecord,
    ProcProcEdgeRecord,
)
from provgraph.routing import EntryCode, RoutedEntries, route_entries
from provgraph.schemas import (
    DATA_NODES_SCHEMA,
    DATA_PROC_SCHEMA,
    FUNC_LIB_SCHEMA,
    FUNC_NODES_SCHEMA,
    FUNC_PROC_SCHEMA,
    PROC_DATA_SCHEMA,
    PROC_NODES_SCHEMA,
    PROC_PROC_SCHEMA,
    table_from_rows,
)

logger = logging.getLogger(__name__)

PROV_DIRECTORY_LABEL: Final[str] = "provDirectory"


@dataclass(frozen=True)
class ProvModel:
    """Decoded provenance graph.

    Every table has its fixed schema from :mod:`provgraph.schemas`, including
    tables with no rows. Arrow tables are immutable and ``args`` is a
    read-only mapping, so a model may be shared between threads.
    """

    proc_nodes: pa.Table
    data_nodes: pa.Table
    func_nodes: pa.Table
    proc_proc_edges: pa.Table
    proc_data_edges: pa.Table
    data_proc_edges: pa.Table
    func_proc_edges: pa.Table
    func_lib_edges: pa.Table
    agents: pa.Table
    args: Mapping[str, ArgumentSet]
    environment: pa.Table
    libs: pa.Table
    scripts: pa.Table

    def env_value(self, label: str) -> str | None:
        """Return the environment value recorded under ``label``.

        Returns
        -------
        str | None
            Value, or ``None`` when the label is absent.
        """
        matches = self.environment.filter(pc.equal(self.environment["label"], label))
        if matches.num_rows == 0:
            return None
        return matches["value"][0].as_py()


@dataclass(frozen=True)
class ParseResult:
    """A constructed model together with non-fatal diagnostics."""

    model: ProvModel
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        """Diagnostics that degrade the result, excluding documented fallbacks."""
        return tuple(item for item in self.diagnostics if item.kind != "missing_optional_field")


def _proc_nodes_table(
    routed: RoutedEntries,
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> pa.Table:
    pairs = assemble_rows(
        routed.group(EntryCode.PROCESS),
        ProcNodeRecord,
        code=EntryCode.PROCESS,
        options=options,
        diagnostics=diagnostics,
    )
    rows = []
    for entry_id, record in pairs:
        row = record_row(entry_id, record)
        row["elapsedTime"] = parse_elapsed_time(record.elapsedTime)
        rows.append(row)
    return table_from_rows(rows, PROC_NODES_SCHEMA)


_EDGE_ENDPOINTS: Final[Mapping[str, Sequence[tuple[str, str]]]] = MappingProxyType(
    {
        "proc_proc_edges": (("informant", "proc_nodes"), ("informed", "proc_nodes")),
        "proc_data_edges": (("activity", "proc_nodes"), ("entity", "data_nodes")),
        "data_proc_edges": (("entity", "data_nodes"), ("activity", "proc_nodes")),
        "func_proc_edges": (("entity", "func_nodes"), ("activity", "proc_nodes")),
        "func_lib_edges": (("entity", "func_nodes"), ("library", "libs")),
    }
)
_EDGE_CODES: Final[Mapping[str, EntryCode]] = MappingProxyType(
    {
        "proc_proc_edges": EntryCode.PROC_PROC,
        "proc_data_edges": EntryCode.PROC_DATA,
        "data_proc_edges": EntryCode.DATA_PROC,
        "func_proc_edges": EntryCode.FUNC_PROC,
        "func_lib_edges": EntryCode.FUNC_LIB,
    }
)


def validate_endpoints(model: ProvModel) -> None:
    """Check that every edge endpoint names an existing node.

    Raises
    ------
    DanglingReferenceError
        Raised for the first endpoint that references an unknown node id.
    """
    for edge_name, endpoints in _EDGE_ENDPOINTS.items():
        edges: pa.Table = getattr(model, edge_name)
        if edges.num_rows == 0:
            continue
        for column, node_name in endpoints:
            nodes: pa.Table = getattr(model, node_name)
            known = pc.is_in(edges[column], value_set=nodes["id"].combine_chunks())
            dangling = edges.filter(pc.invert(known))
            if dangling.num_rows:
                raise DanglingReferenceError(
                    _EDGE_CODES[edge_name],
                    dangling["id"][0].as_py(),
                    column=column,
                    target=str(dangling[column][0].as_py()),
                )


def build_model(
    routed: RoutedEntries,
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> ProvModel:
    """Decode routed entries into a :class:`ProvModel`.

    Returns
    -------
    ProvModel
        Fully decoded model.
    """

    def table(code: EntryCode, record_type: type, schema: pa.Schema) -> pa.Table:
        return assemble_table(
            routed.group(code),
            record_type,
            schema,
            code=code,
            options=options,
            diagnostics=diagnostics,
        )

    environment = decode_environment(routed.environment)
    agent_group = routed.group(EntryCode.AGENT)
    model = ProvModel(
        proc_nodes=_proc_nodes_table(routed, options=options, diagnostics=diagnostics),
        data_nodes=table(EntryCode.DATA, DataNodeRecord, DATA_NODES_SCHEMA),
        func_nodes=table(EntryCode.FUNCTION, FuncNodeRecord, FUNC_NODES_SCHEMA),
        proc_proc_edges=table(EntryCode.PROC_PROC, ProcProcEdgeRecord, PROC_PROC_SCHEMA),
        proc_data_edges=table(EntryCode.PROC_DATA, ProcDataEdgeRecord, PROC_DATA_SCHEMA),
        data_proc_edges=table(EntryCode.DATA_PROC, DataProcEdgeRecord, DATA_PROC_SCHEMA),
        func_proc_edges=table(EntryCode.FUNC_PROC, FuncProcEdgeRecord, FUNC_PROC_SCHEMA),
        func_lib_edges=table(EntryCode.FUNC_LIB, FuncLibEdgeRecord, FUNC_LIB_SCHEMA),
        agents=decode_agents(agent_group),
        args=decode_arguments(agent_group, options=options, diagnostics=diagnostics),
        environment=environment,
        libs=decode_libraries(
            routed.group(EntryCode.LIBRARY), options=options, diagnostics=diagnostics
        ),
        scripts=decode_scripts(routed.environment, options=options, diagnostics=diagnostics),
    )
    prov_dir = model.env_value(PROV_DIRECTORY_LABEL)
    if prov_dir is None and model.data_nodes.num_rows:
        diagnostics.record(
            "missing_prov_directory",
            "provDirectory not recorded; snapshot values left relative",
        )
    model = replace(model, data_nodes=resolve_snapshot_paths(model.data_nodes, prov_dir))
    if options.strict:
        validate_endpoints(model)
    return model


def parse_prov(text: str | bytes, *, options: ParseOptions | None = None) -> ParseResult:
    """Parse extended PROV-JSON text into a provenance model.

    Parameters
    ----------
    text
        Document text as written by rdt or rdtLite.
    options
        Parse options. Defaults to :meth:`ParseOptions.from_env`.

    Returns
    -------
    ParseResult
        The model and any non-fatal diagnostics, such as empty provenance.

    Raises
    ------
    MalformedInputError
        Raised when the text is not a JSON object document, or when a record
        cannot be decoded (including :class:`SchemaMismatchError` and
        :class:`ElapsedTimeParseError`).
    """
    resolved = options if options is not None else ParseOptions.from_env()
    diagnostics = DiagnosticsCollector()
    with stage_span(
        "provgraph.parse",
        stage="parse",
        attributes={"provgraph.strict": resolved.strict},
    ) as span:
        document = decode_document(text, options=resolved, diagnostics=diagnostics)
        routed = route_entries(flatten_document(document))
        model = build_model(routed, options=resolved, diagnostics=diagnostics)
        set_span_attributes(
            span,
            {
                "provgraph.proc_nodes": model.proc_nodes.num_rows,
                "provgraph.data_nodes": model.data_nodes.num_rows,
                "provgraph.diagnostics": len(diagnostics.items),
            },
        )
    logger.debug(
        "Parsed provenance: %d procedure nodes, %d data nodes, %d diagnostics",
        model.proc_nodes.num_rows,
        model.data_nodes.num_rows,
        len(diagnostics.items),
    )
    return ParseResult(model=model, diagnostics=diagnostics.snapshot())


def parse_prov_file(path: str | Path, *, options: ParseOptions | None = None) -> ParseResult:
    """Read a ``prov.json`` file and parse it with :func:`parse_prov`.

    Returns
    -------
    ParseResult
        The model and any non-fatal diagnostics.
    """
    return parse_prov(Path(path).read_text(encoding="utf-8"), options=options)


__all__ = [
    "PROV_DIRECTORY_LABEL",
    "ParseResult",
    "ProvModel",
    "build_model",
    "parse_prov",
    "parse_prov_file",
    "validate_endpoints",
]
