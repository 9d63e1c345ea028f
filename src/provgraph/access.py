"""Read-only views over a parsed provenance model.

Every accessor takes a :class:`~provgraph.model.ProvModel` or ``None`` and
returns ``None`` when no model is given. Otherwise the result is a table with
a fixed schema (possibly with zero rows) or, for :func:`get_args`, a mapping.
"""

from __future__ import annotations

import ntpath
import re
from collections.abc import Iterable, Mapping
from typing import Final

import msgspec
import pyarrow as pa
import pyarrow.compute as pc

from provgraph.decoders import ArgumentSet
from provgraph.model import PROV_DIRECTORY_LABEL, ProvModel
from provgraph.schemas import (
    FUNC_LIB_VIEW_SCHEMA,
    FUNC_PROC_VIEW_SCHEMA,
    NODE_SUMMARY_SCHEMA,
    PREEXISTING_SCHEMA,
    SAVED_SCRIPTS_SCHEMA,
    TOOL_INFO_SCHEMA,
    VAL_TYPE_SCHEMA,
    align_to_schema,
    empty_table,
    table_from_rows,
)
from utils.serde import decode_json

FILE_TYPES: Final[tuple[str, ...]] = ("File",)
FILE_OR_URL_TYPES: Final[tuple[str, ...]] = ("File", "URL")
VARIABLE_TYPES: Final[tuple[str, ...]] = ("Data", "Snapshot")
STDOUT_TYPES: Final[tuple[str, ...]] = ("StandardOutput", "StandardOutputSnapshot")

_JSON_OBJECT_RE: Final[re.Pattern[str]] = re.compile(r"^\{(.+)\}$", re.DOTALL)
_ORDER_COLUMN: Final[str] = "__order"


def _string_set(values: Iterable[str]) -> pa.Array:
    return pa.array(list(values), type=pa.string())


def _rows_with_types(table: pa.Table, types: Iterable[str]) -> pa.Table:
    return table.filter(pc.is_in(table["type"], value_set=_string_set(types)))


def _rows_with_ids(table: pa.Table, ids: pa.ChunkedArray) -> pa.Table:
    return table.filter(pc.is_in(table["id"], value_set=ids.combine_chunks()))


# -----------------------------------------------------------------------------
# Direct table getters
# -----------------------------------------------------------------------------


def get_environment(prov: ProvModel | None) -> pa.Table | None:
    """Return the ``label``/``value`` environment table."""
    return None if prov is None else prov.environment


def get_libs(prov: ProvModel | None) -> pa.Table | None:
    """Return libraries as ``id, name, version, whereLoaded``."""
    return None if prov is None else prov.libs


def get_tool_info(prov: ProvModel | None) -> pa.Table | None:
    """Return ``tool.name, tool.version, json.version`` for each agent."""
    if prov is None:
        return None
    return align_to_schema(prov.agents, TOOL_INFO_SCHEMA)


def get_args(prov: ProvModel | None) -> Mapping[str, ArgumentSet] | None:
    """Return typed argument sets keyed by agent id."""
    return None if prov is None else prov.args


def get_scripts(prov: ProvModel | None) -> pa.Table | None:
    """Return ``script, timestamp, hash`` rows, main script first."""
    return None if prov is None else prov.scripts


def get_proc_nodes(prov: ProvModel | None) -> pa.Table | None:
    """Return procedure nodes."""
    return None if prov is None else prov.proc_nodes


def get_data_nodes(prov: ProvModel | None) -> pa.Table | None:
    """Return data nodes with snapshot values resolved to full paths."""
    return None if prov is None else prov.data_nodes


def get_func_nodes(prov: ProvModel | None) -> pa.Table | None:
    """Return function nodes."""
    return None if prov is None else prov.func_nodes


def get_proc_proc(prov: ProvModel | None) -> pa.Table | None:
    """Return control-flow edges as ``id, informant, informed``."""
    return None if prov is None else prov.proc_proc_edges


def get_data_proc(prov: ProvModel | None) -> pa.Table | None:
    """Return input edges as ``id, entity, activity``."""
    return None if prov is None else prov.data_proc_edges


def get_proc_data(prov: ProvModel | None) -> pa.Table | None:
    """Return output edges as ``id, activity, entity``."""
    return None if prov is None else prov.proc_data_edges


# -----------------------------------------------------------------------------
# Scripts
# -----------------------------------------------------------------------------


def get_saved_scripts(prov: ProvModel | None) -> pa.Table | None:
    """Return the locations of the saved copies of every executed script.

    Copies live in ``<provDirectory>/scripts/<basename>``. When the
    environment does not record ``provDirectory`` the locations are null.

    Returns
    -------
    pyarrow.Table | None
        Table with ``script, timestamp`` columns.
    """
    if prov is None:
        return None
    prov_dir = prov.env_value(PROV_DIRECTORY_LABEL)
    rows = []
    for row in prov.scripts.to_pylist():
        script = row["script"]
        saved = None
        if prov_dir is not None and script is not None:
            saved = f"{prov_dir}/scripts/{ntpath.basename(script)}"
        rows.append({"script": saved, "timestamp": row["timestamp"]})
    return table_from_rows(rows, SAVED_SCRIPTS_SCHEMA)


# -----------------------------------------------------------------------------
# Data node subsets
# -----------------------------------------------------------------------------


def get_stdout_nodes(prov: ProvModel | None) -> pa.Table | None:
    """Return standard-output nodes as ``id, value, timestamp``."""
    if prov is None:
        return None
    return align_to_schema(_rows_with_types(prov.data_nodes, STDOUT_TYPES), NODE_SUMMARY_SCHEMA)


def get_error_nodes(prov: ProvModel | None) -> pa.Table | None:
    """Return exception nodes as ``id, value, timestamp``."""
    if prov is None:
        return None
    return align_to_schema(_rows_with_types(prov.data_nodes, ("Exception",)), NODE_SUMMARY_SCHEMA)


def get_urls(prov: ProvModel | None) -> pa.Table | None:
    """Return data nodes of type URL."""
    if prov is None:
        return None
    return _rows_with_types(prov.data_nodes, ("URL",))


def get_input_files(prov: ProvModel | None, *, only_files: bool = False) -> pa.Table | None:
    """Return data nodes for files (and URLs) read by the script.

    Parameters
    ----------
    prov
        Parsed provenance.
    only_files
        When ``True`` only File nodes are returned, otherwise File and URL.

    Returns
    -------
    pyarrow.Table | None
        Data node rows consumed by some procedure node.
    """
    if prov is None:
        return None
    candidates = _rows_with_types(prov.data_nodes, FILE_TYPES if only_files else FILE_OR_URL_TYPES)
    if candidates.num_rows == 0:
        return candidates
    return _rows_with_ids(candidates, prov.data_proc_edges["entity"])


def get_output_files(prov: ProvModel | None) -> pa.Table | None:
    """Return File data nodes written by the script."""
    if prov is None:
        return None
    candidates = _rows_with_types(prov.data_nodes, FILE_TYPES)
    if candidates.num_rows == 0:
        return candidates
    return _rows_with_ids(candidates, prov.proc_data_edges["entity"])


def get_variables_set(prov: ProvModel | None) -> pa.Table | None:
    """Return Data and Snapshot nodes assigned by the script."""
    if prov is None:
        return None
    candidates = _rows_with_types(prov.data_nodes, VARIABLE_TYPES)
    if candidates.num_rows == 0:
        return candidates
    return _rows_with_ids(candidates, prov.proc_data_edges["entity"])


def get_variables_used(prov: ProvModel | None) -> pa.Table | None:
    """Return Data and Snapshot nodes whose values the script reads."""
    if prov is None:
        return None
    candidates = _rows_with_types(prov.data_nodes, VARIABLE_TYPES)
    if candidates.num_rows == 0:
        return candidates
    return _rows_with_ids(candidates, prov.data_proc_edges["entity"])


def get_variable_named(prov: ProvModel | None, var_name: str) -> pa.Table | None:
    """Return Data and Snapshot nodes for the variable ``var_name``."""
    if prov is None:
        return None
    variables = _rows_with_types(prov.data_nodes, VARIABLE_TYPES)
    return variables.filter(pc.fill_null(pc.equal(variables["name"], var_name), False))


def get_preexisting(prov: ProvModel | None) -> pa.Table | None:
    """Return the names of variables that existed before the script ran.

    Returns
    -------
    pyarrow.Table | None
        Single-column ``name`` table.
    """
    if prov is None:
        return None
    data_nodes = prov.data_nodes
    from_env = data_nodes.filter(pc.fill_null(data_nodes["fromEnv"], False))
    return align_to_schema(from_env, PREEXISTING_SCHEMA)


# -----------------------------------------------------------------------------
# Function joins
# -----------------------------------------------------------------------------


def _join_function_names(
    prov: ProvModel,
    edges: pa.Table,
    endpoint: str,
    schema: pa.Schema,
) -> pa.Table:
    """Inner-join function edges to function names, keeping edge order."""
    if edges.num_rows == 0:
        return empty_table(schema)
    left = pa.table(
        {
            _ORDER_COLUMN: pa.array(range(edges.num_rows), type=pa.int64()),
            "func_id": edges["entity"],
            endpoint: edges[endpoint],
        }
    )
    right = prov.func_nodes.select(["id", "name"]).rename_columns(["func_id", "function"])
    joined = left.join(right, keys="func_id", join_type="inner").sort_by(_ORDER_COLUMN)
    return align_to_schema(joined, schema)


def get_func_proc(prov: ProvModel | None) -> pa.Table | None:
    """Return where library functions are called as ``func_id, function, activity``."""
    if prov is None:
        return None
    return _join_function_names(prov, prov.func_proc_edges, "activity", FUNC_PROC_VIEW_SCHEMA)


def get_func_lib(prov: ProvModel | None) -> pa.Table | None:
    """Return the library of each function as ``func_id, function, library``."""
    if prov is None:
        return None
    return _join_function_names(prov, prov.func_lib_edges, "library", FUNC_LIB_VIEW_SCHEMA)


def get_libs_needed(prov: ProvModel | None, proc_ids: str | Iterable[str]) -> pa.Table | None:
    """Return the libraries providing functions called by the given procedures.

    Parameters
    ----------
    prov
        Parsed provenance.
    proc_ids
        A procedure node id or several ids.

    Returns
    -------
    pyarrow.Table | None
        Subset of :func:`get_libs` rows.
    """
    if prov is None:
        return None
    wanted = [proc_ids] if isinstance(proc_ids, str) else list(proc_ids)
    calls = prov.func_proc_edges.filter(
        pc.is_in(prov.func_proc_edges["activity"], value_set=_string_set(wanted))
    )
    members = prov.func_lib_edges.filter(
        pc.is_in(prov.func_lib_edges["entity"], value_set=calls["entity"].combine_chunks())
    )
    return _rows_with_ids(prov.libs, members["library"])


# -----------------------------------------------------------------------------
# Value types
# -----------------------------------------------------------------------------


def _join_values(values: object, separator: str) -> str:
    if values is None:
        return ""
    if isinstance(values, list):
        return separator.join(str(item) for item in values)
    return str(values)


def parse_val_type(val_type: str | None) -> tuple[str | None, str | None, str | None]:
    """Split a valType descriptor into ``(container, dimension, type)``.

    JSON-object descriptors such as
    ``{"container":"vector", "dimension":[1], "type":["numeric"]}`` give the
    container, the dimensions joined by ``","`` and the member types joined by
    ``", "`` (``None`` when absent). Any other descriptor is returned as the
    type with no container or dimension.

    Returns
    -------
    tuple[str | None, str | None, str | None]
        Container, dimension and type.
    """
    if val_type is None:
        return None, None, None
    if _JSON_OBJECT_RE.match(val_type):
        try:
            descriptor = decode_json(val_type)
        except msgspec.DecodeError:
            descriptor = None
        if isinstance(descriptor, dict):
            container = descriptor.get("container")
            member_type = descriptor.get("type")
            return (
                None if container is None else str(container),
                _join_values(descriptor.get("dimension"), ","),
                None if member_type is None else _join_values(member_type, ", "),
            )
    return None, None, val_type


def get_val_type(
    prov: ProvModel | None,
    node_ids: str | Iterable[str] | None = None,
) -> pa.Table | None:
    """Decompose data node valTypes into ``id, container, dimension, type``.

    Parameters
    ----------
    prov
        Parsed provenance.
    node_ids
        Restrict the result to these data node ids.

    Returns
    -------
    pyarrow.Table | None
        One row per selected data node, or ``None`` when no node is selected.
    """
    if prov is None:
        return None
    data_nodes = prov.data_nodes.select(["id", "valType"])
    if node_ids is not None:
        wanted = [node_ids] if isinstance(node_ids, str) else list(node_ids)
        data_nodes = data_nodes.filter(pc.is_in(data_nodes["id"], value_set=_string_set(wanted)))
    if data_nodes.num_rows == 0:
        return None
    rows = []
    for row in data_nodes.to_pylist():
        container, dimension, member_type = parse_val_type(row["valType"])
        rows.append(
            {"id": row["id"], "container": container, "dimension": dimension, "type": member_type}
        )
    return table_from_rows(rows, VAL_TYPE_SCHEMA)


__all__ = [
    "FILE_OR_URL_TYPES",
    "FILE_TYPES",
    "STDOUT_TYPES",
    "VARIABLE_TYPES",
    "get_args",
    "get_data_nodes",
    "get_data_proc",
    "get_environment",
    "get_error_nodes",
    "get_func_lib",
    "get_func_nodes",
    "get_func_proc",
    "get_input_files",
    "get_libs",
    "get_libs_needed",
    "get_output_files",
    "get_preexisting",
    "get_proc_data",
    "get_proc_nodes",
    "get_proc_proc",
    "get_saved_scripts",
    "get_scripts",
    "get_stdout_nodes",
    "get_tool_info",
    "get_urls",
    "get_val_type",
    "get_variable_named",
    "get_variables_set",
    "get_variables_used",
]
