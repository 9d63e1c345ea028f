"""Field-level normalizations applied to decoded provenance tables."""

from __future__ import annotations

import logging
import re
from typing import Final

import pyarrow as pa
import pyarrow.compute as pc

from provgraph.errors import ElapsedTimeParseError

logger = logging.getLogger(__name__)

SNAPSHOT_TYPES: Final[tuple[str, ...]] = ("Snapshot", "StandardOutputSnapshot")

_SEPARATOR_RE: Final[re.Pattern[str]] = re.compile(r"[.,]")
_ELAPSED_RE: Final[re.Pattern[str]] = re.compile(r"^[+-]?[\d.,]+(?:[eE][+-]?\d+)?$")


def parse_elapsed_time(value: str | float | None) -> float | None:
    """Parse an elapsed-time value into seconds.

    Strings may use ``,`` and ``.`` for digit grouping and as the decimal
    separator in either locale convention. The last separator always starts
    the fractional part, so ``"1,234.5"`` and ``"1.234,5"`` both parse as
    ``1234.5``.

    Parameters
    ----------
    value
        Raw elapsed time as written by the producer.

    Returns
    -------
    float | None
        Seconds, or ``None`` when the value is missing.

    Raises
    ------
    ElapsedTimeParseError
        Raised when the value is not a number written with digits and
        separators, or when the repaired string still does not parse.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return float(value)
    text = value.strip()
    if not _ELAPSED_RE.match(text):
        raise ElapsedTimeParseError(value)
    try:
        return float(text)
    except ValueError:
        pass
    parts = _SEPARATOR_RE.split(text)
    if len(parts) < 2:
        raise ElapsedTimeParseError(value)
    repaired = "".join(parts[:-1]) + "." + parts[-1]
    try:
        return float(repaired)
    except ValueError as exc:
        raise ElapsedTimeParseError(value, repaired) from exc


def resolve_snapshot_paths(data_nodes: pa.Table, prov_dir: str | None) -> pa.Table:
    """Prefix snapshot values with the provenance directory.

    Values of ``Snapshot`` and ``StandardOutputSnapshot`` rows become
    ``prov_dir + "/" + value``. Values that already carry that prefix are left
    unchanged, so applying the resolver twice is a no-op.

    Parameters
    ----------
    data_nodes
        Data node table.
    prov_dir
        The environment's ``provDirectory``; ``None`` leaves the table as is.

    Returns
    -------
    pyarrow.Table
        Table with resolved snapshot values.
    """
    if prov_dir is None or data_nodes.num_rows == 0:
        return data_nodes
    values = data_nodes["value"]
    is_snapshot = pc.is_in(data_nodes["type"], value_set=pa.array(SNAPSHOT_TYPES, type=pa.string()))
    resolved_already = pc.fill_null(pc.starts_with(values, pattern=f"{prov_dir}/"), False)
    mask = pc.and_(is_snapshot, pc.invert(resolved_already))
    if not pc.any(mask).as_py():
        return data_nodes
    resolved = pc.binary_join_element_wise(prov_dir, values, "/")
    updated = pc.if_else(mask, resolved, values)
    index = data_nodes.schema.get_field_index("value")
    logger.debug("Resolved %d snapshot paths under %s", pc.sum(mask.cast(pa.int64())).as_py(), prov_dir)
    return data_nodes.set_column(index, data_nodes.schema.field(index), updated)


__all__ = ["SNAPSHOT_TYPES", "parse_elapsed_time", "resolve_snapshot_paths"]
