"""Record structs for node and edge entries of an extended PROV-JSON document.

Each struct names the fields a producer writes for one entry variant, after
namespace prefixes have been stripped. Optional fields default to ``None`` so
that documents from older producers still decode; fields every producer writes
are required.
"""

from __future__ import annotations

import msgspec

from utils.serde import StructBaseCompat


class ProcNodeRecord(StructBaseCompat, frozen=True):
    """Procedure node (``activity`` section, ``p`` ids)."""

    name: str | None
    type: str | None
    # Legacy producers write elapsedTime as a locale-formatted string.
    elapsedTime: str | float | None = None
    scriptNum: int | None = None
    startLine: int | None = None
    startCol: int | None = None
    endLine: int | None = None
    endCol: int | None = None


class DataNodeRecord(StructBaseCompat, frozen=True):
    """Data node (``entity`` section, ``d`` ids)."""

    name: str | None
    type: str | None
    value: str | None = None
    valType: str | None = None
    scope: str | None = None
    fromEnv: bool | None = None
    hash: str | None = None
    timestamp: str | None = None
    location: str | None = None


class FuncNodeRecord(StructBaseCompat, frozen=True):
    """Function node (``entity`` section, ``f`` ids)."""

    name: str | None


class ProcProcEdgeRecord(StructBaseCompat, frozen=True):
    """Control-flow edge (``wasInformedBy``, ``pp`` ids)."""

    informant: str | None
    informed: str | None


class ProcDataEdgeRecord(StructBaseCompat, frozen=True):
    """Output edge (``wasGeneratedBy``, ``pd`` ids)."""

    activity: str | None
    entity: str | None


class DataProcEdgeRecord(StructBaseCompat, frozen=True):
    """Input edge (``used``, ``dp`` ids)."""

    entity: str | None
    activity: str | None


class FuncProcEdgeRecord(StructBaseCompat, frozen=True):
    """Function-use edge (``used``, ``fp`` ids)."""

    entity: str | None
    activity: str | None


class FuncLibEdgeRecord(StructBaseCompat, frozen=True):
    """Function membership in a library (``hadMember``, ``m`` ids)."""

    entity: str | None
    library: str | None = msgspec.field(name="collection")


class LibraryRecord(StructBaseCompat, frozen=True):
    """Library (``entity`` section, ``l`` ids).

    ``whereLoaded`` was added by rdtLite 1.4 and stays ``UNSET`` for documents
    written by older producers.
    """

    name: str | None
    version: str | None = None
    whereLoaded: str | None | msgspec.UnsetType = msgspec.UNSET


__all__ = [
    "DataNodeRecord",
    "DataProcEdgeRecord",
    "FuncLibEdgeRecord",
    "FuncNodeRecord",
    "FuncProcEdgeRecord",
    "LibraryRecord",
    "ProcDataEdgeRecord",
    "ProcNodeRecord",
    "ProcProcEdgeRecord",
]
