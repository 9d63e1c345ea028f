"""Decode extended PROV-JSON provenance into typed Arrow tables."""

from provgraph.errors import (
    DanglingReferenceError,
    ElapsedTimeParseError,
    MalformedInputError,
    ProvParseError,
    SchemaMismatchError,
)
from provgraph.model import ParseResult, ProvModel, parse_prov, parse_prov_file
from provgraph.options import ParseOptions

__all__ = [
    "DanglingReferenceError",
    "ElapsedTimeParseError",
    "MalformedInputError",
    "ParseOptions",
    "ParseResult",
    "ProvModel",
    "ProvParseError",
    "SchemaMismatchError",
    "parse_prov",
    "parse_prov_file",
]
