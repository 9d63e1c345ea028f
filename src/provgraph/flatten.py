"""Flatten an extended PROV-JSON document into ordered identifier entries."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import cast

import msgspec

from obs.diagnostics import DiagnosticsCollector
from provgraph.errors import MalformedInputError
from provgraph.options import ParseOptions
from utils.serde import decode_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FlatEntry:
    """One identified entry of a top-level PROV section.

    ``key`` is the entry identifier (``p1``, ``d3``, ``environment`` ...) and
    ``body`` its field mapping, both with namespace prefixes removed.
    """

    key: str
    body: object
    section: str


def strip_prefixes(value: str, prefixes: Sequence[str]) -> str:
    """Remove leading namespace prefixes from ``value``.

    Returns
    -------
    str
        Value without any leading prefix in ``prefixes``.
    """
    stripped = True
    while stripped:
        stripped = False
        for prefix in prefixes:
            if prefix and value.startswith(prefix):
                value = value[len(prefix) :]
                stripped = True
    return value


def _strip_tree(value: object, prefixes: Sequence[str]) -> object:
    if isinstance(value, dict):
        return {
            strip_prefixes(str(key), prefixes): _strip_tree(item, prefixes)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_strip_tree(item, prefixes) for item in value]
    if isinstance(value, str):
        return strip_prefixes(value, prefixes)
    return value


def decode_document(
    text: str | bytes,
    *,
    options: ParseOptions,
    diagnostics: DiagnosticsCollector,
) -> dict[str, object]:
    """Decode document text into a prefix-stripped mapping.

    Parameters
    ----------
    text
        Raw PROV-JSON text.
    options
        Parse options supplying namespace prefixes and empty-input policy.
    diagnostics
        Collector receiving the ``empty_provenance`` diagnostic.

    Returns
    -------
    dict[str, object]
        Top-level sections keyed by section name.

    Raises
    ------
    MalformedInputError
        Raised when the text is not JSON or the document is not an object.
    """
    try:
        raw = text.decode("utf-8") if isinstance(text, bytes) else text
    except UnicodeDecodeError as exc:
        msg = f"Provenance input is not UTF-8 text: {exc}"
        raise MalformedInputError(msg) from exc
    if not raw.strip():
        if not options.allow_empty:
            msg = "Provenance input is empty."
            raise MalformedInputError(msg)
        diagnostics.record("empty_provenance", "Provenance is empty")
        return {}
    try:
        document = decode_json(raw)
    except msgspec.DecodeError as exc:
        msg = f"Provenance input is not valid JSON: {exc}"
        raise MalformedInputError(msg) from exc
    if not isinstance(document, dict):
        msg = f"Provenance document must be a JSON object, got {type(document).__name__}."
        raise MalformedInputError(msg)
    if not document:
        diagnostics.record("empty_provenance", "Provenance is empty")
    return cast("dict[str, object]", _strip_tree(document, options.namespace_prefixes))


def flatten_document(document: dict[str, object]) -> tuple[FlatEntry, ...]:
    """Unnest top-level sections into one entry per identifier.

    Parameters
    ----------
    document
        Prefix-stripped document from :func:`decode_document`.

    Returns
    -------
    tuple[FlatEntry, ...]
        Entries in document order.
    """
    entries: list[FlatEntry] = []
    for section, content in document.items():
        if not isinstance(content, dict):
            logger.debug("Skipping non-object top-level section %r", section)
            continue
        entries.extend(FlatEntry(key=key, body=body, section=section) for key, body in content.items())
    logger.debug("Flattened %d entries from %d sections", len(entries), len(document))
    return tuple(entries)


__all__ = ["FlatEntry", "decode_document", "flatten_document", "strip_prefixes"]
