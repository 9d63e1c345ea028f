"""Shared msgspec policy and helpers."""

from __future__ import annotations

import re
from typing import TypeVar

import msgspec

T = TypeVar("T")


class StructBaseStrict(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    omit_defaults=True,
    repr_omit_defaults=True,
    forbid_unknown_fields=True,
):
    """Base struct for strict contracts."""


class StructBaseCompat(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    omit_defaults=True,
    repr_omit_defaults=True,
    forbid_unknown_fields=False,
):
    """Base struct for forward-compatible records emitted by external tools."""


_VALIDATION_RE = re.compile(r"^(?P<summary>.*?)(?:\s+-\s+at\s+`(?P<path>[^`]+)`)?$")

_JSON_DECODER = msgspec.json.Decoder()


def decode_json(buf: bytes | str) -> object:
    """Decode JSON text into builtin Python objects.

    Object key order is preserved.

    Parameters
    ----------
    buf
        JSON payload.

    Returns
    -------
    object
        Decoded payload.
    """
    return _JSON_DECODER.decode(buf)


def convert(obj: object, *, target_type: type[T], strict: bool = True) -> T:
    """Convert builtin objects into a target type.

    Parameters
    ----------
    obj
        Object to convert.
    target_type
        Target type for conversion.
    strict
        Whether to enforce strict conversion. Lax conversion accepts numeric
        strings for numeric fields.

    Returns
    -------
    T
        Converted payload.
    """
    return msgspec.convert(obj, type=target_type, strict=strict)


def validation_error_payload(exc: msgspec.ValidationError) -> dict[str, str]:
    """Normalize a msgspec ValidationError for diagnostics.

    Parameters
    ----------
    exc
        ValidationError raised by msgspec decoding/conversion.

    Returns
    -------
    dict[str, str]
        Normalized error payload containing type, summary, and optional path.
    """
    message = str(exc).strip()
    match = _VALIDATION_RE.match(message)
    payload: dict[str, str] = {"type": exc.__class__.__name__}
    if match:
        summary = (match.group("summary") or "").strip()
        if summary:
            payload["summary"] = summary
        path = match.group("path")
        if path:
            payload["path"] = path
        return payload
    payload["summary"] = message
    return payload


__all__ = [
    "StructBaseCompat",
    "StructBaseStrict",
    "convert",
    "decode_json",
    "validation_error_payload",
]
