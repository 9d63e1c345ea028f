"""Exceptions raised while decoding extended PROV-JSON documents."""

from __future__ import annotations

from collections.abc import Iterable


class ProvParseError(ValueError):
    """Base exception for provenance decoding failures."""


class MalformedInputError(ProvParseError):
    """Raised when the input is not a JSON object document."""


class SchemaMismatchError(MalformedInputError):
    """Raised when a record's fields disagree with its group or record type."""

    def __init__(
        self,
        code: str,
        entry_id: str,
        *,
        expected: Iterable[str] = (),
        actual: Iterable[str] = (),
        reason: str | None = None,
    ) -> None:
        self.code = str(code)
        self.entry_id = entry_id
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        msg = f"Entry {entry_id!r} (code {self.code!r}) does not match its record schema"
        if reason:
            msg = f"{msg}: {reason}"
        elif self.expected or self.actual:
            msg = f"{msg}: expected fields {list(self.expected)}, got {list(self.actual)}"
        super().__init__(msg)


class DanglingReferenceError(SchemaMismatchError):
    """Raised in strict mode when an edge endpoint names an unknown node."""

    def __init__(self, code: str, entry_id: str, *, column: str, target: str) -> None:
        self.column = column
        self.target = target
        super().__init__(
            code,
            entry_id,
            reason=f"{column} references unknown node {target!r}",
        )


class ElapsedTimeParseError(MalformedInputError):
    """Raised when an elapsed-time string cannot be repaired into a number."""

    def __init__(self, value: str, repaired: str | None = None) -> None:
        self.value = value
        self.repaired = repaired
        msg = f"Cannot parse elapsedTime {value!r}"
        if repaired is not None:
            msg = f"{msg} (repaired form {repaired!r})"
        super().__init__(msg)


__all__ = [
    "DanglingReferenceError",
    "ElapsedTimeParseError",
    "MalformedInputError",
    "ProvParseError",
    "SchemaMismatchError",
]
