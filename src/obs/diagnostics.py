"""Non-fatal diagnostics recorded while decoding provenance."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final, Literal, TypeAlias

from utils.serde import StructBaseStrict

logger = logging.getLogger(__name__)

DiagnosticKind: TypeAlias = Literal[
    "empty_provenance",
    "schema_mismatch",
    "missing_optional_field",
    "argument_coercion",
    "missing_prov_directory",
]

_WARNING_KINDS: Final[frozenset[str]] = frozenset(
    {"empty_provenance", "schema_mismatch", "argument_coercion"}
)


class Diagnostic(StructBaseStrict, frozen=True):
    """A degraded-but-valid condition observed during construction."""

    kind: DiagnosticKind
    message: str
    context: dict[str, str] = {}


@dataclass
class DiagnosticsCollector:
    """Collect diagnostics in-memory and mirror them to the logger."""

    items: list[Diagnostic] = field(default_factory=list)

    def record(
        self,
        kind: DiagnosticKind,
        message: str,
        **context: object,
    ) -> Diagnostic:
        """Append a diagnostic and log it.

        Returns
        -------
        Diagnostic
            The recorded diagnostic.
        """
        diagnostic = Diagnostic(
            kind=kind,
            message=message,
            context={key: str(value) for key, value in context.items()},
        )
        self.items.append(diagnostic)
        level = logging.WARNING if kind in _WARNING_KINDS else logging.DEBUG
        logger.log(level, "%s: %s", kind, message)
        return diagnostic

    def kinds(self) -> tuple[str, ...]:
        """Return the recorded diagnostic kinds in order.

        Returns
        -------
        tuple[str, ...]
            Diagnostic kinds.
        """
        return tuple(item.kind for item in self.items)

    def snapshot(self) -> tuple[Diagnostic, ...]:
        """Return an immutable copy of the collected diagnostics.

        Returns
        -------
        tuple[Diagnostic, ...]
            Collected diagnostics.
        """
        return tuple(self.items)


__all__ = ["Diagnostic", "DiagnosticKind", "DiagnosticsCollector"]
