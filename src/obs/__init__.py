"""Observation utilities for diagnostics and tracing."""

from obs.diagnostics import Diagnostic, DiagnosticKind, DiagnosticsCollector
from obs.tracing import stage_span

__all__ = ["Diagnostic", "DiagnosticKind", "DiagnosticsCollector", "stage_span"]
