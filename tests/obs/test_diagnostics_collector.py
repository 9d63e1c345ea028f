"""Tests for the in-memory diagnostics collector."""

from __future__ import annotations

import logging

import pytest

from obs.diagnostics import Diagnostic, DiagnosticsCollector


def test_record_stringifies_context() -> None:
    """Ensure context values are stored as strings."""
    collector = DiagnosticsCollector()
    diagnostic = collector.record("schema_mismatch", "fields differ", entry_id="d2", count=3)
    assert diagnostic == Diagnostic(
        kind="schema_mismatch",
        message="fields differ",
        context={"entry_id": "d2", "count": "3"},
    )
    assert collector.kinds() == ("schema_mismatch",)


def test_snapshot_is_detached() -> None:
    """Ensure snapshots do not change when more diagnostics arrive."""
    collector = DiagnosticsCollector()
    collector.record("empty_provenance", "Provenance is empty")
    snapshot = collector.snapshot()
    collector.record("missing_optional_field", "scriptHash not recorded")
    assert len(snapshot) == 1


def test_record_log_levels(caplog: pytest.LogCaptureFixture) -> None:
    """Ensure degrading diagnostics warn and fallbacks log at debug."""
    collector = DiagnosticsCollector()
    with caplog.at_level(logging.DEBUG, logger="obs.diagnostics"):
        collector.record("argument_coercion", "bad value")
        collector.record("missing_optional_field", "fallback used")
    levels = {record.getMessage(): record.levelno for record in caplog.records}
    assert levels["argument_coercion: bad value"] == logging.WARNING
    assert levels["missing_optional_field: fallback used"] == logging.DEBUG
