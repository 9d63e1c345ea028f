"""Tests for environment variable helpers."""

from __future__ import annotations

import logging

import pytest

from utils.env_utils import env_bool, env_list, env_value


def test_env_value_strips_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure blank values read as unset."""
    monkeypatch.setenv("PROVGRAPH_TEST_VALUE", "   ")
    assert env_value("PROVGRAPH_TEST_VALUE") is None
    monkeypatch.setenv("PROVGRAPH_TEST_VALUE", " x ")
    assert env_value("PROVGRAPH_TEST_VALUE") == "x"


def test_env_list_splits_and_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure lists split on the separator and fall back to the default."""
    monkeypatch.delenv("PROVGRAPH_TEST_LIST", raising=False)
    assert env_list("PROVGRAPH_TEST_LIST", default=["a"]) == ["a"]
    monkeypatch.setenv("PROVGRAPH_TEST_LIST", "a; ;b")
    assert env_list("PROVGRAPH_TEST_LIST", separator=";") == ["a", "b"]


def test_env_bool_parses_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure common flag spellings parse and unset uses the default."""
    monkeypatch.delenv("PROVGRAPH_TEST_FLAG", raising=False)
    assert env_bool("PROVGRAPH_TEST_FLAG", default=True) is True
    monkeypatch.setenv("PROVGRAPH_TEST_FLAG", "Off")
    assert env_bool("PROVGRAPH_TEST_FLAG", default=True) is False
    monkeypatch.setenv("PROVGRAPH_TEST_FLAG", "Y")
    assert env_bool("PROVGRAPH_TEST_FLAG", default=False) is True


def test_env_bool_invalid_logs_and_defaults(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Ensure invalid booleans warn and fall back to the default."""
    monkeypatch.setenv("PROVGRAPH_TEST_FLAG", "perhaps")
    with caplog.at_level(logging.WARNING, logger="utils.env_utils"):
        assert env_bool("PROVGRAPH_TEST_FLAG", default=True) is True
    assert "PROVGRAPH_TEST_FLAG" in caplog.text
