"""Shared utilities for provgraph."""
