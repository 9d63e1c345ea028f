"""Tracing helpers for provenance decoding instrumentation."""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Final

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode
from opentelemetry.util.types import AttributeValue

SCOPE_PROVGRAPH: Final[str] = "provgraph"


def get_tracer(scope_name: str = SCOPE_PROVGRAPH) -> trace.Tracer:
    """Return a tracer for the given instrumentation scope.

    Returns
    -------
    opentelemetry.trace.Tracer
        Tracer bound to the requested scope.
    """
    return trace.get_tracer(scope_name)


def normalize_attributes(attrs: Mapping[str, object] | None) -> dict[str, AttributeValue]:
    """Drop ``None`` values and stringify non-primitive attribute values.

    Returns
    -------
    dict[str, AttributeValue]
        Attributes accepted by the OpenTelemetry API.
    """
    if not attrs:
        return {}
    normalized: dict[str, AttributeValue] = {}
    for key, value in attrs.items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            normalized[key] = value
        else:
            normalized[key] = str(value)
    return normalized


def set_span_attributes(span: Span, attrs: Mapping[str, object] | None) -> None:
    """Attach normalized attributes to a span."""
    for key, value in normalize_attributes(attrs).items():
        span.set_attribute(key, value)


def record_exception(span: Span, exc: Exception) -> None:
    """Record an exception on a span and mark it as error."""
    span.record_exception(exc)
    span.set_status(Status(StatusCode.ERROR))


@contextmanager
def stage_span(
    name: str,
    *,
    stage: str,
    attributes: Mapping[str, object] | None = None,
) -> Iterator[Span]:
    """Start a stage span and annotate it with duration and status.

    Parameters
    ----------
    name
        Span name.
    stage
        Stage name recorded as the ``provgraph.stage`` attribute.
    attributes
        Optional span attributes.

    Yields
    ------
    Span
        The started span.
    """
    base_attrs: dict[str, object] = {"provgraph.stage": stage}
    if attributes:
        base_attrs.update(attributes)
    tracer = get_tracer()
    start = time.monotonic()
    status = "ok"
    with tracer.start_as_current_span(name, attributes=normalize_attributes(base_attrs)) as span:
        try:
            yield span
        except Exception as exc:
            status = "error"
            record_exception(span, exc)
            raise
        finally:
            set_span_attributes(
                span,
                {"duration_s": time.monotonic() - start, "status": status},
            )


__all__ = [
    "SCOPE_PROVGRAPH",
    "get_tracer",
    "normalize_attributes",
    "record_exception",
    "set_span_attributes",
    "stage_span",
]
