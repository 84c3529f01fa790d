"""
Span factories handed to the planner, the executor and the history store.

Each of those components accepts a ``tracer`` argument and falls back to
create_tracer(), so migrations run the same with OpenTelemetry installed,
without it, or under a MockTracer in tests.

Example:
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("archmigrate.executor.step", {"archmigrate.step.index": 0}):
    ...     run_step()
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opentelemetry.trace import Span

from archmigrate.observability.tracing import OTEL_AVAILABLE


@runtime_checkable
class Tracer(Protocol):
    """
    Anything that opens named spans.

    ``span()`` yields the live span, or None when nothing is recorded;
    callers check for None before setting attributes on it.
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]: ...

    @property
    def enabled(self) -> bool: ...


class NullTracer:
    """Opens no spans. Used when tracing is off or OpenTelemetry is missing."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Opens spans on the OpenTelemetry tracer named ``tracer_name``.

    Raises:
        ImportError: If OpenTelemetry is not installed.
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Records (name, attributes) for every span opened, in order.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("archmigrate.planner.plan", {"archmigrate.step.count": 3}):
        ...     pass
        >>> tracer.span_names
        ['archmigrate.planner.plan']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick the tracer for a component.

    Returns:
        An OpenTelemetryTracer when ``enable_tracing`` is set and
        OpenTelemetry is installed, a NullTracer otherwise.
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
