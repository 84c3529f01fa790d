"""
Detects whether OpenTelemetry is installed.

OpenTelemetry ships in the optional ``telemetry`` extra; create_tracer()
consults OTEL_AVAILABLE to pick between real spans and the no-op tracer.
"""

from __future__ import annotations

try:
    import opentelemetry.trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False


__all__ = [
    "OTEL_AVAILABLE",
]
