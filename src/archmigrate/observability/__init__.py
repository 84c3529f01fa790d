"""
Observability utilities for archmigrate.

This module provides optional OpenTelemetry tracing for the planner, the
executor and the history store. It will:
- Use OpenTelemetry when the ``telemetry`` extra is installed
- Fall back to a no-op tracer when it is not
- Let tests inject a MockTracer to assert on span names

Example:
    >>> from archmigrate.observability import create_tracer, OTEL_AVAILABLE
    >>>
    >>> tracer = create_tracer(__name__, enable_tracing=OTEL_AVAILABLE)
    >>> with tracer.span("archmigrate.planner.plan"):
    ...     pass
"""

from archmigrate.observability.attributes import (
    ATTR_ERROR_TYPE,
    ATTR_FROM_LEVEL,
    ATTR_LEDGER_PATH,
    ATTR_MIGRATION_STATUS,
    ATTR_PROJECT_PATH,
    ATTR_SERVICE_NAME,
    ATTR_STEP_COUNT,
    ATTR_STEP_INDEX,
    ATTR_STEP_KIND,
    ATTR_TO_LEVEL,
)
from archmigrate.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from archmigrate.observability.tracing import OTEL_AVAILABLE

__all__ = [
    "OTEL_AVAILABLE",
    # Tracers
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_SERVICE_NAME",
    "ATTR_PROJECT_PATH",
    "ATTR_FROM_LEVEL",
    "ATTR_TO_LEVEL",
    "ATTR_STEP_KIND",
    "ATTR_STEP_INDEX",
    "ATTR_STEP_COUNT",
    "ATTR_LEDGER_PATH",
    "ATTR_MIGRATION_STATUS",
    "ATTR_ERROR_TYPE",
]
