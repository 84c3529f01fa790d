"""
Standard span attributes for archmigrate.

Attribute keys shared by the planner, the executor and the history store
so traces from one migration can be correlated.

Example:
    >>> from archmigrate.observability.attributes import ATTR_SERVICE_NAME
    >>>
    >>> with tracer.span(
    ...     "archmigrate.executor.execute",
    ...     {ATTR_SERVICE_NAME: plan.source_structure.service_name},
    ... ):
    ...     pass
"""

# =============================================================================
# Project Attributes
# =============================================================================

ATTR_SERVICE_NAME = "archmigrate.service.name"
"""Name of the service being migrated."""

ATTR_PROJECT_PATH = "archmigrate.project.path"
"""Root directory of the project on disk."""

# =============================================================================
# Level Attributes
# =============================================================================

ATTR_FROM_LEVEL = "archmigrate.level.from"
"""Architecture level before the migration."""

ATTR_TO_LEVEL = "archmigrate.level.to"
"""Architecture level requested by the migration."""

# =============================================================================
# Step Attributes
# =============================================================================

ATTR_STEP_KIND = "archmigrate.step.kind"
"""Kind of migration step (e.g., 'create_project')."""

ATTR_STEP_INDEX = "archmigrate.step.index"
"""Zero-based position of the step in its plan."""

ATTR_STEP_COUNT = "archmigrate.step.count"
"""Number of steps in a plan or rollback."""

# =============================================================================
# Ledger Attributes
# =============================================================================

ATTR_LEDGER_PATH = "archmigrate.ledger.path"
"""Path of the migration ledger file."""

ATTR_MIGRATION_STATUS = "archmigrate.migration.status"
"""Terminal status recorded for a migration."""

# =============================================================================
# Error Attributes
# =============================================================================

ATTR_ERROR_TYPE = "error.type"
"""Exception class name (OpenTelemetry semantic convention)."""


__all__ = [
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
