"""
archmigrate - Architecture migrations for generated service projects.

This library provides:
- Architecture rules that derive decisions from a target configuration
- A planner that diffs a project against those decisions
- An executor that applies the plan with all-or-nothing rollback
- A JSON ledger of every migration attempt with structural snapshots
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("archmigrate")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from archmigrate.configuration import (
    ArchitectureDecisions,
    ArchitectureLevel,
    ArchitectureRules,
    TemplateConfiguration,
    TriState,
    configuration_for_level,
    load_configuration,
)
from archmigrate.exceptions import (
    ConfigurationError,
    InfeasibleMigrationError,
    LedgerIOError,
    MigrationCancelledError,
    MigrationError,
    PlanningError,
    RollbackError,
    SnapshotScanError,
    StepExecutionError,
    UnrecognizedLevelError,
)
from archmigrate.history import (
    ExecutedStep,
    MigrationHistory,
    MigrationHistoryStore,
    MigrationRecord,
    ProjectSnapshot,
)
from archmigrate.migration import (
    FileSystemCodeMover,
    FileSystemProjectAnalyzer,
    FileSystemTemplateGenerator,
    MigrationExecutor,
    MigrationPlan,
    MigrationPlanner,
    MigrationResult,
    MigrationStep,
    ProjectStructure,
)

__all__ = [
    "__version__",
    # Configuration
    "TemplateConfiguration",
    "TriState",
    "ArchitectureRules",
    "ArchitectureDecisions",
    "ArchitectureLevel",
    "load_configuration",
    "configuration_for_level",
    # Migration
    "ProjectStructure",
    "MigrationStep",
    "MigrationPlan",
    "MigrationResult",
    "MigrationPlanner",
    "MigrationExecutor",
    "FileSystemProjectAnalyzer",
    "FileSystemCodeMover",
    "FileSystemTemplateGenerator",
    # History
    "MigrationHistoryStore",
    "MigrationHistory",
    "MigrationRecord",
    "ExecutedStep",
    "ProjectSnapshot",
    # Exceptions
    "MigrationError",
    "PlanningError",
    "InfeasibleMigrationError",
    "UnrecognizedLevelError",
    "StepExecutionError",
    "MigrationCancelledError",
    "RollbackError",
    "LedgerIOError",
    "SnapshotScanError",
    "ConfigurationError",
]
