"""
Architecture migration: planning and executing structural changes.

Usage:
    >>> from archmigrate.migration import (
    ...     FileSystemCodeMover,
    ...     FileSystemProjectAnalyzer,
    ...     FileSystemTemplateGenerator,
    ...     MigrationExecutor,
    ...     MigrationPlanner,
    ... )
    >>>
    >>> planner = MigrationPlanner(FileSystemProjectAnalyzer())
    >>> plan = await planner.analyze_migration(path, config)
    >>> executor = MigrationExecutor(FileSystemCodeMover(), FileSystemTemplateGenerator())
    >>> result = await executor.execute(plan)
"""

from archmigrate.migration.collaborators import (
    FileSystemCodeMover,
    FileSystemProjectAnalyzer,
    FileSystemTemplateGenerator,
)
from archmigrate.migration.executor import MigrationExecutor, StepCallback, StepOutcome
from archmigrate.migration.models import (
    CreateProjectStep,
    DeleteOldProjectStep,
    GenerateCodeStep,
    MigrationPlan,
    MigrationResult,
    MigrationStep,
    MoveCodeStep,
    ProjectStructure,
    StepKind,
    UpdateConfigurationStep,
    UpdateNamespacesStep,
    UpdateProjectReferencesStep,
    UpdateSolutionFileStep,
)
from archmigrate.migration.planner import MigrationPlanner, can_migrate
from archmigrate.migration.protocols import CodeMover, ProjectAnalyzer, TemplateGenerator

__all__ = [
    # Steps
    "StepKind",
    "MigrationStep",
    "CreateProjectStep",
    "MoveCodeStep",
    "UpdateProjectReferencesStep",
    "UpdateNamespacesStep",
    "UpdateSolutionFileStep",
    "DeleteOldProjectStep",
    "GenerateCodeStep",
    "UpdateConfigurationStep",
    # Models
    "ProjectStructure",
    "MigrationPlan",
    "MigrationResult",
    # Protocols
    "ProjectAnalyzer",
    "CodeMover",
    "TemplateGenerator",
    # Components
    "MigrationPlanner",
    "can_migrate",
    "MigrationExecutor",
    "StepOutcome",
    "StepCallback",
    # Filesystem collaborators
    "FileSystemProjectAnalyzer",
    "FileSystemCodeMover",
    "FileSystemTemplateGenerator",
]
