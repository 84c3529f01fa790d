"""
Data models for architecture migrations.

Models in this module:

Enums:
    - StepKind: Names of the migration step variants

Steps (the closed MigrationStep union):
    - CreateProjectStep: Create a layer project directory and manifest
    - MoveCodeStep: Move source files matching a pattern
    - UpdateProjectReferencesStep: Rewire project references between layers
    - UpdateNamespacesStep: Rewrite namespaces after code moved
    - UpdateSolutionFileStep: Regenerate solution project entries
    - DeleteOldProjectStep: Remove the original single project (irreversible)
    - GenerateCodeStep: Generate code from a named template
    - UpdateConfigurationStep: Merge settings into a JSON configuration file

Core Models:
    - ProjectStructure: Structural snapshot of an existing project
    - MigrationPlan: Ordered steps taking a project to a target architecture
    - MigrationResult: Outcome of executing a plan

Step paths may contain the ``{ServiceName}`` placeholder, which is replaced
with the source structure's service name when the step executes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from archmigrate.configuration.rules import ArchitectureDecisions, ArchitectureLevel

SERVICE_NAME_TOKEN = "{ServiceName}"

DEFAULT_STEP_DURATION = timedelta(minutes=1)


def resolve_service_path(template: str, service_name: str) -> str:
    """Substitute the service name into a step path template."""
    return template.replace(SERVICE_NAME_TOKEN, service_name)


class StepKind(Enum):
    """
    Migration step variants.

    Both the executor's forward dispatch and its rollback dispatch must
    handle every kind listed here.
    """

    CREATE_PROJECT = "create_project"
    MOVE_CODE = "move_code"
    UPDATE_PROJECT_REFERENCES = "update_project_references"
    UPDATE_NAMESPACES = "update_namespaces"
    UPDATE_SOLUTION_FILE = "update_solution_file"
    DELETE_OLD_PROJECT = "delete_old_project"
    GENERATE_CODE = "generate_code"
    UPDATE_CONFIGURATION = "update_configuration"


@dataclass(frozen=True, kw_only=True)
class _StepBase(ABC):
    """
    Fields shared by every step variant.

    Attributes:
        is_reversible: Whether the executor can undo the step.
        estimated_duration: Rough time the step takes.
    """

    kind: ClassVar[StepKind]

    is_reversible: bool = True
    estimated_duration: timedelta = DEFAULT_STEP_DURATION

    @property
    @abstractmethod
    def description(self) -> str:
        """One-line human-readable summary of the step."""

    def __str__(self) -> str:
        return self.description

    def parameters(self) -> dict[str, Any]:
        """Variant-specific parameters, used for serialization."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "description": self.description,
            "is_reversible": self.is_reversible,
            "estimated_duration_seconds": self.estimated_duration.total_seconds(),
            "parameters": self.parameters(),
        }


@dataclass(frozen=True, kw_only=True)
class CreateProjectStep(_StepBase):
    """Create a layer project (``project_type`` is Domain, Application, Api or Infrastructure)."""

    kind: ClassVar[StepKind] = StepKind.CREATE_PROJECT

    project_type: str
    path: str

    @property
    def description(self) -> str:
        return f"Create {self.project_type} project at {self.path}"

    def parameters(self) -> dict[str, Any]:
        return {"project_type": self.project_type, "path": self.path}


@dataclass(frozen=True, kw_only=True)
class MoveCodeStep(_StepBase):
    """Move files matching ``pattern`` from ``source_path`` to ``target_path``."""

    kind: ClassVar[StepKind] = StepKind.MOVE_CODE

    pattern: str
    source_path: str
    target_path: str

    @property
    def description(self) -> str:
        return f"Move {self.pattern} from {self.source_path} to {self.target_path}"

    def parameters(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "source_path": self.source_path,
            "target_path": self.target_path,
        }


@dataclass(frozen=True, kw_only=True)
class UpdateProjectReferencesStep(_StepBase):
    kind: ClassVar[StepKind] = StepKind.UPDATE_PROJECT_REFERENCES

    @property
    def description(self) -> str:
        return "Update project references"


@dataclass(frozen=True, kw_only=True)
class UpdateNamespacesStep(_StepBase):
    kind: ClassVar[StepKind] = StepKind.UPDATE_NAMESPACES

    @property
    def description(self) -> str:
        return "Update namespaces"


@dataclass(frozen=True, kw_only=True)
class UpdateSolutionFileStep(_StepBase):
    kind: ClassVar[StepKind] = StepKind.UPDATE_SOLUTION_FILE

    @property
    def description(self) -> str:
        return "Update solution file"


@dataclass(frozen=True, kw_only=True)
class DeleteOldProjectStep(_StepBase):
    """Delete the original project directory. Never reversible."""

    kind: ClassVar[StepKind] = StepKind.DELETE_OLD_PROJECT

    path: str
    is_reversible: bool = field(default=False, init=False)

    @property
    def description(self) -> str:
        return f"Delete old project at {self.path}"

    def parameters(self) -> dict[str, Any]:
        return {"path": self.path}


@dataclass(frozen=True, kw_only=True)
class GenerateCodeStep(_StepBase):
    """Generate code from the template ``code_type`` into ``target_path``."""

    kind: ClassVar[StepKind] = StepKind.GENERATE_CODE

    code_type: str
    target_path: str

    @property
    def description(self) -> str:
        return f"Generate {self.code_type} at {self.target_path}"

    def parameters(self) -> dict[str, Any]:
        return {"code_type": self.code_type, "target_path": self.target_path}


@dataclass(frozen=True, kw_only=True)
class UpdateConfigurationStep(_StepBase):
    """
    Merge ``changes`` into the JSON file ``config_file``.

    Keys in ``changes`` may be dotted paths ("Logging.LogLevel.Default").
    """

    kind: ClassVar[StepKind] = StepKind.UPDATE_CONFIGURATION

    config_file: str
    changes: tuple[tuple[str, Any], ...] = ()

    @property
    def description(self) -> str:
        return f"Update configuration in {self.config_file}"

    def parameters(self) -> dict[str, Any]:
        return {"config_file": self.config_file, "changes": dict(self.changes)}


MigrationStep = (
    CreateProjectStep
    | MoveCodeStep
    | UpdateProjectReferencesStep
    | UpdateNamespacesStep
    | UpdateSolutionFileStep
    | DeleteOldProjectStep
    | GenerateCodeStep
    | UpdateConfigurationStep
)
"""Closed union of every migration step variant."""


@dataclass
class ProjectStructure:
    """
    Structural snapshot of an existing project.

    Attributes:
        service_name: Name of the service (the project directory name).
        level: Architecture level derived from the project layout.
        has_infrastructure: Whether an Infrastructure project exists.
        has_domain_layer: Whether a Domain project exists.
        has_application_layer: Whether an Application project exists.
        projects: Names of the projects found.
        aggregates: Aggregate names found by the heuristic scan.
        commands: Command names found by the heuristic scan.
        queries: Query names found by the heuristic scan.
        dependencies: Package name -> version.
    """

    service_name: str
    level: ArchitectureLevel = ArchitectureLevel.MINIMAL
    has_infrastructure: bool = False
    has_domain_layer: bool = False
    has_application_layer: bool = False
    projects: list[str] = field(default_factory=list)
    aggregates: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "service_name": self.service_name,
            "level": self.level.value,
            "has_infrastructure": self.has_infrastructure,
            "has_domain_layer": self.has_domain_layer,
            "has_application_layer": self.has_application_layer,
            "projects": list(self.projects),
            "aggregates": list(self.aggregates),
            "commands": list(self.commands),
            "queries": list(self.queries),
            "dependencies": dict(self.dependencies),
        }


@dataclass
class MigrationPlan:
    """
    Ordered steps that take a project to a target architecture.

    Attributes:
        source_structure: The project as it is now.
        target_structure: Decisions describing where it should end up.
        project_path: Root directory of the project on disk.
        steps: Steps in execution order.
        warnings: Notes for the operator (irreversible steps, dropped
            duplicates).
    """

    source_structure: ProjectStructure
    target_structure: ArchitectureDecisions
    project_path: Path
    steps: list[MigrationStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def estimated_duration(self) -> timedelta:
        """Sum of the estimated durations of every step."""
        return sum((step.estimated_duration for step in self.steps), timedelta())

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def has_irreversible_steps(self) -> bool:
        return any(not step.is_reversible for step in self.steps)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source_structure": self.source_structure.to_dict(),
            "target_structure": self.target_structure.to_dict(),
            "project_path": str(self.project_path),
            "steps": [step.to_dict() for step in self.steps],
            "warnings": list(self.warnings),
            "estimated_duration_seconds": self.estimated_duration.total_seconds(),
        }


@dataclass
class MigrationResult:
    """
    Outcome of executing a migration plan.

    Either ``success`` is True and ``completed_steps`` equals the plan's
    steps, or ``success`` is False, ``error`` is set, and rollback was
    attempted for every completed step.

    Attributes:
        success: Whether every step completed.
        completed_steps: Steps that completed, in order (the rollback log).
        error: Error message if the migration failed.
        failed_step: The step that failed, if any.
        duration: Wall-clock duration of execution and rollback.
        generated_files: Files created by the migration.
        modified_files: Files rewritten by the migration.
        rolled_back_steps: Steps undone during rollback, in undo order.
        rollback_errors: Messages for rollback steps that failed.
    """

    success: bool = False
    completed_steps: list[MigrationStep] = field(default_factory=list)
    error: str | None = None
    failed_step: MigrationStep | None = None
    duration: timedelta = field(default_factory=timedelta)
    generated_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)
    rolled_back_steps: list[MigrationStep] = field(default_factory=list)
    rollback_errors: list[str] = field(default_factory=list)

    @property
    def rollback_clean(self) -> bool:
        """True if no rollback step failed."""
        return not self.rollback_errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "completed_steps": [step.to_dict() for step in self.completed_steps],
            "error": self.error,
            "failed_step": self.failed_step.to_dict() if self.failed_step else None,
            "duration_seconds": self.duration.total_seconds(),
            "generated_files": list(self.generated_files),
            "modified_files": list(self.modified_files),
            "rolled_back_steps": [step.to_dict() for step in self.rolled_back_steps],
            "rollback_errors": list(self.rollback_errors),
        }


__all__ = [
    "SERVICE_NAME_TOKEN",
    "DEFAULT_STEP_DURATION",
    "resolve_service_path",
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
    "ProjectStructure",
    "MigrationPlan",
    "MigrationResult",
]
