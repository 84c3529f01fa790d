"""
MigrationPlanner - Plans the steps between two architecture levels.

The planner diffs a project's current structure against the decisions
derived from a target configuration and produces an ordered list of typed
steps. Planning is a pure function of (structure, decisions): it touches
nothing on disk and the same inputs always yield the same steps.

Rule blocks (evaluated independently, concatenated in this order):
    1. current MINIMAL and target >= STANDARD:
       split the single project into Domain, Application and Api projects,
       move code into them, rewire references, namespaces and the solution,
       then delete the original project.
    2. current <= STANDARD and target ENTERPRISE (with infrastructure):
       create the Infrastructure project and move repositories into it.
    3. current has no infrastructure and the target enables it:
       create the Infrastructure project, move repositories and DbContexts,
       and generate a read-model repository when reads use a separate store.

Blocks 2 and 3 can both fire and both create the Infrastructure project.
By default the planner keeps the first occurrence of a step that creates
the same project path (or moves the same pattern between the same
directories) and records a warning for each dropped duplicate; pass
``deduplicate_steps=False`` to keep the redundant steps.

Usage:
    >>> planner = MigrationPlanner(analyzer)
    >>> plan = await planner.analyze_migration(Path("./OrderService"), config)
    >>> for step in plan.steps:
    ...     print(step.description)
"""

from __future__ import annotations

import logging
from pathlib import Path

from archmigrate.configuration.models import TemplateConfiguration
from archmigrate.configuration.rules import (
    ArchitectureDecisions,
    ArchitectureLevel,
    ArchitectureRules,
)
from archmigrate.exceptions import InfeasibleMigrationError
from archmigrate.migration.models import (
    CreateProjectStep,
    DeleteOldProjectStep,
    GenerateCodeStep,
    MigrationPlan,
    MigrationStep,
    MoveCodeStep,
    ProjectStructure,
    UpdateNamespacesStep,
    UpdateProjectReferencesStep,
    UpdateSolutionFileStep,
)
from archmigrate.migration.protocols import ProjectAnalyzer
from archmigrate.observability import (
    ATTR_FROM_LEVEL,
    ATTR_SERVICE_NAME,
    ATTR_STEP_COUNT,
    ATTR_TO_LEVEL,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

SINGLE_PROJECT_PATH = "src/{ServiceName}"
DOMAIN_PROJECT_PATH = "src/{ServiceName}.Domain"
APPLICATION_PROJECT_PATH = "src/{ServiceName}.Application"
API_PROJECT_PATH = "src/{ServiceName}.Api"
INFRASTRUCTURE_PROJECT_PATH = "src/{ServiceName}.Infrastructure"
PERSISTENCE_PATH = "src/{ServiceName}.Infrastructure/Persistence/"


def minimal_to_standard_steps() -> list[MigrationStep]:
    """Steps that split a single project into Domain, Application and Api."""
    return [
        CreateProjectStep(project_type="Domain", path=DOMAIN_PROJECT_PATH),
        CreateProjectStep(project_type="Application", path=APPLICATION_PROJECT_PATH),
        CreateProjectStep(project_type="Api", path=API_PROJECT_PATH),
        MoveCodeStep(
            pattern="Domain/*.cs",
            source_path="src/{ServiceName}/Domain/",
            target_path="src/{ServiceName}.Domain/",
        ),
        MoveCodeStep(
            pattern="Application/*.cs",
            source_path="src/{ServiceName}/Application/",
            target_path="src/{ServiceName}.Application/",
        ),
        MoveCodeStep(
            pattern="Controllers/*.cs",
            source_path="src/{ServiceName}/Controllers/",
            target_path="src/{ServiceName}.Api/Controllers/",
        ),
        MoveCodeStep(
            pattern="Program.cs",
            source_path="src/{ServiceName}/",
            target_path="src/{ServiceName}.Api/",
        ),
        UpdateProjectReferencesStep(),
        UpdateNamespacesStep(),
        UpdateSolutionFileStep(),
        DeleteOldProjectStep(path=SINGLE_PROJECT_PATH),
    ]


def standard_to_enterprise_steps(target: ArchitectureDecisions) -> list[MigrationStep]:
    """Steps that add the Infrastructure project for an enterprise target."""
    if not target.enable_infrastructure:
        return []
    return [
        CreateProjectStep(project_type="Infrastructure", path=INFRASTRUCTURE_PROJECT_PATH),
        MoveCodeStep(
            pattern="*Repository.cs",
            source_path="src/{ServiceName}.Application/",
            target_path=PERSISTENCE_PATH,
        ),
    ]


def infrastructure_steps(target: ArchitectureDecisions) -> list[MigrationStep]:
    """Steps that introduce an Infrastructure layer where none exists."""
    steps: list[MigrationStep] = [
        CreateProjectStep(project_type="Infrastructure", path=INFRASTRUCTURE_PROJECT_PATH),
        MoveCodeStep(
            pattern="*Repository.cs",
            source_path="src/{ServiceName}.Application/",
            target_path=PERSISTENCE_PATH,
        ),
        MoveCodeStep(
            pattern="*DbContext.cs",
            source_path="src/{ServiceName}.Application/",
            target_path=PERSISTENCE_PATH,
        ),
    ]
    if target.persistence_strategy.separate_read_model:
        steps.append(
            GenerateCodeStep(
                code_type="ReadModelRepository",
                target_path="src/{ServiceName}.Infrastructure/Persistence/Read/",
            )
        )
    return steps


def _identity(step: MigrationStep) -> tuple[str, ...] | None:
    # Only project creation and code moves are deduplicated
    if isinstance(step, CreateProjectStep):
        return (step.kind.value, step.path)
    if isinstance(step, MoveCodeStep):
        return (step.kind.value, step.pattern, step.source_path, step.target_path)
    return None


def deduplicate(steps: list[MigrationStep]) -> tuple[list[MigrationStep], list[MigrationStep]]:
    """
    Drop repeated project creations and code moves, keeping the first.

    Args:
        steps: Steps in plan order.

    Returns:
        Tuple of (kept steps, dropped steps), both in plan order.
    """
    seen: set[tuple[str, ...]] = set()
    kept: list[MigrationStep] = []
    dropped: list[MigrationStep] = []
    for step in steps:
        identity = _identity(step)
        if identity is not None and identity in seen:
            dropped.append(step)
            continue
        if identity is not None:
            seen.add(identity)
        kept.append(step)
    return kept, dropped


def can_migrate(structure: ProjectStructure, target_level: ArchitectureLevel) -> bool:
    """
    Check whether a project may move to a target level.

    Levels only advance; migrating to the current level is a permitted
    no-op.
    """
    return structure.level <= target_level


class MigrationPlanner:
    """
    Produces MigrationPlans from project structures and target configurations.

    Example:
        >>> planner = MigrationPlanner(analyzer, enable_tracing=False)
        >>> plan = planner.plan(structure, config, project_path=Path("."))
        >>> len(plan.steps)
        11

    Attributes:
        _analyzer: Analyzer used by analyze_migration (optional for plan()).
        _deduplicate_steps: Whether duplicate steps are dropped.
    """

    def __init__(
        self,
        analyzer: ProjectAnalyzer | None = None,
        *,
        deduplicate_steps: bool = True,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._analyzer = analyzer
        self._deduplicate_steps = deduplicate_steps
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    def plan(
        self,
        current: ProjectStructure,
        target_config: TemplateConfiguration,
        *,
        project_path: Path | str = ".",
    ) -> MigrationPlan:
        """
        Plan the migration of ``current`` to the architecture ``target_config`` describes.

        Args:
            current: The project's current structure.
            target_config: The target configuration.
            project_path: Root directory of the project on disk.

        Returns:
            The migration plan.

        Raises:
            InfeasibleMigrationError: If the target level is below the
                current level. No steps are produced.
        """
        target = ArchitectureRules.make_decisions(target_config)
        return self.plan_for_decisions(current, target, project_path=project_path)

    def plan_for_decisions(
        self,
        current: ProjectStructure,
        target: ArchitectureDecisions,
        *,
        project_path: Path | str = ".",
    ) -> MigrationPlan:
        """Plan against already-derived decisions. See plan()."""
        with self._tracer.span(
            "archmigrate.planner.plan",
            {
                ATTR_SERVICE_NAME: current.service_name,
                ATTR_FROM_LEVEL: current.level.value,
                ATTR_TO_LEVEL: target.architecture_level.value,
            },
        ) as span:
            if not can_migrate(current, target.architecture_level):
                raise InfeasibleMigrationError(
                    current.level.value,
                    target.architecture_level.value,
                    service_name=current.service_name,
                )

            steps = self._determine_steps(current, target)
            warnings: list[str] = []

            if self._deduplicate_steps:
                steps, dropped = deduplicate(steps)
                for step in dropped:
                    logger.warning("Dropped duplicate migration step: %s", step.description)
                    warnings.append(f"Dropped duplicate step: {step.description}")

            for index, step in enumerate(steps, start=1):
                if not step.is_reversible:
                    warnings.append(
                        f"Step {index} ({step.description}) cannot be rolled back"
                    )

            if not steps:
                warnings.append(
                    f"Project is already at {current.level.value}; nothing to migrate"
                )

            if span is not None:
                span.set_attribute(ATTR_STEP_COUNT, len(steps))

        logger.info(
            "Planned %d step(s) for %s: %s -> %s",
            len(steps),
            current.service_name,
            current.level.value,
            target.architecture_level.value,
        )
        return MigrationPlan(
            source_structure=current,
            target_structure=target,
            project_path=Path(project_path),
            steps=steps,
            warnings=warnings,
        )

    async def analyze_migration(
        self,
        project_path: Path | str,
        target_config: TemplateConfiguration,
    ) -> MigrationPlan:
        """
        Analyze a project on disk and plan its migration.

        Args:
            project_path: Root directory of the project.
            target_config: The target configuration.

        Returns:
            The migration plan.

        Raises:
            InfeasibleMigrationError: If the target level is below the
                current level.
            ValueError: If the planner was built without an analyzer.
        """
        analyzer = self._require_analyzer()
        path = Path(project_path)
        current = await analyzer.analyze(path)
        return self.plan(current, target_config, project_path=path)

    async def can_migrate_path(
        self,
        project_path: Path | str,
        target_level: ArchitectureLevel,
    ) -> bool:
        """
        Check whether the project at ``project_path`` may move to ``target_level``.

        Raises:
            ValueError: If the planner was built without an analyzer.
        """
        analyzer = self._require_analyzer()
        structure = await analyzer.analyze(Path(project_path))
        return can_migrate(structure, target_level)

    def _require_analyzer(self) -> ProjectAnalyzer:
        if self._analyzer is None:
            raise ValueError("MigrationPlanner needs a ProjectAnalyzer to analyze projects on disk")
        return self._analyzer

    def _determine_steps(
        self,
        current: ProjectStructure,
        target: ArchitectureDecisions,
    ) -> list[MigrationStep]:
        steps: list[MigrationStep] = []
        target_level = target.architecture_level

        if (
            current.level == ArchitectureLevel.MINIMAL
            and target_level >= ArchitectureLevel.STANDARD
        ):
            steps.extend(minimal_to_standard_steps())

        if (
            current.level <= ArchitectureLevel.STANDARD
            and target_level == ArchitectureLevel.ENTERPRISE
        ):
            steps.extend(standard_to_enterprise_steps(target))

        if not current.has_infrastructure and target.enable_infrastructure:
            steps.extend(infrastructure_steps(target))

        return steps


__all__ = [
    "MigrationPlanner",
    "can_migrate",
    "deduplicate",
    "minimal_to_standard_steps",
    "standard_to_enterprise_steps",
    "infrastructure_steps",
]
