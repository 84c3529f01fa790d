"""
MigrationExecutor - Runs migration plans with all-or-nothing rollback.

Steps run strictly in plan order, one at a time; later steps rely on the
files earlier steps produced. Each successful step is appended to the
result's ``completed_steps``, which doubles as the rollback log. The first
step that fails stops forward progress, and every completed step is then
undone in reverse order before execute() returns.

Rollback is best-effort: a step whose inverse fails is logged as a
RollbackError and rollback continues with the remaining steps.

Inverse operations:
    - CreateProject: remove the manifest and any directories the step
      created, once they are empty; a directory that existed before the
      step, or still holds files the migration did not create, is kept
    - MoveCode: move the same pattern back, when the mover allows it
    - UpdateProjectReferences / UpdateNamespaces / UpdateSolutionFile /
      UpdateConfiguration: restore the files as they were before the step
      (files the step created are removed)
    - GenerateCode: delete the files the generator reported
    - DeleteOldProject: none (logged)

A MoveCode step that fails partway moves the files it already moved back
to the source directory before rollback starts.

Cancellation is observed only between steps and is handled like a step
failure.

Example:
    >>> executor = MigrationExecutor(FileSystemCodeMover(), FileSystemTemplateGenerator())
    >>> result = await executor.execute(plan)
    >>> if not result.success:
    ...     print(result.error, result.rollback_errors)
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, assert_never

from archmigrate.exceptions import (
    MigrationCancelledError,
    RollbackError,
    StepExecutionError,
)
from archmigrate.history.snapshot import iter_source_files
from archmigrate.migration import rewriters
from archmigrate.migration.models import (
    CreateProjectStep,
    DeleteOldProjectStep,
    GenerateCodeStep,
    MigrationPlan,
    MigrationResult,
    MigrationStep,
    MoveCodeStep,
    UpdateConfigurationStep,
    UpdateNamespacesStep,
    UpdateProjectReferencesStep,
    UpdateSolutionFileStep,
    resolve_service_path,
)
from archmigrate.migration.protocols import CodeMover, TemplateGenerator
from archmigrate.observability import (
    ATTR_ERROR_TYPE,
    ATTR_MIGRATION_STATUS,
    ATTR_PROJECT_PATH,
    ATTR_SERVICE_NAME,
    ATTR_STEP_COUNT,
    ATTR_STEP_INDEX,
    ATTR_STEP_KIND,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """
    What one completed step did.

    Paths are relative to the project root, with forward slashes.

    Attributes:
        step: The step.
        index: Zero-based position in the plan.
        started_at: When the step started.
        duration: How long the step took.
        files_created: Files the step created.
        files_modified: Files the step rewrote.
        files_deleted: Files the step removed or moved away.
    """

    step: MigrationStep
    index: int
    started_at: datetime
    duration: timedelta = field(default_factory=timedelta)
    files_created: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)
    files_deleted: list[str] = field(default_factory=list)


StepCallback = Callable[[StepOutcome], Awaitable[None]]


@dataclass
class _UndoRecord:
    # Text files as they were before the step; None means "did not exist"
    before_images: dict[Path, str | None] = field(default_factory=dict)
    generated: list[Path] = field(default_factory=list)
    # Topmost directories the step created
    created_dirs: list[Path] = field(default_factory=list)
    # (source dir, target dir, files already in the target) of a code move
    move: tuple[Path, Path, frozenset[Path]] | None = None

    def capture(self, path: Path) -> None:
        if path not in self.before_images:
            self.before_images[path] = path.read_text(encoding="utf-8") if path.exists() else None


@dataclass
class _ExecutionContext:
    project_root: Path
    service_name: str
    # Project directories a later DeleteOldProject step removes
    pending_deletions: frozenset[Path] = frozenset()

    def resolve(self, template: str) -> Path:
        return self.project_root / resolve_service_path(template, self.service_name)

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()

    def layer_dir(self, layer: str) -> Path:
        return self.project_root / "src" / rewriters.project_name(self.service_name, layer)

    def layer_manifest(self, layer: str) -> Path:
        name = rewriters.project_name(self.service_name, layer)
        return self.layer_dir(layer) / f"{name}.csproj"

    def present_layers(self) -> list[str]:
        return [layer for layer in rewriters.PROJECT_TYPES if self.layer_manifest(layer).is_file()]


class MigrationExecutor:
    """
    Executes MigrationPlans against a project tree.

    Code moves and code generation are delegated to the injected
    collaborators; project manifests, namespaces, the solution file and
    settings files are rewritten directly.

    Attributes:
        _code_mover: Capability used by MoveCode steps and their inverse.
        _template_generator: Capability used by GenerateCode steps.
    """

    def __init__(
        self,
        code_mover: CodeMover,
        template_generator: TemplateGenerator,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._code_mover = code_mover
        self._template_generator = template_generator
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def execute(
        self,
        plan: MigrationPlan,
        *,
        cancel_event: asyncio.Event | None = None,
        on_step_completed: StepCallback | None = None,
    ) -> MigrationResult:
        """
        Execute a plan.

        Args:
            plan: The plan to execute.
            cancel_event: When set, execution stops before the next step and
                completed steps are rolled back.
            on_step_completed: Awaited after each completed step. If it
                raises, the migration fails and is rolled back.

        Returns:
            The result. Step failures are reported here, never raised.
        """
        started = time.perf_counter()
        context = _ExecutionContext(
            project_root=Path(plan.project_path),
            service_name=plan.source_structure.service_name,
        )
        context.pending_deletions = frozenset(
            context.resolve(step.path) for step in plan.steps if isinstance(step, DeleteOldProjectStep)
        )
        result = MigrationResult()
        undo_log: list[_UndoRecord] = []

        logger.info(
            "Executing %d migration step(s) for %s",
            len(plan.steps),
            context.service_name,
        )

        with self._tracer.span(
            "archmigrate.executor.execute",
            {
                ATTR_SERVICE_NAME: context.service_name,
                ATTR_PROJECT_PATH: str(context.project_root),
                ATTR_STEP_COUNT: len(plan.steps),
            },
        ) as span:
            try:
                for index, step in enumerate(plan.steps):
                    if cancel_event is not None and cancel_event.is_set():
                        raise MigrationCancelledError(
                            step, index, service_name=context.service_name
                        )

                    outcome, undo = await self._run_step(step, index, context)
                    result.completed_steps.append(step)
                    undo_log.append(undo)
                    result.generated_files.extend(outcome.files_created)
                    result.modified_files.extend(outcome.files_modified)

                    if on_step_completed is not None:
                        try:
                            await on_step_completed(outcome)
                        except Exception as e:
                            raise StepExecutionError(
                                f"Step callback failed after step {index + 1} "
                                f"({step.description}): {e}",
                                step,
                                index,
                                service_name=context.service_name,
                            ) from e
            except StepExecutionError as e:
                result.error = e.message
                result.failed_step = e.step
                if isinstance(e, MigrationCancelledError):
                    logger.info("%s", e.message)
                if span is not None:
                    span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)
                await self._rollback(result, undo_log, context)
            else:
                result.success = True

            if span is not None:
                span.set_attribute(
                    ATTR_MIGRATION_STATUS, "completed" if result.success else "failed"
                )

        result.duration = timedelta(seconds=time.perf_counter() - started)
        logger.info(
            "Migration of %s %s after %d of %d step(s)",
            context.service_name,
            "succeeded" if result.success else "failed",
            len(result.completed_steps),
            len(plan.steps),
        )
        return result

    async def _run_step(
        self,
        step: MigrationStep,
        index: int,
        context: _ExecutionContext,
    ) -> tuple[StepOutcome, _UndoRecord]:
        outcome = StepOutcome(step=step, index=index, started_at=datetime.now(UTC))
        undo = _UndoRecord()
        started = time.perf_counter()

        with self._tracer.span(
            "archmigrate.executor.step",
            {
                ATTR_STEP_KIND: step.kind.value,
                ATTR_STEP_INDEX: index,
                ATTR_SERVICE_NAME: context.service_name,
            },
        ):
            logger.debug("Step %d: %s", index + 1, step.description)
            try:
                await self._apply(step, context, outcome, undo)
            except Exception as e:
                logger.exception("Step %d (%s) failed", index + 1, step.description)
                # Partial effects of the failed step are restored before rollback
                self._return_moved_files(undo)
                self._restore_images(undo)
                for directory in undo.created_dirs:
                    _remove_empty_tree(directory)
                raise StepExecutionError(
                    f"Step {index + 1} ({step.description}) failed: {e}",
                    step,
                    index,
                    service_name=context.service_name,
                ) from e

        outcome.duration = timedelta(seconds=time.perf_counter() - started)
        logger.debug("Step %d completed in %s", index + 1, outcome.duration)
        return outcome, undo

    async def _apply(
        self,
        step: MigrationStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        if isinstance(step, CreateProjectStep):
            self._create_project(step, context, outcome, undo)
        elif isinstance(step, MoveCodeStep):
            await self._move_code(step, context, outcome, undo)
        elif isinstance(step, UpdateProjectReferencesStep):
            self._update_references(context, outcome, undo)
        elif isinstance(step, UpdateNamespacesStep):
            self._update_namespaces(context, outcome, undo)
        elif isinstance(step, UpdateSolutionFileStep):
            self._update_solution(context, outcome, undo)
        elif isinstance(step, DeleteOldProjectStep):
            self._delete_project(step, context, outcome)
        elif isinstance(step, GenerateCodeStep):
            await self._generate_code(step, context, outcome, undo)
        elif isinstance(step, UpdateConfigurationStep):
            self._update_configuration(step, context, outcome, undo)
        else:
            assert_never(step)

    # Forward handlers

    def _create_project(
        self,
        step: CreateProjectStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        manifest_text = rewriters.render_project_manifest(step.project_type, context.service_name)
        project_dir = context.resolve(step.path)
        created = _first_missing(project_dir)
        project_dir.mkdir(parents=True, exist_ok=True)
        if created is not None:
            undo.created_dirs.append(created)
        manifest = project_dir / (
            f"{rewriters.project_name(context.service_name, step.project_type)}.csproj"
        )
        self._write(manifest, manifest_text, context, outcome, undo)

    async def _move_code(
        self,
        step: MoveCodeStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        source_dir = context.resolve(step.source_path)
        target_dir = context.resolve(step.target_path)
        existing = frozenset(_files_under(target_dir))
        undo.move = (source_dir, target_dir, existing)
        moved = await self._code_mover.move(step.pattern, source_dir, target_dir)
        for path in moved:
            outcome.files_created.append(context.relative(Path(path)))
            try:
                original = source_dir / Path(path).relative_to(target_dir)
            except ValueError:
                continue
            outcome.files_deleted.append(context.relative(original))

    def _update_references(
        self,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        layers = context.present_layers()
        for layer in layers:
            manifest = context.layer_manifest(layer)
            text = manifest.read_text(encoding="utf-8")
            required = rewriters.required_references(context.service_name, layer, layers)
            updated = rewriters.add_project_references(text, required)
            if updated != text:
                self._write(manifest, updated, context, outcome, undo)

    def _update_namespaces(
        self,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        renames: dict[str, str] = {}
        for layer in context.present_layers():
            layer_dir = context.layer_dir(layer)
            for path in iter_source_files(layer_dir):
                source = _read_source(path)
                if source is None:
                    continue
                current = rewriters.declared_namespace(source)
                if current is None:
                    continue
                relative = PurePosixPath(path.relative_to(layer_dir).as_posix())
                namespace = rewriters.namespace_for_file(context.service_name, layer, relative)
                if current == namespace:
                    continue
                renames.setdefault(current, namespace)
                self._write(path, rewriters.rewrite_namespace(source, namespace), context, outcome, undo)

        if not renames:
            return
        for path in iter_source_files(context.project_root):
            source = _read_source(path)
            if source is None:
                continue
            updated = rewriters.rewrite_usings(source, renames)
            if updated != source:
                self._write(path, updated, context, outcome, undo)

    def _update_solution(
        self,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        solution = context.project_root / f"{context.service_name}.sln"
        # Lowercased manifest path -> (name, path); entries already in the
        # solution keep their name and GUID
        projects: dict[str, tuple[str, str]] = {}
        guids: dict[str, str] = {}
        if solution.is_file():
            for name, path, guid in rewriters.solution_projects(
                solution.read_text(encoding="utf-8")
            ):
                if not path.lower().endswith(".csproj"):
                    continue
                manifest = context.project_root.joinpath(*PureWindowsPath(path).parts)
                if not manifest.is_file() or manifest.parent in context.pending_deletions:
                    logger.debug("Dropping %s from %s", path, solution.name)
                    continue
                projects[path.lower()] = (name, path)
                guids[path.lower()] = guid

        for manifest in iter_source_files(context.project_root / "src", ".csproj"):
            if manifest.parent in context.pending_deletions:
                continue
            relative = "\\".join(manifest.relative_to(context.project_root).parts)
            projects.setdefault(relative.lower(), (manifest.stem, relative))

        text = rewriters.render_solution(projects.values(), guids)
        self._write(solution, text, context, outcome, undo)

    def _delete_project(
        self,
        step: DeleteOldProjectStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
    ) -> None:
        project_dir = context.resolve(step.path)
        if not project_dir.exists():
            logger.debug("Old project %s already removed", project_dir)
            return
        outcome.files_deleted.extend(
            context.relative(path) for path in sorted(project_dir.rglob("*")) if path.is_file()
        )
        shutil.rmtree(project_dir)

    async def _generate_code(
        self,
        step: GenerateCodeStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        target = context.resolve(step.target_path)
        files = await self._template_generator.generate(
            step.code_type,
            target,
            {"ServiceName": context.service_name},
        )
        for path in files:
            undo.generated.append(Path(path))
            outcome.files_created.append(context.relative(Path(path)))

    def _update_configuration(
        self,
        step: UpdateConfigurationStep,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        config_file = context.resolve(step.config_file)
        document: dict[str, Any] = {}
        if config_file.exists():
            document = json.loads(config_file.read_text(encoding="utf-8"))
            if not isinstance(document, dict):
                raise ValueError(f"{config_file} does not hold a JSON object")
        merged = rewriters.merge_settings(document, step.changes)
        config_file.parent.mkdir(parents=True, exist_ok=True)
        self._write(config_file, json.dumps(merged, indent=2) + "\n", context, outcome, undo)

    def _write(
        self,
        path: Path,
        text: str,
        context: _ExecutionContext,
        outcome: StepOutcome,
        undo: _UndoRecord,
    ) -> None:
        existed = path.exists()
        undo.capture(path)
        path.write_text(text, encoding="utf-8")
        relative = context.relative(path)
        files = outcome.files_modified if existed else outcome.files_created
        if relative not in files:
            files.append(relative)

    # Rollback

    async def _rollback(
        self,
        result: MigrationResult,
        undo_log: list[_UndoRecord],
        context: _ExecutionContext,
    ) -> None:
        with self._tracer.span(
            "archmigrate.executor.rollback",
            {
                ATTR_SERVICE_NAME: context.service_name,
                ATTR_STEP_COUNT: len(result.completed_steps),
            },
        ):
            logger.info("Rolling back %d completed step(s)", len(result.completed_steps))
            for step, undo in zip(
                reversed(result.completed_steps), reversed(undo_log), strict=True
            ):
                try:
                    undone = await self._undo(step, context, undo)
                except Exception as e:
                    error = RollbackError(
                        f"Rollback of {step.description!r} failed: {e}",
                        step,
                        service_name=context.service_name,
                    )
                    logger.warning("%s", error.message)
                    result.rollback_errors.append(error.message)
                    continue
                if undone:
                    result.rolled_back_steps.append(step)
                    logger.debug("Rolled back: %s", step.description)

    async def _undo(
        self,
        step: MigrationStep,
        context: _ExecutionContext,
        undo: _UndoRecord,
    ) -> bool:
        """Invert one completed step. Returns False if the step has no inverse."""
        if isinstance(step, CreateProjectStep):
            self._restore_images(undo)
            kept = [d for d in undo.created_dirs if not _remove_empty_tree(d)]
            if kept:
                raise OSError(
                    f"{', '.join(context.relative(d) for d in kept)} still holds files "
                    "this migration did not create; left in place"
                )
            return True
        if isinstance(step, MoveCodeStep):
            source_dir = context.resolve(step.source_path)
            target_dir = context.resolve(step.target_path)
            if not await self._code_mover.can_move(target_dir, source_dir):
                logger.warning("Cannot move %s back from %s", step.pattern, target_dir)
                return False
            await self._code_mover.move(step.pattern, target_dir, source_dir)
            return True
        if isinstance(
            step,
            UpdateProjectReferencesStep
            | UpdateNamespacesStep
            | UpdateSolutionFileStep
            | UpdateConfigurationStep,
        ):
            self._restore_images(undo)
            return True
        if isinstance(step, GenerateCodeStep):
            if not undo.generated:
                logger.warning("No generated files recorded for %r; nothing to remove", step.description)
                return False
            for path in undo.generated:
                path.unlink(missing_ok=True)
            return True
        if isinstance(step, DeleteOldProjectStep):
            logger.warning("%r cannot be rolled back", step.description)
            return False
        assert_never(step)

    @staticmethod
    def _restore_images(undo: _UndoRecord) -> None:
        for path, before in undo.before_images.items():
            if before is None:
                path.unlink(missing_ok=True)
            else:
                path.write_text(before, encoding="utf-8")

    @staticmethod
    def _return_moved_files(undo: _UndoRecord) -> None:
        """Move files a failed code move left in the target back to the source."""
        if undo.move is None:
            return
        source_dir, target_dir, existing = undo.move
        for path in _files_under(target_dir):
            if path in existing:
                continue
            original = source_dir / path.relative_to(target_dir)
            if original.exists():
                logger.warning("Leaving %s in place: %s exists again", path, original)
                continue
            try:
                original.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(path), str(original))
            except OSError as e:
                logger.warning("Could not move %s back to %s: %s", path, original, e)
            else:
                logger.debug("Moved %s back to %s", path, original)


def _read_source(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Skipping undecodable file %s: %s", path, e)
        return None


def _files_under(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return [path for path in sorted(directory.rglob("*")) if path.is_file()]


def _first_missing(path: Path) -> Path | None:
    """Topmost directory that ``mkdir(parents=True)`` creates for ``path``."""
    if path.exists():
        return None
    while not path.parent.exists():
        path = path.parent
    return path


def _remove_empty_tree(directory: Path) -> bool:
    """
    Remove ``directory`` and its empty subdirectories.

    Returns:
        False if files remain, in which case the directories holding them
        are kept.
    """
    if not directory.exists():
        return True
    subdirectories = [path for path in directory.rglob("*") if path.is_dir()]
    for path in sorted(subdirectories, key=lambda p: len(p.parts), reverse=True):
        if not any(path.iterdir()):
            path.rmdir()
    if any(directory.iterdir()):
        return False
    directory.rmdir()
    return True


__all__ = [
    "MigrationExecutor",
    "StepOutcome",
    "StepCallback",
]
