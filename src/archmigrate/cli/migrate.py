"""
The ``migrate`` command.

Loads the target configuration, plans the migration, prints the plan and,
unless ``--dry-run`` is given, executes it while recording each phase in
the project's ledger.

SIGINT and SIGTERM during execution request cancellation; the executor
stops before the next step and rolls back.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

from archmigrate.configuration import (
    ArchitectureRules,
    TemplateConfiguration,
    configuration_for_level,
    load_configuration,
)
from archmigrate.history import ExecutedStep, MigrationHistoryStore, StepStatus
from archmigrate.migration import (
    FileSystemCodeMover,
    FileSystemProjectAnalyzer,
    FileSystemTemplateGenerator,
    MigrationExecutor,
    MigrationPlan,
    MigrationPlanner,
    MigrationResult,
    StepOutcome,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MIGRATION_FAILED = 1
EXIT_ERROR = 2


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        type=Path,
        default=Path.cwd(),
        help="Path to the existing project (default: current directory)",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--config",
        type=Path,
        help="Configuration file describing the target architecture",
    )
    target.add_argument(
        "--level",
        help="Target architecture level (minimal, standard, enterprise)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the migration plan without executing it",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip the pre-migration level check",
    )


def load_target(args: argparse.Namespace) -> TemplateConfiguration:
    if args.config is not None:
        return load_configuration(args.config)
    return configuration_for_level(args.level)


def render_plan(plan: MigrationPlan) -> str:
    """Human-readable migration plan."""
    source = plan.source_structure
    target = plan.target_structure
    minutes = plan.estimated_duration.total_seconds() / 60
    lines = [
        "Migration Plan:",
        f"   From: {source.level.value} ({len(source.projects)} projects)",
        f"   To:   {target.architecture_level.value} ({target.project_structure.value})",
        f"   Duration: ~{minutes:.0f} minutes",
        "",
        "Steps:",
    ]
    for number, step in enumerate(plan.steps, start=1):
        marker = " " if step.is_reversible else "!"
        lines.append(f"   {number:02d}. {marker} {step.description}")
    if plan.warnings:
        lines.extend(["", "Warnings:"])
        lines.extend(f"   - {warning}" for warning in plan.warnings)
    return "\n".join(lines)


def render_result(result: MigrationResult) -> str:
    """Human-readable migration result."""
    if result.success:
        lines = [
            "Migration completed successfully.",
            f"   Steps: {len(result.completed_steps)}",
            f"   Files created: {len(result.generated_files)}",
            f"   Files modified: {len(result.modified_files)}",
            f"   Duration: {result.duration.total_seconds():.1f}s",
        ]
        return "\n".join(lines)

    lines = [f"Migration failed: {result.error}"]
    lines.append(f"   Rolled back {len(result.rolled_back_steps)} step(s).")
    if result.rollback_errors:
        lines.append("   Rollback problems (inspect the project tree):")
        lines.extend(f"   - {error}" for error in result.rollback_errors)
    return "\n".join(lines)


def _executed_step(outcome: StepOutcome, status: StepStatus = StepStatus.COMPLETED) -> ExecutedStep:
    return ExecutedStep(
        type=outcome.step.kind.value,
        description=outcome.step.description,
        executed_at=outcome.started_at,
        duration=outcome.duration,
        status=status,
        files_created=list(outcome.files_created),
        files_modified=list(outcome.files_modified),
        files_deleted=list(outcome.files_deleted),
        details=outcome.step.parameters(),
    )


def _install_cancel_handlers(cancel_event: asyncio.Event) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
            installed.append(sig)
        except NotImplementedError:
            # Windows doesn't fully support add_signal_handler
            logger.debug("Signal handling not supported for %s", sig.name)
    return installed


def _remove_cancel_handlers(installed: list[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for sig in installed:
        loop.remove_signal_handler(sig)


async def execute_plan(
    plan: MigrationPlan,
    store: MigrationHistoryStore,
    executor: MigrationExecutor,
    *,
    config_path: Path | None = None,
    cancel_event: asyncio.Event | None = None,
) -> MigrationResult:
    """
    Execute a plan and record it in the project's ledger.

    The ledger gets a start record before the first step, one entry per
    completed step, a failed entry for the step that failed, and a
    completion entry after execution (and rollback) finished.
    """
    project_path = plan.project_path
    await store.record_migration_start(
        project_path,
        plan.source_structure.level,
        plan.target_structure.architecture_level,
        config_path=config_path,
    )

    async def record_step(outcome: StepOutcome) -> None:
        await store.record_migration_step(project_path, _executed_step(outcome))

    result = await executor.execute(
        plan,
        cancel_event=cancel_event,
        on_step_completed=record_step,
    )

    if result.failed_step is not None and result.failed_step not in result.completed_steps:
        await store.record_migration_step(
            project_path,
            ExecutedStep(
                type=result.failed_step.kind.value,
                description=result.failed_step.description,
                status=StepStatus.FAILED,
                details={"error": result.error or ""},
            ),
        )

    await store.record_migration_complete(project_path, result.success, result.error)
    return result


async def run(args: argparse.Namespace) -> int:
    """
    Run the migrate command.

    Returns:
        0 on success or dry run, 1 if the migration failed or was refused.

    Raises:
        MigrationError: For configuration, planning and ledger errors (the
            caller maps these to exit code 2).
    """
    project_path = Path(args.path)
    config = load_target(args)
    target_level = ArchitectureRules.make_decisions(config).architecture_level

    print(f"Analyzing project at: {project_path}")
    analyzer = FileSystemProjectAnalyzer()
    planner = MigrationPlanner(analyzer)

    if not args.force and not await planner.can_migrate_path(project_path, target_level):
        print(
            f"Migration to {target_level.value} is not possible: the project is already "
            "at a higher level. Use --force to attempt it anyway."
        )
        return EXIT_MIGRATION_FAILED

    plan = await planner.analyze_migration(project_path, config)
    print()
    print(render_plan(plan))
    print()

    if args.dry_run:
        print("Dry run completed. Run without --dry-run to execute the migration.")
        return EXIT_OK

    if plan.is_empty:
        print("Nothing to migrate.")
        return EXIT_OK

    executor = MigrationExecutor(FileSystemCodeMover(), FileSystemTemplateGenerator())
    store = MigrationHistoryStore()
    cancel_event = asyncio.Event()
    installed = _install_cancel_handlers(cancel_event)
    try:
        print("Executing migration...")
        result = await execute_plan(
            plan,
            store,
            executor,
            config_path=args.config,
            cancel_event=cancel_event,
        )
    finally:
        _remove_cancel_handlers(installed)

    print(render_result(result))
    return EXIT_OK if result.success else EXIT_MIGRATION_FAILED


__all__ = [
    "add_arguments",
    "run",
    "execute_plan",
    "render_plan",
    "render_result",
]
