"""
The ``history`` command.

Renders a project's migration ledger as a table (optionally with
before/after snapshot comparisons), as JSON, or as a short summary.
"""

from __future__ import annotations

import argparse
from datetime import datetime
from pathlib import Path

from archmigrate.history import (
    MigrationHistory,
    MigrationHistoryStore,
    MigrationRecord,
    MigrationStatus,
    ProjectSnapshot,
)

FORMATS = ("table", "json", "summary")
MAX_CUSTOM_FILES = 5

_STATUS_LABELS = {
    MigrationStatus.COMPLETED: "[completed]",
    MigrationStatus.FAILED: "[failed]",
    MigrationStatus.ROLLED_BACK: "[rolled back]",
    MigrationStatus.IN_PROGRESS: "[in progress]",
}


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        type=Path,
        default=Path.cwd(),
        help="Path to the project (default: current directory)",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--snapshots",
        action="store_true",
        help="Show before/after snapshot comparisons for each migration",
    )


def _timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value is not None else "never"


def render_json(history: MigrationHistory) -> str:
    return history.to_json()


def render_summary(history: MigrationHistory) -> str:
    snapshot = history.current_snapshot
    lines = [
        f"Migration History Summary for {history.service_name}",
        "",
        f"Current Architecture: {history.current_level.value.upper()}",
        f"Created: {_timestamp(history.created_at)}",
        f"Last Migration: {_timestamp(history.last_migration_at)}",
        f"Total Migrations: {len(history.migrations)}",
        "",
        "Current State:",
        f"   Projects: {len(snapshot.projects)}",
        f"   Aggregates: {len(snapshot.aggregates)}",
        f"   Commands: {len(snapshot.commands)}",
        f"   Queries: {len(snapshot.queries)}",
        f"   External Services: {len(snapshot.external_services)}",
    ]
    return "\n".join(lines)


def render_snapshot_comparison(record: MigrationRecord) -> list[str]:
    """Before/after counts, new projects and aggregates, and file totals."""
    before = record.before_snapshot
    after = record.after_snapshot or ProjectSnapshot()
    lines = [
        "   Changes:",
        f"      Projects: {len(before.projects)} -> {len(after.projects)}",
        f"      Aggregates: {len(before.aggregates)} -> {len(after.aggregates)}",
        f"      Commands: {len(before.commands)} -> {len(after.commands)}",
        f"      Queries: {len(before.queries)} -> {len(after.queries)}",
    ]

    known = {project.name for project in before.projects}
    new_projects = [project.name for project in after.projects if project.name not in known]
    if new_projects:
        lines.append(f"      New Projects: {', '.join(new_projects)}")

    new_aggregates = [name for name in after.aggregates if name not in before.aggregates]
    if new_aggregates:
        lines.append(f"      New Aggregates: {', '.join(new_aggregates)}")

    created = sum(len(step.files_created) for step in record.executed_steps)
    modified = sum(len(step.files_modified) for step in record.executed_steps)
    deleted = sum(len(step.files_deleted) for step in record.executed_steps)
    if created or modified or deleted:
        lines.append(f"      Files: +{created} ~{modified} -{deleted}")
    return lines


def render_snapshot(snapshot: ProjectSnapshot) -> list[str]:
    lines = [
        f"   Captured: {_timestamp(snapshot.captured_at)}",
        f"   Level: {snapshot.architecture_level.value}",
    ]
    if snapshot.git_commit:
        lines.append(f"   Git: {snapshot.git_commit[:8]}")
    lines.extend(["", "   Projects:"])
    for project in sorted(snapshot.projects, key=lambda p: p.type):
        size_kb = project.size_bytes / 1024
        lines.append(f"      {project.name} ({project.type})")
        lines.append(f"         {project.file_count} files ({size_kb:.1f} KB)")
        lines.append(f"         {len(project.packages)} packages")
    if snapshot.aggregates:
        lines.extend(["", f"   Aggregates: {', '.join(snapshot.aggregates)}"])
    if snapshot.external_services:
        lines.append(f"   External Services: {', '.join(snapshot.external_services)}")
    if snapshot.custom_files:
        lines.extend(["", "   Custom Files (preserved during migration):"])
        lines.extend(f"      {path}" for path in snapshot.custom_files[:MAX_CUSTOM_FILES])
        remaining = len(snapshot.custom_files) - MAX_CUSTOM_FILES
        if remaining > 0:
            lines.append(f"      ... and {remaining} more")
    return lines


def render_table(history: MigrationHistory, show_snapshots: bool = False) -> str:
    lines = [
        f"Migration History for {history.service_name}",
        f"Current Level: {history.current_level.value.upper()}",
        "",
    ]
    if not history.migrations:
        lines.append("No migrations found. This project was created at its current level.")
        return "\n".join(lines)

    lines.extend(["Migration Timeline:", ""])
    for record in sorted(history.migrations, key=lambda r: r.executed_at):
        minutes = record.duration.total_seconds() / 60 if record.duration else 0.0
        lines.append(f"{_STATUS_LABELS[record.status]} Migration {record.id}")
        lines.append(f"   Date: {record.executed_at.strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append(f"   Path: {record.from_level.value} -> {record.to_level.value}")
        lines.append(f"   Duration: {minutes:.1f} minutes")
        lines.append(f"   Steps: {len(record.executed_steps)}")
        if record.status is MigrationStatus.FAILED and record.error_message:
            lines.append(f"   Error: {record.error_message}")
        if show_snapshots:
            lines.extend(render_snapshot_comparison(record))
        lines.append("")

    lines.append("Current Project State:")
    lines.extend(render_snapshot(history.current_snapshot))
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    """
    Run the history command.

    Raises:
        LedgerIOError: If the ledger is malformed (exit code 2).
    """
    store = MigrationHistoryStore()
    history = await store.load_history(Path(args.path))
    if args.format == "json":
        print(render_json(history))
    elif args.format == "summary":
        print(render_summary(history))
    else:
        print(render_table(history, show_snapshots=args.snapshots))
    return 0


__all__ = [
    "add_arguments",
    "run",
    "render_json",
    "render_summary",
    "render_table",
    "render_snapshot",
    "render_snapshot_comparison",
]
