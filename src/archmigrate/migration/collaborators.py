"""
Filesystem implementations of the migration collaborator protocols.

- FileSystemProjectAnalyzer: ProjectStructure from a snapshot scan
- FileSystemCodeMover: Glob-based file moves that keep relative paths
- FileSystemTemplateGenerator: Writes one placeholder source file per template

Each instance is created and owned by the caller; none of them keeps state
between calls.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePosixPath
from typing import Any

from archmigrate.history.snapshot import SKIPPED_DIRECTORIES, SnapshotScanner
from archmigrate.migration.models import ProjectStructure

logger = logging.getLogger(__name__)


class FileSystemProjectAnalyzer:
    """
    Analyzes a project tree with a SnapshotScanner.

    The service name is the project directory name and the level comes from
    the number of projects under ``src/``.
    """

    def __init__(self, scanner: SnapshotScanner | None = None) -> None:
        self._scanner = scanner or SnapshotScanner()

    async def analyze(self, project_path: Path) -> ProjectStructure:
        snapshot = self._scanner.capture(Path(project_path))
        types = {project.type for project in snapshot.projects}
        return ProjectStructure(
            service_name=Path(project_path).resolve().name,
            level=snapshot.architecture_level,
            has_infrastructure="Infrastructure" in types,
            has_domain_layer="Domain" in types,
            has_application_layer="Application" in types,
            projects=[project.name for project in snapshot.projects],
            aggregates=list(snapshot.aggregates),
            commands=list(snapshot.commands),
            queries=list(snapshot.queries),
            dependencies=dict(snapshot.dependencies),
        )


class FileSystemCodeMover:
    """
    Moves files with ``shutil.move``.

    Only the last segment of the pattern is used for matching
    ("Domain/*.cs" matches "*.cs" inside the source directory). Matching is
    recursive and each file keeps its path relative to the source directory.
    Build output (bin/, obj/) is never moved.
    """

    async def move(self, pattern: str, source_dir: Path, target_dir: Path) -> Sequence[Path]:
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        if not source_dir.is_dir():
            logger.debug("Nothing to move: %s does not exist", source_dir)
            return []

        file_pattern = PurePosixPath(pattern).name
        matches = [
            path
            for path in sorted(source_dir.rglob(file_pattern))
            if path.is_file()
            and not SKIPPED_DIRECTORIES.intersection(path.relative_to(source_dir).parts[:-1])
        ]

        moved = []
        for path in matches:
            destination = target_dir / path.relative_to(source_dir)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(path), str(destination))
            moved.append(destination)

        logger.debug(
            "Moved %d file(s) matching %s from %s to %s",
            len(moved),
            pattern,
            source_dir,
            target_dir,
        )
        return moved

    async def can_move(self, source_dir: Path, target_dir: Path) -> bool:
        # The target is created on demand; only the source has to exist
        return Path(source_dir).is_dir()


class FileSystemTemplateGenerator:
    """
    Writes a placeholder class for a named template.

    The generated file is ``<template_name>.cs`` in the target directory,
    in the namespace derived from the service name and target path.
    """

    async def generate(
        self,
        template_name: str,
        target_path: Path,
        parameters: Mapping[str, Any],
    ) -> Sequence[Path]:
        target_path = Path(target_path)
        service_name = str(parameters.get("ServiceName", ""))
        namespace = str(parameters.get("Namespace", "")) or _namespace_for(
            service_name, target_path
        )

        target_path.mkdir(parents=True, exist_ok=True)
        output = target_path / f"{template_name}.cs"
        output.write_text(
            f"namespace {namespace};\n\npublic class {template_name}\n{{\n}}\n",
            encoding="utf-8",
        )
        logger.debug("Generated %s from template %s", output, template_name)
        return [output]


def _namespace_for(service_name: str, target_path: Path) -> str:
    # ".../src/Orders.Infrastructure/Persistence/Read" -> "Orders.Infrastructure.Persistence.Read"
    parts = target_path.parts
    for index, part in enumerate(parts):
        if service_name and part.startswith(f"{service_name}."):
            return ".".join(parts[index:])
    return service_name or target_path.name


__all__ = [
    "FileSystemProjectAnalyzer",
    "FileSystemCodeMover",
    "FileSystemTemplateGenerator",
]
