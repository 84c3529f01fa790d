"""
Collaborator capabilities consumed by the migration core.

The planner and the executor never touch source files directly for
analysis, code moves, or code generation; they delegate to these
capabilities. Filesystem implementations live in
archmigrate.migration.collaborators; tests substitute their own.

Protocols:
- ProjectAnalyzer: Produces a ProjectStructure for a project on disk
- CodeMover: Moves source files between directories
- TemplateGenerator: Generates code from a named template
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from archmigrate.migration.models import ProjectStructure


@runtime_checkable
class ProjectAnalyzer(Protocol):
    """
    Protocol for analyzing an existing project.

    Example:
        >>> class FixedAnalyzer:
        ...     async def analyze(self, project_path: Path) -> ProjectStructure:
        ...         return ProjectStructure(service_name=project_path.name)
    """

    async def analyze(self, project_path: Path) -> ProjectStructure:
        """
        Produce a structural snapshot of the project.

        Args:
            project_path: Root directory of the project.

        Returns:
            The project's current structure.
        """
        ...


@runtime_checkable
class CodeMover(Protocol):
    """
    Protocol for moving source files.

    Implementations must leave files that do not match the pattern in place.
    """

    async def move(self, pattern: str, source_dir: Path, target_dir: Path) -> Sequence[Path]:
        """
        Move files matching ``pattern`` from ``source_dir`` to ``target_dir``.

        Args:
            pattern: Glob pattern of the files to move.
            source_dir: Directory to move from.
            target_dir: Directory to move into (created if missing).

        Returns:
            The new paths of the moved files.
        """
        ...

    async def can_move(self, source_dir: Path, target_dir: Path) -> bool:
        """
        Check whether a move between two directories is possible.

        Args:
            source_dir: Directory to move from.
            target_dir: Directory to move into.

        Returns:
            True if the move can be attempted.
        """
        ...


@runtime_checkable
class TemplateGenerator(Protocol):
    """
    Protocol for generating code from named templates.

    The migration core treats templates as opaque; only the GenerateCode
    step kind uses this capability.
    """

    async def generate(
        self,
        template_name: str,
        target_path: Path,
        parameters: Mapping[str, Any],
    ) -> Sequence[Path]:
        """
        Generate code from a template.

        Args:
            template_name: Name of the template (e.g., "ReadModelRepository").
            target_path: Directory to generate into.
            parameters: Template parameters (always includes "ServiceName").

        Returns:
            Paths of the files written.
        """
        ...


__all__ = [
    "ProjectAnalyzer",
    "CodeMover",
    "TemplateGenerator",
]
