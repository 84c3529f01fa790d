"""
Snapshot scanning of projects on disk.

A snapshot is a structural fingerprint: the projects under ``src/``, their
references and packages, domain elements found by a keyword scan, and the
current git revision.

The domain-element scan is a best-effort layer. It matches keywords and
substrings in source text; it does not parse code. Its rules:

- aggregate: text contains ": AggregateRoot", or both "class" and "Aggregate"
- command: text contains both "Command" and "class"
- query: text contains both "Query" and "class"
- name: the identifier after "class" on the first line starting with
  "public class"

The architecture level of a snapshot comes from the number of projects
(see level_from_project_count). It is separate from the scored complexity
classifier in archmigrate.configuration.rules and the two are not meant to
agree.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from archmigrate.configuration.rules import ArchitectureLevel
from archmigrate.exceptions import SnapshotScanError
from archmigrate.history.models import ProjectInfo, ProjectSnapshot

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".csproj"
SOURCE_SUFFIX = ".cs"
SKIPPED_DIRECTORIES = frozenset({"bin", "obj", ".git"})
PRESERVE_MARKER = "// archmigrate:preserve"
CLIENTS_DIRECTORY = "Clients"

PROJECT_TYPES = ("Domain", "Application", "Infrastructure", "Api")

_INCLUDE = re.compile(r'Include="([^"]*)"')
_VERSION = re.compile(r'Version="([^"]*)"')
_CLASS_DECLARATION = re.compile(r"\bclass\s+(\w+)")


def level_from_project_count(count: int) -> ArchitectureLevel:
    """
    Classify a project tree by how many projects it has.

    1 project is minimal, 2-3 are standard, more than 3 is enterprise. A tree
    with no projects is treated as minimal.
    """
    if count <= 1:
        return ArchitectureLevel.MINIMAL
    if count <= 3:
        return ArchitectureLevel.STANDARD
    return ArchitectureLevel.ENTERPRISE


def determine_project_type(project_name: str) -> str:
    """Project type from the ``.Domain``/``.Application``/... part of its name."""
    for project_type in PROJECT_TYPES:
        if f".{project_type}" in project_name:
            return project_type
    return "Unknown"


def extract_project_references(manifest: str) -> list[str]:
    """Include values of every ``<ProjectReference>`` line in a manifest."""
    references = []
    for line in manifest.splitlines():
        if "<ProjectReference" not in line:
            continue
        match = _INCLUDE.search(line)
        if match:
            references.append(match.group(1))
    return references


def extract_package_references(manifest: str) -> list[str]:
    """
    Package references of a manifest as "Name@Version" (or "Name" when the
    line carries no version).
    """
    packages = []
    for line in manifest.splitlines():
        if "<PackageReference" not in line:
            continue
        match = _INCLUDE.search(line)
        if not match:
            continue
        name = match.group(1)
        version = _VERSION.search(line)
        packages.append(f"{name}@{version.group(1)}" if version else name)
    return packages


def split_package(package: str) -> tuple[str, str]:
    """Split "Name@Version" into (name, version); version is "" if absent."""
    name, _, version = package.partition("@")
    return name, version


def extract_class_name(source: str) -> str:
    """
    Name of the first public class in a source file.

    Returns:
        The class name, or "" if no line starts with "public class".
    """
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped.startswith("public class"):
            continue
        match = _CLASS_DECLARATION.search(stripped)
        if match:
            return match.group(1)
    return ""


def is_aggregate(source: str) -> bool:
    return ": AggregateRoot" in source or ("class" in source and "Aggregate" in source)


def is_command(source: str) -> bool:
    return "Command" in source and "class" in source


def is_query(source: str) -> bool:
    return "Query" in source and "class" in source


def resolve_git_commit(project_path: Path) -> str:
    """
    Resolve the revision HEAD points at.

    Follows ``HEAD`` -> ``ref: refs/heads/<branch>`` -> commit hash, looking
    in ``packed-refs`` when the loose ref file is missing. A detached HEAD
    holds the hash itself.

    Returns:
        The commit hash, or "" if anything along the way is missing or
        unreadable.
    """
    git_dir = project_path / ".git"
    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
        if not head.startswith("ref:"):
            return head
        ref = head[len("ref:") :].strip()
        ref_file = git_dir / ref
        if ref_file.is_file():
            return ref_file.read_text(encoding="utf-8").strip()
        packed = git_dir / "packed-refs"
        if packed.is_file():
            for line in packed.read_text(encoding="utf-8").splitlines():
                parts = line.strip().split(" ", 1)
                if len(parts) == 2 and parts[1] == ref:
                    return parts[0]
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not resolve git revision for %s: %s", project_path, e)
    return ""


def iter_source_files(root: Path, suffix: str = SOURCE_SUFFIX) -> Iterator[Path]:
    """Source files under ``root`` in sorted order, skipping build output and .git."""
    if not root.is_dir():
        return
    for path in sorted(root.rglob(f"*{suffix}")):
        relative = path.relative_to(root)
        if SKIPPED_DIRECTORIES.intersection(relative.parts[:-1]):
            continue
        if path.is_file():
            yield path


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotScanError(f"Cannot read file ({e})", path) from e


class SnapshotScanner:
    """
    Captures ProjectSnapshots from project trees.

    Unreadable files are logged and skipped; a scan never fails because of
    a single file.

    Example:
        >>> scanner = SnapshotScanner()
        >>> snapshot = scanner.capture(Path("./OrderService"))
        >>> snapshot.architecture_level
        <ArchitectureLevel.STANDARD: 'standard'>
    """

    def capture(self, project_path: Path) -> ProjectSnapshot:
        """
        Scan a project tree.

        Args:
            project_path: Root directory of the project.

        Returns:
            The snapshot.
        """
        project_path = Path(project_path)
        projects = self.scan_projects(project_path)
        snapshot = ProjectSnapshot(
            captured_at=datetime.now(UTC),
            architecture_level=level_from_project_count(len(projects)),
            projects=projects,
            git_commit=resolve_git_commit(project_path),
        )

        for project in projects:
            for package in project.packages:
                name, version = split_package(package)
                snapshot.dependencies[name] = version

        self._scan_sources(project_path, snapshot)
        snapshot.features = self.detect_features(project_path, projects)

        logger.debug(
            "Captured snapshot of %s: %d project(s), %d aggregate(s), level=%s",
            project_path,
            len(projects),
            len(snapshot.aggregates),
            snapshot.architecture_level.value,
        )
        return snapshot

    def scan_projects(self, project_path: Path) -> list[ProjectInfo]:
        """One ProjectInfo per directory under ``src/`` holding a manifest."""
        src = project_path / "src"
        projects = []
        for manifest in iter_source_files(src, MANIFEST_SUFFIX):
            try:
                projects.append(self._describe_project(project_path, manifest))
            except SnapshotScanError as e:
                logger.warning("Skipping project during snapshot scan: %s", e)
        return projects

    def _describe_project(self, project_path: Path, manifest: Path) -> ProjectInfo:
        project_dir = manifest.parent
        text = _read_text(manifest)
        sources = list(iter_source_files(project_dir))
        return ProjectInfo(
            name=manifest.stem,
            path=project_dir.relative_to(project_path).as_posix(),
            type=determine_project_type(manifest.stem),
            references=extract_project_references(text),
            packages=extract_package_references(text),
            file_count=len(sources),
            size_bytes=sum(path.stat().st_size for path in sources),
        )

    def _scan_sources(self, project_path: Path, snapshot: ProjectSnapshot) -> None:
        for path in iter_source_files(project_path):
            try:
                source = _read_text(path)
            except SnapshotScanError as e:
                logger.warning("Skipping file during snapshot scan: %s", e)
                continue

            relative = path.relative_to(project_path)
            if PRESERVE_MARKER in source:
                snapshot.custom_files.append(relative.as_posix())

            name = extract_class_name(source)
            if not name:
                continue
            if is_aggregate(source):
                _append_unique(snapshot.aggregates, name)
            if is_command(source):
                _append_unique(snapshot.commands, name)
            if is_query(source):
                _append_unique(snapshot.queries, name)
            if CLIENTS_DIRECTORY in relative.parts[:-1] and name.endswith("Client"):
                _append_unique(snapshot.external_services, name)

    def detect_features(self, project_path: Path, projects: list[ProjectInfo]) -> dict[str, bool]:
        """Coarse feature flags visible from the tree layout."""
        types = {project.type for project in projects}
        return {
            "docker": (project_path / "Dockerfile").is_file(),
            "tests": (project_path / "tests").is_dir(),
            "solution": any(project_path.glob("*.sln")),
            "infrastructure": "Infrastructure" in types,
        }


def _append_unique(names: list[str], name: str) -> None:
    if name not in names:
        names.append(name)


__all__ = [
    "SnapshotScanner",
    "level_from_project_count",
    "determine_project_type",
    "extract_project_references",
    "extract_package_references",
    "extract_class_name",
    "resolve_git_commit",
    "iter_source_files",
]
