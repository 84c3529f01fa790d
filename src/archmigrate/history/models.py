"""
Ledger models for migration history.

The ledger is one JSON document per project root. Keys are camelCase on
disk and fields that are None are omitted on write, so a document read back
from disk compares equal to the one that was written.

Models in this module:
    - MigrationStatus / StepStatus: Terminal and in-flight statuses
    - ProjectInfo: One project (manifest) found during a scan
    - ProjectSnapshot: Structural fingerprint of a project at a point in time
    - ExecutedStep: One executed migration step in a record
    - MigrationRecord: One migration attempt
    - MigrationHistory: The ledger itself
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from archmigrate.configuration.rules import ArchitectureLevel


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MigrationStatus(Enum):
    """Status of a migration record."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class StepStatus(Enum):
    """Status of an executed step."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class _LedgerModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )


class ProjectInfo(_LedgerModel):
    """
    One project found under ``src/``.

    Attributes:
        name: Manifest name without extension (e.g. "Orders.Domain").
        path: Project directory relative to the project root.
        type: Domain, Application, Api, Infrastructure or Unknown.
        references: ProjectReference Include values.
        packages: Package references as "Name" or "Name@Version".
        file_count: Number of source files in the project.
        size_bytes: Total size of those source files.
    """

    name: str
    path: str = ""
    type: str = "Unknown"
    references: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    file_count: int = 0
    size_bytes: int = 0


class ProjectSnapshot(_LedgerModel):
    """
    Structural fingerprint of a project.

    The architecture level here comes from the project count, not from the
    scored complexity used for planning.
    """

    captured_at: datetime = Field(default_factory=_utcnow)
    architecture_level: ArchitectureLevel = ArchitectureLevel.MINIMAL
    projects: list[ProjectInfo] = Field(default_factory=list)
    aggregates: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)
    external_services: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    features: dict[str, Any] = Field(default_factory=dict)
    git_commit: str = ""
    custom_files: list[str] = Field(default_factory=list)


class ExecutedStep(_LedgerModel):
    """A step as recorded in the ledger."""

    type: str
    description: str = ""
    executed_at: datetime = Field(default_factory=_utcnow)
    duration: timedelta = Field(default_factory=timedelta)
    status: StepStatus = StepStatus.COMPLETED
    files_created: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)
    files_deleted: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class MigrationRecord(_LedgerModel):
    """
    One migration attempt.

    Attributes:
        id: Unique id of the attempt.
        executed_at: When the attempt started.
        from_level: Level the project was at.
        to_level: Level the attempt targets.
        status: in_progress until completed or failed.
        duration: Set when the attempt completes.
        executed_steps: Steps recorded during the attempt, in order.
        before_snapshot: Snapshot taken at start.
        after_snapshot: Snapshot taken at completion.
        error_message: Error for failed attempts.
        configuration_used: Text of the configuration file, if one was used.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    executed_at: datetime = Field(default_factory=_utcnow)
    from_level: ArchitectureLevel
    to_level: ArchitectureLevel
    status: MigrationStatus = MigrationStatus.IN_PROGRESS
    duration: timedelta | None = None
    executed_steps: list[ExecutedStep] = Field(default_factory=list)
    before_snapshot: ProjectSnapshot = Field(default_factory=ProjectSnapshot)
    after_snapshot: ProjectSnapshot | None = None
    error_message: str | None = None
    configuration_used: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class MigrationHistory(_LedgerModel):
    """
    The migration ledger of one project.

    ``current_level`` and ``current_snapshot`` only change when a record
    completes successfully.
    """

    service_name: str
    created_at: datetime = Field(default_factory=_utcnow)
    last_migration_at: datetime | None = None
    current_level: ArchitectureLevel = ArchitectureLevel.MINIMAL
    migrations: list[MigrationRecord] = Field(default_factory=list)
    current_snapshot: ProjectSnapshot = Field(default_factory=ProjectSnapshot)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def latest(self) -> MigrationRecord | None:
        """The most recently appended record, if any."""
        return self.migrations[-1] if self.migrations else None

    def to_json(self) -> str:
        """Serialize for the ledger file (camelCase, nulls omitted)."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


__all__ = [
    "MigrationStatus",
    "StepStatus",
    "ProjectInfo",
    "ProjectSnapshot",
    "ExecutedStep",
    "MigrationRecord",
    "MigrationHistory",
]
