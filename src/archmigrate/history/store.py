"""
MigrationHistoryStore - Append-only migration ledger per project.

The ledger lives in ``.microservice-history.json`` in the project root. It
is created the first time it is read, and every mutating call loads,
changes and saves it again; nothing is cached between calls.

Recording a migration is a three-phase protocol driven by the caller:

    >>> store = MigrationHistoryStore()
    >>> await store.record_migration_start(path, "minimal", "standard")
    >>> await store.record_migration_step(path, ExecutedStep(type="create_project"))
    >>> await store.record_migration_complete(path, success=True)

The ledger file has no locking. Callers must serialize Record* calls for
the same project path.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from archmigrate.configuration.rules import LEVEL_ORDER, ArchitectureLevel
from archmigrate.exceptions import LedgerIOError
from archmigrate.history.models import (
    ExecutedStep,
    MigrationHistory,
    MigrationRecord,
    MigrationStatus,
    ProjectSnapshot,
)
from archmigrate.history.snapshot import SnapshotScanner
from archmigrate.observability import (
    ATTR_LEDGER_PATH,
    ATTR_MIGRATION_STATUS,
    ATTR_PROJECT_PATH,
    ATTR_TO_LEVEL,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

HISTORY_FILE_NAME = ".microservice-history.json"


def get_migration_path(
    current_level: str | ArchitectureLevel,
    target_level: str | ArchitectureLevel,
) -> list[ArchitectureLevel]:
    """
    Levels strictly after ``current_level`` up to and including ``target_level``.

    Returns an empty list when the target is not above the current level.

    Raises:
        UnrecognizedLevelError: If either level is unknown.
    """
    current = ArchitectureLevel.parse(current_level)
    target = ArchitectureLevel.parse(target_level)
    return list(LEVEL_ORDER[current.ordinal + 1 : target.ordinal + 1])


class MigrationHistoryStore:
    """
    Reads and writes migration ledgers.

    Example:
        >>> store = MigrationHistoryStore(enable_tracing=False)
        >>> history = await store.load_history(Path("./OrderService"))
        >>> history.current_level
        <ArchitectureLevel.MINIMAL: 'minimal'>

    Attributes:
        _scanner: Scanner used for every snapshot.
    """

    def __init__(
        self,
        scanner: SnapshotScanner | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._scanner = scanner or SnapshotScanner()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @staticmethod
    def ledger_path(project_path: Path | str) -> Path:
        return Path(project_path) / HISTORY_FILE_NAME

    async def load_history(self, project_path: Path | str) -> MigrationHistory:
        """
        Load the ledger, creating it if it does not exist yet.

        A new ledger is named after the project directory, has no records,
        and starts from a fresh snapshot.

        Args:
            project_path: Root directory of the project.

        Returns:
            The ledger.

        Raises:
            LedgerIOError: If the ledger exists but cannot be read or parsed.
                A malformed ledger is never replaced.
        """
        project_path = Path(project_path)
        ledger = self.ledger_path(project_path)
        with self._tracer.span(
            "archmigrate.history.load",
            {ATTR_PROJECT_PATH: str(project_path), ATTR_LEDGER_PATH: str(ledger)},
        ):
            if not ledger.exists():
                snapshot = await self.capture_snapshot(project_path)
                history = MigrationHistory(
                    service_name=project_path.resolve().name,
                    current_level=snapshot.architecture_level,
                    current_snapshot=snapshot,
                )
                await self.save_history(project_path, history)
                logger.info("Created migration ledger %s", ledger)
                return history

            try:
                raw = ledger.read_text(encoding="utf-8")
            except OSError as e:
                raise LedgerIOError(f"Cannot read migration ledger ({e})", ledger) from e
            try:
                return MigrationHistory.model_validate_json(raw)
            except ValidationError as e:
                raise LedgerIOError(
                    f"Malformed migration ledger ({e.error_count()} error(s))", ledger
                ) from e

    async def save_history(self, project_path: Path | str, history: MigrationHistory) -> None:
        """
        Write the ledger, stamping ``last_migration_at``.

        Raises:
            LedgerIOError: If the file cannot be written.
        """
        ledger = self.ledger_path(project_path)
        history.last_migration_at = datetime.now(UTC)
        try:
            ledger.write_text(history.to_json(), encoding="utf-8")
        except OSError as e:
            raise LedgerIOError(f"Cannot write migration ledger ({e})", ledger) from e

    async def capture_snapshot(self, project_path: Path | str) -> ProjectSnapshot:
        """Scan the project tree. See SnapshotScanner.capture()."""
        with self._tracer.span(
            "archmigrate.history.capture_snapshot",
            {ATTR_PROJECT_PATH: str(project_path)},
        ):
            return self._scanner.capture(Path(project_path))

    async def can_migrate_to(
        self,
        project_path: Path | str,
        target_level: str | ArchitectureLevel,
    ) -> bool:
        """
        Check the target against the ledger's current level.

        The current level is the project-count classification recorded in
        the ledger, not the planner's scored level.
        """
        history = await self.load_history(project_path)
        return history.current_level <= ArchitectureLevel.parse(target_level)

    async def get_migration_path(
        self,
        current_level: str | ArchitectureLevel,
        target_level: str | ArchitectureLevel,
    ) -> list[ArchitectureLevel]:
        return get_migration_path(current_level, target_level)

    async def record_migration_start(
        self,
        project_path: Path | str,
        from_level: str | ArchitectureLevel,
        to_level: str | ArchitectureLevel,
        config_path: Path | str | None = None,
    ) -> None:
        """
        Append a new in-progress record with a before snapshot.

        Args:
            project_path: Root directory of the project.
            from_level: Level the project is migrating from.
            to_level: Level the project is migrating to.
            config_path: Configuration file used; its text is stored in the
                record.

        Raises:
            LedgerIOError: If the ledger cannot be read or written, or the
                configuration file cannot be read.
        """
        project_path = Path(project_path)
        source = ArchitectureLevel.parse(from_level)
        target = ArchitectureLevel.parse(to_level)
        with self._tracer.span(
            "archmigrate.history.record_start",
            {ATTR_PROJECT_PATH: str(project_path), ATTR_TO_LEVEL: target.value},
        ):
            history = await self.load_history(project_path)
            configuration_used = None
            if config_path is not None:
                try:
                    configuration_used = Path(config_path).read_text(encoding="utf-8")
                except OSError as e:
                    raise LedgerIOError(
                        f"Cannot read configuration for the ledger ({e})", Path(config_path)
                    ) from e

            record = MigrationRecord(
                from_level=source,
                to_level=target,
                status=MigrationStatus.IN_PROGRESS,
                before_snapshot=await self.capture_snapshot(project_path),
                configuration_used=configuration_used,
            )
            history.migrations.append(record)
            await self.save_history(project_path, history)
            logger.info(
                "Recorded migration start %s: %s -> %s",
                record.id,
                record.from_level.value,
                record.to_level.value,
            )

    async def record_migration_step(self, project_path: Path | str, step: ExecutedStep) -> None:
        """Append an executed step to the most recent record."""
        project_path = Path(project_path)
        with self._tracer.span(
            "archmigrate.history.record_step",
            {ATTR_PROJECT_PATH: str(project_path)},
        ):
            history = await self.load_history(project_path)
            record = history.latest
            if record is None:
                logger.warning(
                    "No migration record in %s; step %r not recorded",
                    self.ledger_path(project_path),
                    step.description,
                )
                return
            record.executed_steps.append(step)
            await self.save_history(project_path, history)

    async def record_migration_complete(
        self,
        project_path: Path | str,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        """
        Close the most recent record.

        Sets the terminal status, the duration since the record started and
        an after snapshot. Only a successful record promotes the ledger's
        current level and snapshot.
        """
        project_path = Path(project_path)
        status = MigrationStatus.COMPLETED if success else MigrationStatus.FAILED
        with self._tracer.span(
            "archmigrate.history.record_complete",
            {ATTR_PROJECT_PATH: str(project_path), ATTR_MIGRATION_STATUS: status.value},
        ):
            history = await self.load_history(project_path)
            record = history.latest
            if record is None:
                logger.warning(
                    "No migration record in %s; completion not recorded",
                    self.ledger_path(project_path),
                )
                return

            record.status = status
            record.error_message = error_message
            record.duration = datetime.now(UTC) - record.executed_at
            record.after_snapshot = await self.capture_snapshot(project_path)

            if success:
                history.current_level = record.to_level
                history.current_snapshot = record.after_snapshot

            await self.save_history(project_path, history)
            logger.info(
                "Recorded migration %s as %s",
                record.id,
                status.value,
            )


__all__ = [
    "HISTORY_FILE_NAME",
    "MigrationHistoryStore",
    "get_migration_path",
]
