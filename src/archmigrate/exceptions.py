"""
Exceptions for the archmigrate migration subsystem.

This module defines every exception that can be raised while planning,
executing, or recording an architecture migration, organized by the phase
that raises them.

Exception Hierarchy:
    MigrationError (base)
    +-- PlanningError
    |   +-- InfeasibleMigrationError
    |   +-- UnrecognizedLevelError
    +-- StepExecutionError
    |   +-- MigrationCancelledError
    +-- RollbackError
    +-- LedgerIOError
    +-- SnapshotScanError
    +-- ConfigurationError

Error Classification:
    Every exception carries an ErrorClassification describing its severity,
    whether an operator can recover from it, and a suggested action. Nothing
    in the migration subsystem is retried automatically; retry policy belongs
    to the operator re-invoking the CLI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from archmigrate.migration.models import MigrationStep

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """
    Severity level of migration errors.

    Used for logging and operator notification decisions.

    Attributes:
        CRITICAL: The project may be left in an inconsistent state.
            Examples: a ledger that can no longer be parsed.
        ERROR: A migration attempt failed.
            Examples: a step handler raised, the plan is infeasible.
        WARNING: Something was skipped but the attempt continued.
            Examples: a rollback step failed, a source file was unreadable.
        INFO: Informational condition, not a failure.
            Examples: the operator cancelled the migration.
    """

    CRITICAL = "critical"
    """The project may be left in an inconsistent state."""

    ERROR = "error"
    """A migration attempt failed."""

    WARNING = "warning"
    """Something was skipped but the attempt continued."""

    INFO = "info"
    """Informational condition, not a failure."""

    @property
    def log_level(self) -> int:
        """
        Get the corresponding Python logging level.

        Returns:
            Python logging level constant.
        """
        level_map = {
            ErrorSeverity.CRITICAL: logging.CRITICAL,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.INFO: logging.INFO,
        }
        return level_map[self]


class ErrorRecoverability(Enum):
    """
    Recoverability classification for migration errors.

    Attributes:
        RECOVERABLE: The operator can fix the cause and re-run the migration.
        FATAL: The attempt cannot continue and needs manual inspection.
    """

    RECOVERABLE = "recoverable"
    """The operator can fix the cause and re-run the migration."""

    FATAL = "fatal"
    """The attempt cannot continue and needs manual inspection."""


@dataclass(frozen=True)
class ErrorClassification:
    """
    Rich metadata for error classification.

    Attributes:
        severity: The severity level of the error.
        recoverability: How the error can be recovered from.
        error_code: Unique error code for programmatic handling.
        category: Error category for grouping related errors.
        suggested_action: Human-readable guidance for operators.
        labels: Extra labels for log and trace attributes.

    Example:
        >>> classification = ErrorClassification(
        ...     severity=ErrorSeverity.ERROR,
        ...     recoverability=ErrorRecoverability.RECOVERABLE,
        ...     error_code="MIGRATION_INFEASIBLE",
        ...     category="planning",
        ...     suggested_action="Choose a target level at or above the current level",
        ... )
    """

    severity: ErrorSeverity
    recoverability: ErrorRecoverability
    error_code: str
    category: str
    suggested_action: str
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert classification to dictionary for serialization.

        Returns:
            Dictionary representation of the classification.
        """
        return {
            "severity": self.severity.value,
            "recoverability": self.recoverability.value,
            "error_code": self.error_code,
            "category": self.category,
            "suggested_action": self.suggested_action,
            "labels": dict(self.labels),
        }


class MigrationError(Exception):
    """
    Base exception for all archmigrate errors.

    All exceptions raised by the migration subsystem inherit from this class,
    allowing callers to catch all migration errors with a single handler.

    Attributes:
        message: Human-readable error description.
        service_name: The service being migrated, if known.
        suggested_action: Suggested action for recovery.
        classification: Error classification metadata.
    """

    _default_classification: ErrorClassification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.FATAL,
        error_code="MIGRATION_ERROR",
        category="general",
        suggested_action="Review the migration log and the project tree",
    )

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        suggested_action: str | None = None,
    ) -> None:
        self.message = message
        self.service_name = service_name
        self.suggested_action = suggested_action or self._default_classification.suggested_action
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        if self.service_name:
            return f"{self.message} service={self.service_name}"
        return self.message

    @property
    def classification(self) -> ErrorClassification:
        """
        Get the error classification for this exception.

        Subclasses override _default_classification to provide
        specific classification metadata for their error type.
        """
        return self._default_classification

    @property
    def severity(self) -> ErrorSeverity:
        """Get the severity level of this error."""
        return self.classification.severity

    @property
    def recoverability(self) -> ErrorRecoverability:
        """Get the recoverability classification of this error."""
        return self.classification.recoverability

    @property
    def error_code(self) -> str:
        """Get the unique error code for this exception."""
        return self.classification.error_code

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "message": self.message,
            "service_name": self.service_name,
            "error_code": self.error_code,
            "suggested_action": self.suggested_action,
            "classification": self.classification.to_dict(),
        }


class PlanningError(MigrationError):
    """
    Raised when a migration cannot be planned.

    Planning errors always abort before any side effect on the project tree.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_PLANNING_FAILED",
        category="planning",
        suggested_action="Check the requested target architecture",
    )


class InfeasibleMigrationError(PlanningError):
    """
    Raised when the target level is below the project's current level.

    Architecture levels only ever advance; downgrades are refused.

    Attributes:
        current_level: The level the project is at.
        target_level: The level that was requested.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_INFEASIBLE",
        category="planning",
        suggested_action="Choose a target level at or above the current level",
    )

    def __init__(
        self,
        current_level: str,
        target_level: str,
        *,
        service_name: str | None = None,
    ) -> None:
        self.current_level = current_level
        self.target_level = target_level
        super().__init__(
            f"Cannot migrate from {current_level} down to {target_level}",
            service_name=service_name,
        )


class UnrecognizedLevelError(PlanningError):
    """
    Raised when an architecture level string is not one of the known levels.

    Attributes:
        value: The string that could not be parsed.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_UNKNOWN_LEVEL",
        category="planning",
        suggested_action="Use one of: minimal, standard, enterprise",
    )

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Unknown architecture level: {value!r}")


class StepExecutionError(MigrationError):
    """
    Raised when a migration step handler fails.

    The executor catches this, rolls back every completed step in reverse
    order, and reports the failure through MigrationResult.

    Attributes:
        step: The step that failed.
        step_index: Zero-based position of the step in the plan.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_STEP_FAILED",
        category="execution",
        suggested_action="Fix the cause reported for the failing step and re-run the migration",
    )

    def __init__(
        self,
        message: str,
        step: MigrationStep,
        step_index: int,
        *,
        service_name: str | None = None,
    ) -> None:
        self.step = step
        self.step_index = step_index
        super().__init__(message, service_name=service_name)


class MigrationCancelledError(StepExecutionError):
    """
    Raised when cancellation is observed between two steps.

    Treated identically to a step failure: completed steps are rolled back.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.INFO,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_CANCELLED",
        category="execution",
        suggested_action="Re-run the migration when ready",
    )

    def __init__(
        self,
        step: MigrationStep,
        step_index: int,
        *,
        service_name: str | None = None,
    ) -> None:
        super().__init__(
            f"Migration cancelled before step {step_index + 1}: {step.description}",
            step,
            step_index,
            service_name=service_name,
        )


class RollbackError(MigrationError):
    """
    Raised when undoing a completed step fails.

    Rollback is best-effort: the executor logs this error and continues
    undoing the remaining steps. It is never raised out of the executor.

    Attributes:
        step: The step whose inverse failed.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.FATAL,
        error_code="MIGRATION_ROLLBACK_FAILED",
        category="rollback",
        suggested_action="Inspect the project tree and restore it from version control",
    )

    def __init__(
        self,
        message: str,
        step: MigrationStep,
        *,
        service_name: str | None = None,
    ) -> None:
        self.step = step
        super().__init__(message, service_name=service_name)


class LedgerIOError(MigrationError):
    """
    Raised when the migration ledger cannot be read or parsed.

    The ledger is the authoritative record of past migrations; a malformed
    ledger is never silently reinitialized.

    Attributes:
        ledger_path: Path of the ledger file.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.CRITICAL,
        recoverability=ErrorRecoverability.FATAL,
        error_code="MIGRATION_LEDGER_CORRUPT",
        category="history",
        suggested_action="Restore the ledger file from version control or fix it by hand",
    )

    def __init__(self, message: str, ledger_path: Path) -> None:
        self.ledger_path = ledger_path
        super().__init__(f"{message}: {ledger_path}")


class SnapshotScanError(MigrationError):
    """
    Raised when a single file cannot be read during a snapshot scan.

    The scanner swallows these per file and continues with the rest.

    Attributes:
        path: The file that could not be read.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_SNAPSHOT_SCAN",
        category="history",
        suggested_action="Check file permissions and encodings in the project tree",
    )

    def __init__(self, message: str, path: Path) -> None:
        self.path = path
        super().__init__(f"{message}: {path}")


class ConfigurationError(MigrationError):
    """
    Raised when a target configuration file cannot be read or validated.

    Attributes:
        config_path: The configuration file, if one was given.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_CONFIG_INVALID",
        category="configuration",
        suggested_action="Fix the configuration file and re-run the migration",
    )

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        self.config_path = config_path
        super().__init__(message)


_UNKNOWN_CLASSIFICATION = ErrorClassification(
    severity=ErrorSeverity.ERROR,
    recoverability=ErrorRecoverability.FATAL,
    error_code="UNKNOWN",
    category="unknown",
    suggested_action="Review the traceback in the migration log",
)


def classify_exception(exc: BaseException) -> ErrorClassification:
    """
    Return the classification for any exception.

    Migration errors carry their own classification; anything else is
    treated as a fatal error of unknown category.

    Args:
        exc: The exception to classify.

    Returns:
        The ErrorClassification for the exception.
    """
    if isinstance(exc, MigrationError):
        return exc.classification
    return _UNKNOWN_CLASSIFICATION


__all__ = [
    "ErrorSeverity",
    "ErrorRecoverability",
    "ErrorClassification",
    "MigrationError",
    "PlanningError",
    "InfeasibleMigrationError",
    "UnrecognizedLevelError",
    "StepExecutionError",
    "MigrationCancelledError",
    "RollbackError",
    "LedgerIOError",
    "SnapshotScanError",
    "ConfigurationError",
    "classify_exception",
]
