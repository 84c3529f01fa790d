"""
Migration history: the per-project ledger and structural snapshots.

Usage:
    >>> from archmigrate.history import MigrationHistoryStore
    >>>
    >>> store = MigrationHistoryStore()
    >>> history = await store.load_history(Path("./OrderService"))
    >>> [record.status for record in history.migrations]
"""

from archmigrate.history.models import (
    ExecutedStep,
    MigrationHistory,
    MigrationRecord,
    MigrationStatus,
    ProjectInfo,
    ProjectSnapshot,
    StepStatus,
)
from archmigrate.history.snapshot import (
    SnapshotScanner,
    determine_project_type,
    extract_class_name,
    extract_package_references,
    extract_project_references,
    level_from_project_count,
    resolve_git_commit,
)
from archmigrate.history.store import (
    HISTORY_FILE_NAME,
    MigrationHistoryStore,
    get_migration_path,
)

__all__ = [
    # Models
    "MigrationHistory",
    "MigrationRecord",
    "MigrationStatus",
    "ExecutedStep",
    "StepStatus",
    "ProjectSnapshot",
    "ProjectInfo",
    # Snapshots
    "SnapshotScanner",
    "level_from_project_count",
    "determine_project_type",
    "extract_project_references",
    "extract_package_references",
    "extract_class_name",
    "resolve_git_commit",
    # Store
    "HISTORY_FILE_NAME",
    "MigrationHistoryStore",
    "get_migration_path",
]
