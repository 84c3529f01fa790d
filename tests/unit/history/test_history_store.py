"""
Unit tests for MigrationHistoryStore.

Tests cover:
- Ledger creation on first load
- On-disk format (camelCase keys, nulls omitted) and round trips
- Malformed ledgers are reported and left untouched
- The start / step / complete recording protocol
- Feasibility and migration paths from the ledger
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from archmigrate.configuration import ArchitectureLevel
from archmigrate.exceptions import LedgerIOError, UnrecognizedLevelError
from archmigrate.history import (
    HISTORY_FILE_NAME,
    ExecutedStep,
    MigrationHistoryStore,
    MigrationStatus,
    get_migration_path,
)
from archmigrate.observability import ATTR_MIGRATION_STATUS, MockTracer
from tests.fixtures import write_file


@pytest.fixture
def store() -> MigrationHistoryStore:
    return MigrationHistoryStore(enable_tracing=False)


class TestLoadHistory:
    """Tests for load_history()."""

    @pytest.mark.asyncio
    async def test_creates_ledger_on_first_load(self, store, minimal_project: Path):
        history = await store.load_history(minimal_project)

        assert (minimal_project / HISTORY_FILE_NAME).is_file()
        assert history.service_name == "Orders"
        assert history.migrations == []
        assert history.current_level == ArchitectureLevel.MINIMAL
        assert history.current_snapshot.aggregates == ["Order"]
        assert history.last_migration_at is not None

    @pytest.mark.asyncio
    async def test_ledger_uses_camel_case_keys(self, store, minimal_project: Path):
        await store.load_history(minimal_project)

        document = json.loads((minimal_project / HISTORY_FILE_NAME).read_text(encoding="utf-8"))

        assert {"serviceName", "createdAt", "currentLevel", "migrations", "currentSnapshot"} <= set(
            document
        )
        assert document["currentLevel"] == "minimal"
        assert "architectureLevel" in document["currentSnapshot"]
        assert "service_name" not in document

    @pytest.mark.asyncio
    async def test_round_trip(self, store, minimal_project: Path):
        created = await store.load_history(minimal_project)
        loaded = await store.load_history(minimal_project)

        assert loaded.model_dump() == created.model_dump()

    @pytest.mark.asyncio
    async def test_malformed_ledger_is_reported_and_kept(self, store, tmp_path: Path):
        ledger = write_file(tmp_path / HISTORY_FILE_NAME, "{not json")

        with pytest.raises(LedgerIOError) as exc_info:
            await store.load_history(tmp_path)

        assert exc_info.value.ledger_path == ledger
        assert ledger.read_text(encoding="utf-8") == "{not json"

    @pytest.mark.asyncio
    async def test_ledger_with_wrong_shape_is_reported(self, store, tmp_path: Path):
        write_file(tmp_path / HISTORY_FILE_NAME, json.dumps({"migrations": "none"}))

        with pytest.raises(LedgerIOError, match="Malformed migration ledger"):
            await store.load_history(tmp_path)


class TestRecordingProtocol:
    """Tests for record_migration_start / _step / _complete."""

    @pytest.mark.asyncio
    async def test_successful_migration_promotes_level(self, store, minimal_project: Path):
        await store.record_migration_start(minimal_project, "minimal", "standard")
        await store.record_migration_step(
            minimal_project,
            ExecutedStep(
                type="create_project",
                description="Create Domain project at src/{ServiceName}.Domain",
                duration=timedelta(milliseconds=12),
                files_created=["src/Orders.Domain/Orders.Domain.csproj"],
            ),
        )
        await store.record_migration_complete(minimal_project, success=True)

        history = await store.load_history(minimal_project)
        record = history.latest
        assert record is not None
        assert record.status == MigrationStatus.COMPLETED
        assert record.from_level == ArchitectureLevel.MINIMAL
        assert record.to_level == ArchitectureLevel.STANDARD
        assert [step.type for step in record.executed_steps] == ["create_project"]
        assert record.executed_steps[0].files_created == ["src/Orders.Domain/Orders.Domain.csproj"]
        assert record.duration is not None
        assert record.after_snapshot is not None
        assert history.current_level == ArchitectureLevel.STANDARD
        assert history.current_snapshot == record.after_snapshot

    @pytest.mark.asyncio
    async def test_failed_migration_does_not_promote(self, store, minimal_project: Path):
        await store.record_migration_start(minimal_project, "minimal", "standard")
        await store.record_migration_complete(
            minimal_project, success=False, error_message="Step 5 failed: disk full"
        )

        history = await store.load_history(minimal_project)
        record = history.latest
        assert record.status == MigrationStatus.FAILED
        assert record.error_message == "Step 5 failed: disk full"
        assert history.current_level == ArchitectureLevel.MINIMAL

    @pytest.mark.asyncio
    async def test_records_are_appended(self, store, minimal_project: Path):
        await store.record_migration_start(minimal_project, "minimal", "standard")
        await store.record_migration_complete(minimal_project, success=False, error_message="x")
        await store.record_migration_start(minimal_project, "minimal", "standard")

        history = await store.load_history(minimal_project)
        assert [record.status for record in history.migrations] == [
            MigrationStatus.FAILED,
            MigrationStatus.IN_PROGRESS,
        ]
        assert history.migrations[0].id != history.migrations[1].id

    @pytest.mark.asyncio
    async def test_start_stores_configuration_text(self, store, minimal_project: Path, tmp_path):
        config = write_file(tmp_path / "target.json", '{"architecture": {"level": "standard"}}')

        await store.record_migration_start(minimal_project, "minimal", "standard", config)

        history = await store.load_history(minimal_project)
        assert history.latest.configuration_used == '{"architecture": {"level": "standard"}}'
        assert history.latest.before_snapshot.aggregates == ["Order"]

    @pytest.mark.asyncio
    async def test_start_with_missing_configuration_raises(self, store, minimal_project, tmp_path):
        with pytest.raises(LedgerIOError):
            await store.record_migration_start(
                minimal_project, "minimal", "standard", tmp_path / "missing.json"
            )

        history = await store.load_history(minimal_project)
        assert history.migrations == []

    @pytest.mark.asyncio
    async def test_start_rejects_unknown_level(self, store, minimal_project: Path):
        with pytest.raises(UnrecognizedLevelError):
            await store.record_migration_start(minimal_project, "minimal", "galactic")

    @pytest.mark.asyncio
    async def test_step_without_record_is_ignored(self, store, minimal_project: Path):
        await store.record_migration_step(minimal_project, ExecutedStep(type="move_code"))
        await store.record_migration_complete(minimal_project, success=True)

        history = await store.load_history(minimal_project)
        assert history.migrations == []
        assert history.current_level == ArchitectureLevel.MINIMAL

    @pytest.mark.asyncio
    async def test_in_progress_record_omits_unset_fields(self, store, minimal_project: Path):
        await store.record_migration_start(minimal_project, "minimal", "standard")

        document = json.loads((minimal_project / HISTORY_FILE_NAME).read_text(encoding="utf-8"))
        record = document["migrations"][0]
        assert record["status"] == "in_progress"
        assert record["fromLevel"] == "minimal"
        assert "afterSnapshot" not in record
        assert "errorMessage" not in record


class TestMigrationPath:
    """Tests for feasibility and intermediate levels."""

    def test_path_lists_levels_after_current(self):
        assert get_migration_path("minimal", "enterprise") == [
            ArchitectureLevel.STANDARD,
            ArchitectureLevel.ENTERPRISE,
        ]
        assert get_migration_path("standard", "standard") == []
        assert get_migration_path("enterprise", "minimal") == []

    @pytest.mark.asyncio
    async def test_store_delegates_path(self, store):
        assert await store.get_migration_path("minimal", "standard") == [ArchitectureLevel.STANDARD]

    @pytest.mark.asyncio
    async def test_can_migrate_to_uses_ledger_level(self, store, enterprise_project: Path):
        assert await store.can_migrate_to(enterprise_project, "enterprise")
        assert not await store.can_migrate_to(enterprise_project, "standard")

    @pytest.mark.asyncio
    async def test_can_migrate_to_follows_completed_records(self, store, minimal_project: Path):
        assert await store.can_migrate_to(minimal_project, ArchitectureLevel.MINIMAL)

        await store.record_migration_start(minimal_project, "minimal", "enterprise")
        await store.record_migration_complete(minimal_project, success=True)

        assert not await store.can_migrate_to(minimal_project, ArchitectureLevel.STANDARD)


class TestTracing:
    @pytest.mark.asyncio
    async def test_complete_span_carries_status(self, minimal_project: Path):
        tracer = MockTracer()
        store = MigrationHistoryStore(tracer=tracer)

        await store.record_migration_start(minimal_project, "minimal", "standard")
        tracer.clear()
        await store.record_migration_complete(minimal_project, success=False, error_message="x")

        assert tracer.span_names[0] == "archmigrate.history.record_complete"
        _, attributes = tracer.spans[0]
        assert attributes[ATTR_MIGRATION_STATUS] == "failed"
        assert "archmigrate.history.load" in tracer.span_names
