"""
Unit tests for MigrationExecutor.

Tests cover:
- A full minimal -> standard split on a real project tree
- All-or-nothing execution and strict reverse-order rollback
- Best-effort, continue-on-error rollback
- Cancellation between steps
- The per-step callback
- Each step kind's forward and inverse operation
- Tracing spans
"""

from __future__ import annotations

import asyncio
import json
import shutil
from collections.abc import Sequence
from pathlib import Path, PurePosixPath
from unittest.mock import AsyncMock

import pytest

from archmigrate.configuration import ArchitectureRules, configuration_for_level
from archmigrate.migration import (
    CodeMover,
    CreateProjectStep,
    DeleteOldProjectStep,
    FileSystemCodeMover,
    GenerateCodeStep,
    MigrationExecutor,
    MigrationPlan,
    MigrationPlanner,
    MigrationStep,
    MoveCodeStep,
    ProjectStructure,
    StepOutcome,
    TemplateGenerator,
    UpdateConfigurationStep,
    UpdateNamespacesStep,
    UpdateProjectReferencesStep,
    UpdateSolutionFileStep,
    rewriters,
)
from archmigrate.observability import MockTracer
from tests.fixtures import ORDERS_CONTROLLER, write_file

CREATE_DOMAIN = CreateProjectStep(project_type="Domain", path="src/{ServiceName}.Domain")
CREATE_APPLICATION = CreateProjectStep(
    project_type="Application", path="src/{ServiceName}.Application"
)
CREATE_API = CreateProjectStep(project_type="Api", path="src/{ServiceName}.Api")
# Unknown project types fail before touching the tree
FAILING_STEP = CreateProjectStep(project_type="Bogus", path="src/{ServiceName}.Bogus")


def make_plan(root: Path, *steps: MigrationStep) -> MigrationPlan:
    return MigrationPlan(
        source_structure=ProjectStructure(service_name="Orders"),
        target_structure=ArchitectureRules.make_decisions(configuration_for_level("standard")),
        project_path=root,
        steps=list(steps),
    )


class FlakyCodeMover(FileSystemCodeMover):
    """Filesystem mover whose n-th move call fails."""

    def __init__(self, fail_on_call: int) -> None:
        self.fail_on_call = fail_on_call
        self.calls = 0

    async def move(self, pattern: str, source_dir: Path, target_dir: Path) -> Sequence[Path]:
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise OSError("disk full")
        return await super().move(pattern, source_dir, target_dir)


class HalfwayCodeMover(FileSystemCodeMover):
    """Filesystem mover that moves the first matching file, then fails."""

    async def move(self, pattern: str, source_dir: Path, target_dir: Path) -> Sequence[Path]:
        first = sorted(Path(source_dir).glob(PurePosixPath(pattern).name))[0]
        destination = Path(target_dir) / first.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(first), str(destination))
        raise OSError("disk full")


@pytest.fixture
def executor(code_mover, template_generator) -> MigrationExecutor:
    return MigrationExecutor(code_mover, template_generator, enable_tracing=False)


@pytest.fixture
def split_plan(minimal_project, standard_config) -> MigrationPlan:
    planner = MigrationPlanner(enable_tracing=False)
    return planner.plan(
        ProjectStructure(service_name="Orders"), standard_config, project_path=minimal_project
    )


class TestSplitSingleProject:
    """Executing the minimal -> standard plan on a real tree."""

    @pytest.mark.asyncio
    async def test_succeeds_and_completes_every_step(self, executor, split_plan):
        result = await executor.execute(split_plan)

        assert result.success is True
        assert result.error is None
        assert result.completed_steps == split_plan.steps
        assert result.rolled_back_steps == []

    @pytest.mark.asyncio
    async def test_moves_code_into_layer_projects(self, executor, split_plan, minimal_project):
        await executor.execute(split_plan)
        src = minimal_project / "src"

        assert (src / "Orders.Domain" / "Orders.Domain.csproj").is_file()
        assert (src / "Orders.Domain" / "Order.cs").is_file()
        assert (src / "Orders.Application" / "CreateOrderCommand.cs").is_file()
        assert (src / "Orders.Application" / "OrderRepository.cs").is_file()
        assert (src / "Orders.Api" / "Controllers" / "OrdersController.cs").is_file()
        assert (src / "Orders.Api" / "Program.cs").is_file()
        assert not (src / "Orders").exists()

    @pytest.mark.asyncio
    async def test_rewrites_namespaces_and_usings(self, executor, split_plan, minimal_project):
        await executor.execute(split_plan)
        api = minimal_project / "src" / "Orders.Api"

        controller = (api / "Controllers" / "OrdersController.cs").read_text(encoding="utf-8")
        program = (api / "Program.cs").read_text(encoding="utf-8")
        assert "namespace Orders.Api.Controllers;" in controller
        assert "using Orders.Api.Controllers;" in program

    @pytest.mark.asyncio
    async def test_writes_solution_without_deleted_project(
        self, executor, split_plan, minimal_project
    ):
        await executor.execute(split_plan)
        solution = (minimal_project / "Orders.sln").read_text(encoding="utf-8")

        assert '"Orders.Domain", "src\\Orders.Domain\\Orders.Domain.csproj"' in solution
        assert '"Orders.Application", "src\\Orders.Application\\Orders.Application.csproj"' in solution
        assert '"Orders.Api", "src\\Orders.Api\\Orders.Api.csproj"' in solution
        assert "src\\Orders\\Orders.csproj" not in solution

    @pytest.mark.asyncio
    async def test_reports_generated_and_modified_files(self, executor, split_plan):
        result = await executor.execute(split_plan)

        assert "src/Orders.Domain/Orders.Domain.csproj" in result.generated_files
        assert "src/Orders.Domain/Order.cs" in result.generated_files
        assert "Orders.sln" in result.generated_files
        assert "src/Orders.Api/Controllers/OrdersController.cs" in result.modified_files
        assert "src/Orders.Api/Program.cs" in result.modified_files

    @pytest.mark.asyncio
    async def test_callback_sees_each_outcome(self, executor, split_plan):
        outcomes: list[StepOutcome] = []

        async def on_step_completed(outcome: StepOutcome) -> None:
            outcomes.append(outcome)

        await executor.execute(split_plan, on_step_completed=on_step_completed)

        assert [outcome.step for outcome in outcomes] == split_plan.steps
        assert [outcome.index for outcome in outcomes] == list(range(len(split_plan.steps)))
        assert outcomes[0].files_created == ["src/Orders.Domain/Orders.Domain.csproj"]
        assert outcomes[3].files_created == ["src/Orders.Domain/Order.cs"]
        assert outcomes[3].files_deleted == ["src/Orders/Domain/Order.cs"]
        assert outcomes[-1].files_deleted == ["src/Orders/Orders.csproj"]


class TestAllOrNothing:
    """A failing step stops execution and undoes completed steps in reverse."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fail_at", [0, 1, 2, 3])
    async def test_completed_steps_are_prefix_and_projects_removed(
        self, executor, minimal_project, fail_at
    ):
        creations = [CREATE_DOMAIN, CREATE_APPLICATION, CREATE_API]
        plan = make_plan(minimal_project, *creations[:fail_at], FAILING_STEP, *creations[fail_at:])

        result = await executor.execute(plan)

        assert result.success is False
        assert result.completed_steps == creations[:fail_at]
        assert result.failed_step == FAILING_STEP
        assert result.error is not None
        assert f"Step {fail_at + 1}" in result.error
        for layer in ("Domain", "Application", "Api"):
            assert not (minimal_project / "src" / f"Orders.{layer}").exists()

    @pytest.mark.asyncio
    async def test_rollback_runs_in_reverse_order(
        self, template_generator, split_plan, minimal_project
    ):
        executor = MigrationExecutor(
            FlakyCodeMover(fail_on_call=2), template_generator, enable_tracing=False
        )

        result = await executor.execute(split_plan)

        assert result.success is False
        assert result.completed_steps == split_plan.steps[:4]
        assert result.failed_step == split_plan.steps[4]
        assert result.error.startswith("Step 5 (Move Application/*.cs")
        assert "disk full" in result.error
        assert result.rolled_back_steps == list(reversed(split_plan.steps[:4]))
        assert result.rollback_clean

    @pytest.mark.asyncio
    async def test_rollback_moves_code_back(self, template_generator, split_plan, minimal_project):
        executor = MigrationExecutor(
            FlakyCodeMover(fail_on_call=2), template_generator, enable_tracing=False
        )

        await executor.execute(split_plan)

        src = minimal_project / "src"
        assert (src / "Orders" / "Domain" / "Order.cs").is_file()
        assert (src / "Orders" / "Application" / "CreateOrderCommand.cs").is_file()
        assert not (src / "Orders.Domain").exists()
        assert not (src / "Orders.Application").exists()
        assert not (src / "Orders.Api").exists()

    @pytest.mark.asyncio
    async def test_delete_old_project_is_not_undone(self, executor, minimal_project):
        delete = DeleteOldProjectStep(path="src/{ServiceName}")
        plan = make_plan(minimal_project, CREATE_DOMAIN, delete, FAILING_STEP)

        result = await executor.execute(plan)

        assert result.completed_steps == [CREATE_DOMAIN, delete]
        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert result.rollback_errors == []
        assert not (minimal_project / "src" / "Orders").exists()
        assert not (minimal_project / "src" / "Orders.Domain").exists()

    @pytest.mark.asyncio
    async def test_partially_moved_files_are_returned(self, template_generator, minimal_project):
        move = MoveCodeStep(
            pattern="Application/*.cs",
            source_path="src/{ServiceName}/Application/",
            target_path="src/{ServiceName}.Application/",
        )
        executor = MigrationExecutor(HalfwayCodeMover(), template_generator, enable_tracing=False)

        result = await executor.execute(make_plan(minimal_project, CREATE_APPLICATION, move))

        application = minimal_project / "src" / "Orders" / "Application"
        assert result.success is False
        assert "disk full" in result.error
        assert result.rolled_back_steps == [CREATE_APPLICATION]
        assert result.rollback_errors == []
        assert sorted(path.name for path in application.iterdir()) == [
            "CreateOrderCommand.cs",
            "GetOrderQuery.cs",
            "OrderRepository.cs",
        ]
        assert not (minimal_project / "src" / "Orders.Application").exists()

    @pytest.mark.asyncio
    async def test_existing_project_directory_is_kept(self, executor, minimal_project):
        domain = minimal_project / "src" / "Orders.Domain"
        notes = write_file(domain / "Notes.md", "keep me")

        result = await executor.execute(make_plan(minimal_project, CREATE_DOMAIN, FAILING_STEP))

        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert result.rollback_errors == []
        assert notes.read_text(encoding="utf-8") == "keep me"
        assert not (domain / "Orders.Domain.csproj").exists()

    @pytest.mark.asyncio
    async def test_existing_manifest_is_restored(self, executor, minimal_project):
        manifest = write_file(
            minimal_project / "src" / "Orders.Domain" / "Orders.Domain.csproj", "<Project />\n"
        )

        result = await executor.execute(make_plan(minimal_project, CREATE_DOMAIN, FAILING_STEP))

        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert manifest.read_text(encoding="utf-8") == "<Project />\n"

    @pytest.mark.asyncio
    async def test_created_directory_with_foreign_files_is_kept(self, executor, minimal_project):
        domain = minimal_project / "src" / "Orders.Domain"

        async def add_scratch_file(outcome: StepOutcome) -> None:
            write_file(domain / "Scratch.cs", "// work in progress\n")

        result = await executor.execute(
            make_plan(minimal_project, CREATE_DOMAIN, FAILING_STEP),
            on_step_completed=add_scratch_file,
        )

        assert result.rolled_back_steps == []
        assert len(result.rollback_errors) == 1
        assert "src/Orders.Domain still holds files" in result.rollback_errors[0]
        assert (domain / "Scratch.cs").is_file()
        assert not (domain / "Orders.Domain.csproj").exists()

    @pytest.mark.asyncio
    async def test_empty_plan_succeeds(self, executor, minimal_project):
        result = await executor.execute(make_plan(minimal_project))
        assert result.success is True
        assert result.completed_steps == []


class TestBestEffortRollback:
    """A failing inverse is recorded and rollback continues."""

    @pytest.fixture
    def mover(self) -> AsyncMock:
        mover = AsyncMock(spec=CodeMover)
        mover.move.return_value = []
        return mover

    @pytest.mark.asyncio
    async def test_rollback_error_does_not_stop_rollback(
        self, mover, template_generator, minimal_project
    ):
        mover.can_move.side_effect = OSError("permission denied")
        move = MoveCodeStep(pattern="*.cs", source_path="src/{ServiceName}/", target_path="out/")
        plan = make_plan(minimal_project, CREATE_DOMAIN, move, FAILING_STEP)
        executor = MigrationExecutor(mover, template_generator, enable_tracing=False)

        result = await executor.execute(plan)

        assert result.success is False
        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert len(result.rollback_errors) == 1
        assert "permission denied" in result.rollback_errors[0]
        assert not result.rollback_clean
        assert not (minimal_project / "src" / "Orders.Domain").exists()

    @pytest.mark.asyncio
    async def test_move_that_cannot_be_reversed_is_skipped(
        self, mover, template_generator, minimal_project
    ):
        mover.can_move.return_value = False
        move = MoveCodeStep(pattern="*.cs", source_path="src/{ServiceName}/", target_path="out/")
        plan = make_plan(minimal_project, move, FAILING_STEP)
        executor = MigrationExecutor(mover, template_generator, enable_tracing=False)

        result = await executor.execute(plan)

        assert result.rolled_back_steps == []
        assert result.rollback_errors == []
        mover.move.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_move_back_uses_reversed_directories(
        self, mover, template_generator, minimal_project
    ):
        mover.can_move.return_value = True
        move = MoveCodeStep(pattern="*.cs", source_path="src/{ServiceName}/", target_path="out/")
        plan = make_plan(minimal_project, move, FAILING_STEP)
        executor = MigrationExecutor(mover, template_generator, enable_tracing=False)

        await executor.execute(plan)

        source = minimal_project / "src" / "Orders"
        target = minimal_project / "out"
        assert mover.move.await_args_list[-1].args == ("*.cs", target, source)


class TestCancellation:
    """Cancellation is observed between steps and rolls back like a failure."""

    @pytest.mark.asyncio
    async def test_cancelled_before_first_step(self, executor, minimal_project):
        cancel_event = asyncio.Event()
        cancel_event.set()
        plan = make_plan(minimal_project, CREATE_DOMAIN, CREATE_API)

        result = await executor.execute(plan, cancel_event=cancel_event)

        assert result.success is False
        assert result.completed_steps == []
        assert result.failed_step == CREATE_DOMAIN
        assert result.error == (
            "Migration cancelled before step 1: Create Domain project at src/{ServiceName}.Domain"
        )
        assert not (minimal_project / "src" / "Orders.Domain").exists()

    @pytest.mark.asyncio
    async def test_cancelled_between_steps(self, executor, minimal_project):
        cancel_event = asyncio.Event()

        async def cancel_after_first(outcome: StepOutcome) -> None:
            cancel_event.set()

        plan = make_plan(minimal_project, CREATE_DOMAIN, CREATE_API)
        result = await executor.execute(
            plan, cancel_event=cancel_event, on_step_completed=cancel_after_first
        )

        assert result.completed_steps == [CREATE_DOMAIN]
        assert result.failed_step == CREATE_API
        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert not (minimal_project / "src" / "Orders.Domain").exists()
        assert not (minimal_project / "src" / "Orders.Api").exists()


class TestStepCallback:
    @pytest.mark.asyncio
    async def test_failing_callback_fails_and_rolls_back(self, executor, minimal_project):
        async def broken(outcome: StepOutcome) -> None:
            raise RuntimeError("ledger unavailable")

        plan = make_plan(minimal_project, CREATE_DOMAIN, CREATE_API)
        result = await executor.execute(plan, on_step_completed=broken)

        assert result.success is False
        assert result.completed_steps == [CREATE_DOMAIN]
        assert result.rolled_back_steps == [CREATE_DOMAIN]
        assert "Step callback failed" in result.error
        assert "ledger unavailable" in result.error
        assert not (minimal_project / "src" / "Orders.Domain").exists()


class TestStepKinds:
    """Forward and inverse operations of individual step kinds."""

    @pytest.mark.asyncio
    async def test_update_references_adds_infrastructure_to_api(
        self, executor, enterprise_project
    ):
        result = await executor.execute(make_plan(enterprise_project, UpdateProjectReferencesStep()))

        api = enterprise_project / "src" / "Orders.Api" / "Orders.Api.csproj"
        assert result.success
        assert result.modified_files == ["src/Orders.Api/Orders.Api.csproj"]
        assert "..\\Orders.Infrastructure\\Orders.Infrastructure.csproj" in api.read_text(
            encoding="utf-8"
        )

    @pytest.mark.asyncio
    async def test_update_references_is_restored_on_rollback(self, executor, enterprise_project):
        api = enterprise_project / "src" / "Orders.Api" / "Orders.Api.csproj"
        original = api.read_text(encoding="utf-8")

        result = await executor.execute(
            make_plan(enterprise_project, UpdateProjectReferencesStep(), FAILING_STEP)
        )

        assert result.rolled_back_steps == [UpdateProjectReferencesStep()]
        assert api.read_text(encoding="utf-8") == original

    @pytest.mark.asyncio
    async def test_update_solution_lists_layer_projects(self, executor, standard_project):
        result = await executor.execute(make_plan(standard_project, UpdateSolutionFileStep()))

        solution = (standard_project / "Orders.sln").read_text(encoding="utf-8")
        assert result.generated_files == ["Orders.sln"]
        assert solution.count("EndProject") == 3

    @pytest.mark.asyncio
    async def test_update_solution_keeps_listed_projects(self, executor, standard_project):
        tests_path = "tests\\Orders.Tests\\Orders.Tests.csproj"
        guid = "0B6F3C2E-1111-4A2B-9C3D-123456789ABC"
        write_file(
            standard_project / "tests" / "Orders.Tests" / "Orders.Tests.csproj",
            '<Project Sdk="Microsoft.NET.Sdk">\n</Project>\n',
        )
        write_file(
            standard_project / "Orders.sln",
            rewriters.render_solution(
                [
                    ("Orders.Tests", tests_path),
                    ("Orders.Legacy", "legacy\\Orders.Legacy\\Orders.Legacy.csproj"),
                ],
                {tests_path.lower(): guid},
            ),
        )

        result = await executor.execute(make_plan(standard_project, UpdateSolutionFileStep()))

        solution = (standard_project / "Orders.sln").read_text(encoding="utf-8")
        assert result.modified_files == ["Orders.sln"]
        assert f'"Orders.Tests", "{tests_path}", "{{{guid}}}"' in solution
        assert "Orders.Legacy" not in solution
        assert solution.count("EndProject") == 4

    @pytest.mark.asyncio
    async def test_update_solution_drops_project_pending_deletion(self, executor, minimal_project):
        write_file(
            minimal_project / "Orders.sln",
            rewriters.render_solution([("Orders", "src\\Orders\\Orders.csproj")]),
        )
        plan = make_plan(
            minimal_project,
            CREATE_DOMAIN,
            UpdateSolutionFileStep(),
            DeleteOldProjectStep(path="src/{ServiceName}"),
        )

        await executor.execute(plan)

        solution = (minimal_project / "Orders.sln").read_text(encoding="utf-8")
        assert "src\\Orders\\Orders.csproj" not in solution
        assert '"Orders.Domain", "src\\Orders.Domain\\Orders.Domain.csproj"' in solution

    @pytest.mark.asyncio
    async def test_update_namespaces_skips_undecodable_files(self, executor, standard_project):
        api = standard_project / "src" / "Orders.Api"
        controller = write_file(api / "Controllers" / "OrdersController.cs", ORDERS_CONTROLLER)
        legacy_layer_file = api / "Legacy.cs"
        legacy_test_file = standard_project / "tests" / "Orders.Tests" / "ControllerTests.cs"
        legacy_test_file.parent.mkdir(parents=True)
        legacy_layer_file.write_bytes("namespace Orders.Legacy;\n// Café\n".encode("latin-1"))
        legacy_test_file.write_bytes("using Orders.Controllers;\n// Café\n".encode("latin-1"))
        layer_bytes = legacy_layer_file.read_bytes()
        test_bytes = legacy_test_file.read_bytes()

        result = await executor.execute(make_plan(standard_project, UpdateNamespacesStep()))

        assert result.success is True
        assert "namespace Orders.Api.Controllers;" in controller.read_text(encoding="utf-8")
        assert legacy_layer_file.read_bytes() == layer_bytes
        assert legacy_test_file.read_bytes() == test_bytes
        assert result.modified_files == ["src/Orders.Api/Controllers/OrdersController.cs"]

    @pytest.mark.asyncio
    async def test_created_solution_is_removed_on_rollback(self, executor, standard_project):
        await executor.execute(make_plan(standard_project, UpdateSolutionFileStep(), FAILING_STEP))
        assert not (standard_project / "Orders.sln").exists()

    @pytest.mark.asyncio
    async def test_generate_code_and_rollback(self, executor, standard_project):
        step = GenerateCodeStep(
            code_type="ReadModelRepository",
            target_path="src/{ServiceName}.Infrastructure/Persistence/Read/",
        )
        generated = (
            standard_project
            / "src"
            / "Orders.Infrastructure"
            / "Persistence"
            / "Read"
            / "ReadModelRepository.cs"
        )

        outcomes: list[StepOutcome] = []

        async def capture(outcome: StepOutcome) -> None:
            outcomes.append(outcome)
            assert generated.is_file()

        result = await executor.execute(
            make_plan(standard_project, step, FAILING_STEP), on_step_completed=capture
        )

        assert outcomes[0].files_created == [
            "src/Orders.Infrastructure/Persistence/Read/ReadModelRepository.cs"
        ]
        assert result.rolled_back_steps == [step]
        assert not generated.exists()

    @pytest.mark.asyncio
    async def test_generate_code_passes_service_name(self, code_mover, standard_project):
        generator = AsyncMock(spec=TemplateGenerator)
        generator.generate.return_value = []
        executor = MigrationExecutor(code_mover, generator, enable_tracing=False)
        step = GenerateCodeStep(code_type="ReadModelRepository", target_path="src/{ServiceName}.Api/")

        result = await executor.execute(make_plan(standard_project, step, FAILING_STEP))

        generator.generate.assert_awaited_once_with(
            "ReadModelRepository",
            standard_project / "src" / "Orders.Api",
            {"ServiceName": "Orders"},
        )
        # Nothing reported, nothing to remove
        assert result.rolled_back_steps == []

    @pytest.mark.asyncio
    async def test_update_configuration_merges_settings(self, executor, standard_project):
        settings = standard_project / "src" / "Orders.Api" / "appsettings.json"
        settings.write_text(
            json.dumps({"Logging": {"LogLevel": {"Default": "Information"}}}), encoding="utf-8"
        )
        step = UpdateConfigurationStep(
            config_file="src/{ServiceName}.Api/appsettings.json",
            changes=(("Logging.LogLevel.Default", "Warning"), ("Features.Cache", True)),
        )

        result = await executor.execute(make_plan(standard_project, step))

        assert result.modified_files == ["src/Orders.Api/appsettings.json"]
        assert json.loads(settings.read_text(encoding="utf-8")) == {
            "Logging": {"LogLevel": {"Default": "Warning"}},
            "Features": {"Cache": True},
        }

    @pytest.mark.asyncio
    async def test_update_configuration_is_restored_on_rollback(self, executor, standard_project):
        settings = standard_project / "src" / "Orders.Api" / "appsettings.json"
        original = '{"Logging": {"LogLevel": {"Default": "Information"}}}'
        settings.write_text(original, encoding="utf-8")
        step = UpdateConfigurationStep(
            config_file="src/{ServiceName}.Api/appsettings.json",
            changes=(("Logging.LogLevel.Default", "Warning"),),
        )

        await executor.execute(make_plan(standard_project, step, FAILING_STEP))

        assert settings.read_text(encoding="utf-8") == original

    @pytest.mark.asyncio
    async def test_update_configuration_creates_missing_file(self, executor, standard_project):
        step = UpdateConfigurationStep(
            config_file="src/{ServiceName}.Api/appsettings.Production.json",
            changes=(("ConnectionStrings.Default", "Host=db"),),
        )

        result = await executor.execute(make_plan(standard_project, step))

        assert result.generated_files == ["src/Orders.Api/appsettings.Production.json"]

    @pytest.mark.asyncio
    async def test_update_configuration_rejects_non_object(self, executor, standard_project):
        settings = standard_project / "src" / "Orders.Api" / "appsettings.json"
        settings.write_text("[1, 2]", encoding="utf-8")
        step = UpdateConfigurationStep(
            config_file="src/{ServiceName}.Api/appsettings.json",
            changes=(("Logging", "off"),),
        )

        result = await executor.execute(make_plan(standard_project, step))

        assert result.success is False
        assert "does not hold a JSON object" in result.error
        assert settings.read_text(encoding="utf-8") == "[1, 2]"


class TestTracing:
    @pytest.mark.asyncio
    async def test_spans_for_successful_run(
        self, code_mover, template_generator, minimal_project
    ):
        tracer = MockTracer()
        executor = MigrationExecutor(code_mover, template_generator, tracer=tracer)

        await executor.execute(make_plan(minimal_project, CREATE_DOMAIN, CREATE_API))

        assert tracer.span_names == [
            "archmigrate.executor.execute",
            "archmigrate.executor.step",
            "archmigrate.executor.step",
        ]

    @pytest.mark.asyncio
    async def test_rollback_span_on_failure(self, code_mover, template_generator, minimal_project):
        tracer = MockTracer()
        executor = MigrationExecutor(code_mover, template_generator, tracer=tracer)

        await executor.execute(make_plan(minimal_project, CREATE_DOMAIN, FAILING_STEP))

        assert tracer.span_names[-1] == "archmigrate.executor.rollback"
        _, attributes = tracer.spans[1]
        assert attributes["archmigrate.step.kind"] == "create_project"
        assert attributes["archmigrate.step.index"] == 0
