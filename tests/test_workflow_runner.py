"""End-to-end runs of the generation workflow with fake collaborators."""

import asyncio
import dataclasses
from unittest.mock import patch

import pytest

from uiforge.design_source import StaticDesignSource
from uiforge.diagnostics.runner import ToolRun
from uiforge.workflow.phases import PhaseContext
from uiforge.workflow.runner import WorkflowRunner, run_workflow

from conftest import FakeSynthesizer, FakeToolRunner

BUTTON_TYPE_ERROR = "ui/elements/Button/Button.tsx(3,5): error TS2322: Type 'string' is not assignable.\n"

HAPPY_PATH = [
    "analyze",
    "setup",
    "generate",
    "generate_stories",
    "validate",
    "typescript_fix",
    "quality_review",
    "final_check",
    "decide_next",
    "finalize",
    "end",
]


@pytest.fixture
def run(forge_config, no_sleep):
    """Run the workflow; returns (result, phases started in order)."""

    def _run(collaborators, config=None):
        config = config or forge_config
        started: list[str] = []
        runner = WorkflowRunner(
            config,
            collaborators,
            on_phase_start=lambda name, index, total: started.append(name),
            ctx=PhaseContext.create(config, collaborators, sleep=no_sleep),
        )
        return asyncio.run(runner.run()), started

    return _run


class TestHappyPath:
    def test_clean_generation_succeeds(self, run, make_collaborators, output_dir):
        result, started = run(make_collaborators())

        assert result.status == "COMPLETED"
        assert result.success
        assert started == HAPPY_PATH
        assert result.final_phase == "decide_next"
        assert result.unresolved == []
        assert result.errors == []
        assert result.summary.total_components == 3
        assert result.summary.validated == 3
        assert result.summary.stories_generated == 3
        assert (output_dir / "icons" / "Star" / "Star.tsx").exists()

    def test_progress_callback_failure_does_not_stop_run(self, forge_config, make_collaborators, no_sleep):
        def broken(*args):
            raise TypeError("progress widget gone")

        collaborators = make_collaborators()
        runner = WorkflowRunner(
            forge_config,
            collaborators,
            on_phase_start=broken,
            ctx=PhaseContext.create(forge_config, collaborators, sleep=no_sleep),
        )

        assert asyncio.run(runner.run()).success

    def test_batch_progress_reaches_the_caller(self, forge_config, make_collaborators, no_sleep):
        progress = []
        collaborators = make_collaborators()
        runner = WorkflowRunner(
            forge_config,
            collaborators,
            on_batch_progress=progress.append,
            ctx=PhaseContext.create(forge_config, collaborators, sleep=no_sleep),
        )

        assert asyncio.run(runner.run()).success
        assert sum(p.processed for p in progress if p.batch_index == p.batch_count) == 3
        assert all(p.percent == 100.0 for p in progress if p.batch_index == p.batch_count)


class TestHardFailures:
    def test_analysis_failure_goes_straight_to_finalize(self, run, make_collaborators):
        synthesizer = FakeSynthesizer()
        collaborators = make_collaborators(design_source=StaticDesignSource(None), synthesizer=synthesizer)

        result, started = run(collaborators)

        assert started == ["analyze", "finalize", "end"]
        assert result.status == "FAILED"
        assert result.final_phase == "analyze"
        assert synthesizer.generated == []
        assert [e.phase for e in result.errors] == ["analyze"]

    def test_validation_infra_failure_goes_to_finalize(self, run, make_collaborators):
        collaborators = make_collaborators(tool_runner=FakeToolRunner(type_runs=[ToolRun(1)]))

        result, started = run(collaborators)

        assert started[-3:] == ["validate", "finalize", "end"]
        assert "typescript_fix" not in started
        assert not result.success
        assert result.final_phase == "validate"

    def test_generation_error_is_not_success(self, run, make_collaborators):
        result, started = run(make_collaborators(synthesizer=FakeSynthesizer(fail={"SearchBar"})))

        assert started == HAPPY_PATH
        assert not result.success
        assert result.summary.total_components == 2

    def test_unexpected_exception_becomes_failed_result(self, run, make_collaborators):
        with patch("uiforge.workflow.runner.build_workflow", side_effect=RuntimeError("boom")):
            result, started = run(make_collaborators())

        assert result.status == "FAILED"
        assert result.error == "boom"
        assert result.final_phase == "init"
        assert started == []


class TestRepairLoop:
    def test_repair_converges(self, run, make_collaborators):
        synthesizer = FakeSynthesizer(fixed_code="export const Button = () => <button />;\n")
        runner = FakeToolRunner(type_runs=[ToolRun(2, BUTTON_TYPE_ERROR), ToolRun(0)])

        result, started = run(make_collaborators(synthesizer=synthesizer, tool_runner=runner))

        assert result.success
        assert started == HAPPY_PATH
        assert [name for name, _ in synthesizer.fixes] == ["Button"]
        assert result.summary.iterations == 1

    def test_exhausted_fix_attempts_end_the_loop(self, run, make_collaborators):
        runner = FakeToolRunner(type_runs=[ToolRun(2, BUTTON_TYPE_ERROR)])
        synthesizer = FakeSynthesizer()

        result, started = run(make_collaborators(synthesizer=synthesizer, tool_runner=runner))

        assert started.count("typescript_fix") == 2
        assert started.count("final_check") == 2
        assert len(synthesizer.fixes) == 4
        assert result.unresolved == ["Button"]
        assert result.summary.unresolved[0].attempted_fix
        assert "Fix attempts exhausted for Button" in [e.message for e in result.errors]

    def test_final_check_cap_ends_the_loop(self, run, make_collaborators, forge_config):
        config = dataclasses.replace(forge_config, max_fix_attempts=100)
        runner = FakeToolRunner(type_runs=[ToolRun(2, BUTTON_TYPE_ERROR)])

        result, started = run(make_collaborators(tool_runner=runner), config=config)

        assert started.count("final_check") == config.max_final_check_attempts
        assert started[-2:] == ["finalize", "end"]
        assert result.summary.final_check_attempts == config.max_final_check_attempts
        assert not result.success

    def test_iteration_limit_ends_the_loop(self, run, make_collaborators, forge_config):
        config = dataclasses.replace(forge_config, max_fix_attempts=100, max_iterations=3)
        runner = FakeToolRunner(type_runs=[ToolRun(2, BUTTON_TYPE_ERROR)])

        result, started = run(make_collaborators(tool_runner=runner), config=config)

        assert result.summary.iterations == 3
        assert started.count("final_check") == 2
        assert not result.success


def test_run_workflow_prints_summary(forge_config, make_collaborators, capsys, tmp_path):
    with patch("uiforge.telemetry.init_telemetry") as init:
        result = run_workflow(tmp_path / "design.yaml", config=forge_config, collaborators=make_collaborators())

    init.assert_called_once()
    assert result.success
    assert "WORKFLOW SUMMARY: SUCCESS" in capsys.readouterr().out
