"""Tests for the workflow spec, transition graph and builder."""

import pytest
from burr.core import State

from uiforge.config import ForgeConfig, WorkflowPhase
from uiforge.workflow.phases import ROUTE_RETRY
from uiforge.workflow.workflow_builder import WorkflowProgressHook, build_workflow, initial_state
from uiforge.workflow.workflow_specs import GENERATION_WORKFLOW_SPEC, WorkflowSpec

# =============================================================================
# WorkflowSpec.build_default_state()
# =============================================================================


class TestBuildDefaultState:
    def test_status_key_per_stage(self):
        state = GENERATION_WORKFLOW_SPEC.build_default_state()
        for stage in GENERATION_WORKFLOW_SPEC.stages:
            assert state[f"{stage}_status"] == "pending"

    def test_init_is_not_a_stage(self):
        assert "init_status" not in GENERATION_WORKFLOW_SPEC.build_default_state()

    def test_extra_state_is_layered_on_top(self):
        spec = WorkflowSpec(
            actions={},
            transitions=[],
            entrypoint="analyze",
            tracking_project="test",
            stages=["analyze"],
            extra_state={"iterations": 5, "theme": "dark"},
        )
        state = spec.build_default_state()
        assert state["iterations"] == 5
        assert state["theme"] == "dark"
        assert state["current_phase"] == "init"


# =============================================================================
# Transition graph
# =============================================================================


def _targets(source: str) -> list[str]:
    return [t[1] for t in GENERATION_WORKFLOW_SPEC.transitions if t[0] == source]


class TestTransitions:
    def test_every_transition_uses_known_actions(self):
        actions = set(GENERATION_WORKFLOW_SPEC.actions)
        for transition in GENERATION_WORKFLOW_SPEC.transitions:
            assert transition[0] in actions
            assert transition[1] in actions

    @pytest.mark.parametrize("phase", ["analyze", "setup", "validate", "final_check"])
    def test_hard_failures_short_circuit_to_finalize(self, phase):
        assert _targets(phase)[0] == "finalize"

    def test_only_cycle_is_decide_next_to_typescript_fix(self):
        assert _targets("decide_next") == ["typescript_fix", "finalize"]
        assert ROUTE_RETRY == "typescript_fix"

    def test_linear_path(self):
        assert _targets("generate") == ["generate_stories"]
        assert _targets("generate_stories") == ["validate"]
        assert _targets("typescript_fix") == ["quality_review"]
        assert _targets("quality_review") == ["final_check"]
        assert _targets("finalize") == ["end"]
        assert _targets("end") == []

    def test_entrypoint_and_terminal(self):
        assert GENERATION_WORKFLOW_SPEC.entrypoint == WorkflowPhase.ANALYZE.value
        assert GENERATION_WORKFLOW_SPEC.terminal == WorkflowPhase.END.value


# =============================================================================
# Builder
# =============================================================================


class TestBuildWorkflow:
    def test_builds_application_at_entrypoint(self, forge_config, make_collaborators, output_dir):
        app = build_workflow(forge_config, make_collaborators(), app_id="test-run")

        assert app.uid == "test-run"
        assert app.state["output_dir"] == str(output_dir.resolve())
        assert app.state["project_root"] == str(output_dir.parent.resolve())
        assert app.state["analyze_status"] == "pending"

    def test_relative_output_dir_is_resolved(self, make_collaborators, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        app = build_workflow(ForgeConfig(output_dir="web/ui"), make_collaborators())
        assert app.state["output_dir"] == str((tmp_path / "web" / "ui").resolve())

    def test_extra_state(self, forge_config, make_collaborators):
        app = build_workflow(forge_config, make_collaborators(), iterations=3)
        assert app.state["iterations"] == 3

    def test_initial_state_layers_extra_values(self, forge_config, output_dir):
        state = initial_state(forge_config, GENERATION_WORKFLOW_SPEC, route="exit")

        assert state["route"] == "exit"
        assert state["output_dir"] == str(output_dir.resolve())
        assert state["final_check_status"] == "pending"

    def test_generated_app_id_uses_project(self, forge_config, make_collaborators):
        app = build_workflow(forge_config, make_collaborators())
        assert app.uid.startswith("uiforge-generation-")


class TestWorkflowProgressHook:
    class _Action:
        def __init__(self, name):
            self.name = name

    def test_callbacks_receive_index_and_status(self):
        started, completed = [], []
        hook = WorkflowProgressHook(
            on_phase_start=lambda *args: started.append(args),
            on_phase_complete=lambda *args: completed.append(args),
            phase_order=["analyze", "setup"],
        )

        hook.pre_run_step(action=self._Action("setup"))
        hook.post_run_step(
            action=self._Action("setup"),
            state=State({"setup_status": "failed", "errors": ["x"], "failed_components": {}}),
            result=None,
        )

        assert started == [("setup", 1, 2)]
        assert completed == [("setup", 1, 2, {"status": "failed", "errors": 1, "failed_components": []})]

    def test_failing_callback_is_logged_not_raised(self):
        def broken(*args):
            raise ValueError("ui went away")

        hook = WorkflowProgressHook(on_phase_start=broken, phase_order=["analyze"])
        hook.pre_run_step(action=self._Action("analyze"))

    def test_unknown_phase_index_is_zero(self):
        assert WorkflowProgressHook(phase_order=["analyze"])._position("end") == (0, 1)
        assert WorkflowProgressHook()._position("analyze") == (0, 1)
