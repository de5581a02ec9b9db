"""Builds the Burr Application for a uiforge run.

Actions from a ``WorkflowSpec`` are bound to one shared ``PhaseContext``;
``WorkflowProgressHook`` reports phase boundaries to an optional UI callback.
"""

import dataclasses
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from burr.core import Application, ApplicationBuilder
from burr.lifecycle import PostRunStepHook, PreRunStepHook
from burr.tracking import LocalTrackingClient

from uiforge.config import ForgeConfig
from uiforge.execution.batch_executor import BatchProgress
from uiforge.workflow.collaborators import Collaborators
from uiforge.workflow.phases import PhaseContext
from uiforge.workflow.workflow_specs import GENERATION_WORKFLOW_SPEC, WorkflowSpec

logger = logging.getLogger(__name__)

# Errors a progress callback may raise without stopping the run
_CALLBACK_ERRORS = (TypeError, AttributeError, ValueError)


@dataclass
class WorkflowProgressHook(PostRunStepHook, PreRunStepHook):
    """Reports phase start/completion as ``(name, index, total)``.

    Phases outside ``phase_order`` (the repair loop revisits some) report
    index 0. Callback errors are logged and swallowed.
    """

    on_phase_start: Callable[[str, int, int], None] | None = None
    on_phase_complete: Callable[[str, int, int, dict], None] | None = None
    phase_order: list[str] | None = None

    def _position(self, phase_name: str) -> tuple[int, int]:
        order = self.phase_order or []
        index = order.index(phase_name) if phase_name in order else 0
        return index, len(order) or 1

    def pre_run_step(self, *, action, **kwargs):
        index, total = self._position(action.name)
        logger.info(f"Starting: {action.name} ({index + 1}/{total})")

        if self.on_phase_start:
            try:
                self.on_phase_start(action.name, index, total)
            except _CALLBACK_ERRORS as e:
                logger.error(f"on_phase_start callback failed: {e}")

    def post_run_step(self, *, action, state, result, **kwargs):
        index, total = self._position(action.name)
        status = state.get(f"{action.name}_status", "unknown")
        logger.info(f"Completed: {action.name} (status={status})")

        if self.on_phase_complete:
            phase_result = {
                "status": status,
                "errors": len(state.get("errors") or []),
                "failed_components": sorted(state.get("failed_components") or {}),
            }
            try:
                self.on_phase_complete(action.name, index, total, phase_result)
            except _CALLBACK_ERRORS as e:
                logger.error(f"on_phase_complete callback failed: {e}")


def _tracking_client(config: ForgeConfig, project: str) -> LocalTrackingClient | None:
    """Burr's local tracker, when requested; failures only cost the UI view."""
    if not config.enable_tracking:
        return None
    try:
        client = LocalTrackingClient(project=project)
    except (OSError, RuntimeError) as e:
        logger.warning(f"Could not enable Burr tracking for {project}: {e}")
        return None
    logger.info(f"Burr tracking enabled: {project}")
    return client


def initial_state(config: ForgeConfig, spec: WorkflowSpec, **extra_state: Any) -> dict[str, Any]:
    """Default state for ``spec`` seeded with the run's absolute output paths."""
    state = spec.build_default_state()
    state["output_dir"] = str(Path(config.output_dir).resolve())
    state["project_root"] = str(config.resolved_project_root)
    state.update(extra_state)
    return state


def build_workflow(
    config: ForgeConfig,
    collaborators: Collaborators,
    spec: WorkflowSpec = GENERATION_WORKFLOW_SPEC,
    app_id: str | None = None,
    on_phase_start: Callable | None = None,
    on_phase_complete: Callable | None = None,
    on_batch_progress: Callable[[BatchProgress], None] | None = None,
    ctx: PhaseContext | None = None,
    **extra_state: Any,
) -> Application:
    """Build the Burr Application for one generation run.

    Args:
        config: Run settings (output tree, bounds, tool commands).
        collaborators: Services the phases call.
        spec: Workflow specification.
        app_id: Optional custom app ID; defaults to ``<project>-<8 hex>``.
        on_phase_start: Callback when a phase starts.
        on_phase_complete: Callback when a phase completes.
        on_batch_progress: Callback after each generation or repair batch chunk.
        ctx: Pre-built phase context (tests inject a fake ``sleep`` this way).
        **extra_state: Values layered over the default state.
    """
    project = config.tracking_project or spec.tracking_project
    app_id = app_id or f"{project}-{uuid.uuid4().hex[:8]}"

    logger.info("=" * 60)
    logger.info(f"CREATING WORKFLOW {app_id}: {spec.entrypoint} -> {spec.terminal}")
    logger.info("=" * 60)

    if ctx is None:
        ctx = PhaseContext.create(config, collaborators, on_batch_progress=on_batch_progress)
    elif on_batch_progress is not None:
        ctx = dataclasses.replace(ctx, on_batch_progress=on_batch_progress)
    progress_hook = WorkflowProgressHook(
        on_phase_start=on_phase_start,
        on_phase_complete=on_phase_complete,
        phase_order=spec.stages,
    )

    builder = (
        ApplicationBuilder()
        .with_actions(**{name: fn.bind(ctx=ctx) for name, fn in spec.actions.items()})
        .with_transitions(*spec.transitions)
        .with_state(**initial_state(config, spec, **extra_state))
        .with_entrypoint(spec.entrypoint)
        .with_hooks(progress_hook)
        .with_identifiers(app_id=app_id)
    )

    tracker = _tracking_client(config, project)
    if tracker is not None:
        builder = builder.with_tracker(tracker)

    app = builder.build()
    logger.info(f"Workflow created for {config.output_dir}")
    return app
