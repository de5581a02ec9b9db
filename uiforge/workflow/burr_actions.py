"""Burr actions for the generation workflow.

Each action wraps one phase function from ``phases``: it logs the phase
banner, awaits the phase, stamps ``current_phase`` and ``{phase}_status``
and folds the returned overlay into a new state with ``merge_overlay``.

The @action decorator specifies:
- reads: State keys the phase reads (including keys the merge appends to)
- writes: State keys the phase may return in its overlay

``ctx`` (a ``PhaseContext``) is bound by ``build_workflow``.
"""

import logging

from burr.core import State, action

from uiforge.config import WorkflowPhase
from uiforge.telemetry.spans import phase_span, record_phase_outcome
from uiforge.workflow.phases import PHASES, PhaseContext
from uiforge.workflow.state import merge_overlay

logger = logging.getLogger(__name__)

_LEDGER_KEYS = ["failed_components", "validated_components", "fix_attempts"]
_TREE_KEYS = ["registry", "output_dir", "project_root"]


async def _run_phase(phase: WorkflowPhase, state: State, ctx: PhaseContext) -> State:
    logger.info("=" * 60)
    logger.info(f"Executing phase: {phase.value}")
    logger.info("=" * 60)

    with phase_span(phase.value) as span:
        overlay = await PHASES[phase](state, ctx)
        overlay["current_phase"] = phase.value
        status = overlay.setdefault(f"{phase.value}_status", "completed")
        new_state = merge_overlay(state, overlay)
        record_phase_outcome(
            span,
            status=status,
            errors=len(new_state.get("errors") or []),
            failed=len(new_state.get("failed_components") or {}),
        )
    return new_state


@action(
    reads=["errors"],
    writes=["design_spec", "analysis_failed", "errors", "current_phase", "analyze_status"],
)
async def analyze(state: State, ctx: PhaseContext) -> State:
    """Extract the design specification."""
    return await _run_phase(WorkflowPhase.ANALYZE, state, ctx)


@action(
    reads=["output_dir", "errors"],
    writes=["registry", "setup_failed", "errors", "current_phase", "setup_status"],
)
async def setup(state: State, ctx: PhaseContext) -> State:
    """Prepare the output tree and build the registry."""
    return await _run_phase(WorkflowPhase.SETUP, state, ctx)


@action(
    reads=["design_spec", "registry", "output_dir", "generated_components", "generation_errors", "errors"],
    writes=[
        "registry",
        "generated_components",
        "generation_errors",
        "errors",
        "current_phase",
        "generate_status",
    ],
)
async def generate(state: State, ctx: PhaseContext) -> State:
    """Generate artifacts tier by tier."""
    return await _run_phase(WorkflowPhase.GENERATE, state, ctx)


@action(
    reads=["registry", "output_dir", "errors"],
    writes=[
        "stories_generated",
        "story_results",
        "story_generation_error",
        "errors",
        "current_phase",
        "generate_stories_status",
    ],
)
async def generate_stories(state: State, ctx: PhaseContext) -> State:
    """Write stories beside the artifacts (best-effort)."""
    return await _run_phase(WorkflowPhase.GENERATE_STORIES, state, ctx)


@action(
    reads=[*_TREE_KEYS, *_LEDGER_KEYS, "validation_results", "errors"],
    writes=[
        *_LEDGER_KEYS,
        "validation_results",
        "unattributed_diagnostics",
        "validation_infra_failed",
        "errors",
        "current_phase",
        "validate_status",
    ],
)
async def validate(state: State, ctx: PhaseContext) -> State:
    """Type-check and lint the generated tree."""
    return await _run_phase(WorkflowPhase.VALIDATE, state, ctx)


@action(
    reads=[
        *_TREE_KEYS,
        *_LEDGER_KEYS,
        "iterations",
        "validation_results",
        "unattributed_diagnostics",
        "errors",
    ],
    writes=[
        *_LEDGER_KEYS,
        "iterations",
        "validation_results",
        "unattributed_diagnostics",
        "errors",
        "current_phase",
        "typescript_fix_status",
    ],
)
async def typescript_fix(state: State, ctx: PhaseContext) -> State:
    """Repair failing artifacts from their diagnostics."""
    return await _run_phase(WorkflowPhase.TYPESCRIPT_FIX, state, ctx)


@action(
    reads=[*_TREE_KEYS, *_LEDGER_KEYS, "iterations", "validation_results", "errors"],
    writes=[
        *_LEDGER_KEYS,
        "iterations",
        "validation_results",
        "errors",
        "current_phase",
        "quality_review_status",
    ],
)
async def quality_review(state: State, ctx: PhaseContext) -> State:
    """Lint-only review and repair."""
    return await _run_phase(WorkflowPhase.QUALITY_REVIEW, state, ctx)


@action(
    reads=[*_TREE_KEYS, *_LEDGER_KEYS, "validation_results", "final_check_attempts", "errors"],
    writes=[
        *_LEDGER_KEYS,
        "validation_results",
        "unattributed_diagnostics",
        "final_check_passed",
        "final_check_attempts",
        "validation_infra_failed",
        "errors",
        "current_phase",
        "final_check_status",
    ],
)
async def final_check(state: State, ctx: PhaseContext) -> State:
    """Whole-tree re-validation."""
    return await _run_phase(WorkflowPhase.FINAL_CHECK, state, ctx)


@action(
    reads=[
        "final_check_passed",
        "final_check_attempts",
        "failed_components",
        "fix_attempts",
        "iterations",
        "errors",
    ],
    writes=["route", "errors", "current_phase", "decide_next_status"],
)
async def decide_next(state: State, ctx: PhaseContext) -> State:
    """Choose between another repair pass and finalize."""
    return await _run_phase(WorkflowPhase.DECIDE_NEXT, state, ctx)


@action(
    reads=[
        "current_phase",
        "start_time",
        "registry",
        "failed_components",
        "validated_components",
        "final_check_passed",
        "final_check_attempts",
        "iterations",
        "analysis_failed",
        "setup_failed",
        "validation_infra_failed",
        "generation_errors",
        "stories_generated",
        "story_generation_error",
        "unattributed_diagnostics",
        "errors",
    ],
    writes=[
        "success",
        "workflow_completed",
        "end_time",
        "elapsed_seconds",
        "total_components_generated",
        "summary",
        "errors",
        "current_phase",
        "finalize_status",
    ],
)
async def finalize(state: State, ctx: PhaseContext) -> State:
    """Compute the summary and mark the run completed."""
    return await _run_phase(WorkflowPhase.FINALIZE, state, ctx)


@action(reads=[], writes=["current_phase", "end_status"])
async def end(state: State, ctx: PhaseContext) -> State:
    """Terminal action."""
    return state.update(current_phase=WorkflowPhase.END.value, end_status="completed")
