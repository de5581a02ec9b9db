"""Phase functions for the generation workflow.

Each phase is ``async def phase(state, ctx) -> dict``. It reads the current
state, does its work (collaborator calls, tool runs, file writes) and returns
an overlay; the Burr actions in ``burr_actions`` merge the overlay into a new
state with ``merge_overlay``. Phases never mutate the state they are given.

Recoverable problems are recorded in ``errors`` / ``failed_components`` and
the phase returns normally. Only an analysis failure, a setup failure or a
validation infrastructure failure send the graph straight to ``finalize``.

Loop bounds (all in ``ForgeConfig``):
- ``repair_cycles_per_pass``: fix-and-revalidate cycles per repair phase visit
- ``max_fix_attempts``: fix calls per artifact over the whole run
- ``max_iterations``: repair cycles over the whole run
- ``max_final_check_attempts``: final checks before giving up
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from uiforge.config import ALLOWED_TIER_DEPENDENCIES, TIER_ORDER, ForgeConfig, Tier, WorkflowPhase
from uiforge.diagnostics.models import (
    Diagnostic,
    QualityResult,
    ValidationOutcome,
    ValidationResult,
)
from uiforge.diagnostics.parser import format_diagnostics, group_by_artifact
from uiforge.diagnostics.runner import combine_results, run_lint, run_type_check
from uiforge.execution.batch_executor import BatchJob, BatchProgress, RetryPolicy, run_batches
from uiforge.registry.models import ArtifactRecord, ArtifactRegistry
from uiforge.registry.registry import (
    build,
    empty_registry,
    find_by_name,
    find_tier_violations,
    get_all,
    get_import_path,
    import_path_for,
    upsert,
)
from uiforge.workflow import tracker
from uiforge.workflow.collaborators import Collaborators, ComponentSpec, DesignSpec
from uiforge.workflow.state import PhaseError, Replace, merge_overlay
from uiforge.workflow.summary import UnresolvedArtifact, WorkflowSummary

logger = logging.getLogger(__name__)

ROUTE_EXIT = "exit"
ROUTE_RETRY = WorkflowPhase.TYPESCRIPT_FIX.value


@dataclass
class PhaseContext:
    """Everything a phase needs besides the state."""

    config: ForgeConfig
    collaborators: Collaborators
    policy: RetryPolicy
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    on_batch_progress: Callable[[BatchProgress], None] | None = None

    @classmethod
    def create(cls, config: ForgeConfig, collaborators: Collaborators, **kwargs: Any) -> "PhaseContext":
        return cls(
            config=config,
            collaborators=collaborators,
            policy=RetryPolicy.from_config(config),
            **kwargs,
        )


# =============================================================================
# Helpers
# =============================================================================


def _error(phase: WorkflowPhase, message: str) -> PhaseError:
    logger.error(f"[{phase.value}] {message}")
    return PhaseError(phase=phase.value, message=message)


def _paths(state: Mapping[str, Any]) -> tuple[Path, Path]:
    return Path(state["output_dir"]), Path(state["project_root"])


def _registry(state: Mapping[str, Any], ctx: PhaseContext) -> ArtifactRegistry:
    return state.get("registry") or empty_registry(ctx.config.import_alias)


def _ledger(state: Mapping[str, Any]) -> dict[str, Any]:
    """Working copy of the tracker keys for folding several ledger operations."""
    return {
        "failed_components": dict(state.get("failed_components") or {}),
        "validated_components": list(state.get("validated_components") or []),
        "fix_attempts": dict(state.get("fix_attempts") or {}),
    }


def _ledger_overlay(view: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "failed_components": view["failed_components"],
        "validated_components": Replace(view["validated_components"]),
        "fix_attempts": view["fix_attempts"],
    }


def _validate_tree(output_dir: Path, project_root: Path, ctx: PhaseContext) -> ValidationResult:
    runner = ctx.collaborators.tool_runner
    type_result = run_type_check(
        project_root, target=output_dir, runner=runner, command=ctx.config.type_check_command
    )
    lint_result = run_lint(project_root, output_dir, runner=runner, command=ctx.config.lint_command)
    return combine_results(type_result, lint_result)


def _attribute(
    result: ValidationResult, registry: ArtifactRegistry
) -> tuple[dict[str, tuple[list[str], list[Diagnostic]]], list[str]]:
    """Map failing artifacts to (error lines, error diagnostics); collect the rest."""
    grouped, _ = group_by_artifact(result.diagnostics)
    failures: dict[str, tuple[list[str], list[Diagnostic]]] = {}
    unattributed = list(result.unattributed)

    for name, lines in result.artifact_errors.items():
        if find_by_name(registry, name) is None:
            unattributed.extend(lines)
            continue
        issues = [d for d in grouped.get(name, []) if d.is_error]
        failures[name] = (list(lines), issues)

    for violation in find_tier_violations(registry):
        lines, _ = failures.setdefault(violation.importer, ([], []))
        lines.append(violation.describe())

    return failures, unattributed


def _apply_validation(
    view: dict[str, Any], result: ValidationResult, registry: ArtifactRegistry
) -> tuple[dict[str, Any], dict[str, ValidationResult], list[str]]:
    """Partition registry artifacts into failed and validated from one result."""
    failures, unattributed = _attribute(result, registry)
    results: dict[str, ValidationResult] = {}

    for record in get_all(registry):
        failure = failures.get(record.name)
        if failure is None:
            view = merge_overlay(view, tracker.resolve(view, record.name))
            results[record.name] = ValidationResult(valid=True, outcome=ValidationOutcome.PASSED)
            continue

        lines, issues = failure
        view = merge_overlay(
            view,
            tracker.record_failure(
                view, record.name, errors=lines, issues=issues, tier=record.tier, path=record.path
            ),
        )
        results[record.name] = ValidationResult(
            valid=False,
            outcome=ValidationOutcome.DIAGNOSTICS,
            error_count=len(issues) or len(lines),
            diagnostics=issues,
            artifact_errors={record.name: lines},
        )

    known = set(registry.names())
    for name in list(view["failed_components"]):
        if name not in known:
            view = merge_overlay(view, tracker.forget(view, name))

    return view, results, unattributed


def _repair_candidates(
    names: list[str], view: Mapping[str, Any], registry: ArtifactRegistry, ctx: PhaseContext
) -> list[ArtifactRecord]:
    """Registry records for ``names`` that still have fix attempts left."""
    wanted = set(names)
    attempts = view["fix_attempts"]
    candidates = []
    for record in get_all(registry):
        if record.name not in wanted:
            continue
        if attempts.get(record.name, 0) >= ctx.config.max_fix_attempts:
            logger.info(f"{record.name}: fix attempts exhausted ({ctx.config.max_fix_attempts})")
            continue
        candidates.append(record)
    return candidates


async def _repair(
    view: dict[str, Any],
    records: list[ArtifactRecord],
    diagnostics_for: Callable[[str], str],
    ctx: PhaseContext,
    phase: WorkflowPhase,
) -> tuple[dict[str, Any], list[PhaseError]]:
    """Ask the synthesizer to fix each record and write the results back."""
    errors: list[PhaseError] = []
    jobs: list[BatchJob] = []
    for record in records:
        try:
            source = record.path.read_text(encoding="utf-8")
        except OSError as e:
            errors.append(_error(phase, f"Cannot read {record.name} for repair: {e}"))
            continue
        jobs.append(
            BatchJob(
                id=f"{record.tier.value}/{record.name}",
                name=record.name,
                payload=(record, diagnostics_for(record.name), source),
            )
        )

    synthesizer = ctx.collaborators.synthesizer

    async def _fix(job: BatchJob) -> str:
        record, diagnostics, source = job.payload
        return await synthesizer.fix(record, diagnostics, source)

    outcome = await run_batches(
        jobs, _fix, ctx.policy, on_progress=ctx.on_batch_progress, sleep=ctx.sleep
    )

    for job in jobs:
        view = merge_overlay(view, tracker.record_fix_attempt(view, job.name))
        code = outcome.results.get(job.id)
        if code is None:
            continue
        record = job.payload[0]
        try:
            record.path.write_text(code, encoding="utf-8")
        except OSError as e:
            errors.append(_error(phase, f"Cannot write fix for {record.name}: {e}"))

    for batch_error in outcome.errors:
        errors.append(_error(phase, f"Fix failed for {batch_error.name}: {batch_error.error}"))

    return view, errors


def _diagnostics_text(record: tracker.FailureRecord) -> str:
    lines = record.error_lines()
    if lines:
        return "\n".join(lines)
    return format_diagnostics(record.issues)


def _write_artifact(output_dir: Path, tier: Tier, name: str, code: str) -> ArtifactRecord:
    folder = output_dir / tier.value / name
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{name}.tsx"
    path.write_text(code, encoding="utf-8")
    added_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    return ArtifactRecord(name=name, tier=tier, path=path, added_at=added_at)


def _prepare_spec(
    spec: ComponentSpec, registry: ArtifactRegistry, design: DesignSpec, import_alias: str
) -> ComponentSpec:
    """Resolve dependency import paths, dropping ones the tier may not use."""
    planned = {component.name: component for component in design.components}
    allowed = ALLOWED_TIER_DEPENDENCIES[spec.tier]
    imports: dict[str, str] = {}

    for dependency in spec.dependencies:
        existing = find_by_name(registry, dependency)
        if existing is not None:
            dependency_tier = existing.tier
        elif dependency in planned:
            dependency_tier = planned[dependency].tier
        else:
            logger.warning(f"{spec.name}: unknown dependency {dependency}, skipped")
            continue

        if dependency_tier != spec.tier and dependency_tier not in allowed:
            logger.warning(
                f"{spec.name} ({spec.tier}) may not depend on {dependency} ({dependency_tier}), skipped"
            )
            continue

        imports[dependency] = get_import_path(registry, dependency) or import_path_for(
            dependency_tier, dependency, import_alias
        )

    return spec.model_copy(update={"imports": imports, "tokens": dict(design.tokens)})


# =============================================================================
# Phases
# =============================================================================


async def analyze(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Pull the design specification from the design source."""
    phase = WorkflowPhase.ANALYZE
    try:
        design = await ctx.collaborators.design_source.extract()
    except Exception as e:  # Collaborator boundary: any failure means no spec
        return {
            "design_spec": None,
            "analysis_failed": True,
            "errors": [_error(phase, f"Design extraction failed: {e}")],
            "analyze_status": "failed",
        }

    if design is None or not design.components:
        return {
            "design_spec": None,
            "analysis_failed": True,
            "errors": [_error(phase, "Design source returned no extractable specification")],
            "analyze_status": "failed",
        }

    counts = ", ".join(f"{tier.value}={len(design.by_tier(tier))}" for tier in TIER_ORDER)
    logger.info(f"Design '{design.name}': {len(design.components)} component(s) ({counts})")
    return {"design_spec": design, "analysis_failed": False}


async def setup(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Create the tier folders and build the registry from disk."""
    phase = WorkflowPhase.SETUP
    output_dir = Path(state["output_dir"])
    try:
        for tier in TIER_ORDER:
            (output_dir / tier.value).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return {
            "setup_failed": True,
            "errors": [_error(phase, f"Cannot prepare output directory {output_dir}: {e}")],
            "setup_status": "failed",
        }

    registry = build(output_dir, ctx.config.import_alias)
    return {"registry": registry, "setup_failed": False}


async def generate(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Generate the design's artifacts tier by tier through the batch executor."""
    phase = WorkflowPhase.GENERATE
    design: DesignSpec | None = state.get("design_spec")
    registry = _registry(state, ctx)
    output_dir = Path(state["output_dir"])
    generated = list(state.get("generated_components") or [])
    generation_errors = dict(state.get("generation_errors") or {})
    errors: list[PhaseError] = []

    if design is None:
        return {"errors": [_error(phase, "No design specification to generate from")]}

    synthesizer = ctx.collaborators.synthesizer

    async def _generate(job: BatchJob) -> Any:
        return await synthesizer.generate(job.payload)

    prechecked = False
    for tier in TIER_ORDER:
        specs = design.by_tier(tier)
        if not specs:
            continue

        jobs = [
            BatchJob(
                id=f"{tier.value}/{spec.name}",
                name=spec.name,
                payload=_prepare_spec(spec, registry, design, ctx.config.import_alias),
            )
            for spec in specs
        ]
        logger.info(f"Generating {len(jobs)} {tier.value} artifact(s)")
        outcome = await run_batches(
            jobs,
            _generate,
            ctx.policy,
            precheck=None if prechecked else synthesizer.is_available,
            on_progress=ctx.on_batch_progress,
            sleep=ctx.sleep,
        )
        prechecked = True

        if outcome.fallback_used:
            errors.append(_error(phase, "Code synthesis backend unavailable, generation skipped"))
            break

        for job in jobs:
            artifact = outcome.results.get(job.id)
            if artifact is None:
                continue
            spec: ComponentSpec = job.payload
            try:
                record = _write_artifact(output_dir, spec.tier, spec.name, artifact.code)
            except OSError as e:
                generation_errors[spec.name] = str(e)
                errors.append(_error(phase, f"Cannot write {spec.name}: {e}"))
                continue
            registry = upsert(registry, record)
            generation_errors.pop(spec.name, None)
            if spec.name not in generated:
                generated.append(spec.name)

        for batch_error in outcome.errors:
            generation_errors[batch_error.name] = batch_error.error
            errors.append(
                _error(phase, f"Generation failed for {batch_error.name}: {batch_error.error}")
            )

    logger.info(f"Generated {len(generated)} artifact(s), {len(generation_errors)} failed")
    return {
        "registry": registry,
        "generated_components": generated,
        "generation_errors": generation_errors,
        "errors": errors,
    }


async def generate_stories(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Write stories for the registry. Failures never stop the workflow."""
    registry = state.get("registry")
    if registry is None or registry.size == 0:
        logger.info("No artifacts in registry, skipping story generation")
        return {"generate_stories_status": "skipped"}

    try:
        results = ctx.collaborators.story_generator.generate(registry, Path(state["output_dir"]))
    except Exception as e:  # Stories are best-effort
        logger.warning(f"Story generation failed: {e}")
        return {"story_generation_error": str(e), "generate_stories_status": "failed"}

    return {
        "stories_generated": results.total,
        "story_results": results,
        "story_generation_error": None,
    }


async def validate(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Type-check and lint the tree; split artifacts into validated and failed."""
    phase = WorkflowPhase.VALIDATE
    output_dir, project_root = _paths(state)
    registry = _registry(state, ctx)

    result = _validate_tree(output_dir, project_root, ctx)
    if result.is_infra_failure:
        return {
            "validation_infra_failed": True,
            "errors": [_error(phase, f"Validation could not run: {result.message}")],
            "validate_status": "failed",
        }

    view, results, unattributed = _apply_validation(_ledger(state), result, registry)
    errors = []
    if unattributed:
        errors.append(
            _error(phase, f"{len(unattributed)} diagnostic line(s) not attributable to an artifact")
        )

    logger.info(
        f"Validation: {len(view['validated_components'])} passed, "
        f"{len(view['failed_components'])} failed"
    )
    return {
        **_ledger_overlay(view),
        "validation_results": {**(state.get("validation_results") or {}), **results},
        "unattributed_diagnostics": unattributed,
        "validation_infra_failed": False,
        "errors": errors,
    }


async def typescript_fix(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Repair failing artifacts using their type and lint diagnostics."""
    phase = WorkflowPhase.TYPESCRIPT_FIX
    output_dir, project_root = _paths(state)
    registry = _registry(state, ctx)
    view = _ledger(state)
    iterations = state.get("iterations") or 0
    results = dict(state.get("validation_results") or {})
    unattributed = list(state.get("unattributed_diagnostics") or [])
    errors: list[PhaseError] = []

    for cycle in range(1, ctx.config.repair_cycles_per_pass + 1):
        failed = view["failed_components"]
        candidates = _repair_candidates(list(failed), view, registry, ctx)
        if not candidates:
            break
        if iterations >= ctx.config.max_iterations:
            errors.append(_error(phase, f"Repair iteration limit reached ({ctx.config.max_iterations})"))
            break
        iterations += 1

        logger.info(f"Fix cycle {cycle}: {len(candidates)} artifact(s)")
        view, fix_errors = await _repair(
            view, candidates, lambda name: _diagnostics_text(failed[name]), ctx, phase
        )
        errors.extend(fix_errors)

        result = _validate_tree(output_dir, project_root, ctx)
        if result.is_infra_failure:
            errors.append(_error(phase, f"Re-validation could not run: {result.message}"))
            break
        view, cycle_results, unattributed = _apply_validation(view, result, registry)
        results.update(cycle_results)

    return {
        **_ledger_overlay(view),
        "iterations": iterations,
        "validation_results": results,
        "unattributed_diagnostics": unattributed,
        "errors": errors,
    }


def _needs_review_fix(issues: list[Diagnostic], review_warnings: bool) -> bool:
    if any(d.is_error for d in issues):
        return True
    return review_warnings and bool(issues)


async def quality_review(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Lint-only review of every artifact, repairing lint findings."""
    phase = WorkflowPhase.QUALITY_REVIEW
    output_dir, project_root = _paths(state)
    registry = _registry(state, ctx)
    view = _ledger(state)
    iterations = state.get("iterations") or 0
    results = dict(state.get("validation_results") or {})
    errors: list[PhaseError] = []
    cycles_used: dict[str, int] = {}

    def _lint() -> ValidationResult:
        return run_lint(
            project_root,
            output_dir,
            runner=ctx.collaborators.tool_runner,
            command=ctx.config.lint_command,
        )

    report = _lint()
    if report.is_infra_failure:
        return {
            "errors": [_error(phase, f"Lint review could not run: {report.message}")],
            "quality_review_status": "failed",
        }

    for cycle in range(1, ctx.config.repair_cycles_per_pass + 1):
        by_artifact, _ = group_by_artifact(report.diagnostics)
        names = [
            record.name
            for record in get_all(registry)
            if _needs_review_fix(by_artifact.get(record.name, []), ctx.config.review_warnings)
        ]
        candidates = _repair_candidates(names, view, registry, ctx)
        if not candidates:
            break
        if iterations >= ctx.config.max_iterations:
            errors.append(_error(phase, f"Repair iteration limit reached ({ctx.config.max_iterations})"))
            break
        iterations += 1

        logger.info(f"Review cycle {cycle}: {len(candidates)} artifact(s)")
        for record in candidates:
            cycles_used[record.name] = cycles_used.get(record.name, 0) + 1
        view, fix_errors = await _repair(
            view, candidates, lambda name: format_diagnostics(by_artifact[name]), ctx, phase
        )
        errors.extend(fix_errors)

        relinted = _lint()
        if relinted.is_infra_failure:
            errors.append(_error(phase, f"Re-lint could not run: {relinted.message}"))
            break
        report = relinted

    by_artifact, _ = group_by_artifact(report.diagnostics)
    for record in get_all(registry):
        issues = by_artifact.get(record.name, [])
        error_issues = [d for d in issues if d.is_error]
        results[record.name] = QualityResult(
            artifact=record.name,
            valid=not error_issues,
            error_count=len(error_issues),
            warning_count=len(issues) - len(error_issues),
            issues=issues,
            cycles=cycles_used.get(record.name, 0),
        )
        if error_issues:
            view = merge_overlay(
                view,
                tracker.record_failure(
                    view,
                    record.name,
                    errors=[format_diagnostics([d]) for d in error_issues],
                    issues=error_issues,
                    tier=record.tier,
                    path=record.path,
                ),
            )

    return {
        **_ledger_overlay(view),
        "iterations": iterations,
        "validation_results": results,
        "errors": errors,
    }


async def final_check(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Re-validate the whole tree to catch regressions introduced by fixes."""
    phase = WorkflowPhase.FINAL_CHECK
    output_dir, project_root = _paths(state)
    registry = _registry(state, ctx)
    attempts = (state.get("final_check_attempts") or 0) + 1

    result = _validate_tree(output_dir, project_root, ctx)
    if result.is_infra_failure:
        return {
            "final_check_attempts": attempts,
            "final_check_passed": False,
            "validation_infra_failed": True,
            "errors": [_error(phase, f"Final check could not run: {result.message}")],
            "final_check_status": "failed",
        }

    view, results, unattributed = _apply_validation(_ledger(state), result, registry)
    passed = result.valid and tracker.is_converged(view)
    errors = []
    if unattributed:
        errors.append(
            _error(phase, f"{len(unattributed)} diagnostic line(s) not attributable to an artifact")
        )

    outcome = "passed" if passed else f"{len(view['failed_components'])} artifact(s) failing"
    logger.info(f"Final check {attempts}/{ctx.config.max_final_check_attempts}: {outcome}")
    return {
        **_ledger_overlay(view),
        "validation_results": {**(state.get("validation_results") or {}), **results},
        "unattributed_diagnostics": unattributed,
        "final_check_passed": passed,
        "final_check_attempts": attempts,
        "validation_infra_failed": False,
        "errors": errors,
    }


async def decide_next(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Route back to repair or on to finalize. The graph's only cycle."""
    phase = WorkflowPhase.DECIDE_NEXT
    attempts = state.get("final_check_attempts") or 0
    failed = state.get("failed_components") or {}
    fix_attempts = state.get("fix_attempts") or {}
    iterations = state.get("iterations") or 0
    cap = ctx.config.max_final_check_attempts
    errors: list[PhaseError] = []

    if state.get("final_check_passed"):
        route, reason = ROUTE_EXIT, "final check passed"
    elif attempts >= cap:
        route, reason = ROUTE_EXIT, "final check attempts exhausted"
        errors.append(
            _error(
                phase,
                f"Final check still failing after {attempts} attempt(s), "
                f"{len(failed)} artifact(s) unresolved",
            )
        )
    elif not failed:
        route, reason = ROUTE_EXIT, "nothing left to repair"
        errors.append(_error(phase, "Remaining diagnostics are not attributable to any artifact"))
    elif iterations >= ctx.config.max_iterations:
        route, reason = ROUTE_EXIT, "repair iteration limit reached"
        errors.append(_error(phase, f"Repair iteration limit reached ({ctx.config.max_iterations})"))
    elif all(fix_attempts.get(name, 0) >= ctx.config.max_fix_attempts for name in failed):
        route, reason = ROUTE_EXIT, "fix attempts exhausted"
        errors.append(_error(phase, f"Fix attempts exhausted for {', '.join(sorted(failed))}"))
    else:
        route, reason = ROUTE_RETRY, f"{len(failed)} artifact(s) still failing"

    logger.info(f"Route: {route} ({reason}, attempt {attempts}/{cap})")
    return {"route": route, "errors": errors}


async def finalize(state: Mapping[str, Any], ctx: PhaseContext) -> dict[str, Any]:
    """Compute summary counters and mark the workflow completed."""
    end_time = time.time()
    start_time = state.get("start_time") or end_time
    elapsed = round(end_time - start_time, 3)
    registry = state.get("registry")
    failed: dict[str, tracker.FailureRecord] = state.get("failed_components") or {}
    total = registry.size if registry is not None else 0

    success = (
        bool(state.get("final_check_passed"))
        and not failed
        and not state.get("analysis_failed")
        and not state.get("setup_failed")
        and not state.get("validation_infra_failed")
        and not state.get("generation_errors")
    )

    summary = WorkflowSummary(
        success=success,
        final_phase=state.get("current_phase") or WorkflowPhase.INIT.value,
        total_components=total,
        validated=len(state.get("validated_components") or []),
        unresolved=[
            UnresolvedArtifact(
                name=name,
                tier=record.tier.value if record.tier else "",
                attempted_fix=record.attempted_fix,
                error_count=len(record.error_lines()) or len(record.issues),
            )
            for name, record in failed.items()
        ],
        errors=list(state.get("errors") or []),
        final_check_attempts=state.get("final_check_attempts") or 0,
        iterations=state.get("iterations") or 0,
        stories_generated=state.get("stories_generated") or 0,
        story_generation_error=state.get("story_generation_error"),
        unattributed_count=len(state.get("unattributed_diagnostics") or []),
        elapsed_seconds=elapsed,
    )
    for line in summary.render().splitlines():
        logger.info(line)

    return {
        "success": success,
        "workflow_completed": True,
        "end_time": end_time,
        "elapsed_seconds": elapsed,
        "total_components_generated": total,
        "summary": summary,
    }


PHASES: dict[WorkflowPhase, Callable[[Mapping[str, Any], PhaseContext], Awaitable[dict[str, Any]]]] = {
    WorkflowPhase.ANALYZE: analyze,
    WorkflowPhase.SETUP: setup,
    WorkflowPhase.GENERATE: generate,
    WorkflowPhase.GENERATE_STORIES: generate_stories,
    WorkflowPhase.VALIDATE: validate,
    WorkflowPhase.TYPESCRIPT_FIX: typescript_fix,
    WorkflowPhase.QUALITY_REVIEW: quality_review,
    WorkflowPhase.FINAL_CHECK: final_check,
    WorkflowPhase.DECIDE_NEXT: decide_next,
    WorkflowPhase.FINALIZE: finalize,
}
