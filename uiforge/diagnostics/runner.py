"""Static-analysis tool runner.

Runs the type checker and linter as subprocesses and turns their output into
``ValidationResult`` objects. All tools run with ``cwd`` set to the project
root, so paths in their output are relative to it.

A non-zero exit with no output at all is an infrastructure failure (the tool
could not run), never "no errors" and never "errors found".

Example:
    runner = SubprocessToolRunner()
    result = run_type_check(Path("/work/app"), target="ui/elements", runner=runner)
    if result.is_infra_failure:
        ...
"""

import logging
import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from uiforge.config import LINT_COMMAND, TYPE_CHECK_COMMAND, Severity
from uiforge.diagnostics.models import Diagnostic, ValidationOutcome, ValidationResult
from uiforge.diagnostics.parser import (
    UNATTRIBUTED,
    filter_by_path,
    format_diagnostics,
    group_by_artifact,
    normalize_path,
    parse_lint_json,
    parse_type_diagnostics,
    parse_type_errors,
)
from uiforge.exceptions import DiagnosticParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolRun:
    """Captured result of one tool invocation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def combined_output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part.strip())


class ToolRunner(Protocol):
    """Runs a static-analysis command in a directory."""

    def run(self, args: Sequence[str], cwd: Path) -> ToolRun: ...


class SubprocessToolRunner:
    """ToolRunner backed by ``subprocess.run``.

    No timeout is applied; a hung tool hangs the phase.
    """

    def run(self, args: Sequence[str], cwd: Path) -> ToolRun:
        cmd = list(args)
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            logger.error(f"Tool not found: {cmd[0]} ({e})")
            return ToolRun(exit_code=127)
        except OSError as e:
            logger.error(f"Could not start {cmd[0]}: {e}")
            return ToolRun(exit_code=126)

        return ToolRun(exit_code=result.returncode, stdout=result.stdout, stderr=result.stderr)


def _relative_target(project_root: Path, target: Path | str) -> str:
    """``target`` as the tools print it: posix, relative to the project root.

    Targets outside the root come back as ``../...``; the root itself is ``.``.
    """
    target_path = Path(target)
    if not target_path.is_absolute():
        return target_path.as_posix()
    try:
        relative = os.path.relpath(target_path.resolve(), Path(project_root).resolve())
    except ValueError:
        return target_path.as_posix()
    return Path(relative).as_posix()


def _count(diagnostics: list[Diagnostic]) -> tuple[int, int]:
    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    return errors, len(diagnostics) - errors


# =============================================================================
# Type Check
# =============================================================================


def run_type_check(
    project_root: Path,
    target: Path | str | None = None,
    *,
    runner: ToolRunner | None = None,
    command: Sequence[str] = TYPE_CHECK_COMMAND,
) -> ValidationResult:
    """Type-check the project, optionally narrowing results to ``target``.

    The checker always runs over the whole project; ``target`` only filters
    which diagnostics count. A filter that leaves nothing is a pass.
    """
    runner = runner or SubprocessToolRunner()
    run = runner.run(command, Path(project_root))
    output = run.combined_output

    if run.exit_code == 0:
        logger.info("Type check passed")
        return ValidationResult(
            valid=True,
            outcome=ValidationOutcome.PASSED,
            raw_output=output,
            message="Type check passed",
        )

    if not output.strip():
        message = f"Type checker exited with code {run.exit_code} and produced no output"
        logger.error(message)
        return ValidationResult(
            valid=False,
            outcome=ValidationOutcome.INFRA_FAILURE,
            message=message,
        )

    filtered_from = None
    relative = _relative_target(project_root, target) if target is not None else "."
    if normalize_path(relative) not in ("", "."):
        lines = filter_by_path(output, relative)
        if not lines:
            logger.info(f"Type check: no diagnostics under {relative}")
            return ValidationResult(
                valid=True,
                outcome=ValidationOutcome.PASSED,
                filtered_from=output,
                message=f"No type errors under {relative}",
            )
        filtered_from = output
        output = "\n".join(lines)

    groups = parse_type_errors(output)
    unattributed = groups.pop(UNATTRIBUTED, [])
    diagnostics = parse_type_diagnostics(output)
    error_count, warning_count = _count(diagnostics)

    if not diagnostics and not groups:
        # Output without position markers (config errors, crashes with a message)
        unattributed = [line.strip() for line in output.splitlines() if line.strip()]
        error_count = 1

    logger.info(
        f"Type check found {error_count} error(s) across {len(groups)} artifact(s)"
        + (f", {len(unattributed)} unattributed line(s)" if unattributed else "")
    )
    return ValidationResult(
        valid=False,
        outcome=ValidationOutcome.DIAGNOSTICS,
        error_count=error_count,
        warning_count=warning_count,
        diagnostics=diagnostics,
        artifact_errors=groups,
        unattributed=unattributed,
        raw_output=output,
        filtered_from=filtered_from,
        message=f"Type check found {error_count} error(s)",
    )


# =============================================================================
# Lint
# =============================================================================


def run_lint(
    project_root: Path,
    target: Path | str,
    *,
    runner: ToolRunner | None = None,
    command: Sequence[str] = LINT_COMMAND,
) -> ValidationResult:
    """Lint ``target`` and classify the JSON report.

    ``valid`` is true iff the report holds no errors; warnings are counted
    but do not fail the result.
    """
    runner = runner or SubprocessToolRunner()
    relative = _relative_target(project_root, target)
    run = runner.run([*command, relative], Path(project_root))

    if not run.stdout.strip():
        if run.exit_code == 0:
            return ValidationResult(
                valid=True, outcome=ValidationOutcome.PASSED, message="Lint passed"
            )
        message = f"Linter exited with code {run.exit_code} without a report"
        if run.stderr.strip():
            message += f": {run.stderr.strip()[:300]}"
        logger.error(message)
        return ValidationResult(
            valid=False,
            outcome=ValidationOutcome.INFRA_FAILURE,
            raw_output=run.combined_output,
            message=message,
        )

    try:
        diagnostics = parse_lint_json(run.stdout)
    except DiagnosticParseError as e:
        logger.error(f"Could not parse lint report: {e}")
        return ValidationResult(
            valid=False,
            outcome=ValidationOutcome.INFRA_FAILURE,
            raw_output=run.combined_output,
            message=str(e),
        )

    error_count, warning_count = _count(diagnostics)
    grouped, unattributed = group_by_artifact(diagnostics)
    artifact_errors = {
        name: [format_diagnostics([d]) for d in items if d.is_error]
        for name, items in grouped.items()
        if any(d.is_error for d in items)
    }

    valid = error_count == 0
    logger.info(f"Lint: {error_count} error(s), {warning_count} warning(s) in {relative}")
    return ValidationResult(
        valid=valid,
        outcome=ValidationOutcome.PASSED if valid else ValidationOutcome.DIAGNOSTICS,
        error_count=error_count,
        warning_count=warning_count,
        diagnostics=diagnostics,
        artifact_errors=artifact_errors,
        unattributed=[format_diagnostics([d]) for d in unattributed if d.is_error],
        raw_output=run.stdout,
        message=f"Lint found {error_count} error(s), {warning_count} warning(s)",
    )


def combine_results(type_result: ValidationResult, lint_result: ValidationResult) -> ValidationResult:
    """Merge a type-check and a lint result into one.

    Either side failing on infrastructure makes the combined result an
    infrastructure failure.
    """
    if type_result.is_infra_failure or lint_result.is_infra_failure:
        messages = [r.message for r in (type_result, lint_result) if r.is_infra_failure]
        return ValidationResult(
            valid=False,
            outcome=ValidationOutcome.INFRA_FAILURE,
            raw_output="\n".join(r.raw_output for r in (type_result, lint_result) if r.raw_output),
            message="; ".join(messages),
        )

    artifact_errors: dict[str, list[str]] = {}
    for result in (type_result, lint_result):
        for name, lines in result.artifact_errors.items():
            artifact_errors.setdefault(name, []).extend(lines)

    valid = type_result.valid and lint_result.valid
    return ValidationResult(
        valid=valid,
        outcome=ValidationOutcome.PASSED if valid else ValidationOutcome.DIAGNOSTICS,
        error_count=type_result.error_count + lint_result.error_count,
        warning_count=type_result.warning_count + lint_result.warning_count,
        diagnostics=type_result.diagnostics + lint_result.diagnostics,
        artifact_errors=artifact_errors,
        unattributed=type_result.unattributed + lint_result.unattributed,
        raw_output="\n".join(r.raw_output for r in (type_result, lint_result) if r.raw_output),
        filtered_from=type_result.filtered_from,
        message="; ".join(r.message for r in (type_result, lint_result) if r.message),
    )
