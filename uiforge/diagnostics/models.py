"""Pydantic models for static-analysis results.

A ``Diagnostic`` is one error or warning from the type checker or linter.
``ValidationResult`` is what a single tool run produces; ``QualityResult``
is the per-artifact record written by the lint-only quality review.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from uiforge.config import Severity


class ValidationOutcome(StrEnum):
    """How a validation run ended.

    ``INFRA_FAILURE`` means the tool itself could not be trusted (non-zero
    exit with no output, or unparseable output) and is never treated as
    either passing or failing code.
    """

    PASSED = "passed"
    DIAGNOSTICS = "diagnostics"
    INFRA_FAILURE = "infra_failure"


class Diagnostic(BaseModel):
    """A single structured error or warning."""

    file: str
    line: int = 0
    column: int = 0
    message: str
    rule: str | None = None  # None for type-checker diagnostics
    severity: Severity = Severity.ERROR
    code: str | None = None  # e.g. TS2322
    continuation: list[str] = Field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class ValidationResult(BaseModel):
    """Outcome of one static-analysis run, optionally narrowed to a target path."""

    valid: bool
    outcome: ValidationOutcome
    error_count: int = 0
    warning_count: int = 0
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    artifact_errors: dict[str, list[str]] = Field(default_factory=dict)
    unattributed: list[str] = Field(default_factory=list)
    raw_output: str = ""  # kept for audit
    filtered_from: str | None = None  # unfiltered output when a path filter emptied it
    message: str = ""

    @property
    def is_infra_failure(self) -> bool:
        return self.outcome == ValidationOutcome.INFRA_FAILURE


class QualityResult(BaseModel):
    """Lint-only review result for one artifact."""

    artifact: str
    valid: bool
    error_count: int = 0
    warning_count: int = 0
    issues: list[Diagnostic] = Field(default_factory=list)
    cycles: int = 0  # repair cycles spent during review
