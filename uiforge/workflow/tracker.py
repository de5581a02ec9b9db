"""Per-artifact failure and repair-attempt ledger.

Pure functions over the workflow state. Each takes the current state (a Burr
``State`` or a plain dict) and returns an overlay holding the full new value
of every key it touches; fold it in with ``merge_overlay``::

    view = merge_overlay(view, record_failure(view, "Button", errors=lines))
    view = merge_overlay(view, record_fix_attempt(view, "Button"))

An artifact is in exactly one of four states at any time (see
``ArtifactStatus``). How many fix attempts an artifact gets is decided by
the phases, not here.
"""

from collections.abc import Mapping, Sequence
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from uiforge.config import Tier
from uiforge.diagnostics.models import Diagnostic
from uiforge.workflow.state import Replace


class ArtifactStatus(StrEnum):
    NEVER_FAILED = "never_failed"
    FAILED = "failed"
    FIX_ATTEMPTED = "fix_attempted"
    RESOLVED = "resolved"


class FailureRecord(BaseModel):
    """Why an artifact is failing and whether a fix was tried."""

    component_name: str
    tier: Tier | None = None
    path: Path | None = None
    errors: str | list[str] = Field(default_factory=list)
    issues: list[Diagnostic] = Field(default_factory=list)
    attempted_fix: bool = False

    def error_lines(self) -> list[str]:
        return [self.errors] if isinstance(self.errors, str) else list(self.errors)


def _failed(state: Mapping[str, Any]) -> dict[str, FailureRecord]:
    return dict(state.get("failed_components") or {})


def _validated(state: Mapping[str, Any]) -> list[str]:
    return list(state.get("validated_components") or [])


def record_failure(
    state: Mapping[str, Any],
    name: str,
    *,
    errors: str | Sequence[str] = (),
    issues: Sequence[Diagnostic] = (),
    tier: Tier | None = None,
    path: Path | None = None,
) -> dict[str, Any]:
    """Insert or overwrite the failure record for ``name``.

    Errors and issues are replaced; a previous ``attempted_fix=True`` is kept.
    The artifact leaves ``validated_components``. No counter is incremented.
    """
    failed = _failed(state)
    previous = failed.get(name)
    failed[name] = FailureRecord(
        component_name=name,
        tier=tier if tier is not None else (previous.tier if previous else None),
        path=path if path is not None else (previous.path if previous else None),
        errors=errors if isinstance(errors, str) else list(errors),
        issues=list(issues),
        attempted_fix=bool(previous and previous.attempted_fix),
    )
    validated = [n for n in _validated(state) if n != name]
    return {"failed_components": failed, "validated_components": Replace(validated)}


def record_fix_attempt(state: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Count a fix attempt for ``name`` and flag its failure record, if any."""
    failed = _failed(state)
    record = failed.get(name)
    if record is not None:
        failed[name] = record.model_copy(update={"attempted_fix": True})
    attempts = dict(state.get("fix_attempts") or {})
    attempts[name] = attempts.get(name, 0) + 1
    return {"failed_components": failed, "fix_attempts": attempts}


def resolve(state: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Drop ``name`` from the failures and add it to ``validated_components``."""
    failed = _failed(state)
    failed.pop(name, None)
    validated = _validated(state)
    if name not in validated:
        validated.append(name)
    return {"failed_components": failed, "validated_components": Replace(validated)}


def forget(state: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Remove every trace of ``name`` (used when it left the registry)."""
    failed = _failed(state)
    failed.pop(name, None)
    validated = [n for n in _validated(state) if n != name]
    return {"failed_components": failed, "validated_components": Replace(validated)}


def is_converged(state: Mapping[str, Any]) -> bool:
    return not state.get("failed_components")


def failure_status(state: Mapping[str, Any], name: str) -> ArtifactStatus:
    record = _failed(state).get(name)
    if record is not None:
        return ArtifactStatus.FIX_ATTEMPTED if record.attempted_fix else ArtifactStatus.FAILED
    if name in _validated(state):
        return ArtifactStatus.RESOLVED
    return ArtifactStatus.NEVER_FAILED


def unresolved(state: Mapping[str, Any]) -> list[str]:
    return list(_failed(state))
