"""Workflow state keys, defaults and the overlay merge.

Phases never mutate state. Each returns an overlay dict which
``merge_overlay`` folds into a *new* state:

- ``errors`` is append-only; an exact ``(phase, message)`` repeat bumps the
  existing entry's ``occurrences`` instead of adding a line.
- ``validated_components`` is an order-preserving union.
- any value wrapped in ``Replace`` replaces the key outright (the tracker
  uses this to drop names from ``validated_components``).
- every other key is replaced.

The merge works on Burr ``State`` objects and on plain dicts alike.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from burr.core import State
from pydantic import BaseModel, ConfigDict

from uiforge.config import WorkflowPhase


class PhaseError(BaseModel):
    """A user-visible error recorded by a phase."""

    model_config = ConfigDict(frozen=True)

    phase: str
    message: str
    occurrences: int = 1

    def repeated(self, times: int = 1) -> "PhaseError":
        return self.model_copy(update={"occurrences": self.occurrences + times})

    def __str__(self) -> str:
        suffix = f" (x{self.occurrences})" if self.occurrences > 1 else ""
        return f"[{self.phase}] {self.message}{suffix}"


@dataclass(frozen=True)
class Replace:
    """Overlay value that replaces a merged key instead of merging into it."""

    value: Any


APPEND_KEYS = frozenset({"errors"})
UNION_KEYS = frozenset({"validated_components"})

StateLike = TypeVar("StateLike", State, dict)


def default_state() -> dict[str, Any]:
    """Initial values for every state key the phases read or write."""
    return {
        "current_phase": WorkflowPhase.INIT.value,
        "output_dir": "",
        "project_root": "",
        "design_spec": None,
        "analysis_failed": False,
        "registry": None,
        "setup_failed": False,
        "generated_components": [],
        "generation_errors": {},
        "failed_components": {},
        "validated_components": [],
        "validation_results": {},
        "fix_attempts": {},
        "final_check_passed": False,
        "final_check_attempts": 0,
        "iterations": 0,
        "errors": [],
        "unattributed_diagnostics": [],
        "validation_infra_failed": False,
        "story_generation_error": None,
        "stories_generated": 0,
        "story_results": None,
        "route": "",
        "success": False,
        "workflow_completed": False,
        "start_time": time.time(),
        "end_time": None,
        "elapsed_seconds": 0.0,
        "total_components_generated": 0,
        "summary": None,
    }


def _append_counted(existing: list[PhaseError], new: list[PhaseError]) -> list[PhaseError]:
    merged = list(existing)
    position = {(e.phase, e.message): i for i, e in enumerate(merged)}
    for error in new:
        key = (error.phase, error.message)
        if key in position:
            index = position[key]
            merged[index] = merged[index].repeated(error.occurrences)
        else:
            position[key] = len(merged)
            merged.append(error)
    return merged


def _union(existing: list[str], new: list[str]) -> list[str]:
    return list(dict.fromkeys([*existing, *new]))


def merge_overlay(state: StateLike, overlay: Mapping[str, Any]) -> StateLike:
    """Fold a phase overlay into ``state``, returning a new state."""
    updates: dict[str, Any] = {}
    for key, value in overlay.items():
        if isinstance(value, Replace):
            updates[key] = value.value
        elif key in APPEND_KEYS:
            updates[key] = _append_counted(list(state.get(key) or []), list(value))
        elif key in UNION_KEYS:
            updates[key] = _union(list(state.get(key) or []), list(value))
        else:
            updates[key] = value

    if isinstance(state, State):
        return state.update(**updates)
    return {**state, **updates}
