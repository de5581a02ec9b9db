"""Declarative workflow specification.

The generation workflow is defined as data: actions, transitions and state
keys. ``build_workflow()`` in ``workflow_builder.py`` turns a spec into a
Burr Application.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from burr.core import default, when

from uiforge.config import WorkflowPhase
from uiforge.workflow.state import default_state

from .burr_actions import (
    analyze,
    decide_next,
    end,
    final_check,
    finalize,
    generate,
    generate_stories,
    quality_review,
    setup,
    typescript_fix,
    validate,
)
from .phases import ROUTE_RETRY


@dataclass
class WorkflowSpec:
    """Declarative workflow definition.

    Attributes:
        actions: Mapping of action name to Burr action callable.
        transitions: List of Burr transition tuples.
        entrypoint: Name of the first action.
        tracking_project: Burr tracking project name.
        stages: Ordered list of action names (used for progress tracking).
            Each stage gets a ``{stage}_status: "pending"`` state key.
        terminal: Action the application halts after.
        extra_state: Additional state defaults layered over ``default_state()``.
    """

    actions: dict[str, Callable]
    transitions: list[tuple]
    entrypoint: str
    tracking_project: str
    stages: list[str]
    terminal: str = WorkflowPhase.END.value
    extra_state: dict[str, Any] = field(default_factory=dict)

    def build_default_state(self) -> dict[str, Any]:
        """Build the default state dict for this workflow."""
        state = default_state()
        for stage in self.stages:
            state[f"{stage}_status"] = "pending"
        state.update(self.extra_state)
        return state


GENERATION_WORKFLOW_SPEC = WorkflowSpec(
    actions={
        "analyze": analyze,
        "setup": setup,
        "generate": generate,
        "generate_stories": generate_stories,
        "validate": validate,
        "typescript_fix": typescript_fix,
        "quality_review": quality_review,
        "final_check": final_check,
        "decide_next": decide_next,
        "finalize": finalize,
        "end": end,
    },
    transitions=[
        ("analyze", "finalize", when(analysis_failed=True)),
        ("analyze", "setup", default),
        ("setup", "finalize", when(setup_failed=True)),
        ("setup", "generate", default),
        ("generate", "generate_stories"),
        ("generate_stories", "validate"),
        ("validate", "finalize", when(validation_infra_failed=True)),
        ("validate", "typescript_fix", default),
        ("typescript_fix", "quality_review"),
        ("quality_review", "final_check"),
        ("final_check", "finalize", when(validation_infra_failed=True)),
        ("final_check", "decide_next", default),
        ("decide_next", "typescript_fix", when(route=ROUTE_RETRY)),
        ("decide_next", "finalize", default),
        ("finalize", "end"),
    ],
    entrypoint="analyze",
    tracking_project="uiforge-generation",
    stages=[phase.value for phase in WorkflowPhase if phase is not WorkflowPhase.INIT],
)
