"""Workflow runner for uiforge.

This module provides the WorkflowRunner for workflow execution and the
WorkflowResult data class for capturing execution outcomes. Graph definition
lives in :mod:`uiforge.workflow.workflow_specs`; this is the execution layer
that turns the final Burr state into a result a caller can show to a user.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from uiforge.config import ForgeConfig, WorkflowPhase
from uiforge.execution.batch_executor import BatchProgress
from uiforge.telemetry.spans import workflow_span
from uiforge.workflow import tracker
from uiforge.workflow.collaborators import Collaborators
from uiforge.workflow.phases import PhaseContext
from uiforge.workflow.state import PhaseError
from uiforge.workflow.summary import WorkflowSummary
from uiforge.workflow.workflow_builder import build_workflow
from uiforge.workflow.workflow_specs import GENERATION_WORKFLOW_SPEC, WorkflowSpec

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Result of workflow execution."""

    status: str  # COMPLETED, FAILED
    final_phase: str
    success: bool = False
    summary: WorkflowSummary | None = None
    unresolved: list[str] = field(default_factory=list)
    errors: list[PhaseError] = field(default_factory=list)
    execution_time: float = 0.0
    error: str | None = None  # Set when the run itself blew up


class WorkflowRunner:
    """Runs the generation workflow to its terminal phase.

    Args:
        config: Run settings.
        collaborators: Services the phases call.
        spec: Workflow specification (the generation workflow by default).
        on_phase_start: Callback when a phase starts.
        on_phase_complete: Callback when a phase completes.
        on_batch_progress: Callback with a ``BatchProgress`` after each batch chunk.
        ctx: Optional pre-built phase context.
    """

    def __init__(
        self,
        config: ForgeConfig,
        collaborators: Collaborators,
        spec: WorkflowSpec = GENERATION_WORKFLOW_SPEC,
        on_phase_start: Callable | None = None,
        on_phase_complete: Callable | None = None,
        on_batch_progress: Callable[[BatchProgress], None] | None = None,
        ctx: PhaseContext | None = None,
    ):
        self.config = config
        self.collaborators = collaborators
        self.spec = spec
        self.on_phase_start = on_phase_start
        self.on_phase_complete = on_phase_complete
        self.on_batch_progress = on_batch_progress
        self.ctx = ctx
        self.app = None

    def create_workflow(self) -> None:
        self.app = build_workflow(
            self.config,
            self.collaborators,
            spec=self.spec,
            on_phase_start=self.on_phase_start,
            on_phase_complete=self.on_phase_complete,
            on_batch_progress=self.on_batch_progress,
            ctx=self.ctx,
        )

    async def run(self) -> WorkflowResult:
        """Run the workflow to completion.

        Never raises: an uncaught exception becomes a FAILED result.
        """
        start_time = time.time()
        try:
            self.create_workflow()

            logger.info("=" * 60)
            logger.info("WORKFLOW EXECUTION STARTED")
            logger.info(f"Output directory: {self.config.output_dir}")
            logger.info("=" * 60)

            with workflow_span(
                self.config.tracking_project or self.spec.tracking_project,
                app_id=self.app.uid,
                output_dir=str(self.config.output_dir),
            ) as span:
                final_action, _, final_state = await self.app.arun(halt_after=[self.spec.terminal])
                success = bool(final_state.get("success"))
                span.set_attribute("workflow.success", success)
            execution_time = time.time() - start_time

            summary: WorkflowSummary | None = final_state.get("summary")
            final_phase = summary.final_phase if summary else final_action.name

            logger.info("=" * 60)
            logger.info(f"WORKFLOW {'COMPLETED SUCCESSFULLY' if success else 'FINISHED WITH ERRORS'}")
            logger.info(f"Execution time: {execution_time:.1f}s")
            logger.info("=" * 60)

            return WorkflowResult(
                status="COMPLETED" if success else "FAILED",
                final_phase=final_phase,
                success=success,
                summary=summary,
                unresolved=sorted(tracker.unresolved(final_state)),
                errors=list(final_state.get("errors") or []),
                execution_time=execution_time,
            )

        except Exception as e:  # Intentional catch-all: top-level workflow boundary
            execution_time = time.time() - start_time
            logger.error(f"Workflow execution failed: {e}", exc_info=True)

            return WorkflowResult(
                status="FAILED",
                final_phase=WorkflowPhase.INIT.value if self.app is None else "unknown",
                error=str(e),
                execution_time=execution_time,
            )


def default_collaborators(design_path: Path | str, model_id: str | None = None) -> Collaborators:
    """Collaborators backed by the bundled adapters.

    Adapters are imported lazily so importing the workflow does not pull in
    the Strands SDK.
    """
    from uiforge.design_source import FileDesignSource
    from uiforge.diagnostics.runner import SubprocessToolRunner
    from uiforge.stories import TemplateStoryGenerator
    from uiforge.synthesis import StrandsCodeSynthesizer

    return Collaborators(
        synthesizer=StrandsCodeSynthesizer(model_id=model_id),
        design_source=FileDesignSource(design_path),
        story_generator=TemplateStoryGenerator(),
        tool_runner=SubprocessToolRunner(),
    )


def run_workflow(
    design_path: Path | str,
    config: ForgeConfig | None = None,
    collaborators: Collaborators | None = None,
    **runner_kwargs: Any,
) -> WorkflowResult:
    """Configure logging, run the workflow synchronously and print the summary."""
    from uiforge.telemetry import init_telemetry

    init_telemetry()

    config = config or ForgeConfig.from_env()
    collaborators = collaborators or default_collaborators(design_path)
    result = asyncio.run(WorkflowRunner(config, collaborators, **runner_kwargs).run())

    if result.summary is not None:
        print(result.summary.render())
    elif result.error:
        print(f"Workflow failed: {result.error}")
    return result
