"""Workflow and phase spans.

Span hierarchy:
    workflow:<project>         (one per WorkflowRunner.run)
    └── phase:<name>           (one per Burr action)
        └── agent / model spans created by Strands during synthesis

Without a configured TracerProvider the OpenTelemetry API hands out
non-recording spans, so these helpers are always safe to call.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, StatusCode

TRACER_NAME = "uiforge.workflow"


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def _span(name: str, attributes: dict[str, Any]) -> Generator[Span, None, None]:
    with get_tracer().start_as_current_span(
        name, attributes=attributes, record_exception=False, set_status_on_exception=False
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(StatusCode.ERROR, str(e)[:200])
            raise
        span.set_status(StatusCode.OK)


@contextmanager
def workflow_span(project: str, app_id: str, output_dir: str, **attributes: Any) -> Generator[Span, None, None]:
    """Root span for one workflow run."""
    span_attributes = {
        "workflow.project": project,
        "workflow.app_id": app_id,
        "workflow.output_dir": output_dir,
        **attributes,
    }
    with _span(f"workflow:{project}", span_attributes) as span:
        yield span


@contextmanager
def phase_span(phase: str, **attributes: Any) -> Generator[Span, None, None]:
    """Span around a single phase; callers add outcome attributes before it closes."""
    with _span(f"phase:{phase}", {"phase.name": phase, **attributes}) as span:
        yield span


def record_phase_outcome(span: Span, status: str, errors: int, failed: int) -> None:
    span.set_attribute("phase.status", status)
    span.set_attribute("phase.error_count", errors)
    span.set_attribute("phase.failed_artifacts", failed)
    if status == "failed":
        span.add_event("phase_failed")
