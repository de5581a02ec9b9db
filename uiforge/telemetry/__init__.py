"""Logging and tracing setup for uiforge.

Usage:
    from uiforge.telemetry import init_telemetry, phase_span

    # Initialize once at startup
    init_telemetry()

    with phase_span("validate") as span:
        ...

Environment Variables:
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector endpoint - default: http://localhost:4317
    OTEL_SERVICE_NAME: Service name for traces - default: uiforge
    OTEL_TRACES_EXPORTER: Exporter type (otlp, console, none) - default: none
    OTEL_SDK_DISABLED: Disable trace export - default: false
"""

from .config import (
    ExporterType,
    TelemetryConfig,
    init_telemetry,
    is_telemetry_enabled,
    shutdown_telemetry,
)
from .spans import get_tracer, phase_span, record_phase_outcome, workflow_span

__all__ = [
    "ExporterType",
    "TelemetryConfig",
    "get_tracer",
    "init_telemetry",
    "is_telemetry_enabled",
    "phase_span",
    "record_phase_outcome",
    "shutdown_telemetry",
    "workflow_span",
]
