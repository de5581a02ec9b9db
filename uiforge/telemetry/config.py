"""Logging and trace-export setup for uiforge runs.

``init_telemetry()`` is called once by ``run_workflow`` before the Burr
application starts. It always configures logging; trace export is opt-in
through ``OTEL_TRACES_EXPORTER`` (``otlp`` or ``console``).
"""

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Follow the configured level: our own code and the synthesis SDK
_PROJECT_LOGGERS = ("uiforge", "strands")
# Capped at WARNING unless running at DEBUG
_NOISY_LOGGERS = ("urllib3", "botocore", "boto3", "burr", "httpx")

_telemetry_initialized = False
_strands_telemetry = None


class ExporterType(Enum):
    """Supported trace exporters."""

    OTLP = "otlp"
    CONSOLE = "console"
    NONE = "none"


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


@dataclass
class TelemetryConfig:
    """Logging level plus OpenTelemetry export settings.

    Export is off by default: a workflow run usually happens on a developer
    machine without a collector listening.
    """

    log_level: str = "INFO"
    service_name: str = "uiforge"
    otlp_endpoint: str = "http://localhost:4317"
    traces_exporter: ExporterType = ExporterType.NONE
    otel_disabled: bool = False

    @property
    def exports_traces(self) -> bool:
        return not self.otel_disabled and self.traces_exporter is not ExporterType.NONE

    @classmethod
    def from_env(cls) -> "TelemetryConfig":
        raw_exporter = os.getenv("OTEL_TRACES_EXPORTER", ExporterType.NONE.value).lower()
        try:
            exporter = ExporterType(raw_exporter)
        except ValueError:
            logger.warning(f"Unknown exporter type '{raw_exporter}', trace export disabled")
            exporter = ExporterType.NONE

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            service_name=os.getenv("OTEL_SERVICE_NAME", "uiforge"),
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317"),
            traces_exporter=exporter,
            otel_disabled=_truthy(os.getenv("OTEL_SDK_DISABLED")),
        )


def _setup_logging(config: TelemetryConfig) -> None:
    """Replace the root handlers with one stdout handler at the configured level."""
    level = logging.getLevelName(config.log_level)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _PROJECT_LOGGERS:
        logging.getLogger(name).setLevel(level)
    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(f"Logging configured: level={logging.getLevelName(level)}")


def _setup_trace_export(config: TelemetryConfig) -> Any:
    """Install a global TracerProvider and hand it to Strands.

    Returns the StrandsTelemetry instance, or None when export is off.
    """
    if not config.exports_traces:
        logger.info("Trace export disabled")
        return None

    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from strands.telemetry import StrandsTelemetry

    tracer_provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    trace.set_tracer_provider(tracer_provider)
    telemetry = StrandsTelemetry(tracer_provider=tracer_provider)

    if config.traces_exporter is ExporterType.OTLP:
        telemetry.setup_otlp_exporter(endpoint=config.otlp_endpoint)
        logger.info(f"Exporting traces over OTLP to {config.otlp_endpoint}")
    else:
        telemetry.setup_console_exporter()
        logger.info("Exporting traces to the console")
    return telemetry


def init_telemetry(config: TelemetryConfig | None = None) -> None:
    """Configure logging and, if enabled, trace export. Later calls are no-ops."""
    global _telemetry_initialized, _strands_telemetry

    if _telemetry_initialized:
        logger.debug("Telemetry already initialized, skipping")
        return

    config = config or TelemetryConfig.from_env()
    _setup_logging(config)
    _strands_telemetry = _setup_trace_export(config)
    _telemetry_initialized = True

    logger.info(
        f"Telemetry initialized: service={config.service_name}, "
        f"exporter={config.traces_exporter.value}"
    )


def shutdown_telemetry() -> None:
    """Forget the current setup so the next ``init_telemetry`` reconfigures."""
    global _telemetry_initialized, _strands_telemetry

    if not _telemetry_initialized:
        return
    _telemetry_initialized = False
    _strands_telemetry = None
    logger.info("Telemetry shutdown complete")


def is_telemetry_enabled() -> bool:
    """True once ``init_telemetry`` has run with trace export on."""
    return _telemetry_initialized and _strands_telemetry is not None
