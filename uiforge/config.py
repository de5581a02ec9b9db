"""Centralized configuration for uiforge.

This module provides a single source of truth for workflow constants,
eliminating hardcoded values scattered across the codebase.

Design Principles:
- Retry, batching and repair-loop bounds in one place
- Enums for the closed sets (phases, tiers, severities)
- ``ForgeConfig`` for per-run settings, loadable from env or YAML
"""

import logging
import os
from dataclasses import dataclass, fields
from enum import StrEnum
from pathlib import Path

import yaml

from uiforge.exceptions import WorkflowConfigError

logger = logging.getLogger(__name__)

# =============================================================================
# Enums for Type Safety
# =============================================================================


class WorkflowPhase(StrEnum):
    """Phases of the generation workflow, in graph order."""

    INIT = "init"
    ANALYZE = "analyze"
    SETUP = "setup"
    GENERATE = "generate"
    GENERATE_STORIES = "generate_stories"
    VALIDATE = "validate"
    TYPESCRIPT_FIX = "typescript_fix"
    QUALITY_REVIEW = "quality_review"
    FINAL_CHECK = "final_check"
    DECIDE_NEXT = "decide_next"
    FINALIZE = "finalize"
    END = "end"


class Tier(StrEnum):
    """Atomic-design tiers, each a subdirectory of the output root."""

    ELEMENTS = "elements"
    COMPONENTS = "components"
    MODULES = "modules"
    ICONS = "icons"


class Severity(StrEnum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


# Lookup order for registry searches; also the generation order.
TIER_ORDER: tuple[Tier, ...] = (Tier.ELEMENTS, Tier.COMPONENTS, Tier.MODULES, Tier.ICONS)

# Tiers each tier may import from.
ALLOWED_TIER_DEPENDENCIES: dict[Tier, frozenset[Tier]] = {
    Tier.ELEMENTS: frozenset({Tier.ICONS}),
    Tier.COMPONENTS: frozenset({Tier.ELEMENTS, Tier.ICONS}),
    Tier.MODULES: frozenset({Tier.ELEMENTS, Tier.COMPONENTS, Tier.ICONS}),
    Tier.ICONS: frozenset(),
}


# =============================================================================
# Artifact Layout
# =============================================================================

ARTIFACT_SUFFIXES = (".tsx", ".jsx")

# Story files live beside artifacts but are never artifacts themselves
STORY_MARKER = ".stories."

DEFAULT_IMPORT_ALIAS = "@/ui"

DEFAULT_OUTPUT_DIR = "ui"


# =============================================================================
# Retry / Batch Configuration
# =============================================================================

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_TRANSPORT_CODES = frozenset({"ECONNRESET", "ETIMEDOUT"})

DEFAULT_MAX_BATCH_SIZE = 10
DEFAULT_DELAY_BETWEEN_BATCHES_MS = 1000
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY_MS = 2000
DEFAULT_BACKOFF_MULTIPLIER = 2.0


# =============================================================================
# Repair Loop Bounds
# =============================================================================

MAX_FINAL_CHECK_ATTEMPTS = 3
REPAIR_CYCLES_PER_PASS = 2
MAX_FIX_ATTEMPTS = 4
MAX_ITERATIONS = 12


# =============================================================================
# Static Analysis Commands
# =============================================================================

TYPE_CHECK_COMMAND = ("npx", "tsc", "--noEmit", "--skipLibCheck")
LINT_COMMAND = ("npx", "eslint", "--ext", ".ts,.tsx", "--format", "json")


# =============================================================================
# Per-run Configuration
# =============================================================================


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ForgeConfig:
    """Settings for one workflow run.

    ``output_dir`` is the artifact root (holding the four tier folders);
    ``project_root`` is where the static-analysis tools run and defaults to
    the parent of ``output_dir``.
    """

    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    project_root: Path | None = None
    import_alias: str = DEFAULT_IMPORT_ALIAS

    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    delay_between_batches_ms: int = DEFAULT_DELAY_BETWEEN_BATCHES_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay_ms: int = DEFAULT_INITIAL_RETRY_DELAY_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER

    max_final_check_attempts: int = MAX_FINAL_CHECK_ATTEMPTS
    repair_cycles_per_pass: int = REPAIR_CYCLES_PER_PASS
    max_fix_attempts: int = MAX_FIX_ATTEMPTS
    max_iterations: int = MAX_ITERATIONS
    review_warnings: bool = False

    type_check_command: tuple[str, ...] = TYPE_CHECK_COMMAND
    lint_command: tuple[str, ...] = LINT_COMMAND

    enable_tracking: bool = False
    tracking_project: str = ""

    def __post_init__(self) -> None:
        for name in (
            "max_batch_size",
            "max_final_check_attempts",
            "max_fix_attempts",
            "max_iterations",
        ):
            if getattr(self, name) < 1:
                raise WorkflowConfigError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.max_retries < 0 or self.repair_cycles_per_pass < 0:
            raise WorkflowConfigError("max_retries and repair_cycles_per_pass must be >= 0")
        if self.backoff_multiplier < 1:
            raise WorkflowConfigError("backoff_multiplier must be >= 1")

    @property
    def resolved_project_root(self) -> Path:
        if self.project_root is not None:
            return Path(self.project_root)
        return Path(self.output_dir).resolve().parent

    @classmethod
    def from_env(cls) -> "ForgeConfig":
        """Create config from ``UIFORGE_*`` environment variables."""
        project_root = os.getenv("UIFORGE_PROJECT_ROOT")
        try:
            return cls(
                output_dir=Path(os.getenv("UIFORGE_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
                project_root=Path(project_root) if project_root else None,
                import_alias=os.getenv("UIFORGE_IMPORT_ALIAS", DEFAULT_IMPORT_ALIAS),
                max_batch_size=int(
                    os.getenv("UIFORGE_MAX_BATCH_SIZE", str(DEFAULT_MAX_BATCH_SIZE))
                ),
                delay_between_batches_ms=int(
                    os.getenv(
                        "UIFORGE_DELAY_BETWEEN_BATCHES_MS", str(DEFAULT_DELAY_BETWEEN_BATCHES_MS)
                    )
                ),
                max_retries=int(os.getenv("UIFORGE_MAX_RETRIES", str(DEFAULT_MAX_RETRIES))),
                max_final_check_attempts=int(
                    os.getenv("UIFORGE_MAX_FINAL_CHECK_ATTEMPTS", str(MAX_FINAL_CHECK_ATTEMPTS))
                ),
                max_fix_attempts=int(
                    os.getenv("UIFORGE_MAX_FIX_ATTEMPTS", str(MAX_FIX_ATTEMPTS))
                ),
                review_warnings=_env_bool("UIFORGE_REVIEW_WARNINGS", False),
                enable_tracking=_env_bool("UIFORGE_ENABLE_TRACKING", False),
            )
        except ValueError as e:
            raise WorkflowConfigError(f"Invalid UIFORGE_* environment value: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ForgeConfig":
        """Load config from a YAML file.

        Example uiforge.yaml:
            output_dir: atomic-design-pattern/ui
            max_batch_size: 5
            review_warnings: true
            lint_command: [npx, eslint, --format, json]
        """
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise WorkflowConfigError(f"Could not read config {path}: {e}") from e

        if not isinstance(data, dict):
            raise WorkflowConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise WorkflowConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")

        for key in ("output_dir", "project_root"):
            if data.get(key) is not None:
                data[key] = Path(data[key])
        for key in ("type_check_command", "lint_command"):
            if key in data:
                data[key] = tuple(data[key])

        logger.info(f"Loaded config from {path} ({len(data)} keys)")
        return cls(**data)
