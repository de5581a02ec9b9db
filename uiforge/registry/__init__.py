"""Artifact registry: a tiered inventory derived from the output directory."""

from uiforge.registry.models import ArtifactRecord, ArtifactRegistry, TierViolation
from uiforge.registry.registry import (
    build,
    empty_registry,
    find_by_name,
    find_tier_violations,
    get_all,
    get_by_tier,
    get_import_path,
    import_path_for,
    imported_artifacts,
    scan,
    upsert,
)

__all__ = [
    "ArtifactRecord",
    "ArtifactRegistry",
    "TierViolation",
    "build",
    "empty_registry",
    "find_by_name",
    "find_tier_violations",
    "get_all",
    "get_by_tier",
    "get_import_path",
    "import_path_for",
    "imported_artifacts",
    "scan",
    "upsert",
]
