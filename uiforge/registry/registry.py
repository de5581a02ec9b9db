"""Artifact registry built from the output directory.

The registry is always derived from what is on disk: ``build`` scans the four
tier folders and returns a fresh value. Nothing is cached between calls; the
workflow threads the registry through its state and replaces it with
``upsert`` when an artifact is (re)generated.

Layout under the root::

    elements/Button.tsx            -> Button (flat)
    elements/Input/Input.tsx       -> Input (folder)
    elements/Input/Input.stories.tsx   (ignored)
"""

import logging
import re
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from uiforge.config import (
    ALLOWED_TIER_DEPENDENCIES,
    ARTIFACT_SUFFIXES,
    DEFAULT_IMPORT_ALIAS,
    STORY_MARKER,
    TIER_ORDER,
    Tier,
)
from uiforge.registry.models import ArtifactRecord, ArtifactRegistry, TierViolation

logger = logging.getLogger(__name__)


# =============================================================================
# Scanning
# =============================================================================


def _is_artifact_file(path: Path) -> bool:
    return path.suffix in ARTIFACT_SUFFIXES and STORY_MARKER not in path.name


def _artifact_files(tier_dir: Path) -> Iterator[tuple[str, Path]]:
    for entry in sorted(tier_dir.iterdir(), key=lambda p: p.name):
        if entry.is_file():
            if _is_artifact_file(entry):
                yield entry.stem, entry
        elif entry.is_dir():
            for suffix in ARTIFACT_SUFFIXES:
                candidate = entry / f"{entry.name}{suffix}"
                if candidate.is_file():
                    yield entry.name, candidate
                    break


def scan(root_dir: Path | str) -> list[ArtifactRecord]:
    """List the artifacts under ``root_dir``'s tier folders.

    Missing tier folders contribute nothing. Any I/O error is logged and
    yields an empty list; scanning never raises.
    """
    root = Path(root_dir)
    records: list[ArtifactRecord] = []
    try:
        for tier in TIER_ORDER:
            tier_dir = root / tier.value
            if not tier_dir.is_dir():
                continue
            for name, path in _artifact_files(tier_dir):
                added_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                records.append(ArtifactRecord(name=name, tier=tier, path=path, added_at=added_at))
    except OSError as e:
        logger.warning(f"Failed to scan artifacts under {root}: {e}")
        return []

    logger.debug(f"Scanned {len(records)} artifact(s) under {root}")
    return records


# =============================================================================
# Building
# =============================================================================


def import_path_for(tier: Tier, name: str, import_alias: str = DEFAULT_IMPORT_ALIAS) -> str:
    """Canonical import path for an artifact."""
    return f"{import_alias.rstrip('/')}/{tier.value}/{name}"


def _import_map(tiers: dict[Tier, tuple[ArtifactRecord, ...]], import_alias: str) -> dict[str, str]:
    # Same precedence as find_by_name: first tier in TIER_ORDER wins
    mapping: dict[str, str] = {}
    for tier in TIER_ORDER:
        for record in tiers.get(tier, ()):
            mapping.setdefault(record.name, import_path_for(tier, record.name, import_alias))
    return mapping


def build(root_dir: Path | str, import_alias: str = DEFAULT_IMPORT_ALIAS) -> ArtifactRegistry:
    """Build a registry from the filesystem.

    Two builds over an unchanged tree compare equal.
    """
    buckets: dict[Tier, list[ArtifactRecord]] = {tier: [] for tier in TIER_ORDER}
    for record in scan(root_dir):
        bucket = buckets[record.tier]
        if any(existing.name == record.name for existing in bucket):
            logger.warning(f"Duplicate artifact {record.tier}/{record.name} at {record.path}; keeping first")
            continue
        bucket.append(record)

    tiers = {tier: tuple(records) for tier, records in buckets.items()}
    registry = ArtifactRegistry(
        tiers=tiers,
        import_map=_import_map(tiers, import_alias),
        import_alias=import_alias,
    )
    logger.info(
        "Registry built: "
        + ", ".join(f"{tier.value}={len(tiers[tier])}" for tier in TIER_ORDER)
    )
    return registry


def empty_registry(import_alias: str = DEFAULT_IMPORT_ALIAS) -> ArtifactRegistry:
    return ArtifactRegistry(import_alias=import_alias)


# =============================================================================
# Lookup
# =============================================================================


def find_by_name(registry: ArtifactRegistry, name: str) -> ArtifactRecord | None:
    """Find an artifact by name, searching tiers in ``TIER_ORDER``."""
    for tier in TIER_ORDER:
        for record in registry.tiers.get(tier, ()):
            if record.name == name:
                return record
    return None


def get_all(registry: ArtifactRegistry) -> tuple[ArtifactRecord, ...]:
    return tuple(record for tier in TIER_ORDER for record in registry.tiers.get(tier, ()))


def get_by_tier(registry: ArtifactRegistry, tier: Tier | str) -> tuple[ArtifactRecord, ...]:
    return registry.tiers.get(Tier(tier), ())


def get_import_path(registry: ArtifactRegistry, name: str) -> str | None:
    return registry.import_map.get(name)


def upsert(registry: ArtifactRegistry, record: ArtifactRecord) -> ArtifactRegistry:
    """Return a new registry with ``record`` added.

    A record with the same ``(tier, name)`` is replaced in place, keeping its
    position; otherwise the record is appended to its tier.
    """
    records = list(registry.tiers.get(record.tier, ()))
    for index, existing in enumerate(records):
        if existing.name == record.name:
            records[index] = record
            break
    else:
        records.append(record)

    tiers = dict(registry.tiers)
    tiers[record.tier] = tuple(records)
    return ArtifactRegistry(
        tiers=tiers,
        import_map=_import_map(tiers, registry.import_alias),
        import_alias=registry.import_alias,
    )


# =============================================================================
# Tier Dependency Check
# =============================================================================

_TIER_ALTERNATION = "|".join(re.escape(tier.value) for tier in Tier)


def _import_pattern(import_alias: str) -> re.Pattern[str]:
    alias = re.escape(import_alias.rstrip("/"))
    return re.compile(
        rf"""['"](?:{alias}/|(?:\.\./)+)({_TIER_ALTERNATION})/([^'"/]+)[^'"]*['"]"""
    )


def imported_artifacts(source: str, import_alias: str = DEFAULT_IMPORT_ALIAS) -> list[tuple[Tier, str]]:
    """Extract ``(tier, name)`` pairs for every tier import in ``source``."""
    return [
        (Tier(match.group(1)), match.group(2))
        for match in _import_pattern(import_alias).finditer(source)
    ]


def find_tier_violations(registry: ArtifactRegistry) -> list[TierViolation]:
    """Report imports that point to a tier the importer may not depend on.

    Same-tier imports are allowed. Unreadable files are skipped with a warning.
    """
    violations: list[TierViolation] = []
    for record in get_all(registry):
        try:
            source = record.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read {record.path} for tier check: {e}")
            continue

        allowed = ALLOWED_TIER_DEPENDENCIES[record.tier]
        for imported_tier, imported_name in imported_artifacts(source, registry.import_alias):
            if imported_tier == record.tier or imported_tier in allowed:
                continue
            violations.append(
                TierViolation(
                    importer=record.name,
                    importer_tier=record.tier,
                    imported=imported_name,
                    imported_tier=imported_tier,
                    path=record.path,
                )
            )

    if violations:
        logger.warning(f"Found {len(violations)} tier dependency violation(s)")
    return violations
