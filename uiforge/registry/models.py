"""Pydantic models for the artifact registry."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from uiforge.config import DEFAULT_IMPORT_ALIAS, TIER_ORDER, Tier


class ArtifactRecord(BaseModel):
    """One generated artifact on disk.

    ``added_at`` is the file's modification time, so rebuilding the registry
    over an unchanged tree yields equal records.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    tier: Tier
    path: Path
    added_at: datetime


def _empty_tiers() -> dict[Tier, tuple[ArtifactRecord, ...]]:
    return {tier: () for tier in TIER_ORDER}


class ArtifactRegistry(BaseModel):
    """Tiered inventory of artifacts plus the name → import path map.

    Registries are values: every change produces a new registry.
    """

    model_config = ConfigDict(frozen=True)

    tiers: dict[Tier, tuple[ArtifactRecord, ...]] = Field(default_factory=_empty_tiers)
    import_map: dict[str, str] = Field(default_factory=dict)
    import_alias: str = DEFAULT_IMPORT_ALIAS

    @property
    def size(self) -> int:
        return sum(len(records) for records in self.tiers.values())

    def names(self) -> list[str]:
        """All artifact names in tier order."""
        return [record.name for tier in TIER_ORDER for record in self.tiers.get(tier, ())]


class TierViolation(BaseModel):
    """An import that points against the tier dependency direction."""

    importer: str
    importer_tier: Tier
    imported: str
    imported_tier: Tier
    path: Path

    def describe(self) -> str:
        return (
            f"{self.importer_tier}/{self.importer} imports "
            f"{self.imported_tier}/{self.imported}, which {self.importer_tier} may not depend on"
        )
