"""Interfaces to the services the workflow depends on.

The workflow never talks to an AI backend, a design tool or Storybook
directly; it goes through these protocols. Default implementations live in
``uiforge.synthesis``, ``uiforge.design_source`` and ``uiforge.stories``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

from uiforge.config import Tier
from uiforge.diagnostics.runner import ToolRunner
from uiforge.registry.models import ArtifactRecord, ArtifactRegistry

# =============================================================================
# Exchange Models
# =============================================================================


class ComponentSpec(BaseModel):
    """What to generate for one artifact."""

    name: str
    tier: Tier
    description: str = ""
    props: dict[str, str] = Field(default_factory=dict)  # prop name -> TS type
    dependencies: list[str] = Field(default_factory=list)  # artifact names it may use
    # Filled in by the workflow
    imports: dict[str, str] = Field(default_factory=dict)  # dependency name -> import path
    tokens: dict[str, Any] = Field(default_factory=dict)  # design tokens


class DesignSpec(BaseModel):
    """Specification extracted from the design source."""

    name: str = ""
    components: list[ComponentSpec] = Field(default_factory=list)
    tokens: dict[str, Any] = Field(default_factory=dict)  # colors, spacing, fonts

    def by_tier(self, tier: Tier) -> list[ComponentSpec]:
        return [component for component in self.components if component.tier == tier]


class GeneratedArtifact(BaseModel):
    """Code returned by the synthesis backend for one artifact."""

    name: str
    tier: Tier
    code: str


class StoryResults(BaseModel):
    """What the story generator wrote."""

    generated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)  # name -> error

    @property
    def total(self) -> int:
        return len(self.generated)


# =============================================================================
# Protocols
# =============================================================================


class CodeSynthesizer(Protocol):
    """Produces and repairs artifact source code."""

    async def generate(self, spec: ComponentSpec) -> GeneratedArtifact: ...

    async def fix(self, artifact: ArtifactRecord, diagnostics: str, source: str) -> str:
        """Return corrected source for ``artifact`` given its diagnostics."""
        ...

    async def is_available(self) -> bool: ...


class DesignSource(Protocol):
    """Supplies the design specification, once, at the start of a run."""

    async def extract(self) -> DesignSpec | None: ...


class StoryGenerator(Protocol):
    """Writes stories for the artifacts in a registry."""

    def generate(self, registry: ArtifactRegistry, output_dir: Path) -> StoryResults: ...


@dataclass
class Collaborators:
    """The services one workflow run uses, injected into every phase."""

    synthesizer: CodeSynthesizer
    design_source: DesignSource
    story_generator: StoryGenerator
    tool_runner: ToolRunner


__all__ = [
    "CodeSynthesizer",
    "Collaborators",
    "ComponentSpec",
    "DesignSource",
    "DesignSpec",
    "GeneratedArtifact",
    "StoryGenerator",
    "StoryResults",
    "ToolRunner",
]
