"""Shared test fixtures and helpers.

Fakes for the workflow collaborators (synthesizer, tool runner, design
source, story generator) plus helpers that lay out an artifact tree.
"""

import json
from pathlib import Path

import pytest

from uiforge.config import ForgeConfig, Tier
from uiforge.design_source import StaticDesignSource
from uiforge.diagnostics.runner import ToolRun
from uiforge.exceptions import SynthesisError
from uiforge.workflow.collaborators import (
    Collaborators,
    ComponentSpec,
    DesignSpec,
    GeneratedArtifact,
    StoryResults,
)

# ---------------------------------------------------------------------------
# Artifact tree helpers
# ---------------------------------------------------------------------------


def write_artifact(root: Path, tier: str, name: str, code: str = "", flat: bool = False) -> Path:
    """Write ``<root>/<tier>/<name>/<name>.tsx`` (or the flat form) and return its path."""
    folder = root / tier if flat else root / tier / name
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{name}.tsx"
    path.write_text(code or f"export const {name} = () => null;\n", encoding="utf-8")
    return path


def lint_report(*entries: tuple[str, list[dict]]) -> str:
    """ESLint JSON report from ``(file_path, messages)`` pairs."""
    return json.dumps([{"filePath": path, "messages": messages} for path, messages in entries])


def lint_message(line: int = 1, severity: int = 2, rule: str = "no-unused-vars", message: str = "unused") -> dict:
    return {"line": line, "column": 1, "severity": severity, "ruleId": rule, "message": message}


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeToolRunner:
    """Scripted type checker and linter.

    Each call consumes the next scripted run for that tool; the last one
    keeps repeating. Defaults are a clean type check and an empty lint report.
    """

    def __init__(self, type_runs: list[ToolRun] | None = None, lint_runs: list[ToolRun] | None = None):
        self.type_runs = list(type_runs or [ToolRun(exit_code=0)])
        self.lint_runs = list(lint_runs or [ToolRun(exit_code=0, stdout="[]")])
        self.calls: list[tuple[list[str], Path]] = []

    def run(self, args, cwd):
        self.calls.append((list(args), cwd))
        queue = self.lint_runs if "eslint" in args else self.type_runs
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def count(self, tool: str) -> int:
        return sum(1 for args, _ in self.calls if tool in args)


class FakeSynthesizer:
    """CodeSynthesizer returning canned code.

    ``fail`` names artifacts whose generation raises a terminal error;
    ``fixed_code`` is what every fix call returns (defaults to the source).
    """

    def __init__(self, available: bool = True, fail: set[str] | None = None, fixed_code: str | None = None):
        self.available = available
        self.fail = set(fail or ())
        self.fixed_code = fixed_code
        self.generated: list[ComponentSpec] = []
        self.fixes: list[tuple[str, str]] = []

    async def generate(self, spec):
        self.generated.append(spec)
        if spec.name in self.fail:
            raise SynthesisError(f"cannot generate {spec.name}", status=400)
        return GeneratedArtifact(
            name=spec.name, tier=spec.tier, code=f"export const {spec.name} = () => null;\n"
        )

    async def fix(self, artifact, diagnostics, source):
        self.fixes.append((artifact.name, diagnostics))
        return self.fixed_code if self.fixed_code is not None else source

    async def is_available(self):
        return self.available


class FakeStoryGenerator:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = 0

    def generate(self, registry, output_dir):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return StoryResults(generated=registry.names())


async def _no_sleep(seconds):
    return None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def no_sleep():
    """Async sleep replacement that returns immediately."""
    return _no_sleep


@pytest.fixture
def output_dir(tmp_path):
    """Artifact root ``<tmp>/ui``; the project root is ``tmp_path``."""
    root = tmp_path / "ui"
    root.mkdir()
    return root


@pytest.fixture
def forge_config(output_dir):
    return ForgeConfig(
        output_dir=output_dir,
        delay_between_batches_ms=0,
        initial_retry_delay_ms=0,
    )


@pytest.fixture
def design():
    """Three-tier design: an icon, an element using it, a component using both."""
    return DesignSpec(
        name="Dashboard",
        tokens={"colors": {"primary": "#0f62fe"}},
        components=[
            ComponentSpec(name="Button", tier=Tier.ELEMENTS, dependencies=["Star"]),
            ComponentSpec(name="SearchBar", tier=Tier.COMPONENTS, dependencies=["Button", "Star"]),
            ComponentSpec(name="Star", tier=Tier.ICONS),
        ],
    )


@pytest.fixture
def make_collaborators(design):
    """Factory for Collaborators with fakes; override any one by keyword."""

    def _make(**overrides):
        parts = {
            "synthesizer": FakeSynthesizer(),
            "design_source": StaticDesignSource(design),
            "story_generator": FakeStoryGenerator(),
            "tool_runner": FakeToolRunner(),
        }
        parts.update(overrides)
        return Collaborators(**parts)

    return _make
