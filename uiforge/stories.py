"""Storybook story generation from templates.

Writes a CSF story file (``<Name>.stories.tsx``) next to each artifact that
does not have one yet. Stories are derived from the artifact source: a
``Default`` story always, plus one story per literal of a ``variant`` prop
union when the component declares one.
"""

import logging
import re
from pathlib import Path

from uiforge.config import Tier
from uiforge.registry.models import ArtifactRecord, ArtifactRegistry
from uiforge.registry.registry import get_all, import_path_for
from uiforge.workflow.collaborators import StoryResults

logger = logging.getLogger(__name__)

_VARIANT_RE = re.compile(r"\bvariant\??\s*:\s*((?:\s*\|?\s*['\"][^'\"]+['\"])+)")
_LITERAL_RE = re.compile(r"['\"]([^'\"]+)['\"]")
_FUNCTION_PROP_RE = re.compile(r"\b(on[A-Z]\w*)\??\s*:\s*\(")

_STORY_TEMPLATE = """import type {{ Meta, StoryObj }} from '@storybook/react';
import {name} from '{import_path}';

const meta: Meta<typeof {name}> = {{
  title: '{title}',
  component: {name},
  parameters: {{
    layout: 'centered',
  }},
  tags: ['autodocs'],
}};

export default meta;
type Story = StoryObj<typeof {name}>;

{stories}
"""


def story_path_for(record: ArtifactRecord) -> Path:
    return record.path.with_name(f"{record.name}.stories{record.path.suffix}")


def _story_name(variant: str) -> str:
    parts = re.split(r"[^0-9A-Za-z]+", variant)
    name = "".join(part[:1].upper() + part[1:] for part in parts if part)
    if not name or name[0].isdigit():
        name = f"Variant{name}"
    return name


def _render_args(args: dict[str, str]) -> str:
    if not args:
        return "{}"
    body = "\n".join(f"    {key}: {value}," for key, value in args.items())
    return "{\n" + body + "\n  }"


def build_story_file(record: ArtifactRecord, source: str, import_alias: str) -> tuple[str, int]:
    """Render the story file for an artifact; returns (content, story count)."""
    base_args = {prop: "() => {}" for prop in dict.fromkeys(_FUNCTION_PROP_RE.findall(source))}

    stories: list[tuple[str, dict[str, str]]] = [("Default", dict(base_args))]
    variant_match = _VARIANT_RE.search(source)
    if variant_match:
        seen = {"Default"}
        for literal in _LITERAL_RE.findall(variant_match.group(1)):
            story_name = _story_name(literal)
            if story_name in seen:
                continue
            seen.add(story_name)
            stories.append((story_name, {**base_args, "variant": f"'{literal}'"}))

    rendered = "\n\n".join(
        f"export const {story_name}: Story = {{\n  args: {_render_args(args)},\n}};"
        for story_name, args in stories
    )
    title = f"{Tier(record.tier).value.capitalize()}/{record.name}"
    content = _STORY_TEMPLATE.format(
        name=record.name,
        import_path=import_path_for(record.tier, record.name, import_alias),
        title=title,
        stories=rendered,
    )
    return content, len(stories)


class TemplateStoryGenerator:
    """StoryGenerator writing template stories beside each artifact.

    Existing story files are left alone unless ``force`` is set.
    """

    def __init__(self, force: bool = False):
        self.force = force

    def generate(self, registry: ArtifactRegistry, output_dir: Path) -> StoryResults:
        results = StoryResults()
        for record in get_all(registry):
            target = story_path_for(record)
            if target.exists() and not self.force:
                results.skipped.append(record.name)
                continue
            try:
                source = record.path.read_text(encoding="utf-8")
                content, count = build_story_file(record, source, registry.import_alias)
                target.write_text(content, encoding="utf-8")
            except OSError as e:
                logger.warning(f"Story generation failed for {record.name}: {e}")
                results.failed[record.name] = str(e)
                continue
            logger.debug(f"Wrote {count} stor{'y' if count == 1 else 'ies'} to {target}")
            results.generated.append(record.name)

        logger.info(
            f"Stories under {output_dir}: {len(results.generated)} written, "
            f"{len(results.skipped)} skipped, {len(results.failed)} failed"
        )
        return results
