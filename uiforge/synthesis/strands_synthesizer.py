"""Code synthesis backed by a Strands agent.

A fresh agent is created per call: Strands agents keep conversation history,
and the batch executor runs several calls at once.

Throttling from the model provider surfaces as ``SynthesisError(status=429)``
so the batch executor retries it; every other backend error is wrapped in a
``SynthesisError`` chained to the original exception.
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from uiforge.exceptions import SynthesisError
from uiforge.registry.models import ArtifactRecord
from uiforge.synthesis.model_provider import DEFAULT_MAX_TOKENS, create_model
from uiforge.workflow.collaborators import ComponentSpec, GeneratedArtifact

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a senior frontend engineer writing React components in TypeScript.

Rules:
- Output exactly one ```tsx fenced code block containing the complete file, nothing else.
- Use a named export and a default export for the component.
- Type every prop with an exported interface named <Component>Props.
- Import other UI building blocks only through the import paths you are given.
- Do not import from tiers you were not given paths for.
- No placeholder comments, no TODOs, no console output.
"""

_GENERATE_TEMPLATE = """Create the {tier} artifact `{name}`.

Description:
{description}

Props (name: TypeScript type):
{props}

Available imports:
{imports}

Design tokens:
{tokens}
"""

_FIX_TEMPLATE = """The file for `{name}` ({tier}) fails static analysis.

Diagnostics:
{diagnostics}

Current source:
```tsx
{source}
```

Return the corrected complete file. Keep the public props and exports unchanged.
"""

_PING_PROMPT = "Reply with the single word OK."

_CODE_BLOCK_RE = re.compile(
    r"```(?:tsx|typescript|ts|jsx|javascript|js)?[ \t]*\n(.*?)```", re.DOTALL | re.IGNORECASE
)


def extract_code(text: str) -> str:
    """Pull the source file out of an agent response.

    Takes the longest fenced block; an unfenced response is used as-is.
    """
    blocks = _CODE_BLOCK_RE.findall(text)
    code = max(blocks, key=len) if blocks else text
    return code.strip() + "\n"


def _to_synthesis_error(error: Exception, label: str) -> SynthesisError:
    from strands.types.exceptions import ModelThrottledException

    if isinstance(error, ModelThrottledException):
        return SynthesisError(f"Model throttled while {label}: {error}", status=429)
    return SynthesisError(f"Synthesis failed while {label}: {error}")


def _bulleted(mapping: dict[str, Any]) -> str:
    if not mapping:
        return "(none)"
    return "\n".join(f"- {key}: {value}" for key, value in mapping.items())


class StrandsCodeSynthesizer:
    """CodeSynthesizer that prompts a Strands agent.

    Args:
        model_id: Override the provider's default model.
        max_tokens: Completion budget per call.
        agent_factory: Zero-argument callable returning an agent-like object
            with ``invoke_async``; defaults to a Strands ``Agent``.
    """

    def __init__(
        self,
        model_id: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        agent_factory: Callable[[], Any] | None = None,
    ):
        self.model_id = model_id
        self.max_tokens = max_tokens
        self._agent_factory = agent_factory or self._create_agent

    def _create_agent(self) -> Any:
        from strands import Agent

        return Agent(
            name="uiforge-synthesizer",
            system_prompt=SYSTEM_PROMPT,
            model=create_model(model_id=self.model_id, max_tokens=self.max_tokens),
            callback_handler=None,
        )

    async def _invoke(self, prompt: str, label: str) -> str:
        agent = self._agent_factory()
        logger.info(f"Synthesizer {label} (prompt length={len(prompt)})")
        try:
            result = await agent.invoke_async(prompt)
        except SynthesisError:
            raise
        except Exception as e:
            raise _to_synthesis_error(e, label) from e

        text = str(result)
        if not text.strip():
            raise SynthesisError(f"Empty response while {label}")
        return text

    async def generate(self, spec: ComponentSpec) -> GeneratedArtifact:
        prompt = _GENERATE_TEMPLATE.format(
            tier=spec.tier.value,
            name=spec.name,
            description=spec.description or "(no description)",
            props=_bulleted(spec.props),
            imports=_bulleted(spec.imports),
            tokens=json.dumps(spec.tokens, indent=2) if spec.tokens else "(none)",
        )
        text = await self._invoke(prompt, f"generating {spec.name}")
        return GeneratedArtifact(name=spec.name, tier=spec.tier, code=extract_code(text))

    async def fix(self, artifact: ArtifactRecord, diagnostics: str, source: str) -> str:
        prompt = _FIX_TEMPLATE.format(
            name=artifact.name,
            tier=artifact.tier.value,
            diagnostics=diagnostics,
            source=source,
        )
        text = await self._invoke(prompt, f"fixing {artifact.name}")
        return extract_code(text)

    async def is_available(self) -> bool:
        """Send one tiny prompt to the backend.

        Missing packages, bad credentials, an unreachable endpoint or
        throttling all count as unavailable.
        """
        try:
            await self._invoke(_PING_PROMPT, "checking availability")
        except SynthesisError as e:
            logger.warning(f"Synthesis backend unavailable: {e}")
            return False
        except (ImportError, ValueError, RuntimeError, OSError) as e:
            logger.warning(f"Synthesis backend cannot be created: {e}")
            return False
        return True
