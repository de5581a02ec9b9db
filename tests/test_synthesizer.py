"""Tests for the Strands-backed synthesizer and model factory."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest
from strands.types.exceptions import ModelThrottledException

from uiforge.config import Tier
from uiforge.exceptions import SynthesisError
from uiforge.registry.models import ArtifactRecord
from uiforge.synthesis import model_provider
from uiforge.synthesis.model_provider import LLMProvider, get_active_provider, get_model_id
from uiforge.synthesis.strands_synthesizer import StrandsCodeSynthesizer, extract_code
from uiforge.workflow.collaborators import ComponentSpec


class FakeAgent:
    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def invoke_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def _synthesizer(agent):
    return StrandsCodeSynthesizer(agent_factory=lambda: agent)


class TestExtractCode:
    def test_fenced_block(self):
        text = "Here you go:\n```tsx\nexport const A = 1;\n```\nDone."
        assert extract_code(text) == "export const A = 1;\n"

    def test_longest_block_wins(self):
        text = "```ts\nshort\n```\n```tsx\nthe longer one\n```"
        assert extract_code(text) == "the longer one\n"

    def test_unfenced_used_as_is(self):
        assert extract_code("  export const A = 1;  ") == "export const A = 1;\n"


class TestStrandsCodeSynthesizer:
    def test_generate_builds_prompt_and_extracts_code(self):
        agent = FakeAgent("```tsx\nexport const Button = () => null;\n```")
        spec = ComponentSpec(
            name="Button",
            tier=Tier.ELEMENTS,
            props={"label": "string"},
            imports={"Star": "@/ui/icons/Star"},
        )

        artifact = asyncio.run(_synthesizer(agent).generate(spec))

        assert artifact.code == "export const Button = () => null;\n"
        assert artifact.tier == Tier.ELEMENTS
        assert "- label: string" in agent.prompts[0]
        assert "- Star: @/ui/icons/Star" in agent.prompts[0]

    def test_fix_sends_diagnostics_and_source(self):
        agent = FakeAgent("```tsx\nfixed\n```")
        record = ArtifactRecord(
            name="Button",
            tier=Tier.ELEMENTS,
            path=Path("ui/elements/Button/Button.tsx"),
            added_at=datetime(2026, 1, 1, tzinfo=UTC),
        )

        code = asyncio.run(_synthesizer(agent).fix(record, "Line 3:5 [ERROR] bad", "broken source"))

        assert code == "fixed\n"
        assert "Line 3:5 [ERROR] bad" in agent.prompts[0]
        assert "broken source" in agent.prompts[0]

    def test_empty_response_raises(self):
        spec = ComponentSpec(name="Button", tier=Tier.ELEMENTS)
        with pytest.raises(SynthesisError, match="Empty response"):
            asyncio.run(_synthesizer(FakeAgent("   ")).generate(spec))

    def test_throttling_maps_to_429(self):
        spec = ComponentSpec(name="Button", tier=Tier.ELEMENTS)
        agent = FakeAgent(error=ModelThrottledException("slow down"))

        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(_synthesizer(agent).generate(spec))

        assert exc_info.value.status == 429

    def test_other_errors_are_wrapped(self):
        spec = ComponentSpec(name="Button", tier=Tier.ELEMENTS)
        agent = FakeAgent(error=RuntimeError("socket closed"))

        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(_synthesizer(agent).generate(spec))

        assert exc_info.value.status is None
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_is_available_makes_a_real_call(self):
        agent = FakeAgent("OK")
        assert asyncio.run(_synthesizer(agent).is_available())
        assert agent.prompts == ["Reply with the single word OK."]

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionRefusedError("connection refused"),
            ModelThrottledException("slow down"),
            RuntimeError("UnrecognizedClientException: invalid security token"),
        ],
    )
    def test_unavailable_when_backend_call_fails(self, error):
        assert not asyncio.run(_synthesizer(FakeAgent(error=error)).is_available())

    def test_unavailable_on_empty_reply(self):
        assert not asyncio.run(_synthesizer(FakeAgent("")).is_available())

    def test_unavailable_when_backend_cannot_be_built(self):
        def broken_factory():
            raise ImportError("No module named 'strands.models.openai'")

        synthesizer = StrandsCodeSynthesizer(agent_factory=broken_factory)
        assert not asyncio.run(synthesizer.is_available())


class TestModelProvider:
    def test_default_provider(self, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        assert get_active_provider() is LLMProvider.BEDROCK

    def test_unknown_provider(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "mystery")
        with pytest.raises(ValueError, match="Valid options"):
            get_active_provider()

    def test_model_id_resolution(self, monkeypatch):
        monkeypatch.setenv("OPENAI_MODEL_ID", "gpt-test")
        assert get_model_id(LLMProvider.OPENAI, "explicit") == "explicit"
        assert get_model_id(LLMProvider.OPENAI) == "gpt-test"
        monkeypatch.delenv("ANTHROPIC_MODEL_ID", raising=False)
        assert get_model_id(LLMProvider.ANTHROPIC) == "claude-sonnet-4-20250514"

    def test_create_model_dispatches_to_provider_builder(self, monkeypatch):
        calls = []
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_MODEL_ID", "gpt-test")
        monkeypatch.setitem(
            model_provider._BUILDERS,
            LLMProvider.OPENAI,
            lambda *args: calls.append(args) or "model",
        )

        assert model_provider.create_model(max_tokens=100) == "model"
        assert calls == [("gpt-test", 100, model_provider.DEFAULT_TEMPERATURE)]
