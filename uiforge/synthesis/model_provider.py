"""Strands model construction for code synthesis.

``LLM_PROVIDER`` picks the backend (``bedrock`` by default). Bedrock ships
with ``strands-agents``; the Anthropic and OpenAI models need the matching
extra (``pip install 'uiforge[anthropic]'`` / ``'uiforge[openai]'``).

The model ID comes from the ``model_id`` argument, then
``{PROVIDER}_MODEL_ID``, then ``PROVIDER_DEFAULTS``.
"""

import logging
import os
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Generated components routinely run to a few hundred lines of TSX
DEFAULT_MAX_TOKENS = 8000
# Low but non-zero: repairs should stay close to the source they patch
DEFAULT_TEMPERATURE = 0.2


class LLMProvider(Enum):
    BEDROCK = "bedrock"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


PROVIDER_DEFAULTS: dict[LLMProvider, str] = {
    LLMProvider.BEDROCK: "anthropic.claude-3-5-sonnet-20241022-v2:0",
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProvider.OPENAI: "gpt-4o",
}


def get_active_provider() -> LLMProvider:
    """Provider named by ``LLM_PROVIDER``; raises ValueError for unknown names."""
    raw = os.getenv("LLM_PROVIDER", LLMProvider.BEDROCK.value).strip().lower()
    try:
        return LLMProvider(raw)
    except ValueError:
        valid = ", ".join(p.value for p in LLMProvider)
        raise ValueError(f"Unknown LLM_PROVIDER '{raw}'. Valid options: {valid}") from None


def get_model_id(provider: LLMProvider, model_id: str | None = None) -> str:
    return model_id or os.getenv(f"{provider.value.upper()}_MODEL_ID") or PROVIDER_DEFAULTS[provider]


def _client_args(key_env: str) -> dict[str, str] | None:
    api_key = os.getenv(key_env)
    return {"api_key": api_key} if api_key else None


def _missing_extra(provider: LLMProvider) -> ImportError:
    return ImportError(
        f"The {provider.value} provider is not installed. "
        f"Install it with: pip install 'strands-agents[{provider.value}]'"
    )


def _bedrock(model_id: str, max_tokens: int, temperature: float | None) -> Any:
    from strands.models.bedrock import BedrockModel

    kwargs: dict[str, Any] = {"model_id": model_id, "max_tokens": max_tokens}
    if temperature is not None:
        kwargs["temperature"] = temperature
    return BedrockModel(**kwargs)


def _anthropic(model_id: str, max_tokens: int, temperature: float | None) -> Any:
    try:
        from strands.models.anthropic import AnthropicModel
    except ImportError as e:
        raise _missing_extra(LLMProvider.ANTHROPIC) from e

    return AnthropicModel(
        client_args=_client_args("ANTHROPIC_API_KEY"),
        model_id=model_id,
        max_tokens=max_tokens,
        params={"temperature": temperature} if temperature is not None else None,
    )


def _openai(model_id: str, max_tokens: int, temperature: float | None) -> Any:
    try:
        from strands.models.openai import OpenAIModel
    except ImportError as e:
        raise _missing_extra(LLMProvider.OPENAI) from e

    params: dict[str, Any] = {"max_tokens": max_tokens}
    if temperature is not None:
        params["temperature"] = temperature
    return OpenAIModel(client_args=_client_args("OPENAI_API_KEY"), model_id=model_id, params=params)


_BUILDERS: dict[LLMProvider, Callable[[str, int, float | None], Any]] = {
    LLMProvider.BEDROCK: _bedrock,
    LLMProvider.ANTHROPIC: _anthropic,
    LLMProvider.OPENAI: _openai,
}


def create_model(
    model_id: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    temperature: float | None = DEFAULT_TEMPERATURE,
) -> Any:
    """Create the Strands model used by the synthesis agent."""
    provider = get_active_provider()
    model_id = get_model_id(provider, model_id)
    logger.info(f"Synthesis model: {provider.value}/{model_id} (max_tokens={max_tokens})")
    return _BUILDERS[provider](model_id, max_tokens, temperature)
