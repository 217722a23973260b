"""Completion providers available to the intent planner.

``get_llm_provider(settings)`` is the only entry point the application uses;
it picks the adapter named by ``settings.llm_provider`` (``openai`` or
``anthropic``, with ``gpt``/``claude`` accepted as aliases).
"""

from typing import Any, Dict, Optional, Type

from .anthropic import AnthropicProvider
from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)
from .openai import OpenAIProvider

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    AnthropicProvider.name: AnthropicProvider,
}

ALIASES: Dict[str, str] = {
    "gpt": OpenAIProvider.name,
    "claude": AnthropicProvider.name,
}


def canonical_provider_name(name: Optional[str]) -> str:
    key = (name or OpenAIProvider.name).strip().lower()
    return ALIASES.get(key, key)


def _api_key_for(provider: str, settings: Any) -> str:
    if provider == AnthropicProvider.name:
        return settings.anthropic_api_key
    if provider == OpenAIProvider.name:
        return settings.openai_api_key
    return ""


def get_llm_provider(settings: Any, **kwargs: Any) -> LLMProvider:
    """Build the configured completion provider.

    Raises:
        ValueError: unknown provider, missing API key or missing model.
    """
    provider = canonical_provider_name(settings.llm_provider)
    if provider not in PROVIDERS:
        raise ValueError(
            f"Unsupported provider '{settings.llm_provider}'. Available providers: {', '.join(PROVIDERS)}"
        )

    api_key = _api_key_for(provider, settings)
    if not api_key:
        raise ValueError(f"No API key configured for provider: {provider}")
    if not settings.llm_model:
        raise ValueError(f"No model configured for provider: {provider}")

    if provider == OpenAIProvider.name:
        kwargs.setdefault("base_url", settings.openai_base_url)
    kwargs.setdefault("timeout", settings.llm_timeout_seconds)

    return PROVIDERS[provider](api_key=api_key, model=settings.llm_model, **kwargs)


__all__ = [
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMProviderError",
    "LLMProviderAPIError",
    "LLMProviderAuthError",
    "LLMProviderRateLimitError",
    "AnthropicProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "canonical_provider_name",
    "get_llm_provider",
]
