"""
LLM Providers

Implementations for the supported LLM providers.
"""

from tasker.exceptions import ConfigurationError
from tasker.llm.providers.base import BaseLLMProvider
from tasker.llm.providers.claude import ClaudeProvider
from tasker.llm.providers.mock import MockProvider
from tasker.llm.providers.openai import OpenAIProvider

PROVIDERS: dict[str, type[BaseLLMProvider]] = {
    "claude": ClaudeProvider,
    "anthropic": ClaudeProvider,
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
    "mock": MockProvider,
}


def get_provider(
    provider_name: str,
    api_key: str | None = None,
    model: str | None = None,
) -> BaseLLMProvider:
    """
    Get an LLM provider by name.

    Args:
        provider_name: 'claude', 'openai' or 'mock'
        api_key: API key for the provider
        model: Optional model override

    Returns:
        Configured provider instance

    Raises:
        ConfigurationError: Unknown provider, or no key for a network provider
    """
    provider_class = PROVIDERS.get(provider_name.lower())
    if not provider_class:
        raise ConfigurationError(
            f"Unknown provider: {provider_name}. "
            f"Available: {list(PROVIDERS.keys())}"
        )

    if provider_class.requires_api_key and not (api_key or "").strip():
        raise ConfigurationError(
            f"No API key configured for provider '{provider_name}'"
        )

    kwargs = {"api_key": api_key or ""}
    if model:
        kwargs["model"] = model

    return provider_class(**kwargs)


__all__ = [
    "BaseLLMProvider",
    "ClaudeProvider",
    "MockProvider",
    "OpenAIProvider",
    "get_provider",
]
