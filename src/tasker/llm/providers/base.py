"""
Base LLM Provider

Abstract base class for LLM provider implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tasker.llm.gateway import LLMResponse, Message


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    name: str = "base"
    requires_api_key: bool = True

    def __init__(self, api_key: str, model: str):
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Model identifier
        """
        self.api_key = api_key
        self.model = model

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass
