"""
LLM Gateway Module

Provider-agnostic interface for language model interactions.
"""

from tasker.llm.gateway import LLMGateway, LLMResponse, Message, Role
from tasker.llm.providers import (
    ClaudeProvider,
    MockProvider,
    OpenAIProvider,
    get_provider,
)

__all__ = [
    "LLMGateway",
    "LLMResponse",
    "Message",
    "Role",
    "get_provider",
    "ClaudeProvider",
    "MockProvider",
    "OpenAIProvider",
]
