"""
Shared fixtures: a fixed clock and scripted LLM providers.
"""

import json
from datetime import datetime, timezone

import pytest

from tasker.llm.gateway import LLMGateway, LLMResponse, Message
from tasker.llm.providers.base import BaseLLMProvider

# Wednesday 2024-01-03 12:00 UTC
FIXED_NOW = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)


class ScriptedProvider(BaseLLMProvider):
    """
    Provider that replays canned replies in order.

    Each reply is a dict/list (sent as JSON), a raw string, or an Exception
    instance (reported as a provider error).
    """

    name = "scripted"

    def __init__(self, replies):
        super().__init__(api_key="test-key", model="scripted")
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append(
            {
                "messages": messages,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "json_mode": json_mode,
            }
        )
        reply = self.replies.pop(0) if self.replies else RuntimeError("no scripted reply")
        if isinstance(reply, Exception):
            return LLMResponse(content="", model=self.model, provider=self.name, error=str(reply))
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return LLMResponse(content=content, model=self.model, provider=self.name)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def scripted():
    """Factory: scripted(reply, ...) -> (gateway, provider)."""

    def make(*replies):
        provider = ScriptedProvider(replies)
        return LLMGateway(provider, timeout=1.0), provider

    return make
