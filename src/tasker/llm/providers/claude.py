"""
Claude (Anthropic) LLM Provider

Messages API against Anthropic's Claude models.
"""

from __future__ import annotations

import time

import structlog

from tasker.llm.gateway import LLMResponse, Message, Role
from tasker.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger(__name__)

# Claude has no response_format switch; JSON is requested in the system prompt
JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


class ClaudeProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
    ):
        """
        Initialize Claude provider.

        Args:
            api_key: Anthropic API key
            model: Claude model identifier
        """
        super().__init__(api_key=api_key, model=model)
        self._client = None

    def _get_client(self):
        """Lazy-load Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a response using Claude."""
        start_time = time.perf_counter()

        try:
            client = self._get_client()

            anthropic_messages = []
            for msg in messages:
                if msg.role == Role.SYSTEM:
                    # Claude takes the system prompt separately
                    if system_prompt is None:
                        system_prompt = msg.content
                    continue
                anthropic_messages.append(msg.to_dict())

            if json_mode:
                system_prompt = f"{system_prompt}\n\n{JSON_INSTRUCTION}" if system_prompt else JSON_INSTRUCTION

            kwargs = {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": anthropic_messages,
            }
            if system_prompt:
                kwargs["system"] = system_prompt

            response = await client.messages.create(**kwargs)

            latency_ms = (time.perf_counter() - start_time) * 1000

            content = ""
            if response.content:
                content = response.content[0].text

            return LLMResponse(
                content=content,
                model=response.model,
                provider=self.name,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                latency_ms=latency_ms,
                finish_reason=response.stop_reason or "stop",
            )

        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error("claude_error", error=str(e), exc_info=True)
            return LLMResponse(
                content="",
                model=self.model,
                provider=self.name,
                latency_ms=latency_ms,
                error=str(e),
            )
