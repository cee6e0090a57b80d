"""
LLM Gateway

Provider-agnostic interface for the language model calls made by the
interpretation pipeline. One request per call, guarded by a timeout.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    """Message roles in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A single message in a conversation."""
    role: Role
    content: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to provider-compatible dict."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0
    finish_reason: str = "stop"
    error: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def ok(self) -> bool:
        return self.error is None


class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    name: str

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        ...


class LLMGateway:
    """
    Gateway for LLM interactions.

    Provides:
    - Provider abstraction
    - A timeout around every request
    - Request/response logging

    Failures are reported through ``LLMResponse.error``; the gateway never
    retries, callers decide how to degrade.
    """

    def __init__(
        self,
        provider: LLMProvider,
        timeout: float = 30.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ):
        """
        Initialize the gateway.

        Args:
            provider: LLM provider
            timeout: Request timeout in seconds
            max_tokens: Completion token limit
            temperature: Sampling temperature (kept low for stable JSON)
        """
        self.provider = provider
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Send one request to the provider."""
        logger.debug(
            "llm_request",
            provider=self.provider.name,
            message_count=len(messages),
            has_system=system_prompt is not None,
            json_mode=json_mode,
        )

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.provider.generate(
                    messages=messages,
                    system_prompt=system_prompt,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    json_mode=json_mode,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            response = LLMResponse(
                content="",
                model="",
                provider=self.provider.name,
                latency_ms=(time.perf_counter() - start_time) * 1000,
                error=f"Request timed out after {self.timeout}s",
            )
        except Exception as e:
            # Providers should report errors in the response; guard anyway
            response = LLMResponse(
                content="",
                model="",
                provider=self.provider.name,
                latency_ms=(time.perf_counter() - start_time) * 1000,
                error=str(e) or e.__class__.__name__,
            )

        if response.error is None and not response.content.strip():
            response.error = "No content in model response"

        if response.error:
            logger.warning(
                "llm_request_failed",
                provider=self.provider.name,
                error=response.error,
            )
        else:
            logger.info(
                "llm_response",
                provider=response.provider,
                model=response.model,
                tokens=response.total_tokens,
                latency_ms=round(response.latency_ms, 1),
            )

        return response

    async def complete_json(self, system_prompt: str | None, user_content: str) -> LLMResponse:
        """Single-turn request asking for a JSON object."""
        return await self.generate(
            [Message(role=Role.USER, content=user_content)],
            system_prompt=system_prompt,
            json_mode=True,
        )
