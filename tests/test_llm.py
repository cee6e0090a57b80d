"""
Tests for the LLM gateway and provider factory.
"""

import asyncio
from types import SimpleNamespace

import pytest

from tasker.exceptions import ConfigurationError
from tasker.llm import LLMGateway, LLMResponse, Message, Role, get_provider
from tasker.llm.providers import ClaudeProvider, MockProvider, OpenAIProvider
from tasker.llm.providers.claude import JSON_INSTRUCTION


class SlowProvider:
    name = "slow"

    async def generate(self, messages, system_prompt=None, max_tokens=1024,
                       temperature=0.3, json_mode=False):
        await asyncio.sleep(10)


class BrokenProvider:
    name = "broken"

    async def generate(self, messages, system_prompt=None, max_tokens=1024,
                       temperature=0.3, json_mode=False):
        raise ConnectionError("connection reset")


class TestMessage:
    def test_to_dict(self):
        msg = Message(role=Role.USER, content="hi")
        assert msg.to_dict() == {"role": "user", "content": "hi"}


class TestLLMResponse:
    def test_total_tokens(self):
        response = LLMResponse(content="x", model="m", provider="p", input_tokens=3, output_tokens=4)
        assert response.total_tokens == 7
        assert response.ok

    def test_error_is_not_ok(self):
        response = LLMResponse(content="", model="m", provider="p", error="boom")
        assert not response.ok


class TestLLMGateway:
    """Tests for request handling in the gateway."""

    @pytest.mark.asyncio
    async def test_complete_json_passes_settings(self, scripted):
        gateway, provider = scripted({"ok": True})
        response = await gateway.complete_json("system", "user text")

        assert response.ok
        assert response.content == '{"ok": true}'
        call = provider.calls[0]
        assert call["json_mode"] is True
        assert call["temperature"] == 0.3
        assert call["system_prompt"] == "system"
        assert call["messages"][0].content == "user text"

    @pytest.mark.asyncio
    async def test_timeout_becomes_error(self):
        gateway = LLMGateway(SlowProvider(), timeout=0.05)
        response = await gateway.complete_json(None, "hello")
        assert not response.ok
        assert "timed out" in response.error

    @pytest.mark.asyncio
    async def test_exception_becomes_error(self):
        gateway = LLMGateway(BrokenProvider())
        response = await gateway.complete_json(None, "hello")
        assert response.error == "connection reset"

    @pytest.mark.asyncio
    async def test_empty_content_is_error(self, scripted):
        gateway, _ = scripted("   ")
        response = await gateway.complete_json(None, "hello")
        assert response.error == "No content in model response"

    @pytest.mark.asyncio
    async def test_provider_error_passed_through(self, scripted):
        gateway, provider = scripted(RuntimeError("HTTP 500"))
        response = await gateway.complete_json(None, "hello")
        assert response.error == "HTTP 500"
        assert len(provider.calls) == 1


class TestGetProvider:
    """Tests for the provider factory."""

    def test_known_providers(self):
        assert isinstance(get_provider("openai", api_key="k"), OpenAIProvider)
        assert isinstance(get_provider("gpt", api_key="k"), OpenAIProvider)
        assert isinstance(get_provider("claude", api_key="k"), ClaudeProvider)
        assert isinstance(get_provider("Anthropic", api_key="k"), ClaudeProvider)

    def test_model_override(self):
        provider = get_provider("openai", api_key="k", model="gpt-4o")
        assert provider.model == "gpt-4o"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            get_provider("llama", api_key="k")

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key(self, key):
        with pytest.raises(ConfigurationError, match="No API key"):
            get_provider("openai", api_key=key)

    def test_mock_needs_no_key(self):
        assert isinstance(get_provider("mock"), MockProvider)


class FakeOpenAIClient:
    """Stands in for openai.AsyncOpenAI."""

    def __init__(self, content='{"tasks": []}', error=None):
        self.kwargs = None
        self._content = content
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.kwargs = kwargs
        if self._error:
            raise self._error
        return SimpleNamespace(
            model=kwargs["model"],
            choices=[SimpleNamespace(message=SimpleNamespace(content=self._content), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
        )


class FakeAnthropicClient:
    """Stands in for anthropic.AsyncAnthropic."""

    def __init__(self, content='{"tasks": []}'):
        self.kwargs = None
        self._content = content
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(
            model=kwargs["model"],
            content=[SimpleNamespace(text=self._content)],
            usage=SimpleNamespace(input_tokens=12, output_tokens=6),
            stop_reason="end_turn",
        )


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self):
        provider = OpenAIProvider(api_key="k")
        provider._client = FakeOpenAIClient()
        response = await provider.generate(
            [Message(role=Role.USER, content="hi")], system_prompt="sys", json_mode=True
        )

        assert response.ok
        assert response.total_tokens == 15
        kwargs = provider._client.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_sdk_error_reported_not_raised(self):
        provider = OpenAIProvider(api_key="k")
        provider._client = FakeOpenAIClient(error=ConnectionError("refused"))
        response = await provider.generate([Message(role=Role.USER, content="hi")])
        assert response.error == "refused"


class TestClaudeProvider:
    @pytest.mark.asyncio
    async def test_json_instruction_appended(self):
        provider = ClaudeProvider(api_key="k")
        provider._client = FakeAnthropicClient()
        response = await provider.generate(
            [Message(role=Role.USER, content="hi")], system_prompt="sys", json_mode=True
        )

        assert response.content == '{"tasks": []}'
        assert response.finish_reason == "end_turn"
        system = provider._client.kwargs["system"]
        assert system.startswith("sys")
        assert system.endswith(JSON_INSTRUCTION)
