# tests/providers/test_openai_provider.py
"""
Tests for the OpenAI-compatible providers with the SDK client mocked out.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from llmadapt.chat.request import build_request
from llmadapt.exceptions import ConfigError, ProviderError, UnsupportedRoleError
from llmadapt.models import ChatOptions, FunctionCallback, Message, Prompt, ToolCall
from llmadapt.providers.client import ChatClient
from llmadapt.providers.openai_provider import (MoonshotProvider,
                                                OpenAIChatOptions,
                                                OpenAIProvider)

COMPLETION_BODY = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hello!"}, "finish_reason": "stop"}],
}


def sdk_object(body):
    """Mimics an SDK response model: only model_dump / model_dump_json are used."""
    obj = MagicMock()
    obj.model_dump.return_value = body
    obj.model_dump_json.return_value = "{}"
    return obj


class FakeSDKStream:
    def __init__(self, bodies):
        self._bodies = list(bodies)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._bodies:
            raise StopAsyncIteration
        return sdk_object(self._bodies.pop(0))

    async def close(self):
        self.closed = True


def status_error(cls, status_code, message="boom"):
    request = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls(message, response=response, body=None)


@pytest.fixture
def mock_sdk():
    with patch("llmadapt.providers.openai_provider.AsyncOpenAI") as sdk_class:
        sdk = sdk_class.return_value
        sdk.chat.completions.create = AsyncMock()
        sdk.close = AsyncMock()
        yield sdk_class


class TestOpenAIProvider:

    def test_configuration(self, mock_sdk):
        provider = OpenAIProvider({
            "api_key": "sk-test",
            "timeout": 12,
            "default_options": {"model": "gpt-4o-mini", "seed": 7},
        })
        assert provider.get_name() == "openai"
        assert isinstance(provider.default_options, OpenAIChatOptions)
        assert provider.default_options.model == "gpt-4o-mini"
        assert provider.default_options.seed == 7
        mock_sdk.assert_called_once_with(api_key="sk-test", base_url=None, timeout=12.0)

    def test_invalid_default_options(self, mock_sdk):
        with pytest.raises(ConfigError):
            OpenAIProvider({"api_key": "sk-test", "default_options": {"temperature": "hot"}})

    def test_api_key_from_environment(self, mock_sdk, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIProvider({}).api_key == "sk-env"

    @pytest.mark.asyncio
    async def test_complete_parses_response(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        create = mock_sdk.return_value.chat.completions.create
        create.return_value = sdk_object(COMPLETION_BODY)

        request = build_request(Prompt.of("Hi"), provider.default_options)
        completion = await provider.complete(request)

        assert completion.id == "chatcmpl-1"
        assert completion.choices[0].message.content == "Hello!"
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["stream"] is False
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_none_response(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        mock_sdk.return_value.chat.completions.create.return_value = None
        request = build_request(Prompt.of("Hi"), provider.default_options)
        assert await provider.complete(request) is None

    @pytest.mark.asyncio
    async def test_registered_functions_become_tools(self, mock_sdk):
        provider = OpenAIProvider({
            "api_key": "sk-test",
            "functions": {"get_weather": {
                "description": "Current weather",
                "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
            }},
        })
        create = mock_sdk.return_value.chat.completions.create
        create.return_value = sdk_object(COMPLETION_BODY)

        prompt = Prompt.of("Weather?", options=ChatOptions(function_names={"get_weather"}))
        await provider.complete(build_request(prompt, provider.default_options))

        tools = create.await_args.kwargs["tools"]
        assert tools[0]["type"] == "function"
        assert tools[0]["function"]["name"] == "get_weather"
        assert tools[0]["function"]["parameters"]["properties"]["city"] == {"type": "string"}

    @pytest.mark.asyncio
    async def test_callback_functions_become_tools(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        create = mock_sdk.return_value.chat.completions.create
        create.return_value = sdk_object(COMPLETION_BODY)
        callback = FunctionCallback(
            name="get_time",
            description="Current time",
            parameters={"type": "object", "properties": {"zone": {"type": "string"}}},
            function=lambda zone: "noon",
        )

        prompt = Prompt.of("Time?", options=ChatOptions(function_callbacks=[callback]))
        await provider.complete(build_request(prompt, provider.default_options))

        tools = create.await_args.kwargs["tools"]
        assert [tool["function"]["name"] for tool in tools] == ["get_time"]
        assert tools[0]["function"]["description"] == "Current time"

    @pytest.mark.asyncio
    async def test_tool_call_replies_use_tool_role(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        create = mock_sdk.return_value.chat.completions.create
        create.return_value = sdk_object(COMPLETION_BODY)
        call = ToolCall(id="call_1", name="get_time", arguments="{}")

        prompt = Prompt.of([
            Message.user("Time?"),
            Message.assistant("", tool_calls=[call.to_wire()]),
            Message.function("get_time", "noon", tool_call_id="call_1"),
            Message.function("legacy", "result"),
        ])
        await provider.complete(build_request(prompt, provider.default_options))

        messages = create.await_args.kwargs["messages"]
        assert messages[1] == {"role": "assistant", "tool_calls": [call.to_wire()]}
        assert messages[2] == {"role": "tool", "content": "noon", "tool_call_id": "call_1"}
        assert messages[3] == {"role": "function", "content": "result", "name": "legacy"}

    @pytest.mark.asyncio
    async def test_unregistered_function(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        prompt = Prompt.of("Weather?", options=ChatOptions(function_names={"get_weather"}))
        with pytest.raises(ConfigError):
            await provider.complete(build_request(prompt, provider.default_options))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_class, status_code, fragment", [
        (openai.AuthenticationError, 401, "Authentication failed"),
        (openai.RateLimitError, 429, "Rate limit exceeded"),
        (openai.InternalServerError, 500, "Status 500"),
    ])
    async def test_api_errors_are_translated(self, mock_sdk, error_class, status_code, fragment):
        provider = OpenAIProvider({"api_key": "sk-test"})
        mock_sdk.return_value.chat.completions.create.side_effect = status_error(error_class, status_code)

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete(build_request(Prompt.of("Hi"), provider.default_options))

        assert exc_info.value.provider_name == "openai"
        assert fragment in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_stream_yields_chunks_and_closes(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        sdk_stream = FakeSDKStream([
            {"id": "c-1", "choices": [{"index": 0, "delta": {"role": "assistant", "content": "He"}}]},
            {"id": "c-1", "choices": [{"index": 0, "delta": {"content": "y"}, "finish_reason": "stop"}]},
        ])
        create = mock_sdk.return_value.chat.completions.create
        create.return_value = sdk_stream

        request = build_request(Prompt.of("Hi"), provider.default_options, stream=True)
        fragments = await provider.complete_stream(request)
        chunks = [c async for c in fragments]

        assert [c.choices[0].delta.content for c in chunks] == ["He", "y"]
        assert create.await_args.kwargs["stream"] is True
        assert sdk_stream.closed

    @pytest.mark.asyncio
    async def test_close(self, mock_sdk):
        provider = OpenAIProvider({"api_key": "sk-test"})
        await provider.close()
        mock_sdk.return_value.close.assert_awaited_once()
        with pytest.raises(ProviderError):
            await provider.complete(build_request(Prompt.of("Hi"), provider.default_options))


class TestMoonshotProvider:

    def test_defaults(self, mock_sdk, monkeypatch):
        monkeypatch.setenv("MOONSHOT_API_KEY", "sk-moon")
        provider = MoonshotProvider({})
        assert provider.get_name() == "moonshot"
        assert provider.api_key == "sk-moon"
        assert provider.base_url == "https://api.moonshot.cn/v1"
        assert provider.default_options.model == "moonshot-v1-8k"

    @pytest.mark.asyncio
    async def test_function_role_is_rejected(self, mock_sdk):
        provider = MoonshotProvider({"api_key": "sk-moon"})
        client = ChatClient(provider)
        prompt = Prompt.of([Message.user("Hi"), Message.function("lookup", "{}")])

        with pytest.raises(UnsupportedRoleError) as exc_info:
            await client.call(prompt)

        assert exc_info.value.index == 1
        mock_sdk.return_value.chat.completions.create.assert_not_awaited()
