# tests/chat/test_request_builder.py
"""
Tests for llmadapt.chat.request: option merging, role translation and
request validation.
"""

import base64

import pytest

from llmadapt.chat.request import (CHAT_ONLY_ROLE_MAP, DEFAULT_ROLE_MAP,
                                   build_request, resolve_options,
                                   translate_messages)
from llmadapt.exceptions import (ConfigError, InvalidOptionsTypeError,
                                 UnsupportedRoleError)
from llmadapt.models import ChatOptions, Media, Message, Prompt, Role
from llmadapt.providers.openai_provider import OpenAIChatOptions


class TestResolveOptions:
    """Per-call options are merged over defaults field by field."""

    def test_per_call_temperature_over_defaults(self):
        defaults = ChatOptions(model="X", temperature=0.2)
        prompt = Prompt.of("Hi", options=ChatOptions(temperature=0.9))

        merged = resolve_options(prompt, defaults)

        assert merged.model == "X"
        assert merged.temperature == 0.9

    def test_no_per_call_options(self):
        defaults = ChatOptions(model="X", temperature=0.2)
        merged = resolve_options(Prompt.of("Hi"), defaults)
        assert merged.model == "X"
        assert merged.temperature == 0.2

    def test_non_chat_options_rejected(self):
        prompt = Prompt.of("Hi", options={"temperature": 0.9})
        with pytest.raises(InvalidOptionsTypeError) as exc_info:
            resolve_options(prompt, ChatOptions(model="X"))
        assert exc_info.value.options_type == "dict"


class TestTranslateMessages:
    """Roles go through the backend's table."""

    def test_default_table(self):
        messages = [
            Message.system("S"),
            Message.user("U"),
            Message.assistant("A"),
            Message.function("lookup", "{}"),
        ]
        wire = translate_messages(messages, DEFAULT_ROLE_MAP)
        assert [m.role for m in wire] == ["system", "user", "assistant", "function"]
        assert wire[3].name == "lookup"
        assert wire[1].name is None

    def test_missing_role_reports_index(self):
        messages = [Message.user("U"), Message.function("lookup", "{}")]
        with pytest.raises(UnsupportedRoleError) as exc_info:
            translate_messages(messages, CHAT_ONLY_ROLE_MAP)
        assert exc_info.value.index == 1
        assert exc_info.value.role is Role.FUNCTION

    def test_media_becomes_content_parts(self):
        message = Message.user("Describe these", media=[
            Media(mime_type="image/png", data=b"png-bytes"),
            Media(mime_type="image/jpeg", uri="https://example.com/cat.jpg"),
        ])
        wire = translate_messages([message], DEFAULT_ROLE_MAP)[0]

        assert wire.content[0] == {"type": "text", "text": "Describe these"}
        encoded = base64.b64encode(b"png-bytes").decode("ascii")
        assert wire.content[1]["image_url"]["url"] == f"data:image/png;base64,{encoded}"
        assert wire.content[2]["image_url"]["url"] == "https://example.com/cat.jpg"


class TestBuildRequest:
    """End-to-end request building."""

    def test_builds_normalized_request(self):
        defaults = ChatOptions(model="X", temperature=0.2, stop_sequences=["END"])
        prompt = Prompt.of(
            [Message.system("Be brief"), Message.user("Hi")],
            options=ChatOptions(max_tokens=64, function_names={"b", "a"}),
        )

        request = build_request(prompt, defaults, stream=True)

        assert request.model == "X"
        assert request.stream is True
        assert request.temperature == 0.2
        assert request.max_tokens == 64
        assert request.stop == ["END"]
        assert request.functions == ["a", "b"]
        assert [m.content for m in request.messages] == ["Be brief", "Hi"]

    def test_inputs_are_not_modified(self):
        defaults = ChatOptions(model="X", temperature=0.2)
        per_call = ChatOptions(temperature=0.9)
        prompt = Prompt.of("Hi", options=per_call)

        build_request(prompt, defaults)

        assert defaults.temperature == 0.2
        assert per_call.model_fields_set == {"temperature"}

    def test_provider_specific_options_go_to_extra(self):
        defaults = OpenAIChatOptions(model="gpt-4o", seed=42, user="u-1")
        request = build_request(Prompt.of("Hi"), defaults)
        assert request.extra == {"seed": 42, "user": "u-1"}
        payload = request.to_payload()
        assert payload["seed"] == 42
        assert "functions" not in payload

    def test_payload_drops_unset_values(self):
        request = build_request(Prompt.of("Hi"), ChatOptions(model="X"))
        payload = request.to_payload()
        assert payload == {
            "model": "X",
            "stream": False,
            "messages": [{"role": "user", "content": "Hi"}],
        }

    def test_missing_model(self):
        with pytest.raises(ConfigError):
            build_request(Prompt.of("Hi"), ChatOptions(temperature=0.1))

    def test_model_from_per_call_options(self):
        request = build_request(Prompt.of("Hi", options=ChatOptions(model="Y")), None)
        assert request.model == "Y"

    def test_empty_prompt(self):
        with pytest.raises(ValueError):
            build_request(Prompt(messages=()), ChatOptions(model="X"))

    def test_invalid_options_never_reach_role_translation(self):
        prompt = Prompt.of([Message.function("f", "{}")], options="fast please")
        with pytest.raises(InvalidOptionsTypeError):
            build_request(prompt, ChatOptions(model="X"), role_map=CHAT_ONLY_ROLE_MAP)
