# src/llmadapt/chat/request.py
"""
Chat request building.

Turns a provider-neutral `Prompt` into a backend-ready `NormalizedRequest`:
per-call options are merged over the client's defaults field by field, and
messages are translated role by role through the backend's role table.
"""

import base64
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..exceptions import ConfigError, InvalidOptionsTypeError, UnsupportedRoleError
from ..models import ChatOptions, Media, Message, Prompt, Role
from ..providers.schemas import NormalizedRequest, WireMessage

logger = logging.getLogger(__name__)

# Fixed translation table from llmadapt roles to backend vocabulary.
# Backends that lack a role publish a table without it.
DEFAULT_ROLE_MAP: Mapping[Role, str] = {
    Role.SYSTEM: "system",
    Role.USER: "user",
    Role.ASSISTANT: "assistant",
    Role.FUNCTION: "function",
}

CHAT_ONLY_ROLE_MAP: Mapping[Role, str] = {
    role: name for role, name in DEFAULT_ROLE_MAP.items() if role is not Role.FUNCTION
}


def resolve_options(prompt: Prompt, default_options: Optional[ChatOptions]) -> ChatOptions:
    """
    Merge the prompt's per-call options over `default_options`.

    Raises:
        InvalidOptionsTypeError: If `prompt.options` is set but is not a ChatOptions.
    """
    runtime_options = prompt.options
    if runtime_options is not None and not isinstance(runtime_options, ChatOptions):
        raise InvalidOptionsTypeError(type(runtime_options).__name__)
    return ChatOptions.merge(default_options, runtime_options)


def _media_part(media: Media) -> Dict[str, Any]:
    if media.uri is not None:
        url = media.uri
    else:
        encoded = base64.b64encode(media.data or b"").decode("ascii")
        url = f"data:{media.mime_type};base64,{encoded}"
    return {"type": "image_url", "image_url": {"url": url}}


def translate_messages(messages: Sequence[Message], role_map: Mapping[Role, str]) -> List[WireMessage]:
    """
    Translate messages into backend vocabulary.

    Raises:
        UnsupportedRoleError: For the first message whose role the backend lacks.
    """
    wire_messages: List[WireMessage] = []
    for index, message in enumerate(messages):
        backend_role = role_map.get(message.role)
        if backend_role is None:
            raise UnsupportedRoleError(index, message.role)

        content: Any = message.content
        if message.media:
            content = [{"type": "text", "text": message.content}]
            content.extend(_media_part(m) for m in message.media)

        name = tool_call_id = tool_calls = None
        if message.role is Role.FUNCTION:
            name = message.metadata.get("name")
            tool_call_id = message.metadata.get("tool_call_id")
        elif message.role is Role.ASSISTANT and message.metadata.get("tool_calls"):
            tool_calls = list(message.metadata["tool_calls"])
            content = content or None
        wire_messages.append(WireMessage(
            role=backend_role, content=content, name=name,
            tool_calls=tool_calls, tool_call_id=tool_call_id,
        ))
    return wire_messages


def build_request(
    prompt: Prompt,
    default_options: Optional[ChatOptions] = None,
    *,
    stream: bool = False,
    role_map: Mapping[Role, str] = DEFAULT_ROLE_MAP,
) -> NormalizedRequest:
    """
    Build a normalized chat request. Pure; neither argument is modified.

    Args:
        prompt: The messages and optional per-call options of this call.
        default_options: The client's default options; may be None.
        stream: Whether the request is for a streamed response.
        role_map: The target backend's role vocabulary.

    Returns:
        The merged, translated request.

    Raises:
        InvalidOptionsTypeError: If `prompt.options` is not a ChatOptions.
        UnsupportedRoleError: If a message role is missing from `role_map`.
        ConfigError: If no model is set in either the defaults or the prompt.
        ValueError: If the prompt holds no messages.
    """
    if not prompt.messages:
        raise ValueError("Prompt must contain at least one message.")

    options = resolve_options(prompt, default_options)
    wire_messages = translate_messages(prompt.messages, role_map)

    if not options.model:
        raise ConfigError("No model configured: set 'model' in the default or per-call ChatOptions.")

    known = set(ChatOptions.model_fields)
    extra = {
        name: value
        for name, value in options.explicit_values().items()
        if name not in known
    }

    enabled = set(options.function_names or ())
    if prompt.options is not None and "function_callbacks" in prompt.options.model_fields_set:
        enabled.update(callback.name for callback in prompt.options.function_callbacks or ())
    callbacks = {callback.name: callback for callback in options.function_callbacks or ()}

    request = NormalizedRequest(
        model=options.model,
        messages=wire_messages,
        stream=stream,
        temperature=options.temperature,
        top_p=options.top_p,
        max_tokens=options.max_tokens,
        stop=list(options.stop_sequences) if options.stop_sequences else None,
        presence_penalty=options.presence_penalty,
        frequency_penalty=options.frequency_penalty,
        n=options.n,
        functions=sorted(enabled),
        function_schemas={name: callbacks[name].schema() for name in enabled if name in callbacks},
        extra=extra,
    )
    logger.debug(
        f"Built chat request: model='{request.model}', stream={stream}, "
        f"num_messages={len(wire_messages)}, extra_params={sorted(extra)}"
    )
    return request
