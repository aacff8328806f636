# src/llmadapt/chat/prompt_text.py
"""
Rendering of a message history into a single text prompt, for backends that
expose a plain text-generation endpoint instead of a chat endpoint.

This is a public helper, exported as `llmadapt.PromptTextConverter`, for
callers writing their own text-completion provider. The bundled providers all
speak the chat wire format and do not use it.
"""

from typing import Sequence

from ..exceptions import UnsupportedRoleError
from ..models import Message, Role

HUMAN_PROMPT = "Human: "
ASSISTANT_PROMPT = "Assistant: "


class PromptTextConverter:
    """
    Converts messages to one prompt string.

    User and assistant messages get their configured prefix; system messages
    are emitted with `system_prompt` (empty by default). Function messages
    have no text-prompt form and are rejected.
    """

    def __init__(
        self,
        human_prompt: str = HUMAN_PROMPT,
        assistant_prompt: str = ASSISTANT_PROMPT,
        system_prompt: str = "",
        end_of_prompt: str = "",
        separator: str = "\n\n",
    ):
        self.human_prompt = human_prompt
        self.assistant_prompt = assistant_prompt
        self.system_prompt = system_prompt
        self.end_of_prompt = end_of_prompt
        self.separator = separator

    def with_human_prompt(self, prefix: str) -> "PromptTextConverter":
        self.human_prompt = prefix
        return self

    def with_assistant_prompt(self, prefix: str) -> "PromptTextConverter":
        self.assistant_prompt = prefix
        return self

    def with_system_prompt(self, prefix: str) -> "PromptTextConverter":
        self.system_prompt = prefix
        return self

    def with_end_of_prompt(self, suffix: str) -> "PromptTextConverter":
        self.end_of_prompt = suffix
        return self

    def message_to_string(self, message: Message, index: int = 0) -> str:
        if message.role is Role.USER:
            return f"{self.human_prompt}{message.content}"
        if message.role is Role.ASSISTANT:
            return f"{self.assistant_prompt}{message.content}"
        if message.role is Role.SYSTEM:
            return f"{self.system_prompt}{message.content}"
        raise UnsupportedRoleError(index, message.role, "Message role has no text-prompt form.")

    def to_prompt(self, messages: Sequence[Message]) -> str:
        """Render `messages` in order; an empty sequence renders as ''."""
        if not messages:
            return ""
        rendered = self.separator.join(
            self.message_to_string(message, index) for index, message in enumerate(messages)
        )
        return f"{rendered}{self.end_of_prompt}"
