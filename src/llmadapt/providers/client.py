# src/llmadapt/providers/client.py
"""
Chat client: the caller-facing entry point for chat completions.

A `ChatClient` joins a provider (wire format), the client's default options,
the request builder, the streaming assembler and a retry policy into the two
operations callers use: `call` for a complete response and `stream` for a
lazy sequence of partial responses.
"""

import logging
from typing import AsyncIterator, Dict, Optional, Union

from ..chat.assembler import StreamingResponseAssembler
from ..chat.request import build_request, resolve_options
from ..chat.retry import RetryPolicy
from ..exceptions import ProviderError
from ..models import (ChatOptions, ChatResponse, FunctionCallback, Generation,
                      Message, Prompt)
from .base import BaseProvider
from .schemas import NormalizedRequest

logger = logging.getLogger(__name__)

PromptInput = Union[Prompt, str, Message]

DEFAULT_MAX_FUNCTION_ROUNDS = 5


def _as_prompt(prompt: PromptInput) -> Prompt:
    if isinstance(prompt, Prompt):
        return prompt
    return Prompt.of(prompt)


class ChatClient:
    """
    Provider-agnostic chat client.

    Attributes:
        provider: The backend adapter.
        default_options: Options applied to every call unless overridden per call.
        retry_policy: Wraps every backend call; defaults to `RetryPolicy()`.
        max_function_rounds: Limit on callback round trips within one `call`.
    """

    def __init__(
        self,
        provider: BaseProvider,
        default_options: Optional[ChatOptions] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_function_rounds: int = DEFAULT_MAX_FUNCTION_ROUNDS,
    ):
        if provider is None:
            raise ValueError("provider must not be None")
        self.provider = provider
        self.default_options = default_options if default_options is not None else provider.default_options
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self.max_function_rounds = max_function_rounds
        self._assembler = StreamingResponseAssembler(provider.get_name())

    def create_request(self, prompt: PromptInput, stream: bool = False) -> NormalizedRequest:
        """Build the backend request for `prompt`. Exposed for testing."""
        return build_request(
            _as_prompt(prompt),
            self.default_options,
            stream=stream,
            role_map=self.provider.role_map,
        )

    async def call(self, prompt: PromptInput) -> ChatResponse:
        """
        Perform one complete chat call.

        When the backend asks for functions that have a callback in the
        merged options, the callbacks run, their results are sent back as
        function messages and the backend is called again, at most
        `max_function_rounds` times.

        Raises:
            InvalidOptionsTypeError, UnsupportedRoleError: Immediately, never retried.
            ProviderError: When the backend keeps failing after retries, or
                keeps requesting functions past `max_function_rounds`.
        """
        prompt = _as_prompt(prompt)
        response = await self._complete(prompt)
        rounds = 0
        while True:
            result = response.result
            if result is None or not result.tool_calls:
                return response
            callbacks = {
                callback.name: callback
                for callback in resolve_options(prompt, self.default_options).function_callbacks or ()
            }
            missing = [call.name for call in result.tool_calls if call.name not in callbacks]
            if missing:
                logger.debug(f"No callback for requested functions {missing}; returning the response to the caller.")
                return response
            if rounds >= self.max_function_rounds:
                raise ProviderError(
                    self.provider.get_name(),
                    f"Backend still requested functions after {self.max_function_rounds} rounds.",
                )
            rounds += 1
            prompt = await self._with_function_results(prompt, result, callbacks)
            response = await self._complete(prompt)

    async def _complete(self, prompt: Prompt) -> ChatResponse:
        request = self.create_request(prompt, stream=False)
        completion = await self.retry_policy.execute(
            lambda: self.provider.complete(request),
            description=f"{self.provider.get_name()} chat completion",
        )
        return self._assembler.to_chat_response(completion)

    async def _with_function_results(self, prompt: Prompt, result: Generation,
                                     callbacks: Dict[str, FunctionCallback]) -> Prompt:
        messages = list(prompt.messages)
        messages.append(Message.assistant(result.content, tool_calls=[call.to_wire() for call in result.tool_calls]))
        for call in result.tool_calls:
            try:
                arguments = call.parsed_arguments()
            except ValueError as e:
                raise ProviderError(self.provider.get_name(), f"Malformed arguments for function '{call.name}': {e}")
            logger.debug(f"Running function '{call.name}' requested by call '{result.id}'.")
            output = await callbacks[call.name].call(arguments)
            messages.append(Message.function(call.name, output, tool_call_id=call.id))
        return Prompt(messages=tuple(messages), options=prompt.options)

    async def call_text(self, message: str) -> str:
        """Send one user message and return the first choice's text."""
        response = await self.call(Prompt.of(message))
        result = response.result
        return result.content if result else ""

    async def stream(self, prompt: PromptInput) -> AsyncIterator[ChatResponse]:
        """
        Perform one streamed chat call.

        Only opening the stream is retried; once fragments flow, failures
        propagate to the consumer. Abandoning the iteration closes the
        backend stream.

        Yields:
            One `ChatResponse` per backend fragment, in delivery order.
        """
        request = self.create_request(prompt, stream=True)
        fragments = await self.retry_policy.execute(
            lambda: self.provider.complete_stream(request),
            description=f"{self.provider.get_name()} chat stream",
        )
        responses = self._assembler.assemble(fragments)
        try:
            async for response in responses:
                yield response
        finally:
            await responses.aclose()

    async def close(self) -> None:
        await self.provider.close()
