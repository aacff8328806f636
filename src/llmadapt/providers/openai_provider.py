# src/llmadapt/providers/openai_provider.py
"""
OpenAI API provider implementation for the llmadapt library.

Handles interactions with the OpenAI chat completions API and with any
service exposing the same wire format (configured through `base_url`).
"""

import asyncio
import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import Field

from ..chat.request import CHAT_ONLY_ROLE_MAP
from ..exceptions import ConfigError, ProviderError
from ..models import ChatOptions, Role
from .base import BaseProvider
from .schemas import ChatCompletion, ChatCompletionChunk, NormalizedRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


class OpenAIChatOptions(ChatOptions):
    """ChatOptions plus parameters only OpenAI-compatible backends understand."""
    seed: Optional[int] = Field(default=None, description="Sampling seed for reproducible output.")
    user: Optional[str] = Field(default=None, description="End-user identifier forwarded to the backend.")
    response_format: Optional[Dict[str, Any]] = Field(default=None, description="e.g. {'type': 'json_object'}.")


class OpenAIProvider(BaseProvider):
    """
    llmadapt provider for OpenAI-compatible chat completion APIs.
    """
    _client: Optional[AsyncOpenAI] = None
    api_key_env_var: str = "OPENAI_API_KEY"
    fallback_default_model: str = DEFAULT_MODEL

    def __init__(self, config: Dict[str, Any], log_raw_payloads: bool = False):
        """
        Initializes the OpenAIProvider.

        Args:
            config: Configuration dictionary containing:
                    'api_key' (optional): API key. Defaults to the provider's env var.
                    'base_url' (optional): Custom endpoint URL.
                    'default_model' (optional): Default model to use.
                    'default_options' (optional): Mapping of default ChatOptions fields.
                    'functions' (optional): Mapping of function name to
                        {'description': ..., 'parameters': <JSON schema>}.
                    'timeout' (optional): Request timeout in seconds (default: 60).
            log_raw_payloads: Whether to log raw request/response payloads.
        """
        super().__init__(config, log_raw_payloads)
        self.api_key = config.get('api_key') or os.environ.get(self.api_key_env_var)
        self.base_url = config.get('base_url') or self.default_base_url()
        self.timeout = float(config.get('timeout', 60.0))
        self.function_schemas: Dict[str, Dict[str, Any]] = dict(config.get('functions') or {})

        default_option_values = dict(config.get('default_options') or {})
        default_option_values.setdefault('model', config.get('default_model') or self.fallback_default_model)
        try:
            self.default_options = OpenAIChatOptions(**default_option_values)
        except ValueError as e:
            raise ConfigError(f"Invalid default options for provider '{self.get_name()}': {e}")

        if not self.api_key:
            logger.warning(f"{self.get_name()} API key not found in config or environment variable "
                           f"{self.api_key_env_var}. Ensure it is set for the provider to function.")

        try:
            self._client = AsyncOpenAI(
                api_key=self.api_key or "missing-api-key",
                base_url=self.base_url,
                timeout=self.timeout,
            )
            logger.debug(f"AsyncOpenAI client initialized for provider '{self.get_name()}'.")
        except Exception as e:
            logger.error(f"Failed to initialize AsyncOpenAI client: {e}", exc_info=True)
            raise ConfigError(f"{self.get_name()} client initialization failed: {e}")

    def get_name(self) -> str:
        """Returns the provider name: 'openai'."""
        return "openai"

    def default_base_url(self) -> Optional[str]:
        """Endpoint used when none is configured; None lets the SDK decide."""
        return None

    def _tools_payload(self, request: NormalizedRequest) -> List[Dict[str, Any]]:
        tools = []
        for name in request.functions:
            schema = request.function_schemas.get(name) or self.function_schemas.get(name)
            if schema is None:
                raise ConfigError(f"Function '{name}' is not registered with provider '{self.get_name()}'.")
            tools.append({
                "type": "function",
                "function": {
                    "name": name,
                    "description": schema.get("description", ""),
                    "parameters": schema.get("parameters", {"type": "object", "properties": {}}),
                },
            })
        return tools

    def _build_payload(self, request: NormalizedRequest, stream: bool) -> Dict[str, Any]:
        payload = request.to_payload()
        payload["stream"] = stream
        if request.functions:
            payload["tools"] = self._tools_payload(request)
        for message in payload["messages"]:
            # Replies to tool calls use the "tool" role and carry no name.
            if message["role"] == "function" and "tool_call_id" in message:
                message["role"] = "tool"
                message.pop("name", None)

        if self.log_raw_payloads_enabled and logger.isEnabledFor(logging.DEBUG):
            try:
                logger.debug(f"RAW LLM REQUEST ({self.get_name()} @ {request.model}): {json.dumps(payload, indent=2)}")
            except (TypeError, ValueError) as e_req_log:
                logger.warning(f"Failed to serialize raw request for logging: {type(e_req_log).__name__} - {str(e_req_log)[:100]}")
        return payload

    def _translate_error(self, e: Exception) -> ProviderError:
        if isinstance(e, OpenAIError):
            status_code = getattr(e, "status_code", None)
            message = getattr(e, "message", str(e))
            logger.error(f"{self.get_name()} API error: Status {status_code} - {message}")
            if status_code == 401:
                return ProviderError(self.get_name(), f"Authentication failed (Invalid API Key? Status 401): {message}")
            if status_code == 429:
                return ProviderError(self.get_name(), f"Rate limit exceeded (Status 429): {message}")
            return ProviderError(self.get_name(), f"API Error (Status {status_code}): {message}")
        if isinstance(e, asyncio.TimeoutError):
            logger.error(f"Request to {self.get_name()} API timed out after {self.timeout} seconds.")
            return ProviderError(self.get_name(), f"Request timed out after {self.timeout}s.")
        logger.error(f"Unexpected error during {self.get_name()} chat completion: {e}", exc_info=True)
        return ProviderError(self.get_name(), f"An unexpected error occurred: {e}")

    async def complete(self, request: NormalizedRequest) -> Optional[ChatCompletion]:
        """
        Sends a complete chat completion request.

        Returns:
            The parsed response, or None if the backend returned no body.

        Raises:
            ProviderError: If the API call fails.
        """
        if not self._client:
            raise ProviderError(self.get_name(), "Client not initialized or already closed.")

        payload = self._build_payload(request, stream=False)
        logger.debug(f"Sending request to {self.get_name()} API: model='{request.model}', stream=False, num_messages={len(request.messages)}")
        try:
            response = await self._client.chat.completions.create(**payload)
        except (OpenAIError, asyncio.TimeoutError) as e:
            raise self._translate_error(e) from e

        if response is None:
            return None
        if self.log_raw_payloads_enabled and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"RAW LLM RESPONSE ({self.get_name()} @ {request.model}): {response.model_dump_json(indent=2)}")
        return ChatCompletion.model_validate(response.model_dump(exclude_none=True))

    async def complete_stream(self, request: NormalizedRequest) -> AsyncIterator[ChatCompletionChunk]:
        """
        Opens a streamed chat completion and returns an iterator of fragments.

        Raises:
            ProviderError: If the stream cannot be opened or breaks mid-way.
        """
        if not self._client:
            raise ProviderError(self.get_name(), "Client not initialized or already closed.")

        payload = self._build_payload(request, stream=True)
        logger.debug(f"Opening stream from {self.get_name()} API: model='{request.model}', num_messages={len(request.messages)}")
        try:
            response_stream = await self._client.chat.completions.create(**payload)
        except (OpenAIError, asyncio.TimeoutError) as e:
            raise self._translate_error(e) from e

        async def stream_wrapper() -> AsyncIterator[ChatCompletionChunk]:
            try:
                async for chunk_obj in response_stream:
                    if self.log_raw_payloads_enabled and logger.isEnabledFor(logging.DEBUG):
                        logger.debug(f"RAW LLM STREAM CHUNK ({self.get_name()} @ {request.model}): {chunk_obj.model_dump_json()}")
                    yield ChatCompletionChunk.model_validate(chunk_obj.model_dump(exclude_none=True))
            except (OpenAIError, asyncio.TimeoutError) as e:
                raise self._translate_error(e) from e
            finally:
                await response_stream.close()
        return stream_wrapper()

    async def close(self) -> None:
        """Closes the underlying client session if applicable."""
        if self._client:
            try:
                await self._client.close()
                logger.info(f"{self.get_name()} provider client closed successfully.")
            except RuntimeError as e:
                if "Event loop is closed" in str(e):
                    logger.warning(f"{self.get_name()} client close failed as event loop is already closed: {e}")
                else:
                    logger.error(f"RuntimeError closing {self.get_name()} client: {e}", exc_info=True)
            finally:
                self._client = None


class MoonshotProvider(OpenAIProvider):
    """
    Moonshot AI chat provider. Moonshot speaks the OpenAI wire format but
    has no function role.
    """
    api_key_env_var = "MOONSHOT_API_KEY"
    fallback_default_model = "moonshot-v1-8k"

    def get_name(self) -> str:
        """Returns the provider name: 'moonshot'."""
        return "moonshot"

    def default_base_url(self) -> Optional[str]:
        return "https://api.moonshot.cn/v1"

    @property
    def role_map(self) -> Mapping[Role, str]:
        return CHAT_ONLY_ROLE_MAP
