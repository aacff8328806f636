# src/llmadapt/providers/base.py
"""
Abstract Base Class for chat backends.

This module defines the common interface that all specific chat backend
implementations (e.g., OpenAI, Moonshot) must adhere to within the llmadapt
library. A provider only speaks the backend's wire format: it receives an
already merged `NormalizedRequest` and returns raw completions or fragments.
Option merging, role translation and response assembly happen in
`llmadapt.chat`.
"""

import abc
from typing import Any, AsyncIterator, Dict, Mapping, Optional

from ..chat.request import DEFAULT_ROLE_MAP
from ..models import ChatOptions, Role
from .schemas import ChatCompletion, ChatCompletionChunk, NormalizedRequest


class BaseProvider(abc.ABC):
    """
    Abstract Base Class for chat backend integrations.

    Ensures all providers offer a consistent set of core functionalities:
    - Initialization with configuration.
    - A role vocabulary and default options for request building.
    - Complete and streamed chat completions.
    """
    log_raw_payloads_enabled: bool
    default_options: ChatOptions

    @abc.abstractmethod
    def __init__(self, config: Dict[str, Any], log_raw_payloads: bool = False):
        """
        Initialize the provider with its specific configuration.

        Args:
            config: A dictionary containing provider-specific settings
                    (e.g., api_key, base_url, default_model, timeout).
            log_raw_payloads: Whether raw request/response payloads should be
                              logged by this provider instance.
        """
        self.log_raw_payloads_enabled = log_raw_payloads

    @abc.abstractmethod
    def get_name(self) -> str:
        """
        Return the unique identifier name for this provider.

        Examples: "openai", "moonshot".
        """
        pass

    @property
    def role_map(self) -> Mapping[Role, str]:
        """
        The backend's role vocabulary. Roles missing from the mapping are
        rejected at request build time.
        """
        return DEFAULT_ROLE_MAP

    @abc.abstractmethod
    async def complete(self, request: NormalizedRequest) -> Optional[ChatCompletion]:
        """
        Perform a complete (non-streamed) chat completion.

        Returns:
            The parsed backend response, or None if the backend returned no body.

        Raises:
            ProviderError: For any provider-specific errors (API, connection, etc.).
        """
        pass

    @abc.abstractmethod
    async def complete_stream(self, request: NormalizedRequest) -> AsyncIterator[ChatCompletionChunk]:
        """
        Open a streamed chat completion.

        The returned iterator is finite, not restartable, and must be consumed
        exactly once. Closing it (`aclose`) must release the underlying
        connection.

        Raises:
            ProviderError: If the stream cannot be opened.
        """
        pass

    async def close(self) -> None:
         """
         Clean up any resources used by the provider, such as network sessions.
         Providers that do not need explicit cleanup can keep this default.
         """
         pass
