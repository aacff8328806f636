# src/llmadapt/providers/manager.py
"""
Provider factory for llmadapt.

Maps configured provider names to provider classes and builds ready-to-use
`ChatClient` instances from the `[chat]` configuration section.
"""

import logging
from typing import Any, Dict, Type

from ..chat.retry import RetryPolicy
from ..exceptions import ConfigError
from .base import BaseProvider
from .client import ChatClient
from .openai_provider import MoonshotProvider, OpenAIProvider

logger = logging.getLogger(__name__)

# --- Mapping from config provider name string to class ---
PROVIDER_MAP: Dict[str, Type[BaseProvider]] = {
    "openai": OpenAIProvider,
    "moonshot": MoonshotProvider,
}


def create_provider(name: str, config: Dict[str, Any], log_raw_payloads: bool = False) -> BaseProvider:
    """
    Instantiate the provider registered under `name`.

    Raises:
        ConfigError: If the provider name is unknown.
    """
    provider_cls = PROVIDER_MAP.get(name.lower())
    if provider_cls is None:
        raise ConfigError(f"Unknown provider '{name}'. Known providers: {sorted(PROVIDER_MAP)}")
    logger.info(f"Initializing chat provider '{name}'.")
    return provider_cls(config, log_raw_payloads=log_raw_payloads)


def create_chat_client(chat_config: Any) -> ChatClient:
    """
    Build a `ChatClient` from a `ChatClientConfig`.
    """
    provider_config = {
        "api_key": chat_config.api_key,
        "base_url": chat_config.base_url,
        "timeout": chat_config.timeout_seconds,
        "default_options": chat_config.default_options,
        "functions": chat_config.functions,
    }
    provider = create_provider(chat_config.provider, provider_config, chat_config.log_raw_payloads)
    return ChatClient(provider, retry_policy=RetryPolicy.from_config(chat_config.retry))
