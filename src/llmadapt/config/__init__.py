# src/llmadapt/config/__init__.py
"""
Configuration for llmadapt.

    - default_config.toml: Packaged defaults
    - models.py: Pydantic models validating the merged configuration
    - loader.py: Layered loading through confy (defaults, user file, environment, overrides)
"""

from .loader import load_config
from .models import (AppConfig, ChatClientConfig, EmbeddingConfig,
                     LoggingConfig, RetryConfig, VectorStoreConfig)

__all__ = [
    "AppConfig",
    "ChatClientConfig",
    "EmbeddingConfig",
    "LoggingConfig",
    "RetryConfig",
    "VectorStoreConfig",
    "load_config",
]
