# src/llmadapt/__init__.py
"""
llmadapt - A provider-agnostic layer over chat LLM backends and vector
similarity document stores.

Chat calls go through a `ChatClient` that merges options, translates roles
and assembles streamed fragments into `ChatResponse`s; documents go through a
`VectorStore` that embeds, upserts and ranks them by normalized similarity.
"""

from importlib.metadata import PackageNotFoundError, version

from .api import LLMAdapt
from .chat import PromptTextConverter, RetryPolicy, StreamingResponseAssembler, aggregate
from .config import AppConfig, load_config
from .exceptions import (ConfigError, DimensionMismatchError, EmbeddingError,
                         EmbeddingProviderUnavailableError,
                         InvalidOptionsTypeError, LLMAdaptError,
                         ProviderError, StorageError, StreamProtocolError,
                         UnsupportedRoleError, VectorStorageError)
from .models import (ChatGenerationMetadata, ChatOptions, ChatResponse,
                     Document, FinishReason, FunctionCallback, Generation,
                     Media, Message, Prompt, Role, ToolCall)
from .providers.client import ChatClient
from .storage import DistanceType, SearchRequest, VectorStore

try:
    __version__ = version("llmadapt")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "LLMAdapt",
    "ChatClient",
    "VectorStore",
    "SearchRequest",
    "DistanceType",
    "PromptTextConverter",
    "RetryPolicy",
    "StreamingResponseAssembler",
    "aggregate",
    "AppConfig",
    "load_config",
    "Role",
    "Media",
    "Message",
    "Prompt",
    "ChatOptions",
    "FunctionCallback",
    "ToolCall",
    "FinishReason",
    "ChatGenerationMetadata",
    "Generation",
    "ChatResponse",
    "Document",
    "LLMAdaptError",
    "ConfigError",
    "ProviderError",
    "StreamProtocolError",
    "InvalidOptionsTypeError",
    "UnsupportedRoleError",
    "EmbeddingError",
    "EmbeddingProviderUnavailableError",
    "StorageError",
    "VectorStorageError",
    "DimensionMismatchError",
    "__version__",
]
