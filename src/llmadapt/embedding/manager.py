# src/llmadapt/embedding/manager.py
"""
Embedding model factory for llmadapt.
"""

import logging
from typing import Any, Dict, Type

from ..exceptions import ConfigError
from .base import BaseEmbeddingModel
from .openai import OpenAIEmbedding

logger = logging.getLogger(__name__)

EMBEDDING_MAP: Dict[str, Type[BaseEmbeddingModel]] = {
    "openai": OpenAIEmbedding,
}


async def create_embedding_model(embedding_config: Any) -> BaseEmbeddingModel:
    """
    Build and initialize the embedding model described by an `EmbeddingConfig`.

    Raises:
        ConfigError: If the embedding provider is unknown.
    """
    model_cls = EMBEDDING_MAP.get(embedding_config.provider.lower())
    if model_cls is None:
        raise ConfigError(f"Unknown embedding provider '{embedding_config.provider}'. "
                          f"Known providers: {sorted(EMBEDDING_MAP)}")
    model = model_cls({
        "api_key": embedding_config.api_key,
        "base_url": embedding_config.base_url,
        "model": embedding_config.model,
        "dimensions": embedding_config.dimensions,
        "batch_size": embedding_config.batch_size,
        "timeout": embedding_config.timeout_seconds,
    })
    await model.initialize()
    return model
