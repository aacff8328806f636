# src/llmadapt/embedding/__init__.py
"""
Embedding model adapters for the llmadapt library.

The vector store delegates all embedding computation to a hosted model
through the `BaseEmbeddingModel` interface.
"""

from .base import BaseEmbeddingModel
from .manager import EMBEDDING_MAP, create_embedding_model
from .openai import OpenAIEmbedding

__all__ = [
    "BaseEmbeddingModel",
    "OpenAIEmbedding",
    "EMBEDDING_MAP",
    "create_embedding_model",
]
