# src/llmadapt/embedding/base.py
"""
Abstract Base Class for Text Embedding Models.

This module defines the common interface that embedding model adapters must
adhere to within the llmadapt library. The vector store only ever talks to
this interface; computing embeddings is always delegated to a hosted model.
"""

import abc
from typing import Any, Dict, List, Optional


class BaseEmbeddingModel(abc.ABC):
    """
    Abstract Base Class for text embedding model integrations.

    Ensures all embedding models provide a consistent way to generate
    vector representations (embeddings) for text strings.
    """

    @abc.abstractmethod
    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the embedding model with its specific configuration.

        Args:
            config: A dictionary containing model-specific settings
                    (e.g., model name, api_key, dimensions).
        """
        pass

    @property
    def dimensions(self) -> Optional[int]:
        """Length of the vectors this model produces, when known up front."""
        return None

    @abc.abstractmethod
    async def initialize(self) -> None:
        """
        Perform any necessary asynchronous initialization, such as creating
        API clients. Should be called after the instance is created.
        """
        pass

    @abc.abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate a vector embedding for a single text string.

        Raises:
            EmbeddingError: If the embedding generation fails.
        """
        pass

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generate vector embeddings for a batch of text strings.

        Defaults to calling `generate_embedding` once per text; adapters that
        can batch should override it.

        Returns:
            One embedding per input text, in input order.

        Raises:
            EmbeddingError: If the batch embedding generation fails.
        """
        embeddings = []
        for text in texts:
            embeddings.append(await self.generate_embedding(text))
        return embeddings

    async def close(self) -> None:
        """Clean up resources like open API clients."""
        pass
