# src/llmadapt/embedding/openai.py
"""
OpenAI Embedding model implementation for llmadapt.

Uses the OpenAI Python SDK to generate embeddings via the embeddings API.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from ..exceptions import ConfigError, EmbeddingError, EmbeddingProviderUnavailableError
from .base import BaseEmbeddingModel

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"


class OpenAIEmbedding(BaseEmbeddingModel):
    """
    Generates text embeddings using the OpenAI API.

    The API key falls back to the `OPENAI_API_KEY` environment variable,
    which the SDK reads itself when no key is configured.
    """
    _client: Optional[AsyncOpenAI] = None

    def __init__(self, config: Dict[str, Any]):
        """
        Initializes the OpenAIEmbedding model.

        Args:
            config: Configuration dictionary. Recognized keys:
                    'api_key' (optional): OpenAI API key.
                    'base_url' (optional): Custom OpenAI-compatible endpoint URL.
                    'model' (optional): Embedding model name.
                    'dimensions' (optional): Requested output dimension, for
                        models that support shortening.
                    'batch_size' (optional): Max texts per request (default: 512).
                    'timeout' (optional): Request timeout in seconds.
        """
        self._api_key = config.get("api_key")
        self._model_name = config.get("model") or DEFAULT_OPENAI_EMBEDDING_MODEL
        self._base_url = config.get("base_url")
        self._timeout = float(config.get("timeout", 60.0))
        self._dimensions: Optional[int] = config.get("dimensions")
        self._batch_size = int(config.get("batch_size", 512))
        if self._batch_size <= 0:
            raise ConfigError(f"Embedding batch_size must be positive, got {self._batch_size}.")

        logger.info(f"OpenAIEmbedding configured with model '{self._model_name}'. "
                    f"API key source: {'config' if self._api_key else 'environment/SDK default'}. "
                    f"Base URL: {self._base_url or 'default'}.")

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    async def initialize(self) -> None:
        """
        Initializes the AsyncOpenAI client.
        """
        if self._client:
            logger.debug("OpenAIEmbedding client already initialized.")
            return

        try:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
            )
            logger.info("AsyncOpenAI client for embeddings initialized successfully.")
        except OpenAIError as e:
            logger.error(f"Failed to initialize AsyncOpenAI client for embeddings: {e}", exc_info=True)
            self._client = None
            raise ConfigError(f"OpenAI client initialization for embeddings failed: {e}")

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate a vector embedding for a single text string.

        Raises:
            EmbeddingError: If the client is not initialized.
            EmbeddingProviderUnavailableError: If the API call fails.
        """
        embeddings = await self.generate_embeddings([text])
        return embeddings[0]

    async def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        request: Dict[str, Any] = {"model": self._model_name, "input": batch}
        if self._dimensions:
            request["dimensions"] = self._dimensions
        try:
            response = await self._client.embeddings.create(**request)  # type: ignore[union-attr]
        except OpenAIError as e:
            status_code = getattr(e, "status_code", None)
            logger.error(f"OpenAI API error during embedding generation (model: {self._model_name}): {status_code} - {e}")
            raise EmbeddingProviderUnavailableError(self._model_name, f"OpenAI API Error ({status_code}): {e}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"Request to OpenAI embeddings API timed out (model: {self._model_name}).")
            raise EmbeddingProviderUnavailableError(self._model_name, "Request timed out.") from e

        if not response.data or len(response.data) != len(batch):
            got = len(response.data) if response.data else 0
            raise EmbeddingProviderUnavailableError(
                self._model_name, f"API returned {got} embeddings for a batch of {len(batch)}.")
        # The API does not promise input order; `index` does.
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generate vector embeddings for a batch of text strings, split into
        requests of at most `batch_size` texts.

        Raises:
            EmbeddingError: If the client is not initialized.
            EmbeddingProviderUnavailableError: If any API call fails.
        """
        if not self._client:
            raise EmbeddingError(model_name=self._model_name, message="OpenAI client not initialized. Call initialize() first.")
        if not texts:
            return []

        # OpenAI recommends replacing newlines for their embedding models
        processed_texts = [text.replace("\n", " ") if text else "" for text in texts]

        logger.debug(f"Generating OpenAI embeddings for batch of {len(processed_texts)} texts (model: {self._model_name})...")
        embeddings: List[List[float]] = []
        for start in range(0, len(processed_texts), self._batch_size):
            embeddings.extend(await self._embed_batch(processed_texts[start:start + self._batch_size]))
        logger.debug(f"Successfully generated {len(embeddings)} OpenAI embeddings.")
        return embeddings

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("OpenAIEmbedding client closed.")
