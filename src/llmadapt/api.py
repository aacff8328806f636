# src/llmadapt/api.py
"""
Core API Facade for the llmadapt library.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from .chat.retry import RetryPolicy
from .config.loader import DEFAULT_ENV_PREFIX, load_config
from .config.models import AppConfig
from .embedding.base import BaseEmbeddingModel
from .embedding.manager import create_embedding_model
from .models import ChatResponse, Document, Message, Prompt
from .providers.client import ChatClient
from .providers.manager import create_chat_client
from .storage.base_vector import BaseVectorStorage
from .storage.manager import create_vector_storage
from .storage.vector_store import VectorStore

logger = logging.getLogger(__name__)


class LLMAdapt:
    """
    Single entry point wiring a `ChatClient` and a `VectorStore` from
    configuration.

    Use `await LLMAdapt.create(...)`, preferably as an async context manager::

        async with await LLMAdapt.create(config_overrides={"chat.provider": "moonshot"}) as llm:
            print(await llm.chat("Hello"))
    """
    config: AppConfig
    chat_client: ChatClient
    vector_store: VectorStore

    def __init__(self):
        """
        Private constructor. Use `LLMAdapt.create()` for initialization.
        """

    @classmethod
    async def create(
        cls,
        config_overrides: Optional[Dict[str, Any]] = None,
        config_file_path: Optional[Union[str, Path]] = None,
        env_prefix: Optional[str] = DEFAULT_ENV_PREFIX,
        embedding_model: Optional[BaseEmbeddingModel] = None,
        vector_storage: Optional[BaseVectorStorage] = None,
        chat_client: Optional[ChatClient] = None,
    ) -> "LLMAdapt":
        """
        Asynchronously creates and initializes an LLMAdapt instance.

        Collaborators passed explicitly are used as-is instead of being
        built from configuration.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        instance = cls()
        instance.config = load_config(config_file_path, config_overrides, env_prefix)
        await instance._initialize_components(embedding_model, vector_storage, chat_client)
        return instance

    async def _initialize_components(
        self,
        embedding_model: Optional[BaseEmbeddingModel],
        vector_storage: Optional[BaseVectorStorage],
        chat_client: Optional[ChatClient],
    ) -> None:
        logger.info("Initializing llmadapt components from configuration...")
        store_config = self.config.vector_store
        self.chat_client = chat_client or create_chat_client(self.config.chat)
        if embedding_model is None:
            embedding_model = await create_embedding_model(self.config.embedding)
        if vector_storage is None:
            vector_storage = await create_vector_storage(store_config.type, store_config.backend_config())
        self.vector_store = VectorStore(
            vector_storage,
            embedding_model,
            dimension=store_config.embedding_dimension,
            retry_policy=RetryPolicy.from_config(self.config.chat.retry),
        )
        logger.info(f"llmadapt ready (chat provider: '{self.chat_client.provider.get_name()}', "
                    f"vector storage: '{store_config.type}', distance: '{store_config.distance_type.value}').")

    async def chat(self, prompt: Union[Prompt, str, Message]) -> str:
        """Send a prompt and return the first choice's full text."""
        response = await self.chat_client.call(prompt)
        return response.content

    async def chat_response(self, prompt: Union[Prompt, str, Message]) -> ChatResponse:
        """Send a prompt and return the complete `ChatResponse`."""
        return await self.chat_client.call(prompt)

    async def stream_chat(self, prompt: Union[Prompt, str, Message]) -> AsyncIterator[ChatResponse]:
        """Stream partial responses as the backend produces them."""
        responses = self.chat_client.stream(prompt)
        try:
            async for response in responses:
                yield response
        finally:
            await responses.aclose()

    async def add_documents(self, documents: Iterable[Union[Document, Dict[str, Any]]]) -> List[str]:
        """Upsert documents; dicts are validated into `Document`s."""
        docs = [doc if isinstance(doc, Document) else Document.model_validate(doc) for doc in documents]
        return await self.vector_store.add(docs)

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """Similarity search using the configured defaults for omitted arguments."""
        store_config = self.config.vector_store
        return await self.vector_store.similarity_search(
            query,
            top_k=top_k if top_k is not None else store_config.default_top_k,
            similarity_threshold=(similarity_threshold if similarity_threshold is not None
                                  else store_config.default_similarity_threshold),
            filter_metadata=filter_metadata,
        )

    async def delete_documents(self, ids: Iterable[str]) -> int:
        return await self.vector_store.delete(ids)

    async def close(self) -> None:
        """Closes the chat backend, the vector storage and the embedding model."""
        logger.info("Closing llmadapt resources...")
        results = await asyncio.gather(
            self.chat_client.close(),
            self.vector_store.close(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Error while closing llmadapt resources: {result}")
        logger.info("llmadapt resources cleanup complete.")

    async def __aenter__(self) -> "LLMAdapt":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
