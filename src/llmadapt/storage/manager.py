# src/llmadapt/storage/manager.py
"""
Vector storage factory for llmadapt.

Maps the configured storage type to a `BaseVectorStorage` class and returns
an initialized backend.
"""

import logging
from typing import Any, Dict, Type

from ..exceptions import ConfigError
from .base_vector import BaseVectorStorage
from .chromadb_vector import ChromaVectorStorage
from .memory_vector import InMemoryVectorStorage

logger = logging.getLogger(__name__)

# --- Mapping from config type string to class ---
VECTOR_STORAGE_MAP: Dict[str, Type[BaseVectorStorage]] = {
    "memory": InMemoryVectorStorage,
    "chromadb": ChromaVectorStorage,
}


async def create_vector_storage(storage_type: str, config: Dict[str, Any]) -> BaseVectorStorage:
    """
    Instantiate and initialize the vector storage backend `storage_type`.

    Raises:
        ConfigError: If the storage type is unknown.
        VectorStorageError: If the backend fails to initialize.
    """
    storage_cls = VECTOR_STORAGE_MAP.get(storage_type.lower())
    if storage_cls is None:
        raise ConfigError(f"Unsupported vector storage type: '{storage_type}'. "
                          f"Available types: {list(VECTOR_STORAGE_MAP.keys())}.")
    storage = storage_cls()
    await storage.initialize(config)
    logger.info(f"Vector storage backend '{storage_type}' initialized.")
    return storage
