# src/llmadapt/storage/__init__.py
"""
Vector storage for the llmadapt library: distance metrics, the storage
backend interface with in-memory and ChromaDB implementations, and the
`VectorStore` engine that scores and ranks documents.
"""

from .base_vector import BaseVectorStorage
from .chromadb_vector import ChromaVectorStorage
from .manager import VECTOR_STORAGE_MAP, create_vector_storage
from .memory_vector import InMemoryVectorStorage
from .similarity import DistanceType
from .vector_store import SearchRequest, VectorStore

__all__ = [
    "BaseVectorStorage",
    "ChromaVectorStorage",
    "InMemoryVectorStorage",
    "DistanceType",
    "SearchRequest",
    "VectorStore",
    "VECTOR_STORAGE_MAP",
    "create_vector_storage",
]
