# src/llmadapt/storage/base_vector.py
"""
Abstract Base Class for Vector Storage backends.

This module defines the interface that all vector storage implementations
(e.g., in-memory, ChromaDB) must adhere to within the llmadapt library. A
backend is a keyed record store that can upsert, delete and scan with vector
distances; scoring, thresholds and ordering live in `VectorStore`.
"""

import abc
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import VectorRecord
from .similarity import DistanceType


class BaseVectorStorage(abc.ABC):
    """
    Abstract Base Class for vector embedding storage.

    Implementations must make each record-level write atomic: a concurrent
    reader sees either the old record or the new one, never a mix. Backends
    stamp every written record with a fresh, monotonically increasing
    insertion `sequence`, including records that replace an existing id.
    """
    distance_type: DistanceType = DistanceType.COSINE

    @abc.abstractmethod
    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the vector storage backend with given configuration.

        Args:
            config: Backend-specific configuration dictionary. All backends
                    understand 'distance_type'; others are backend-specific
                    (e.g., 'path', 'collection_name').
        """
        pass

    @abc.abstractmethod
    async def upsert(self, records: List[VectorRecord]) -> List[str]:
        """
        Insert or entirely replace records keyed by id.

        Returns:
            The ids written, in write order.

        Raises:
            VectorStorageError: If the write fails.
        """
        pass

    @abc.abstractmethod
    async def delete(self, ids: Iterable[str]) -> int:
        """
        Remove records by id. Unknown ids are ignored.

        Returns:
            The number of records actually removed.
        """
        pass

    @abc.abstractmethod
    async def scan(
        self,
        query_vector: List[float],
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[VectorRecord, float]]:
        """
        Compute the raw distance (per `distance_type`) from `query_vector` to
        every stored record matching `filter_metadata` (equality on each key).

        Returns:
            (record, distance) pairs in no particular order.

        Raises:
            VectorStorageError: If the scan fails.
        """
        pass

    @abc.abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Release any resources held by the backend."""
        pass
