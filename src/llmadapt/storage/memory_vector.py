# src/llmadapt/storage/memory_vector.py
"""
In-memory vector storage for the llmadapt library.

Records live in a dict guarded by an `RLock`, so the backend is safe to share
between threads and tasks. Scans are exact: every stored vector is scored.
"""

import itertools
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import VectorRecord
from .base_vector import BaseVectorStorage
from .similarity import DistanceType

logger = logging.getLogger(__name__)


def matches_filter(metadata: Dict[str, Any], filter_metadata: Optional[Dict[str, Any]]) -> bool:
    """True when every key in `filter_metadata` is present in `metadata` with an equal value."""
    if not filter_metadata:
        return True
    return all(key in metadata and metadata[key] == value for key, value in filter_metadata.items())


class InMemoryVectorStorage(BaseVectorStorage):
    """
    Dict-backed vector storage. Contents are lost when the process exits.
    """

    def __init__(self) -> None:
        self._records: Dict[str, VectorRecord] = {}
        self._lock = threading.RLock()
        self._sequence = itertools.count(1)

    async def initialize(self, config: Dict[str, Any]) -> None:
        self.distance_type = DistanceType(config.get("distance_type", DistanceType.COSINE))
        logger.info(f"In-memory vector storage initialized (distance: {self.distance_type.value}).")

    async def upsert(self, records: List[VectorRecord]) -> List[str]:
        written: List[str] = []
        with self._lock:
            for record in records:
                # Replacement drops the old record and takes a fresh sequence.
                self._records.pop(record.id, None)
                self._records[record.id] = record.with_sequence(next(self._sequence))
                written.append(record.id)
        logger.debug(f"Upserted {len(written)} records into in-memory vector storage.")
        return written

    async def delete(self, ids: Iterable[str]) -> int:
        removed = 0
        with self._lock:
            for record_id in set(ids):
                if self._records.pop(record_id, None) is not None:
                    removed += 1
        logger.debug(f"Deleted {removed} records from in-memory vector storage.")
        return removed

    async def scan(
        self,
        query_vector: List[float],
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[VectorRecord, float]]:
        with self._lock:
            snapshot = list(self._records.values())
        return [
            (record, self.distance_type.distance(query_vector, record.vector))
            for record in snapshot
            if matches_filter(record.metadata, filter_metadata)
        ]

    async def count(self) -> int:
        with self._lock:
            return len(self._records)

    async def close(self) -> None:
        with self._lock:
            self._records.clear()
        logger.info("In-memory vector storage cleared.")
