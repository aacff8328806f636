# src/llmadapt/storage/chromadb_vector.py
"""
ChromaDB vector storage implementation for the llmadapt library.

Uses the chromadb library to interact with a ChromaDB instance
(either persistent or in-memory).
"""

import asyncio
import logging
import os
import pathlib
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Import chromadb client library conditionally
try:
    import chromadb
    chromadb_available = True
except ImportError:
    chromadb_available = False
    chromadb = None # type: ignore

from ..exceptions import ConfigError, VectorStorageError
from ..models import VectorRecord
from .base_vector import BaseVectorStorage
from .similarity import DistanceType

logger = logging.getLogger(__name__)

# Reserved metadata key holding the insertion sequence; stripped on read.
SEQUENCE_KEY = "_llmadapt_seq"
DEFAULT_COLLECTION_NAME = "llmadapt_default"


def _to_chroma_metadata(record: VectorRecord) -> Dict[str, Any]:
    """ChromaDB only stores flat str/int/float/bool values; anything else is stringified."""
    metadata: Dict[str, Any] = {}
    for key, value in record.metadata.items():
        if key == SEQUENCE_KEY:
            raise VectorStorageError(f"Metadata key '{SEQUENCE_KEY}' is reserved (document '{record.id}').")
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            metadata[key] = value
        else:
            metadata[key] = str(value)
            logger.debug(f"Metadata value for key '{key}' in doc '{record.id}' was converted to string.")
    metadata[SEQUENCE_KEY] = record.sequence
    return metadata


def _where_clause(filter_metadata: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not filter_metadata:
        return None
    clauses = [{key: value} for key, value in filter_metadata.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaVectorStorage(BaseVectorStorage):
    """
    Manages persistence and retrieval of vector embeddings using ChromaDB.

    Connects to a persistent ChromaDB instance when a path is configured,
    otherwise to an in-memory one. Operations run in threads using
    asyncio.to_thread as the chromadb client is synchronous. Writes hold a
    lock so that a replace (delete then add) is never observed half done.
    """

    def __init__(self) -> None:
        self._client: Any = None
        self._collection: Any = None
        self._storage_path: Optional[str] = None
        self._collection_name: str = DEFAULT_COLLECTION_NAME
        self._lock = threading.RLock()
        self._next_sequence = 1

    def _sync_initialize(self, config: Dict[str, Any]) -> None:
        """Synchronous initialization logic for ChromaDB client."""
        if not chromadb_available:
            raise ImportError("ChromaDB client library not installed. Please install `chromadb` or `llmadapt[chromadb]`.")

        self.distance_type = DistanceType(config.get("distance_type", DistanceType.COSINE))
        self._storage_path = config.get("path")
        self._collection_name = config.get("collection_name") or DEFAULT_COLLECTION_NAME

        try:
            if self._storage_path:
                expanded_path = os.path.expanduser(self._storage_path)
                pathlib.Path(expanded_path).mkdir(parents=True, exist_ok=True)
                self._client = chromadb.PersistentClient(path=expanded_path)
                logger.info(f"ChromaDB persistent client initialized at: {expanded_path}")
            else:
                self._client = chromadb.EphemeralClient()
                logger.info("ChromaDB in-memory client initialized.")
        except Exception as e:
            logger.error(f"Failed to initialize ChromaDB client (path: {self._storage_path}): {e}", exc_info=True)
            self._client = None
            raise VectorStorageError(f"Could not initialize ChromaDB client: {e}")

        try:
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": self.distance_type.chroma_space},
            )
        except Exception as e:
            logger.error(f"Failed to get or create ChromaDB collection '{self._collection_name}': {e}", exc_info=True)
            raise ConfigError(f"Could not access ChromaDB collection '{self._collection_name}': {e}")

        existing_space = (self._collection.metadata or {}).get("hnsw:space", "l2")
        if existing_space != self.distance_type.chroma_space:
            raise ConfigError(
                f"ChromaDB collection '{self._collection_name}' uses distance '{existing_space}', "
                f"but the store is configured for '{self.distance_type.value}'.")

        self._next_sequence = self._sync_max_sequence() + 1
        logger.debug(f"Accessed ChromaDB collection '{self._collection_name}', next sequence {self._next_sequence}.")

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise VectorStorageError("ChromaDB vector storage is not initialized.")
        return self._collection

    def _sync_max_sequence(self) -> int:
        existing = self._require_collection().get(include=["metadatas"])
        sequences = [int(meta.get(SEQUENCE_KEY, 0)) for meta in (existing.get("metadatas") or []) if meta]
        return max(sequences, default=0)

    def _sync_upsert(self, records: List[VectorRecord]) -> List[str]:
        collection = self._require_collection()
        if not records:
            return []
        with self._lock:
            stamped = []
            for record in records:
                stamped.append(record.with_sequence(self._next_sequence))
                self._next_sequence += 1
            ids = [record.id for record in stamped]
            metadatas = [_to_chroma_metadata(record) for record in stamped]
            try:
                # Replace, never merge: drop old rows before adding the new ones.
                collection.delete(ids=ids)
                collection.add(
                    ids=ids,
                    embeddings=[list(record.vector) for record in stamped],
                    metadatas=metadatas,
                    documents=[record.content for record in stamped],
                )
            except Exception as e:
                logger.error(f"Failed to upsert documents into ChromaDB collection '{collection.name}': {e}", exc_info=True)
                raise VectorStorageError(f"ChromaDB upsert failed: {e}")
        logger.info(f"Upserted {len(ids)} documents into ChromaDB collection '{collection.name}'.")
        return ids

    def _sync_delete(self, ids: Iterable[str]) -> int:
        collection = self._require_collection()
        unique_ids = sorted(set(ids))
        if not unique_ids:
            return 0
        with self._lock:
            try:
                present = collection.get(ids=unique_ids, include=[]).get("ids") or []
                if present:
                    collection.delete(ids=list(present))
            except Exception as e:
                logger.error(f"Failed to delete documents from ChromaDB collection '{collection.name}': {e}", exc_info=True)
                raise VectorStorageError(f"ChromaDB delete failed: {e}")
        logger.info(f"Deleted {len(present)} of {len(unique_ids)} requested documents from ChromaDB collection '{collection.name}'.")
        return len(present)

    def _sync_scan(
        self,
        query_vector: List[float],
        filter_metadata: Optional[Dict[str, Any]],
    ) -> List[Tuple[VectorRecord, float]]:
        collection = self._require_collection()
        with self._lock:
            total = collection.count()
            if total == 0:
                return []
            try:
                results = collection.query(
                    query_embeddings=[query_vector],
                    n_results=total,
                    where=_where_clause(filter_metadata),
                    include=["metadatas", "documents", "embeddings", "distances"],
                )
            except Exception as e:
                logger.error(f"Failed similarity scan in ChromaDB collection '{collection.name}': {e}", exc_info=True)
                raise VectorStorageError(f"ChromaDB scan failed: {e}")

        ids_list = results.get("ids")
        if not ids_list or not ids_list[0]:
            return []
        ids = ids_list[0]
        distances = results["distances"][0]
        metadatas = (results.get("metadatas") or [[{}] * len(ids)])[0]
        contents = (results.get("documents") or [[""] * len(ids)])[0]
        embeddings_list = results.get("embeddings")
        embeddings = embeddings_list[0] if embeddings_list is not None else [()] * len(ids)

        scanned: List[Tuple[VectorRecord, float]] = []
        for i, doc_id in enumerate(ids):
            metadata = dict(metadatas[i] or {})
            sequence = int(metadata.pop(SEQUENCE_KEY, 0))
            record = VectorRecord(
                id=str(doc_id),
                vector=tuple(float(x) for x in embeddings[i]),
                content=contents[i] or "",
                metadata=metadata,
                sequence=sequence,
            )
            scanned.append((record, float(distances[i])))
        logger.debug(f"ChromaDB scan returned {len(scanned)} results from collection '{collection.name}'.")
        return scanned

    def _sync_count(self) -> int:
        return self._require_collection().count()

    def _sync_close(self) -> None:
        """Synchronous closing logic for ChromaDB."""
        # ChromaDB clients have no close(); dereferencing releases them.
        self._collection = None
        self._client = None
        logger.info("ChromaDB vector storage resources dereferenced.")

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initializes the ChromaDB client asynchronously by running sync init in a thread."""
        await asyncio.to_thread(self._sync_initialize, config)

    async def upsert(self, records: List[VectorRecord]) -> List[str]:
        return await asyncio.to_thread(self._sync_upsert, records)

    async def delete(self, ids: Iterable[str]) -> int:
        return await asyncio.to_thread(self._sync_delete, list(ids))

    async def scan(
        self,
        query_vector: List[float],
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[VectorRecord, float]]:
        return await asyncio.to_thread(self._sync_scan, query_vector, filter_metadata)

    async def count(self) -> int:
        return await asyncio.to_thread(self._sync_count)

    async def close(self) -> None:
        await asyncio.to_thread(self._sync_close)
