# src/llmadapt/storage/vector_store.py
"""
Vector Store Engine for the llmadapt library.

`VectorStore` sits between callers and a `BaseVectorStorage` backend. It
checks vector dimensions, delegates missing embeddings to an embedding model
in one batch, turns raw backend distances into normalized similarity scores,
applies the similarity threshold and returns the best matches as detached
`Document` copies.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from ..chat.retry import RetryPolicy
from ..embedding.base import BaseEmbeddingModel
from ..exceptions import (DimensionMismatchError, EmbeddingError,
                          EmbeddingProviderUnavailableError)
from ..models import Document, VectorRecord
from .base_vector import BaseVectorStorage

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 4


@dataclass
class SearchRequest:
    """
    A similarity search.

    Attributes:
        query: Text to embed and search with.
        top_k: Maximum number of results; must be positive.
        similarity_threshold: Minimum score (inclusive) in [0, 1], or None to
            accept every score.
        filter_metadata: Equality filter applied to document metadata.
    """
    query: str
    top_k: int = DEFAULT_TOP_K
    similarity_threshold: Optional[float] = None
    filter_metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.query is None:
            raise ValueError("Search query must not be None.")
        if isinstance(self.top_k, bool) or not isinstance(self.top_k, int) or self.top_k <= 0:
            raise ValueError(f"top_k must be a positive integer, got {self.top_k!r}.")
        if self.similarity_threshold is not None and not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}.")


class VectorStore:
    """
    Keyed document store with k-nearest-neighbor retrieval.

    Safe for concurrent use: the backend makes every record write atomic and
    the engine itself holds no mutable state beyond its collaborators.
    Writes are not transactional across records; if the embedding provider
    fails, nothing from that `add` call is written, but a backend failure
    midway through a multi-record write may leave earlier records in place.
    """

    def __init__(
        self,
        storage: BaseVectorStorage,
        embedding_model: BaseEmbeddingModel,
        dimension: int,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if dimension <= 0:
            raise ValueError(f"Embedding dimension must be positive, got {dimension}.")
        self.storage = storage
        self.embedding_model = embedding_model
        self.dimension = dimension
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy()

    @property
    def distance_type(self):
        return self.storage.distance_type

    def _check_dimension(self, vector: List[float], document_id: Optional[str] = None) -> None:
        if len(vector) != self.dimension:
            raise DimensionMismatchError(expected=self.dimension, actual=len(vector), document_id=document_id)

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        model_name = type(self.embedding_model).__name__

        async def embed_batch() -> List[List[float]]:
            try:
                return await self.embedding_model.generate_embeddings(texts)
            except EmbeddingError:
                raise
            except Exception as e:
                raise EmbeddingProviderUnavailableError(model_name, f"Embedding call failed: {e}") from e

        vectors = await self.retry_policy.execute(embed_batch, description=f"embedding {len(texts)} texts")
        if len(vectors) != len(texts):
            raise EmbeddingProviderUnavailableError(
                model_name, f"Expected {len(texts)} embeddings, got {len(vectors)}.")
        return vectors

    async def add(self, documents: Iterable[Document]) -> List[str]:
        """
        Upsert documents keyed by id.

        An existing record with the same id is replaced entirely (content,
        metadata and vector). When the input repeats an id, the last one wins.
        Documents without an embedding are embedded in one batch call.

        Returns:
            The ids written, in write order.

        Raises:
            DimensionMismatchError: If a supplied or generated embedding has
                the wrong length. Supplied embeddings are checked before the
                embedding model is called.
            EmbeddingProviderUnavailableError: If the embedding call fails.
        """
        documents = list(documents)
        if not documents:
            return []

        for doc in documents:
            if doc.embedding is not None:
                self._check_dimension(doc.embedding, doc.id)

        missing = [doc for doc in documents if doc.embedding is None]
        generated: Dict[int, List[float]] = {}
        if missing:
            logger.debug(f"Embedding {len(missing)} of {len(documents)} documents.")
            vectors = await self._embed([doc.content for doc in missing])
            for doc, vector in zip(missing, vectors):
                self._check_dimension(vector, doc.id)
                generated[id(doc)] = vector

        records: Dict[str, VectorRecord] = {}
        for doc in documents:
            vector = doc.embedding if doc.embedding is not None else generated[id(doc)]
            records.pop(doc.id, None)
            records[doc.id] = VectorRecord.from_document(doc, vector)

        written = await self.storage.upsert(list(records.values()))
        logger.info(f"Added {len(written)} documents to the vector store.")
        return written

    async def delete(self, ids: Iterable[str]) -> int:
        """
        Remove documents by id. Unknown ids are ignored, so deleting twice is
        harmless.

        Returns:
            The number of documents actually removed.
        """
        ids = set(ids)
        if not ids:
            return 0
        removed = await self.storage.delete(ids)
        logger.info(f"Deleted {removed} of {len(ids)} requested documents from the vector store.")
        return removed

    async def similarity_search(
        self,
        query: Union[str, SearchRequest],
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: Optional[float] = None,
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """
        Find the documents most similar to a query text.

        Args:
            query: The query text, or a complete `SearchRequest` (in which
                case the remaining arguments are ignored).
            top_k: Maximum number of results.
            similarity_threshold: Minimum score, inclusive.
            filter_metadata: Equality filter on document metadata.

        Returns:
            Up to `top_k` documents carrying their `score`, ordered by
            descending score with ties broken by insertion order. Empty when
            nothing clears the threshold.
        """
        if isinstance(query, SearchRequest):
            request = query
        else:
            request = SearchRequest(
                query=query,
                top_k=top_k,
                similarity_threshold=similarity_threshold,
                filter_metadata=dict(filter_metadata or {}),
            )

        query_vector = (await self._embed([request.query]))[0]
        return await self.similarity_search_by_vector(
            query_vector,
            top_k=request.top_k,
            similarity_threshold=request.similarity_threshold,
            filter_metadata=request.filter_metadata,
        )

    async def similarity_search_by_vector(
        self,
        query_vector: List[float],
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: Optional[float] = None,
        filter_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """Same as `similarity_search`, for an already computed query vector."""
        # Validates top_k and threshold the same way as a text search.
        SearchRequest(query="", top_k=top_k, similarity_threshold=similarity_threshold)
        self._check_dimension(query_vector)

        scanned = await self.storage.scan(query_vector, filter_metadata or None)
        scored = []
        for record, distance in scanned:
            score = self.distance_type.normalize(distance)
            if similarity_threshold is None or score >= similarity_threshold:
                scored.append((score, record))

        scored.sort(key=lambda item: (-item[0], item[1].sequence))
        results = [record.to_document(score) for score, record in scored[:top_k]]
        logger.debug(f"Similarity search matched {len(scored)} of {len(scanned)} candidates; returning {len(results)}.")
        return results

    async def count(self) -> int:
        return await self.storage.count()

    async def close(self) -> None:
        await self.storage.close()
        await self.embedding_model.close()
