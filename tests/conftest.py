# tests/conftest.py
"""
Shared fakes and fixtures for the llmadapt test suite.

The fakes stand in for the two network collaborators: a chat backend
(`FakeProvider`) and a hosted embedding model (`FakeEmbeddingModel`).
"""

from typing import Any, Dict, List, Optional

import pytest

from llmadapt.chat.retry import RetryPolicy
from llmadapt.embedding.base import BaseEmbeddingModel
from llmadapt.models import ChatOptions
from llmadapt.providers.base import BaseProvider
from llmadapt.providers.schemas import (ChatCompletion, ChatCompletionChunk,
                                        NormalizedRequest)
from llmadapt.storage.memory_vector import InMemoryVectorStorage
from llmadapt.storage.similarity import DistanceType
from llmadapt.storage.vector_store import VectorStore


class FakeEmbeddingModel(BaseEmbeddingModel):
    """
    Embeds text through a lookup table. Unknown texts map to a fixed vector
    so tests only spell out the vectors they care about.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.vectors: Dict[str, List[float]] = dict(config.get("vectors", {}))
        self.default_vector: List[float] = list(config.get("default_vector", [1.0, 0.0]))
        self.failures: List[BaseException] = list(config.get("failures", []))
        self.calls: List[List[str]] = []
        self.closed = False

    async def initialize(self) -> None:
        pass

    async def generate_embedding(self, text: str) -> List[float]:
        return (await self.generate_embeddings([text]))[0]

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.failures:
            raise self.failures.pop(0)
        return [list(self.vectors.get(text, self.default_vector)) for text in texts]

    async def close(self) -> None:
        self.closed = True


class _ClosableStream:
    """Async iterator over prepared chunks that records whether it was closed."""

    def __init__(self, chunks: List[Any]):
        self._chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed or not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)

    async def aclose(self) -> None:
        self.closed = True


class FakeProvider(BaseProvider):
    """Chat backend that replays prepared completions and fragment sequences."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, log_raw_payloads: bool = False):
        super().__init__(config or {}, log_raw_payloads)
        config = config or {}
        self.default_options = config.get("default_options", ChatOptions(model="fake-model"))
        self.completions: List[Any] = list(config.get("completions", []))
        self.streams: List[List[Any]] = list(config.get("streams", []))
        self.failures: List[BaseException] = list(config.get("failures", []))
        self.requests: List[NormalizedRequest] = []
        self.opened_streams: List[_ClosableStream] = []
        self.closed = False

    def get_name(self) -> str:
        return "fake"

    async def complete(self, request: NormalizedRequest) -> Optional[ChatCompletion]:
        self.requests.append(request)
        if self.failures:
            raise self.failures.pop(0)
        completion = self.completions.pop(0)
        if completion is None or isinstance(completion, ChatCompletion):
            return completion
        return ChatCompletion.model_validate(completion)

    async def complete_stream(self, request: NormalizedRequest):
        self.requests.append(request)
        if self.failures:
            raise self.failures.pop(0)
        chunks = [
            chunk if chunk is None or isinstance(chunk, ChatCompletionChunk)
            else ChatCompletionChunk.model_validate(chunk)
            for chunk in self.streams.pop(0)
        ]
        stream = _ClosableStream(chunks)
        self.opened_streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True


def chunk(call_id: str, index: int = 0, content: Optional[str] = None,
          role: Optional[str] = None, finish_reason: Optional[str] = None) -> Dict[str, Any]:
    """Build one single-choice stream fragment in backend shape."""
    delta: Dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    return {
        "id": call_id,
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "fake-model",
        "choices": [{"index": index, "delta": delta, "finish_reason": finish_reason}],
    }


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy without sleeping between attempts."""
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def embedding_model() -> FakeEmbeddingModel:
    return FakeEmbeddingModel()


async def make_vector_store(
    embedding_model: BaseEmbeddingModel,
    dimension: int = 2,
    distance_type: DistanceType = DistanceType.COSINE,
    retry_policy: Optional[RetryPolicy] = None,
) -> VectorStore:
    storage = InMemoryVectorStorage()
    await storage.initialize({"distance_type": distance_type})
    return VectorStore(
        storage,
        embedding_model,
        dimension=dimension,
        retry_policy=retry_policy or RetryPolicy.none(),
    )


@pytest.fixture
def make_chunk():
    return chunk


@pytest.fixture
def provider_factory():
    """Returns a builder: provider_factory(completions=[...], streams=[...], failures=[...])."""
    def build(**config: Any) -> FakeProvider:
        return FakeProvider(config)
    return build


@pytest.fixture
def store_factory():
    """Returns an async builder for a VectorStore over in-memory storage."""
    return make_vector_store
