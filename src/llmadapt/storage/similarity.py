# src/llmadapt/storage/similarity.py
"""
Distance metrics and score normalization for vector search.

Every metric has a raw *distance* (smaller is closer) and a monotonic
normalization into a similarity score in [0, 1], where 1 means identical.
The raw distances follow the conventions ChromaDB reports, so a backend can
hand its native distances straight to the engine:

    cosine       distance = 1 - cos(a, b)     score = 1 - distance / 2
    euclidean    distance = |a - b|^2         score = 1 / (1 + distance)
    dot_product  distance = 1 - a . b         score = clamp(1 - distance / 2, 0, 1)
"""

from enum import Enum
from typing import Sequence


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two equal-length vectors."""
    return sum(x * y for x, y in zip(a, b))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero magnitude."""
    magnitude_a = sum(x * x for x in a) ** 0.5
    magnitude_b = sum(x * x for x in b) ** 0.5
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0
    return dot(a, b) / (magnitude_a * magnitude_b)


def squared_euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class DistanceType(str, Enum):
    """Distance metric a vector store is configured with."""
    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dot_product"

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            aliases = {"l2": "euclidean", "ip": "dot_product", "dot": "dot_product"}
            normalized = aliases.get(normalized, normalized)
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    def distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Raw distance between `a` and `b` under this metric."""
        if self is DistanceType.COSINE:
            return 1.0 - cosine_similarity(a, b)
        if self is DistanceType.EUCLIDEAN:
            return squared_euclidean_distance(a, b)
        return 1.0 - dot(a, b)

    def normalize(self, distance: float) -> float:
        """Map a raw distance to a similarity score in [0, 1]; monotonically decreasing in distance."""
        if self is DistanceType.EUCLIDEAN:
            return 1.0 / (1.0 + max(distance, 0.0))
        return _clamp(1.0 - distance / 2.0)

    def score(self, a: Sequence[float], b: Sequence[float]) -> float:
        return self.normalize(self.distance(a, b))

    @property
    def chroma_space(self) -> str:
        """Name of the equivalent ChromaDB `hnsw:space` setting."""
        return {"cosine": "cosine", "euclidean": "l2", "dot_product": "ip"}[self.value]
