# tests/storage/test_similarity.py
"""
Tests for distance metrics and score normalization.
"""

import pytest

from llmadapt.storage.similarity import (DistanceType, cosine_similarity, dot,
                                         squared_euclidean_distance)


def test_vector_helpers():
    assert dot([1.0, 2.0], [3.0, 4.0]) == 11.0
    assert squared_euclidean_distance([0.0, 0.0], [3.0, 4.0]) == 25.0
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


@pytest.mark.parametrize("metric, other, expected", [
    (DistanceType.COSINE, [1.0, 0.0], 1.0),
    (DistanceType.COSINE, [0.0, 1.0], 0.5),
    (DistanceType.COSINE, [-1.0, 0.0], 0.0),
    (DistanceType.EUCLIDEAN, [1.0, 0.0], 1.0),
    (DistanceType.EUCLIDEAN, [1.0, 1.0], 0.5),
    (DistanceType.DOT_PRODUCT, [1.0, 0.0], 1.0),
    (DistanceType.DOT_PRODUCT, [0.5, 0.0], 0.75),
    (DistanceType.DOT_PRODUCT, [-3.0, 0.0], 0.0),
])
def test_scores(metric, other, expected):
    assert metric.score([1.0, 0.0], other) == pytest.approx(expected)


@pytest.mark.parametrize("metric", list(DistanceType))
def test_normalization_is_monotonic_and_bounded(metric):
    distances = [0.0, 0.1, 0.5, 1.0, 1.5, 2.0, 4.0]
    scores = [metric.normalize(d) for d in distances]
    assert all(0.0 <= s <= 1.0 for s in scores)
    assert scores == sorted(scores, reverse=True)


@pytest.mark.parametrize("alias, expected", [
    ("cosine", DistanceType.COSINE),
    ("L2", DistanceType.EUCLIDEAN),
    ("Euclidean", DistanceType.EUCLIDEAN),
    ("ip", DistanceType.DOT_PRODUCT),
    ("dot-product", DistanceType.DOT_PRODUCT),
])
def test_aliases(alias, expected):
    assert DistanceType(alias) is expected


def test_unknown_metric():
    with pytest.raises(ValueError):
        DistanceType("manhattan")


def test_chroma_space_names():
    assert [m.chroma_space for m in DistanceType] == ["cosine", "l2", "ip"]
