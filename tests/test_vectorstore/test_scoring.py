"""Tests for similarity scoring."""

import numpy as np
import pytest

from tabular_memory.vectorstore.base import ScoredDocument, SearchResult
from tabular_memory.vectorstore.scoring import accept, cosine_distances, relevance


class TestRelevance:
    """Tests for relevance() and accept()."""

    @pytest.mark.parametrize(
        "distance,expected",
        [(0.0, 1.0), (0.5, 0.75), (1.0, 0.5), (2.0, 0.0), (-1e-12, 1.0), (2.0000001, 0.0)],
    )
    def test_relevance(self, distance, expected):
        assert relevance(distance) == pytest.approx(expected)

    def test_threshold_is_inclusive(self):
        assert accept(0.5, 0.5)
        assert not accept(0.49, 0.5)
        assert accept(0.0, 0.0)


class TestCosineDistances:
    """Tests for cosine_distances()."""

    def test_known_distances(self):
        matrix = np.array([[1.0, 0.0], [0.0, 2.0], [-3.0, 0.0]])

        distances = cosine_distances(np.array([1.0, 0.0]), matrix)

        assert distances == pytest.approx([0.0, 1.0, 2.0])

    def test_zero_norm_row_is_nan(self):
        distances = cosine_distances(np.array([1.0, 0.0]), np.array([[0.0, 0.0], [1.0, 1.0]]))

        assert np.isnan(distances[0])
        assert distances[1] == pytest.approx(1.0 - 1.0 / np.sqrt(2.0))

    def test_zero_norm_query(self):
        with pytest.raises(ValueError, match="zero norm"):
            cosine_distances(np.array([0.0, 0.0]), np.array([[1.0, 0.0]]))

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="dimension mismatch"):
            cosine_distances(np.array([1.0, 0.0, 0.0]), np.array([[1.0, 0.0]]))


class TestResultTypes:
    """Tests for ScoredDocument and SearchResult validation."""

    def test_distance_out_of_range(self):
        with pytest.raises(ValueError):
            ScoredDocument(document={}, distance=2.5)
        with pytest.raises(ValueError):
            ScoredDocument(document={}, distance=-0.1)

    def test_relevance_out_of_range(self):
        with pytest.raises(ValueError):
            SearchResult(record=None, relevance=1.5)
