"""Tests for cosine similarity."""

import math

import numpy as np
import pytest

from memora.common.similarity import clamp, cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_symmetric(self):
        a = [0.3, -0.7, 0.2, 0.9]
        b = [0.1, 0.4, -0.5, 0.6]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_known_value(self):
        expected = (1 * 2 + 2 * 1) / (math.sqrt(5) * math.sqrt(5))
        assert cosine_similarity([1.0, 2.0], [2.0, 1.0]) == pytest.approx(expected)

    def test_length_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    @pytest.mark.parametrize("a,b", [
        (None, [1.0]),
        ([1.0], None),
        ([], []),
        ([], [1.0]),
    ])
    def test_missing_or_empty_is_zero(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_zero_norm_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [0.0, 0.0]) == 0.0

    def test_accepts_numpy_arrays(self):
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([1.0, 0.0])) == pytest.approx(1.0)

    def test_returns_python_float(self):
        assert isinstance(cosine_similarity([1.0, 2.0], [2.0, 3.0]), float)


class TestClamp:
    def test_within_range(self):
        assert clamp(0.4) == 0.4

    def test_below_range(self):
        assert clamp(-0.3) == 0.0

    def test_above_range(self):
        assert clamp(1.7) == 1.0

    def test_custom_bounds(self):
        assert clamp(0.9, 0.0, 0.5) == 0.5
