"""Unit tests for shared filter helpers."""

import numpy as np
import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from recursive_bayes.errors import ConfigurationError, DimensionMismatchError
from recursive_bayes.filters.common import (
    as_matrix, as_vector, check_covariance, check_shape, joseph_update, standard_update,
    symmetrize,
)
from tests.unit.conftest import check_psd


class TestCovarianceUpdates:
    """Joseph and standard forms."""

    def test_forms_agree_for_optimal_gain(self):
        P = np.array([[2.0, 0.3], [0.3, 1.0]])
        H = np.array([[1.0, 0.0]])
        R = np.array([[0.5]])
        K = P @ H.T @ np.linalg.inv(H @ P @ H.T + R)

        np.testing.assert_allclose(joseph_update(P, K, H, R), standard_update(P, K, H))

    def test_joseph_psd_for_suboptimal_gain(self):
        """Joseph form stays PSD for any gain, the simplified form does not."""
        P = np.eye(2)
        H = np.eye(2)
        R = 0.1 * np.eye(2)
        K = 3.0 * np.eye(2)

        assert check_psd(joseph_update(P, K, H, R))
        assert not check_psd(standard_update(P, K, H))

    def test_symmetrize(self):
        P = np.array([[1.0, 0.2], [0.4, 1.0]])
        S = symmetrize(P)

        np.testing.assert_array_equal(S, S.T)
        np.testing.assert_allclose(S[0, 1], 0.3)


class TestConversions:
    """Scalar and array-like promotion."""

    def test_as_vector(self):
        np.testing.assert_array_equal(as_vector(2.0), [2.0])
        np.testing.assert_array_equal(as_vector([1, 2]), [1.0, 2.0])
        with pytest.raises(DimensionMismatchError):
            as_vector(np.zeros((2, 2)))

    def test_as_matrix(self):
        assert as_matrix(1.0).shape == (1, 1)
        assert as_matrix([1.0, 0.0]).shape == (1, 2)
        with pytest.raises(DimensionMismatchError):
            as_matrix(np.zeros((2, 2, 2)))

    def test_check_shape(self):
        check_shape(np.zeros((2, 3)), (2, 3), 'H')
        with pytest.raises(DimensionMismatchError, match='H'):
            check_shape(np.zeros((2, 3)), (3, 2), 'H')


class TestCheckCovariance:
    """Validation of covariance matrices."""

    def test_valid(self):
        check_covariance(np.array([[2.0, 0.5], [0.5, 1.0]]))

    def test_non_finite(self):
        with pytest.raises(ConfigurationError):
            check_covariance(np.array([[np.inf]]))

    def test_tiny_asymmetry_tolerated(self):
        P = np.array([[1.0, 0.5], [0.5 + 1e-13, 1.0]])
        check_covariance(P)

    def test_negative_eigenvalue(self):
        with pytest.raises(ConfigurationError, match='positive semi-definite'):
            check_covariance(np.diag([1.0, -0.1]))

    def test_small_scale_negative_eigenvalue(self):
        with pytest.raises(ConfigurationError, match='positive semi-definite'):
            check_covariance(np.diag([1e-12, -1e-10]))

    def test_small_scale_psd_accepted(self):
        check_covariance(np.array([[2e-12, 1e-12], [1e-12, 1e-12]]))

    def test_zero_matrix_accepted(self):
        check_covariance(np.zeros((2, 2)))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
