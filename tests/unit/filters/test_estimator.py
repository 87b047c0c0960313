"""Unit tests for the SequentialEstimator façade and driving loop."""

import numpy as np
import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from recursive_bayes.errors import ConfigurationError, NotInitializedError
from recursive_bayes.filters import (
    KalmanFilter, ParticleFilter, SequentialBeliefEstimator, SequentialEstimator, run_estimator,
)
from recursive_bayes.ssm import constant_velocity_model


class TestSequentialEstimator:
    """Tests for strategy selection and delegation."""

    def test_create_kalman(self, linear_model):
        m = linear_model
        est = SequentialEstimator.create('kalman', F=m['F'], H=m['H'], Q=m['Q'], R=m['R'])

        assert isinstance(est.strategy, KalmanFilter)
        assert est.kind == 'kalman'
        assert isinstance(est, SequentialBeliefEstimator)

    def test_create_particle(self, scalar_random_walk):
        est = SequentialEstimator.create('particle',
                                         transition_sampler=scalar_random_walk['transition'],
                                         measurement_likelihood=scalar_random_walk['likelihood'],
                                         seed=0)

        assert isinstance(est.strategy, ParticleFilter)
        assert est.kind == 'particle'

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            SequentialEstimator.create('unscented')

    def test_rejects_non_estimator(self):
        with pytest.raises(ConfigurationError):
            SequentialEstimator(object())

    def test_delegates_to_kalman(self):
        kf = KalmanFilter(F=np.array([[1.0, 1.0], [0.0, 1.0]]), H=np.array([[1.0, 0.0]]),
                          R=np.array([[1.0]]))
        est = SequentialEstimator(kf)

        assert not est.is_initialized
        est.initialize(np.array([0.0, 1.0]), np.eye(2))
        est.predict()
        est.update(np.array([1.2]))

        assert est.is_initialized
        assert est.step == 1
        mean, cov = est.estimate()
        np.testing.assert_array_equal(mean, kf.mean)
        np.testing.assert_array_equal(cov, kf.cov)

    def test_per_call_model_passed_through(self):
        est = SequentialEstimator(KalmanFilter())
        est.initialize(0.0, 1.0)

        est.predict(F=1.0, Q=0.0)
        est.update(2.0, H=1.0, R=1.0)

        mean, cov = est.estimate()
        assert mean[0] == 1.0
        assert cov[0, 0] == 0.5

    def test_errors_propagate(self):
        est = SequentialEstimator(KalmanFilter(F=np.eye(1)))
        with pytest.raises(NotInitializedError):
            est.predict()

    def test_swap_strategies_same_call_sites(self, rng):
        """The same driving code runs either strategy."""
        model = constant_velocity_model(q=0.1, r=0.5)
        xs, ys = model.simulate(20, rng)

        estimators = [
            SequentialEstimator(model.make_kalman_filter()),
            SequentialEstimator(model.make_particle_filter(2000, rng=np.random.default_rng(1))),
        ]
        results = [run_estimator(est, ys) for est in estimators]

        for means, covs in results:
            assert means.shape == (20, 2)
            assert covs.shape == (20, 2, 2)
        np.testing.assert_allclose(results[0][0], results[1][0], atol=0.5)


class TestRunEstimator:
    """Tests for the run_estimator driving loop."""

    def test_missing_measurements_skip_update(self):
        kf = KalmanFilter(F=np.eye(1), H=np.eye(1), Q=np.eye(1), R=np.eye(1))
        kf.initialize(0.0, 1.0)

        _, covs = run_estimator(kf, [1.0, None, np.nan, 1.0])

        variances = covs[:, 0, 0]
        assert variances[1] > variances[0]
        assert variances[2] > variances[1]
        assert variances[3] < variances[2]
        assert kf.step == 4

    def test_controls_forwarded(self):
        kf = KalmanFilter(F=np.eye(1), U=np.eye(1))
        kf.initialize(0.0, 1.0)

        means, _ = run_estimator(kf, [None] * 3, us=[[1.0], [2.0], [3.0]])

        np.testing.assert_allclose(means[:, 0], [1.0, 3.0, 6.0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
