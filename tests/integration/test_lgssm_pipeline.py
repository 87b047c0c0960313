"""Integration tests for the Linear Gaussian SSM pipeline."""

import numpy as np
import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from recursive_bayes.ssm import LinearGaussianModel, constant_velocity_model
from recursive_bayes.filters import (
    SequentialEstimator, kalman_filter, particle_filter, run_estimator,
)
from recursive_bayes.utils.metrics import compute_nees, compute_rmse, consistency_summary


@pytest.fixture
def lgssm_data(rng):
    """Generate LGSSM data for testing."""
    F = np.array([[1.0, 0.1], [0.0, 0.95]])
    H = np.eye(2)
    Q = 0.01 * np.eye(2)
    R = 0.01 * np.eye(2)
    m0 = np.zeros(2)
    P0 = np.eye(2)
    T = 100

    model = LinearGaussianModel(F, H, Q, R, m0, P0)
    xs, ys = model.simulate(T, rng)

    return {
        'F': F, 'H': H, 'Q': Q, 'R': R, 'm0': m0, 'P0': P0,
        'model': model, 'xs': xs, 'ys': ys, 'T': T
    }


class TestKFOnLGSSM:
    """Test Kalman Filter on LGSSM."""

    def test_kf_on_lgssm(self, lgssm_data):
        """KF is optimal for the LGSSM, NEES should be approximately n_x."""
        d = lgssm_data

        m_filt, P_filt, cond_nums = kalman_filter(
            d['F'], d['H'], d['Q'], d['R'], d['m0'], d['P0'], d['ys'], joseph=True
        )

        mean_nees = np.mean(compute_nees(m_filt, P_filt, d['xs']))
        assert 0.5 < mean_nees < 4.0, f"Mean NEES = {mean_nees}"

        rmse = compute_rmse(m_filt, d['xs'])
        assert rmse < 1.0
        assert np.all(np.isfinite(cond_nums))

    def test_joseph_and_standard_agree(self, lgssm_data):
        """Both covariance forms give the same answer on a well-conditioned system."""
        d = lgssm_data
        args = (d['F'], d['H'], d['Q'], d['R'], d['m0'], d['P0'], d['ys'])

        m_j, P_j, _ = kalman_filter(*args, joseph=True)
        m_s, P_s, _ = kalman_filter(*args, joseph=False)

        np.testing.assert_allclose(m_j, m_s, atol=1e-8)
        np.testing.assert_allclose(P_j, P_s, atol=1e-8)

    def test_covariances_stay_healthy(self, lgssm_data):
        d = lgssm_data
        kf = d['model'].make_kalman_filter()

        m_filt, P_filt = run_estimator(kf, d['ys'])
        summary = consistency_summary(m_filt, P_filt, d['xs'])

        assert summary['max_symmetry_error'] < 1e-12
        assert summary['min_eigenvalue'] > 0


class TestPFOnLGSSM:
    """Test the particle filter against the KF on the LGSSM."""

    def test_pf_tracks_kf(self, lgssm_data):
        d = lgssm_data
        model = d['model']

        m_kf, _, _ = kalman_filter(d['F'], d['H'], d['Q'], d['R'], d['m0'], d['P0'], d['ys'])
        m_pf, P_pf, ess, resample_count = particle_filter(
            model.transition_sampler, model.log_likelihood, model.prior_sampler, d['ys'],
            N_particles=1000, rng=np.random.default_rng(0)
        )

        assert m_pf.shape == (d['T'], 2)
        assert P_pf.shape == (d['T'], 2, 2)
        assert np.all((ess > 0) & (ess <= 1000))
        assert 0 < resample_count <= d['T']
        assert compute_rmse(m_pf, m_kf) < 0.05
        assert compute_rmse(m_pf, d['xs']) < 2 * compute_rmse(m_kf, d['xs'])

    def test_missing_observations(self, lgssm_data):
        """NaN rows skip the update in both batch filters."""
        d = lgssm_data
        ys = d['ys'].copy()
        ys[10:20] = np.nan

        m_kf, P_kf, _ = kalman_filter(d['F'], d['H'], d['Q'], d['R'], d['m0'], d['P0'], ys)
        m_pf, _, _, _ = particle_filter(
            d['model'].transition_sampler, d['model'].log_likelihood,
            d['model'].prior_sampler, ys, N_particles=500, rng=np.random.default_rng(0)
        )

        assert np.all(np.isfinite(m_kf))
        assert np.all(np.isfinite(m_pf))
        assert np.trace(P_kf[19]) > np.trace(P_kf[9])


class TestFacadeOnConstantVelocity:
    """Both strategies driven through the same facade."""

    def test_tracking(self, rng):
        model = constant_velocity_model(q=0.3, r=1.0)
        xs, ys = model.simulate(40, rng)

        kf_means, _ = run_estimator(SequentialEstimator(model.make_kalman_filter()), ys)
        pf_means, _ = run_estimator(
            SequentialEstimator(model.make_particle_filter(2000, rng=np.random.default_rng(3))), ys)

        assert compute_rmse(kf_means[:, 0], xs[:, 0]) < 1.5
        assert compute_rmse(pf_means, kf_means) < 0.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
