"""Integration tests for agreement and reproducibility across estimators."""

import numpy as np
import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from recursive_bayes.ssm import LinearGaussianModel
from recursive_bayes.filters import ParticleFilter, kalman_filter, particle_filter


@pytest.fixture
def random_walk(rng):
    """Scalar random walk with q = 0.5, r = 1."""
    model = LinearGaussianModel(F=[[1.0]], H=[[1.0]], Q=[[0.25]], R=[[1.0]],
                                m0=[0.0], P0=[[1.0]])
    xs, ys = model.simulate(50, rng)
    return model, xs, ys


def _pf_gap(model, ys, m_kf, n_particles, seed):
    m_pf, _, _, _ = particle_filter(model.transition_sampler, model.log_likelihood,
                                    model.prior_sampler, ys, N_particles=n_particles,
                                    rng=np.random.default_rng(seed))
    return np.mean(np.abs(m_pf - m_kf))


class TestParticleConvergence:
    """The particle approximation approaches the exact posterior."""

    def test_gap_shrinks_with_particles(self, random_walk):
        model, _, ys = random_walk
        m_kf, _, _ = kalman_filter(model.F, model.H, model.Q, model.R, model.m0, model.P0, ys)

        small = np.mean([_pf_gap(model, ys, m_kf, 100, s) for s in range(3)])
        large = np.mean([_pf_gap(model, ys, m_kf, 5000, s) for s in range(3)])

        assert large < small
        assert large < 0.05

    def test_pf_variance_matches_kf(self, random_walk):
        model, _, ys = random_walk
        _, P_kf, _ = kalman_filter(model.F, model.H, model.Q, model.R, model.m0, model.P0, ys)
        _, P_pf, _, _ = particle_filter(model.transition_sampler, model.log_likelihood,
                                        model.prior_sampler, ys, N_particles=5000,
                                        rng=np.random.default_rng(0))

        np.testing.assert_allclose(P_pf[10:, 0, 0], P_kf[10:, 0, 0], rtol=0.25)


@pytest.mark.parametrize("method", ['systematic', 'stratified', 'multinomial'])
class TestReproducibility:
    """Identical seeds give identical runs."""

    def test_same_seed_same_estimates(self, random_walk, method):
        model, _, ys = random_walk

        runs = [particle_filter(model.transition_sampler, model.log_likelihood,
                                model.prior_sampler, ys, N_particles=200,
                                rng=np.random.default_rng(11), resample_method=method)
                for _ in range(2)]

        np.testing.assert_array_equal(runs[0][0], runs[1][0])
        np.testing.assert_array_equal(runs[0][2], runs[1][2])
        assert runs[0][3] == runs[1][3]

    def test_seed_argument(self, random_walk, method):
        model, _, ys = random_walk

        def run():
            pf = ParticleFilter(model.transition_sampler, model.log_likelihood, seed=5,
                                resample_method=method, vectorized=True, log_likelihood=True)
            pf.initialize(300, model.prior_sampler)
            for y in ys[:10]:
                pf.predict()
                pf.update(y)
            return pf.estimate()

        (m1, P1), (m2, P2) = run(), run()
        np.testing.assert_array_equal(m1, m2)
        np.testing.assert_array_equal(P1, P2)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
