"""Shared pytest fixtures for unit tests."""

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Seeded random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def linear_model():
    """Simple 2D linear Gaussian model for testing."""
    n_x = 2
    F = np.array([[0.9, 0.1], [0.0, 0.95]])
    H = np.eye(n_x)
    Q = 0.1 * np.eye(n_x)
    R = 0.1 * np.eye(n_x)
    m0 = np.zeros(n_x)
    P0 = np.eye(n_x)
    return {'F': F, 'H': H, 'Q': Q, 'R': R, 'm0': m0, 'P0': P0}


@pytest.fixture
def scalar_random_walk():
    """1-D random walk with per-particle callables for the particle filter."""
    q, r = 0.5, 1.0

    def prior_sampler(rng):
        return rng.normal(0.0, 1.0, size=1)

    def transition_sampler(x, control, rng):
        u = 0.0 if control is None else control
        return x + u + q * rng.standard_normal(1)

    def likelihood(z, x):
        return float(np.exp(-0.5 * (z - x[0])**2 / r**2))

    return {'prior': prior_sampler, 'transition': transition_sampler,
            'likelihood': likelihood, 'q': q, 'r': r}


def check_psd(matrix, tol=1e-10):
    """Check if matrix is positive semi-definite."""
    return np.all(np.linalg.eigvalsh(matrix) >= -tol)
