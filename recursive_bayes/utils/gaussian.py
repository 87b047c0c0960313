"""Gaussian sampling, log-densities and weighted moments."""
import numpy as np
from scipy import linalg as sla

LOG_2PI = np.log(2 * np.pi)


def _psd_factor(cov):
    """Return L with L @ L.T == cov, tolerating singular PSD covariances."""
    try:
        return sla.cholesky(cov, lower=True)
    except np.linalg.LinAlgError:
        # Rank-deficient covariance (e.g. zero process noise on some axes)
        eigvals, eigvecs = np.linalg.eigh(0.5 * (cov + cov.T))
        return eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))


def sample_gaussian(rng, mean, cov, size=None):
    """
    Draw samples from N(mean, cov).

    Parameters
    ----------
    rng : np.random.Generator
    mean : ndarray [n]
    cov : ndarray [n, n]
        Positive semi-definite covariance; singular matrices are allowed
    size : int, optional
        Number of samples. If None, a single [n] sample is returned.

    Returns
    -------
    ndarray [n] or [size, n]
    """
    mean = np.asarray(mean, dtype=float)
    L = _psd_factor(np.asarray(cov, dtype=float))
    n = mean.shape[0]

    if size is None:
        return mean + L @ rng.standard_normal(n)
    return mean + rng.standard_normal((size, n)) @ L.T


def gaussian_log_pdf(x, mean, cov):
    """
    Log-density of N(mean, cov) evaluated at each row of ``x``.

    Parameters
    ----------
    x : ndarray [n] or [N, n]
    mean : ndarray [n]
    cov : ndarray [n, n]
        Must be positive definite

    Returns
    -------
    float or ndarray [N]
    """
    x = np.asarray(x, dtype=float)
    single = x.ndim == 1
    diff = np.atleast_2d(x) - mean
    n = diff.shape[1]

    c, lower = sla.cho_factor(cov, lower=True)
    maha = np.sum(diff * sla.cho_solve((c, lower), diff.T).T, axis=1)
    log_det = 2.0 * np.sum(np.log(np.diag(c)))
    log_p = -0.5 * (maha + log_det + n * LOG_2PI)

    return log_p[0] if single else log_p


def weighted_mean_cov(states, weights):
    """
    Weighted mean and covariance of a sample set.

    Parameters
    ----------
    states : ndarray [N, n]
    weights : ndarray [N]
        Normalized weights

    Returns
    -------
    mean : ndarray [n]
    cov : ndarray [n, n]
    """
    mean = weights @ states
    diff = states - mean
    cov = np.einsum('i,ij,ik->jk', weights, diff, diff)
    return mean, 0.5 * (cov + cov.T)
