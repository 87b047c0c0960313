"""
Metrics for evaluating estimator accuracy, consistency and numerical health.
"""
import numpy as np


def compute_mse(estimated, true):
    """Mean squared error over all entries."""
    return float(np.mean((np.asarray(estimated) - np.asarray(true))**2))


def compute_rmse(estimated, true):
    """Root mean squared error over all entries."""
    return float(np.sqrt(compute_mse(estimated, true)))


def compute_nees(m_filt, P_filt, xs, regularize=1e-8):
    """
    Compute Normalized Estimation Error Squared (NEES).

    NEES_t = (x_t - m_t)' P_t^{-1} (x_t - m_t)

    For a consistent filter, NEES follows a chi-squared(n_x) distribution.

    Parameters
    ----------
    m_filt : ndarray [T, n_x]
        Filtered means
    P_filt : ndarray [T, n_x, n_x]
        Filtered covariances
    xs : ndarray [T, n_x]
        True states
    regularize : float
        Added to the diagonal of every P so that collapsed covariances
        (e.g. an impoverished particle set) stay invertible

    Returns
    -------
    ndarray [T]
    """
    errors = np.asarray(xs) - np.asarray(m_filt)
    n_x = errors.shape[1]
    P_reg = np.asarray(P_filt) + regularize * np.eye(n_x)
    solved = np.linalg.solve(P_reg, errors[..., None])[..., 0]
    return np.einsum('ti,ti->t', errors, solved)


def compute_nis(innovations, S_innov):
    """
    Compute Normalized Innovation Squared (NIS).

    NIS_t = y_t' S_t^{-1} y_t, chi-squared(n_y) for a consistent filter.

    Parameters
    ----------
    innovations : ndarray [T, n_y]
    S_innov : ndarray [T, n_y, n_y]

    Returns
    -------
    ndarray [T]
    """
    innovations = np.asarray(innovations)
    solved = np.linalg.solve(np.asarray(S_innov), innovations[..., None])[..., 0]
    return np.einsum('ti,ti->t', innovations, solved)


def compute_symmetry_error(P_filt):
    """
    Relative symmetry error ||P - P'||_F / ||P||_F at each time step.

    Zero-norm covariances report zero error.
    """
    P_filt = np.asarray(P_filt)
    asym = np.linalg.norm(P_filt - np.swapaxes(P_filt, -1, -2), axis=(-2, -1))
    norms = np.linalg.norm(P_filt, axis=(-2, -1))
    return np.divide(asym, norms, out=np.zeros_like(asym), where=norms > 0)


def compute_min_eigenvalues(P_filt):
    """
    Minimum eigenvalue of P at each time step.

    Negative values indicate loss of positive semi-definiteness.
    """
    return np.linalg.eigvalsh(np.asarray(P_filt)).min(axis=-1)


def consistency_summary(m_filt, P_filt, xs):
    """
    Summary statistics of one filter run against the true states.

    Returns
    -------
    dict
        rmse, mean_nees, max_symmetry_error, min_eigenvalue and the mean
        condition number of P
    """
    return {
        'rmse': compute_rmse(m_filt, xs),
        'mean_nees': float(np.mean(compute_nees(m_filt, P_filt, xs))),
        'max_symmetry_error': float(np.max(compute_symmetry_error(P_filt))),
        'min_eigenvalue': float(np.min(compute_min_eigenvalues(P_filt))),
        'mean_cond': float(np.mean(np.linalg.cond(P_filt))),
    }
