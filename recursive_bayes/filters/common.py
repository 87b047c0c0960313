"""Common linear-algebra and validation helpers shared by the filters."""
import numpy as np

from ..errors import ConfigurationError, DimensionMismatchError


def joseph_update(P_pred, K, H, R):
    """
    Compute Joseph-stabilized covariance update.

    P = (I - K H) P_pred (I - K H)' + K R K'

    Parameters
    ----------
    P_pred : ndarray [n_x, n_x]
        Predicted covariance
    K : ndarray [n_x, n_y]
        Kalman gain
    H : ndarray [n_y, n_x]
        Observation matrix
    R : ndarray [n_y, n_y]
        Observation noise covariance

    Returns
    -------
    ndarray [n_x, n_x]
        Updated covariance
    """
    IKH = np.eye(P_pred.shape[0]) - K @ H
    return IKH @ P_pred @ IKH.T + K @ R @ K.T


def standard_update(P_pred, K, H):
    """Compute the simplified covariance update P = (I - K H) P_pred."""
    return (np.eye(P_pred.shape[0]) - K @ H) @ P_pred


def symmetrize(P):
    """Return (P + P') / 2."""
    return 0.5 * (P + P.T)


def as_vector(x, name='vector'):
    """
    Convert scalars and array-likes to a 1-D float array.

    Raises
    ------
    DimensionMismatchError
        If ``x`` has more than one dimension.
    """
    v = np.atleast_1d(np.asarray(x, dtype=float))
    if v.ndim != 1:
        raise DimensionMismatchError(f"{name} must be 1-D, got shape {v.shape}")
    return v


def as_matrix(M, name='matrix'):
    """
    Convert scalars and array-likes to a 2-D float array.

    A 1-D input of length n becomes a 1 x n row.

    Raises
    ------
    DimensionMismatchError
        If ``M`` has more than two dimensions.
    """
    A = np.atleast_2d(np.asarray(M, dtype=float))
    if A.ndim != 2:
        raise DimensionMismatchError(f"{name} must be 2-D, got shape {A.shape}")
    return A


def check_shape(array, expected, name):
    """Raise DimensionMismatchError unless ``array.shape == expected``."""
    if array.shape != tuple(expected):
        raise DimensionMismatchError(
            f"{name} has shape {array.shape}, expected {tuple(expected)}")


def check_square(M, name='matrix'):
    """Raise DimensionMismatchError unless ``M`` is square."""
    if M.shape[0] != M.shape[1]:
        raise DimensionMismatchError(f"{name} must be square, got shape {M.shape}")


def check_covariance(P, name='covariance', tol=1e-9):
    """
    Validate a covariance matrix.

    Parameters
    ----------
    P : ndarray [n, n]
    name : str
        Used in error messages
    tol : float
        Tolerance on asymmetry (relative to the largest entry) and on
        negative eigenvalues (relative to the largest eigenvalue magnitude)

    Raises
    ------
    ConfigurationError
        If ``P`` is not square, not finite, not symmetric or not positive
        semi-definite.
    """
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise ConfigurationError(f"{name} must be square, got shape {P.shape}")
    if not np.all(np.isfinite(P)):
        raise ConfigurationError(f"{name} contains non-finite entries")

    if np.max(np.abs(P - P.T)) > tol * np.max(np.abs(P)):
        raise ConfigurationError(f"{name} is not symmetric")

    eigvals = np.linalg.eigvalsh(symmetrize(P))
    min_eig = eigvals.min()
    if min_eig < -tol * np.max(np.abs(eigvals)):
        raise ConfigurationError(
            f"{name} is not positive semi-definite (min eigenvalue {min_eig:.3e})")
