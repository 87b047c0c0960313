"""Kalman Filter (KF) implementation."""
import numpy as np
from scipy import linalg as sla

from ..errors import ConfigurationError, DimensionMismatchError, SingularInnovationError
from ..utils.log import get_logger
from .base import SequentialBeliefEstimator
from .common import (
    as_matrix, as_vector, check_covariance, check_shape, check_square,
    joseph_update, standard_update, symmetrize,
)

logger = get_logger(__name__)

LOG_2PI = np.log(2 * np.pi)


def _solve_lu(S, B):
    """Solve S @ X = B using LU factorization (np.linalg.solve)."""
    return np.linalg.solve(S, B)


def _solve_cholesky(S, B):
    """Solve S @ X = B using Cholesky factorization (assumes S is SPD)."""
    L = sla.cholesky(S, lower=True)
    return sla.cho_solve((L, True), B)


def _solve_inv(S, B):
    """Solve S @ X = B using explicit matrix inversion (least stable)."""
    return np.linalg.inv(S) @ B


SOLVERS = {
    'lu': _solve_lu,
    'cholesky': _solve_cholesky,
    'inv': _solve_inv,
}


def _normalized_condition(S):
    """Condition number of S rescaled to unit diagonal, inf if S is degenerate."""
    d = np.diag(S)
    if not np.all(np.isfinite(S)) or np.any(d <= 0):
        return np.inf
    scale = 1.0 / np.sqrt(d)
    return np.linalg.cond(scale[:, None] * S * scale[None, :])


class KalmanFilter(SequentialBeliefEstimator):
    """
    Kalman Filter for a linear Gaussian state space model.

        x_{k+1} = F x_k + U u_k + v_k,   v_k ~ N(0, Q)
        z_k     = H x_k + w_k,           w_k ~ N(0, R)

    Model matrices may be bound at construction (time-invariant), passed to
    each ``predict``/``update`` call, or given as callables ``k -> ndarray``
    evaluated at the current step index. Per-call matrices take precedence.

    Parameters
    ----------
    F : ndarray [n_x, n_x] or callable, optional
        State transition matrix
    U : ndarray [n_x, n_u] or callable, optional
        Control matrix
    H : ndarray [n_z, n_x] or callable, optional
        Observation matrix
    Q : ndarray [n_x, n_x] or callable, optional
        Process noise covariance. Missing Q means zero process noise.
    R : ndarray [n_z, n_z] or callable, optional
        Observation noise covariance
    joseph : bool
        Use Joseph stabilized covariance update (default: True)
    solver : str
        Solver for Kalman gain: 'lu', 'cholesky', or 'inv' (default: 'lu')
    max_condition : float
        Innovation covariances whose correlation-normalized condition number
        is larger are treated as singular
    psd_tol : float
        Tolerance for the symmetry/PSD check of the initial covariance
    """

    def __init__(self, F=None, U=None, H=None, Q=None, R=None, joseph=True,
                 solver='lu', max_condition=1e12, psd_tol=1e-9):
        super().__init__()
        if solver not in SOLVERS:
            raise ConfigurationError(
                f"solver must be one of {sorted(SOLVERS)}, got '{solver}'")

        self.F = self._bind(F, 'F', square=True)
        self.U = self._bind(U, 'U')
        self.H = self._bind(H, 'H')
        self.Q = self._bind(Q, 'Q', square=True)
        self.R = self._bind(R, 'R', square=True)
        self.joseph = joseph
        self.solver = solver
        self.max_condition = max_condition
        self.psd_tol = psd_tol

        self._mean = None
        self._cov = None

        # Diagnostics from the most recent update
        self.innovation = None
        self.innovation_cov = None
        self.gain = None
        self.log_likelihood = None

    @staticmethod
    def _bind(M, name, square=False):
        if M is None or callable(M):
            return M
        M = as_matrix(M, name)
        if square:
            check_square(M, name)
        return M

    def _resolve(self, override, bound):
        M = override if override is not None else bound
        if callable(M):
            M = M(self._step)
        return M

    @property
    def dim(self):
        """State dimension (None before initialize)."""
        return None if self._mean is None else self._mean.shape[0]

    @property
    def mean(self):
        self._require_initialized()
        return self._mean.copy()

    @property
    def cov(self):
        self._require_initialized()
        return self._cov.copy()

    def initialize(self, mean, cov):
        """
        Set the initial belief N(mean, cov).

        Parameters
        ----------
        mean : array_like [n_x]
        cov : array_like [n_x, n_x]
            Symmetric positive semi-definite

        Raises
        ------
        ConfigurationError
            If ``cov`` is not square, symmetric and PSD.
        DimensionMismatchError
            If ``mean`` and ``cov`` sizes differ.
        """
        mean = as_vector(mean, 'mean')
        cov = np.atleast_2d(np.asarray(cov, dtype=float))
        check_covariance(cov, 'initial covariance', tol=self.psd_tol)
        if mean.shape[0] != cov.shape[0]:
            raise DimensionMismatchError(
                f"mean has length {mean.shape[0]} but covariance is {cov.shape}")

        self._mean = mean.copy()
        self._cov = symmetrize(cov)
        self._step = 0
        self._initialized = True
        self.innovation = self.innovation_cov = self.gain = self.log_likelihood = None
        logger.debug("KF initialized with n_x=%d", mean.shape[0])

    def predict(self, control=None, F=None, U=None, Q=None):
        """
        Prediction step: m = F m + U u, P = F P F' + Q.

        Parameters
        ----------
        control : array_like [n_u], optional
            Control input. Ignored term when None.
        F, U, Q : ndarray, optional
            Per-call model matrices overriding the bound ones.
        """
        self._require_initialized()
        n_x = self._mean.shape[0]

        F = self._resolve(F, self.F)
        if F is None:
            raise ConfigurationError("No state transition matrix F available")
        F = as_matrix(F, 'F')
        check_shape(F, (n_x, n_x), 'F')

        m_pred = F @ self._mean
        if control is not None:
            U = self._resolve(U, self.U)
            if U is None:
                raise ConfigurationError("Control input given but no control matrix U")
            u = as_vector(control, 'control')
            U = as_matrix(U, 'U')
            check_shape(U, (n_x, u.shape[0]), 'U')
            m_pred = m_pred + U @ u

        P_pred = F @ self._cov @ F.T
        Q = self._resolve(Q, self.Q)
        if Q is not None:
            Q = as_matrix(Q, 'Q')
            check_shape(Q, (n_x, n_x), 'Q')
            P_pred = P_pred + Q

        self._mean, self._cov = m_pred, symmetrize(P_pred)
        self._step += 1

    def update(self, measurement, H=None, R=None):
        """
        Update step with measurement z.

        y = z - H m,  S = H P H' + R,  K = P H' S^{-1},
        m = m + K y,  P = (I - K H) P (I - K H)' + K R K'  (Joseph)

        Raises
        ------
        ConfigurationError
            If the measurement, H or R contain non-finite entries.
        SingularInnovationError
            If S is singular or worse conditioned than ``max_condition``.
            The belief is left unchanged.
        """
        self._require_initialized()
        n_x = self._mean.shape[0]
        z = as_vector(measurement, 'measurement')
        n_z = z.shape[0]

        H = self._resolve(H, self.H)
        if H is None:
            raise ConfigurationError("No observation matrix H available")
        H = as_matrix(H, 'H')
        check_shape(H, (n_z, n_x), 'H')

        R = self._resolve(R, self.R)
        if R is None:
            raise ConfigurationError("No observation noise covariance R available")
        R = as_matrix(R, 'R')
        check_shape(R, (n_z, n_z), 'R')

        if not (np.all(np.isfinite(z)) and np.all(np.isfinite(H)) and np.all(np.isfinite(R))):
            raise ConfigurationError("measurement, H and R must be finite")

        P = self._cov
        S = symmetrize(H @ P @ H.T + R)
        cond = _normalized_condition(S)
        if not np.isfinite(cond) or cond > self.max_condition:
            raise SingularInnovationError(
                f"Innovation covariance is singular (condition number {cond:.3e})")

        try:
            # K = P H' S^{-1}
            K = SOLVERS[self.solver](S.T, H @ P.T).T
        except np.linalg.LinAlgError as exc:
            raise SingularInnovationError(f"Innovation covariance solve failed: {exc}") from exc

        y = z - H @ self._mean
        m = self._mean + K @ y
        P_new = joseph_update(P, K, H, R) if self.joseph else standard_update(P, K, H)

        _, log_det = np.linalg.slogdet(S)
        log_lik = -0.5 * (y @ np.linalg.solve(S, y) + log_det + n_z * LOG_2PI)

        self._mean, self._cov = m, symmetrize(P_new)
        self.innovation, self.innovation_cov, self.gain = y, S, K
        self.log_likelihood = float(log_lik)
        logger.debug("KF update at step %d: cond(S)=%.3e", self._step, cond)

    def estimate(self):
        """Return copies of the current ``(mean, cov)``."""
        self._require_initialized()
        return self._mean.copy(), self._cov.copy()


def kalman_filter(F, H, Q, R, m0, P0, ys, us=None, U=None, joseph=True, solver='lu'):
    """
    Run a Kalman Filter over a whole observation sequence.

    Parameters
    ----------
    F : ndarray [n_x, n_x]
        State transition matrix
    H : ndarray [n_y, n_x]
        Observation matrix
    Q : ndarray [n_x, n_x]
        Process noise covariance
    R : ndarray [n_y, n_y]
        Observation noise covariance
    m0 : ndarray [n_x]
        Initial mean
    P0 : ndarray [n_x, n_x]
        Initial covariance
    ys : ndarray [T, n_y]
        Observations. Rows containing NaN are treated as missing and only
        the prediction step is run.
    us : ndarray [T, n_u], optional
        Control inputs
    U : ndarray [n_x, n_u], optional
        Control matrix
    joseph : bool
        Use Joseph stabilized covariance update (default: True)
    solver : str
        Solver for Kalman gain: 'lu', 'cholesky', or 'inv'

    Returns
    -------
    m_filt : ndarray [T, n_x]
        Filtered state means
    P_filt : ndarray [T, n_x, n_x]
        Filtered state covariances
    cond_nums : ndarray [T]
        Condition numbers of P
    """
    kf = KalmanFilter(F=F, U=U, H=H, Q=Q, R=R, joseph=joseph, solver=solver)
    kf.initialize(m0, P0)

    T, n_x = len(ys), kf.dim
    m_filt = np.zeros((T, n_x))
    P_filt = np.zeros((T, n_x, n_x))
    cond_nums = np.zeros(T)

    for t in range(T):
        kf.predict(None if us is None else us[t])
        if not np.any(np.isnan(ys[t])):
            kf.update(ys[t])
        m_filt[t], P_filt[t] = kf.estimate()
        cond_nums[t] = np.linalg.cond(P_filt[t])

    return m_filt, P_filt, cond_nums
