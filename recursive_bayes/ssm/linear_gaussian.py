"""Linear Gaussian State Space Model (LGSSM)."""
import numpy as np

from ..filters.common import as_matrix, as_vector
from ..filters.kf import KalmanFilter
from ..filters.pf import ParticleFilter
from ..utils.gaussian import gaussian_log_pdf, sample_gaussian


class LinearGaussianModel:
    """
    Linear Gaussian SSM usable by both filters.

        x_{k+1} = F x_k + U u_k + v_k,   v_k ~ N(0, Q)
        y_k     = H x_k + w_k,           w_k ~ N(0, R)
        x_0 ~ N(m0, P0)

    The Kalman filter consumes the matrices directly; the vectorized
    samplers and log-likelihood below drive a particle filter on exactly
    the same model.

    Parameters
    ----------
    F : ndarray [n_x, n_x]
    H : ndarray [n_y, n_x]
    Q : ndarray [n_x, n_x]
    R : ndarray [n_y, n_y]
    m0 : ndarray [n_x]
    P0 : ndarray [n_x, n_x]
    U : ndarray [n_x, n_u], optional
    """

    def __init__(self, F, H, Q, R, m0, P0, U=None):
        self.F = as_matrix(F, 'F')
        self.H = as_matrix(H, 'H')
        self.Q = as_matrix(Q, 'Q')
        self.R = as_matrix(R, 'R')
        self.m0 = as_vector(m0, 'm0')
        self.P0 = as_matrix(P0, 'P0')
        self.U = None if U is None else as_matrix(U, 'U')

    @property
    def n_x(self):
        return self.F.shape[0]

    @property
    def n_y(self):
        return self.H.shape[0]

    def _control_term(self, control):
        if control is None or self.U is None:
            return np.zeros(self.n_x)
        return self.U @ as_vector(control, 'control')

    def simulate(self, T, rng, us=None, x0=None):
        """
        Generate states and observations.

        Parameters
        ----------
        T : int
            Number of time steps
        rng : np.random.Generator
        us : ndarray [T, n_u], optional
            Control inputs
        x0 : ndarray [n_x], optional
            Initial state. If None, drawn from N(m0, P0).

        Returns
        -------
        xs : ndarray [T, n_x]
            Latent states
        ys : ndarray [T, n_y]
            Observations
        """
        x = sample_gaussian(rng, self.m0, self.P0) if x0 is None else as_vector(x0, 'x0')
        zeros_x, zeros_y = np.zeros(self.n_x), np.zeros(self.n_y)

        xs = np.zeros((T, self.n_x))
        ys = np.zeros((T, self.n_y))

        for t in range(T):
            u = None if us is None else us[t]
            x = self.F @ x + self._control_term(u) + sample_gaussian(rng, zeros_x, self.Q)
            y = self.H @ x + sample_gaussian(rng, zeros_y, self.R)
            xs[t], ys[t] = x, y

        return xs, ys

    def prior_sampler(self, rng, N):
        """Sample N initial states, [N, n_x]."""
        return sample_gaussian(rng, self.m0, self.P0, size=N)

    def transition_sampler(self, states, control, rng):
        """Sample x_next for every row of ``states`` [N, n_x]."""
        noise = sample_gaussian(rng, np.zeros(self.n_x), self.Q, size=states.shape[0])
        return states @ self.F.T + self._control_term(control) + noise

    def log_likelihood(self, y, states):
        """Log p(y|x) for every row of ``states``, [N]."""
        innov = as_vector(y, 'y') - states @ self.H.T
        return gaussian_log_pdf(innov, np.zeros(self.n_y), self.R)

    def make_kalman_filter(self, **kwargs):
        """KalmanFilter bound to this model and initialized at N(m0, P0)."""
        kf = KalmanFilter(F=self.F, U=self.U, H=self.H, Q=self.Q, R=self.R, **kwargs)
        kf.initialize(self.m0, self.P0)
        return kf

    def make_particle_filter(self, n_particles, rng=None, **kwargs):
        """ParticleFilter on this model, initialized with ``n_particles`` prior draws."""
        pf = ParticleFilter(self.transition_sampler, self.log_likelihood, rng=rng,
                            vectorized=True, log_likelihood=True,
                            state_dim=self.n_x, measurement_dim=self.n_y, **kwargs)
        pf.initialize(n_particles, self.prior_sampler)
        return pf


def constant_velocity_model(dt=1.0, q=0.0, r=1.0, m0=None, P0=None):
    """
    1-D constant velocity model with position-only observations.

    State: [position, velocity]. Control: scalar acceleration.

    Parameters
    ----------
    dt : float
        Time step
    q : float
        Process noise intensity (discrete white noise acceleration std)
    r : float
        Position observation noise std
    m0 : ndarray [2], optional
        Initial mean (default: [0, 1])
    P0 : ndarray [2, 2], optional
        Initial covariance (default: identity)

    Returns
    -------
    LinearGaussianModel
    """
    F = np.array([[1.0, dt],
                  [0.0, 1.0]])
    U = np.array([[dt**2 / 2],
                  [dt]])
    Q = q**2 * np.array([[dt**4 / 4, dt**3 / 2],
                         [dt**3 / 2, dt**2]])
    H = np.array([[1.0, 0.0]])
    R = np.array([[r**2]])
    m0 = np.array([0.0, 1.0]) if m0 is None else m0
    P0 = np.eye(2) if P0 is None else P0
    return LinearGaussianModel(F, H, Q, R, m0, P0, U=U)


def linear_gaussian_ssm(F, H, Q, R, m0, P0, T, rng, U=None, us=None):
    """
    Simulate Linear Gaussian SSM.

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
        Initial state mean
    P0 : ndarray [n_x, n_x]
        Initial state covariance
    T : int
        Number of time steps
    rng : np.random.Generator
    U : ndarray [n_x, n_u], optional
    us : ndarray [T, n_u], optional

    Returns
    -------
    xs : ndarray [T, n_x]
        Latent states
    ys : ndarray [T, n_y]
        Observations
    """
    return LinearGaussianModel(F, H, Q, R, m0, P0, U=U).simulate(T, rng, us=us)
