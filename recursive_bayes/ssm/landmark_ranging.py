"""Landmark-ranging robot localization model."""
import numpy as np
from scipy.stats import norm

DEFAULT_LANDMARKS = np.array([
    [20.0, 20.0],
    [80.0, 80.0],
    [20.0, 80.0],
    [80.0, 20.0],
])


class LandmarkRanging:
    """Planar robot that measures its distance to known landmarks.

    State: [x, y] position
    Control: [dx, dy] commanded displacement per step
    Observations: Euclidean distance to each landmark

    The measurement model is nonlinear, so only the particle filter applies.
    Samplers and the likelihood follow the per-particle callable interface
    of ``ParticleFilter``; ``log_likelihood`` is the vectorized variant.

    Parameters
    ----------
    landmarks : ndarray [K, 2], optional
        Landmark positions
    motion_noise : float
        Std of the additive motion noise on each axis
    range_noise : float
        Std of each range observation
    world_size : float
        Side of the square world [0, world_size]^2 used by the uniform prior
    """

    def __init__(self, landmarks=None, motion_noise=1.0, range_noise=5.0, world_size=100.0):
        """Initialize model with given parameters."""
        self.landmarks = DEFAULT_LANDMARKS.copy() if landmarks is None else np.asarray(landmarks, dtype=float)
        self.motion_noise = motion_noise
        self.range_noise = range_noise
        self.world_size = world_size

        self.Q = motion_noise**2 * np.eye(2)
        self.R = range_noise**2 * np.eye(self.n_landmarks)

    @property
    def n_landmarks(self):
        return self.landmarks.shape[0]

    def h(self, x):
        """Distances to every landmark.

        Parameters
        ----------
        x : ndarray [2] or [N, 2]

        Returns
        -------
        ndarray [K] or [N, K]
        """
        diff = np.asarray(x, dtype=float)[..., None, :] - self.landmarks
        return np.linalg.norm(diff, axis=-1)

    def simulate(self, T, rng, us=None, x0=None):
        """Generate states and observations.

        Parameters
        ----------
        T : int
            Number of time steps
        rng : numpy.random.Generator
        us : ndarray [T, 2], optional
            Controls. If None, the robot only diffuses.
        x0 : ndarray [2], optional
            Initial position. If None, the world centre.

        Returns
        -------
        xs : ndarray [T, 2]
        ys : ndarray [T, K]
        """
        x = np.full(2, self.world_size / 2) if x0 is None else np.asarray(x0, dtype=float)
        xs = np.zeros((T, 2))
        ys = np.zeros((T, self.n_landmarks))

        for t in range(T):
            u = np.zeros(2) if us is None else us[t]
            x = self.transition_sampler(x, u, rng)
            xs[t] = x
            ys[t] = self.h(x) + self.range_noise * rng.standard_normal(self.n_landmarks)

        return xs, ys

    def prior_sampler(self, rng):
        """One position drawn uniformly over the world."""
        return rng.uniform(0.0, self.world_size, size=2)

    def transition_sampler(self, x, control, rng):
        """x_next = x + u + noise."""
        u = np.zeros(2) if control is None else np.asarray(control, dtype=float)
        return x + u + self.motion_noise * rng.standard_normal(2)

    def likelihood(self, z, x):
        """p(z|x) as a product of independent Gaussian range likelihoods."""
        return float(np.prod(norm.pdf(z, loc=self.h(x), scale=self.range_noise)))

    def log_likelihood(self, z, particles):
        """Log p(z|x) for every row of ``particles`` [N, 2]."""
        return np.sum(norm.logpdf(z, loc=self.h(particles), scale=self.range_noise), axis=1)
