"""Bootstrap Particle Filter implementation.

The filter steps are pure functions over an explicit ``ParticleSet`` value
with the random generator passed in; ``ParticleFilter`` owns one set and
one generator and chains them.
"""
import numbers
from dataclasses import dataclass

import numpy as np

from ..errors import ConfigurationError, DegenerateWeightsError, DimensionMismatchError
from ..utils.gaussian import sample_gaussian, weighted_mean_cov
from ..utils.log import get_logger
from .base import SequentialBeliefEstimator
from .common import as_vector, check_covariance

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ParticleSet:
    """
    Weighted sample set.

    Attributes
    ----------
    states : ndarray [N, n_x]
        One state vector per particle
    weights : ndarray [N]
        Normalized weights (sum to 1)
    """
    states: np.ndarray
    weights: np.ndarray

    @classmethod
    def uniform(cls, states):
        """Particle set with equal weights 1/N."""
        N = states.shape[0]
        return cls(states, np.full(N, 1.0 / N))

    @property
    def n_particles(self):
        return self.states.shape[0]

    @property
    def dim(self):
        return self.states.shape[1]

    @property
    def ess(self):
        return effective_sample_size(self.weights)

    def copy(self):
        return ParticleSet(self.states.copy(), self.weights.copy())


def effective_sample_size(weights):
    """ESS = 1 / sum(w^2) for normalized weights; N for uniform, 1 when degenerate."""
    return 1.0 / np.sum(weights ** 2)


def propagate(states, control, transition_sampler, rng, vectorized=False):
    """
    Draw every particle's successor from the transition distribution.

    Parameters
    ----------
    states : ndarray [N, n_x]
    control : array_like or None
        Passed through to the sampler unchanged
    transition_sampler : callable
        ``transition_sampler(x, control, rng) -> [n_x]`` per particle, or
        ``transition_sampler(states, control, rng) -> [N, n_x]`` when vectorized
    rng : np.random.Generator
    vectorized : bool

    Returns
    -------
    ndarray [N, n_x]
        New states (the input array is not modified)
    """
    N, n_x = states.shape
    if vectorized:
        new_states = np.asarray(transition_sampler(states, control, rng), dtype=float)
        if n_x == 1 and new_states.shape == (N,):
            new_states = new_states[:, None]
    else:
        samples = []
        for x in states:
            x_new = np.atleast_1d(np.asarray(transition_sampler(x, control, rng), dtype=float))
            if x_new.shape != (n_x,):
                raise DimensionMismatchError(
                    f"transition_sampler returned shape {x_new.shape}, expected ({n_x},)")
            samples.append(x_new)
        new_states = np.stack(samples)

    if new_states.shape != states.shape:
        raise DimensionMismatchError(
            f"transition_sampler returned shape {new_states.shape}, expected {states.shape}")
    return new_states


def _evaluate_likelihood(likelihood, measurement, states, vectorized):
    N = states.shape[0]
    if vectorized:
        values = np.asarray(likelihood(measurement, states), dtype=float)
    else:
        values = np.array([np.asarray(likelihood(measurement, x), dtype=float).squeeze()
                           for x in states])
    if values.shape != (N,):
        raise DimensionMismatchError(
            f"measurement likelihood returned shape {values.shape}, expected ({N},)")
    if np.any(np.isnan(values)):
        raise ConfigurationError("measurement likelihood returned NaN")
    return values


def reweight(weights, states, measurement, likelihood, log_likelihood=False, vectorized=False):
    """
    Multiply weights by the measurement likelihood and normalize.

    Parameters
    ----------
    weights : ndarray [N]
        Current normalized weights
    states : ndarray [N, n_x]
    measurement : array_like
    likelihood : callable
        ``likelihood(z, x) -> float`` per particle, or
        ``likelihood(z, states) -> [N]`` when vectorized
    log_likelihood : bool
        If True, ``likelihood`` returns log p(z | x)
    vectorized : bool

    Returns
    -------
    ndarray [N]
        New normalized weights

    Raises
    ------
    DegenerateWeightsError
        If the normalizing sum is zero (every particle has zero likelihood).
    """
    values = _evaluate_likelihood(likelihood, measurement, states, vectorized)

    if log_likelihood:
        if np.any(values == np.inf):
            raise ConfigurationError("log-likelihood returned +inf")
        with np.errstate(divide='ignore'):
            log_w = np.log(weights) + values
        log_max = np.max(log_w)
        if not np.isfinite(log_max):
            raise DegenerateWeightsError("All particles have zero likelihood")
        w = np.exp(log_w - log_max)
    else:
        if np.any(values < 0) or np.any(np.isinf(values)):
            raise ConfigurationError("likelihood must be finite and non-negative")
        v_max = values.max()
        if not v_max > 0:
            raise DegenerateWeightsError("All particles have zero likelihood")
        # Rescale so tiny likelihoods do not underflow against small weights
        w = weights * (values / v_max)

    eta = w.sum()
    if not eta > 0:
        raise DegenerateWeightsError("All particles have zero likelihood")
    return w / eta


def _cumulative(w):
    cumsum = np.cumsum(w)
    cumsum[-1] = 1.0
    return cumsum


def systematic_resample(w, rng):
    """Systematic resampling (low variance): one uniform offset, N evenly spaced points."""
    N = len(w)
    u = rng.uniform(0, 1.0 / N) + np.arange(N) / N
    return np.clip(np.searchsorted(_cumulative(w), u), 0, N - 1)


def stratified_resample(w, rng):
    """Stratified resampling: one independent uniform in each of N strata."""
    N = len(w)
    u = (rng.uniform(size=N) + np.arange(N)) / N
    return np.clip(np.searchsorted(_cumulative(w), u), 0, N - 1)


def multinomial_resample(w, rng):
    """Multinomial resampling: N independent categorical draws."""
    N = len(w)
    u = np.sort(rng.uniform(size=N))
    return np.clip(np.searchsorted(_cumulative(w), u), 0, N - 1)


RESAMPLERS = {
    'systematic': systematic_resample,
    'stratified': stratified_resample,
    'multinomial': multinomial_resample,
}


def resample_particles(particle_set, rng, method='systematic'):
    """
    Draw N particles with replacement proportionally to weight.

    All indices are drawn from the old set before the new set is built.

    Returns
    -------
    ParticleSet
        New set with uniform weights 1/N
    """
    idx = RESAMPLERS[method](particle_set.weights, rng)
    return ParticleSet.uniform(particle_set.states[idx])


def _check_particle_count(n_particles):
    if (isinstance(n_particles, bool) or not isinstance(n_particles, numbers.Integral)
            or n_particles <= 0):
        raise ConfigurationError(f"n_particles must be a positive integer, got {n_particles!r}")
    return int(n_particles)


class ParticleFilter(SequentialBeliefEstimator):
    """
    Sequential Monte Carlo filter with a fixed-size weighted particle set.

    Parameters
    ----------
    transition_sampler : callable
        ``(x, control, rng) -> x_next``; with ``vectorized=True`` it receives
        and returns the whole ``[N, n_x]`` state array
    measurement_likelihood : callable
        ``(z, x) -> p(z | x) >= 0``; with ``vectorized=True`` it receives the
        ``[N, n_x]`` states and returns ``[N]``. With ``log_likelihood=True``
        it returns log p(z | x) instead.
    rng : np.random.Generator, optional
        Random generator owned by the filter
    seed : int, optional
        Seed for a new generator when ``rng`` is not given
    resample_method : str
        'systematic' (default), 'stratified' or 'multinomial'
    auto_resample : bool
        Resample at the end of every ``update`` (default: True). When False
        the caller invokes ``resample()``.
    resample_threshold : float, optional
        None resamples after every update. A value t in [0, 1] resamples
        only when ESS < t * N.
    vectorized : bool
        Whether the callables operate on the whole particle array
    log_likelihood : bool
        Whether ``measurement_likelihood`` returns log-densities
    state_dim : int, optional
        Expected state dimension, checked at initialize
    measurement_dim : int, optional
        Expected measurement length, checked at update
    """

    def __init__(self, transition_sampler, measurement_likelihood, rng=None, seed=None,
                 resample_method='systematic', auto_resample=True, resample_threshold=None,
                 vectorized=False, log_likelihood=False, state_dim=None, measurement_dim=None):
        super().__init__()
        if resample_method not in RESAMPLERS:
            raise ConfigurationError(
                f"resample_method must be one of {sorted(RESAMPLERS)}, got '{resample_method}'")
        if resample_threshold is not None and not 0.0 <= resample_threshold <= 1.0:
            raise ConfigurationError(
                f"resample_threshold must lie in [0, 1], got {resample_threshold}")

        self.transition_sampler = transition_sampler
        self.measurement_likelihood = measurement_likelihood
        self.resample_method = resample_method
        self.auto_resample = auto_resample
        self.resample_threshold = resample_threshold
        self.vectorized = vectorized
        self.log_likelihood = log_likelihood
        self.state_dim = state_dim
        self.measurement_dim = measurement_dim

        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._particles = None
        self.resample_count = 0
        self.last_ess = None

    @property
    def rng(self):
        return self._rng

    @property
    def particles(self):
        """Copy of the current ParticleSet."""
        self._require_initialized()
        return self._particles.copy()

    @property
    def states(self):
        self._require_initialized()
        return self._particles.states.copy()

    @property
    def weights(self):
        self._require_initialized()
        return self._particles.weights.copy()

    @property
    def n_particles(self):
        return None if self._particles is None else self._particles.n_particles

    @property
    def dim(self):
        return None if self._particles is None else self._particles.dim

    @property
    def ess(self):
        self._require_initialized()
        return self._particles.ess

    def _reset(self, states):
        if self.state_dim is not None and states.shape[1] != self.state_dim:
            raise DimensionMismatchError(
                f"prior samples have dimension {states.shape[1]}, expected {self.state_dim}")
        self._particles = ParticleSet.uniform(states)
        self._step = 0
        self.resample_count = 0
        self.last_ess = None
        self._initialized = True
        logger.debug("PF initialized with N=%d, n_x=%d", states.shape[0], states.shape[1])

    def initialize(self, n_particles, prior_sampler):
        """
        Draw ``n_particles`` independent samples from the prior, each with weight 1/N.

        Parameters
        ----------
        n_particles : int
        prior_sampler : callable
            ``prior_sampler(rng) -> [n_x]``, or ``prior_sampler(rng, N) -> [N, n_x]``
            when the filter is vectorized

        Raises
        ------
        ConfigurationError
            If ``n_particles`` is not a positive integer.
        DimensionMismatchError
            If the samples do not share one dimension.
        """
        N = _check_particle_count(n_particles)

        if self.vectorized:
            states = np.asarray(prior_sampler(self._rng, N), dtype=float)
            if states.shape == (N,):
                states = states[:, None]
            if states.ndim != 2 or states.shape[0] != N:
                raise DimensionMismatchError(
                    f"prior_sampler returned shape {states.shape}, expected ({N}, n_x)")
        else:
            samples = [np.atleast_1d(np.asarray(prior_sampler(self._rng), dtype=float))
                       for _ in range(N)]
            first = samples[0].shape
            if len(first) != 1 or any(s.shape != first for s in samples):
                raise DimensionMismatchError("prior_sampler returned samples of differing shapes")
            states = np.stack(samples)

        self._reset(states)

    def initialize_gaussian(self, n_particles, mean, cov):
        """Initialize from N(mean, cov)."""
        N = _check_particle_count(n_particles)
        mean = as_vector(mean, 'mean')
        cov = np.atleast_2d(np.asarray(cov, dtype=float))
        check_covariance(cov, 'prior covariance')
        if cov.shape[0] != mean.shape[0]:
            raise DimensionMismatchError(
                f"mean has length {mean.shape[0]} but covariance is {cov.shape}")
        self._reset(sample_gaussian(self._rng, mean, cov, size=N))

    def initialize_uniform(self, n_particles, low, high):
        """Initialize uniformly over the box [low, high)."""
        N = _check_particle_count(n_particles)
        low, high = as_vector(low, 'low'), as_vector(high, 'high')
        if low.shape != high.shape:
            raise DimensionMismatchError(f"low {low.shape} and high {high.shape} differ")
        if np.any(high < low):
            raise ConfigurationError("high must be >= low")
        self._reset(self._rng.uniform(low, high, size=(N, low.shape[0])))

    def predict(self, control=None):
        """Replace every particle with a draw from p(x_next | x, control). Weights are untouched."""
        self._require_initialized()
        ps = self._particles
        states = propagate(ps.states, control, self.transition_sampler, self._rng, self.vectorized)
        self._particles = ParticleSet(states, ps.weights)
        self._step += 1

    def update(self, measurement):
        """
        Reweight particles by the measurement likelihood and normalize.

        Resamples afterwards according to ``auto_resample`` and
        ``resample_threshold``.

        Raises
        ------
        DegenerateWeightsError
            If every particle has zero likelihood. Weights are left unchanged;
            recovery (skip, widen noise, reinitialize) is up to the caller.
        """
        self._require_initialized()
        if self.measurement_dim is not None:
            z = as_vector(measurement, 'measurement')
            if z.shape[0] != self.measurement_dim:
                raise DimensionMismatchError(
                    f"measurement has length {z.shape[0]}, expected {self.measurement_dim}")

        ps = self._particles
        weights = reweight(ps.weights, ps.states, measurement, self.measurement_likelihood,
                           self.log_likelihood, self.vectorized)
        self._particles = ParticleSet(ps.states, weights)

        N = ps.n_particles
        self.last_ess = effective_sample_size(weights)
        if self.last_ess < 0.01 * N:
            logger.warning("ESS collapsed to %.1f of %d particles at step %d",
                           self.last_ess, N, self._step)

        if self.auto_resample and (self.resample_threshold is None
                                   or self.last_ess < self.resample_threshold * N):
            self.resample()

    def resample(self):
        """Resample with replacement; every weight is reset to 1/N."""
        self._require_initialized()
        self._particles = resample_particles(self._particles, self._rng, self.resample_method)
        self.resample_count += 1
        logger.debug("Resampled (%s) at step %d", self.resample_method, self._step)

    def estimate(self):
        """Return the weighted mean and weighted covariance of the particles."""
        self._require_initialized()
        return weighted_mean_cov(self._particles.states, self._particles.weights)


def particle_filter(transition_sampler, measurement_likelihood, prior_sampler, ys,
                    N_particles=1000, us=None, resample_threshold=0.5, rng=None,
                    vectorized=True, log_likelihood=True, resample_method='systematic'):
    """
    Bootstrap Particle Filter (BPF) over a whole observation sequence.
    Run Sequential Importance Sampling (SIS) with resample_threshold=0.0.

    Parameters
    ----------
    transition_sampler : callable
        Transition sampler: (states, control, rng) -> [N, n_x] when vectorized
    measurement_likelihood : callable
        Log-likelihood (y, particles) -> [N] by default
    prior_sampler : callable
        Prior sampler: (rng, N) -> [N, n_x] when vectorized
    ys : ndarray [T, n_y]
        Observations. Rows containing NaN skip the update.
    N_particles : int
        Number of particles
    us : ndarray [T, n_u], optional
        Control inputs
    resample_threshold : float or None
        Resample when ESS < threshold * N_particles; None resamples every step
    rng : np.random.Generator

    Returns
    -------
    m_filt : ndarray [T, n_x]
    P_filt : ndarray [T, n_x, n_x]
    ess : ndarray [T]
        Effective sample size after reweighting
    resample_count : int
    """
    pf = ParticleFilter(transition_sampler, measurement_likelihood, rng=rng,
                        resample_method=resample_method, resample_threshold=resample_threshold,
                        vectorized=vectorized, log_likelihood=log_likelihood)
    pf.initialize(N_particles, prior_sampler)

    T, n_x = len(ys), pf.dim
    m_filt = np.zeros((T, n_x))
    P_filt = np.zeros((T, n_x, n_x))
    ess = np.zeros(T)

    for t in range(T):
        pf.predict(None if us is None else us[t])
        if np.any(np.isnan(ys[t])):
            ess[t] = pf.ess
        else:
            pf.update(ys[t])
            ess[t] = pf.last_ess
        m_filt[t], P_filt[t] = pf.estimate()

    return m_filt, P_filt, ess, pf.resample_count
