"""Strategy façade over the Kalman and particle filters."""
import numpy as np

from ..errors import ConfigurationError
from .base import SequentialBeliefEstimator
from .kf import KalmanFilter
from .pf import ParticleFilter

STRATEGIES = {
    'kalman': KalmanFilter,
    'particle': ParticleFilter,
}


class SequentialEstimator(SequentialBeliefEstimator):
    """
    Single predict/update/estimate surface over a chosen estimator.

    Every call is delegated to the wrapped strategy, so call sites stay the
    same when the strategy changes.

    Parameters
    ----------
    strategy : SequentialBeliefEstimator
        A KalmanFilter or ParticleFilter instance

    Example
    -------
    >>> est = SequentialEstimator.create('kalman', F=F, H=H, Q=Q, R=R)
    >>> est.initialize(m0, P0)
    >>> est.predict()
    >>> est.update(z)
    >>> mean, cov = est.estimate()
    """

    def __init__(self, strategy):
        if not isinstance(strategy, SequentialBeliefEstimator):
            raise ConfigurationError(
                f"strategy must be a SequentialBeliefEstimator, got {type(strategy).__name__}")
        super().__init__()
        self._strategy = strategy

    @classmethod
    def create(cls, kind, **kwargs):
        """
        Build the estimator by name.

        Parameters
        ----------
        kind : str
            'kalman' or 'particle'
        **kwargs
            Constructor arguments of the chosen filter
        """
        if kind not in STRATEGIES:
            raise ConfigurationError(f"kind must be one of {sorted(STRATEGIES)}, got '{kind}'")
        return cls(STRATEGIES[kind](**kwargs))

    @property
    def strategy(self):
        return self._strategy

    @property
    def kind(self):
        for name, strategy_cls in STRATEGIES.items():
            if isinstance(self._strategy, strategy_cls):
                return name
        return type(self._strategy).__name__

    @property
    def is_initialized(self):
        return self._strategy.is_initialized

    @property
    def step(self):
        return self._strategy.step

    def initialize(self, *args, **kwargs):
        self._strategy.initialize(*args, **kwargs)

    def predict(self, control=None, **model):
        self._strategy.predict(control, **model)

    def update(self, measurement, **model):
        self._strategy.update(measurement, **model)

    def estimate(self):
        return self._strategy.estimate()


def run_estimator(estimator, ys, us=None):
    """
    Drive an initialized estimator over a measurement sequence.

    Each step runs ``predict`` (with ``us[t]`` if given), then ``update``
    unless the measurement is None or contains NaN, then ``estimate``.

    Parameters
    ----------
    estimator : SequentialBeliefEstimator
    ys : sequence [T] of measurements
    us : sequence [T] of controls, optional

    Returns
    -------
    means : ndarray [T, n_x]
    covs : ndarray [T, n_x, n_x]
    """
    means, covs = [], []
    for t in range(len(ys)):
        estimator.predict(None if us is None else us[t])
        z = ys[t]
        if z is not None and not np.any(np.isnan(z)):
            estimator.update(z)
        mean, cov = estimator.estimate()
        means.append(mean)
        covs.append(cov)
    return np.array(means), np.array(covs)
