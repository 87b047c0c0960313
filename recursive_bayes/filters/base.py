"""Common contract of the sequential belief estimators."""
from abc import ABC, abstractmethod

from ..errors import NotInitializedError


class SequentialBeliefEstimator(ABC):
    """
    Recursive Bayesian estimator driven by alternating predict/update calls.

    Subclasses own their belief exclusively. ``predict`` may be called
    repeatedly without an intervening ``update`` (no measurement that step),
    which only grows the uncertainty.
    """

    def __init__(self):
        self._initialized = False
        self._step = 0

    @property
    def is_initialized(self):
        """True once ``initialize`` has been called."""
        return self._initialized

    @property
    def step(self):
        """Number of ``predict`` calls since the last ``initialize``."""
        return self._step

    def _require_initialized(self):
        if not self._initialized:
            raise NotInitializedError(
                f"{type(self).__name__} used before initialize()")

    @abstractmethod
    def initialize(self, *args, **kwargs):
        """Create the belief at t=0 from a prior."""

    @abstractmethod
    def predict(self, control=None, **model):
        """Propagate the belief through the transition model."""

    @abstractmethod
    def update(self, measurement, **model):
        """Condition the belief on a measurement."""

    @abstractmethod
    def estimate(self):
        """Return ``(mean, spread)`` of the current belief without mutating it."""
