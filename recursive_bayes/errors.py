"""Exception types raised by the estimators.

Every error is raised synchronously by the call that detects it and leaves
the estimator's belief exactly as it was before the call.
"""
import numpy as np


class EstimatorError(Exception):
    """Base class for all estimator errors."""


class ConfigurationError(EstimatorError, ValueError):
    """Invalid parameters: non-positive particle count, malformed covariance, missing model."""


class DimensionMismatchError(EstimatorError, ValueError):
    """State, control, measurement or model matrix shapes do not agree."""


class DegenerateWeightsError(EstimatorError, FloatingPointError):
    """Every particle received zero likelihood, so the weights cannot be normalized."""


class SingularInnovationError(EstimatorError, np.linalg.LinAlgError):
    """Innovation covariance S = H P H' + R is singular or numerically close to it."""


class NotInitializedError(EstimatorError, RuntimeError):
    """The estimator was used before ``initialize`` was called."""
