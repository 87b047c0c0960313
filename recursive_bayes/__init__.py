"""
recursive_bayes: Recursive Bayesian State Estimation

This package contains implementations of:
- Sequential belief estimators (Kalman filter, particle filter) behind one
  predict/update/estimate contract
- State Space Models used to drive and cross-check them
- Utility functions (Gaussian helpers, metrics, experiment logging)
"""
from .errors import (
    EstimatorError,
    ConfigurationError,
    DimensionMismatchError,
    DegenerateWeightsError,
    SingularInnovationError,
    NotInitializedError,
)
from .filters import (
    SequentialBeliefEstimator,
    KalmanFilter,
    ParticleFilter,
    ParticleSet,
    SequentialEstimator,
    kalman_filter,
    particle_filter,
    run_estimator,
)

__version__ = '0.1.0'

__all__ = [
    'EstimatorError',
    'ConfigurationError',
    'DimensionMismatchError',
    'DegenerateWeightsError',
    'SingularInnovationError',
    'NotInitializedError',
    'SequentialBeliefEstimator',
    'KalmanFilter',
    'ParticleFilter',
    'ParticleSet',
    'SequentialEstimator',
    'kalman_filter',
    'particle_filter',
    'run_estimator',
]
