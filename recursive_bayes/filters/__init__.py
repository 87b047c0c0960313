"""Filtering algorithm implementations."""
from .base import SequentialBeliefEstimator
from .kf import KalmanFilter, kalman_filter
from .pf import (
    ParticleFilter, ParticleSet, particle_filter,
    propagate, reweight, resample_particles, effective_sample_size,
    systematic_resample, stratified_resample, multinomial_resample,
)
from .estimator import SequentialEstimator, run_estimator
from .common import joseph_update, standard_update, symmetrize

__all__ = [
    # Estimators
    'SequentialBeliefEstimator',
    'KalmanFilter',
    'ParticleFilter',
    'SequentialEstimator',
    # Batch drivers
    'kalman_filter',
    'particle_filter',
    'run_estimator',
    # Particle steps
    'ParticleSet',
    'propagate',
    'reweight',
    'resample_particles',
    'effective_sample_size',
    'systematic_resample',
    'stratified_resample',
    'multinomial_resample',
    # Utilities
    'joseph_update',
    'standard_update',
    'symmetrize',
]
