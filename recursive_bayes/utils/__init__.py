"""
Utility Functions.

This module contains utility functions for:
- Gaussian sampling and densities
- Metrics computation
- Experiment logging and result tables
- Library logging configuration
"""
from .gaussian import sample_gaussian, gaussian_log_pdf, weighted_mean_cov
from .metrics import (
    compute_mse, compute_rmse, compute_nees, compute_nis,
    compute_symmetry_error, compute_min_eigenvalues, consistency_summary,
)
from .experiment_logger import ExperimentLogger
from .tables import format_metrics_table, save_metrics_table, format_runtime
from .log import get_logger, set_log_level

__all__ = [
    # gaussian
    'sample_gaussian',
    'gaussian_log_pdf',
    'weighted_mean_cov',
    # metrics
    'compute_mse',
    'compute_rmse',
    'compute_nees',
    'compute_nis',
    'compute_symmetry_error',
    'compute_min_eigenvalues',
    'consistency_summary',
    # experiment logger
    'ExperimentLogger',
    # tables
    'format_metrics_table',
    'save_metrics_table',
    'format_runtime',
    # logging
    'get_logger',
    'set_log_level',
]
