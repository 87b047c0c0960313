"""Kalman Filter numerical stability: simplified vs Joseph covariance update."""
import argparse
import os
import sys
import time

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from recursive_bayes.errors import EstimatorError
from recursive_bayes.filters import kalman_filter
from recursive_bayes.ssm import linear_gaussian_ssm
from recursive_bayes.utils import (
    ExperimentLogger, compute_min_eigenvalues, compute_mse, compute_symmetry_error,
    format_metrics_table,
)

METHODS = [
    (False, 'Standard'),
    (True, 'Joseph'),
]


def get_systems():
    """Test systems: varying dimension, then 1-D with shrinking observation noise."""
    systems = {
        'cv-1d': {
            'F': np.array([[1.0, 1.0],
                           [0.0, 1.0]]),  # constant velocity
            'H': np.array([[1.0, 0.0]]),  # observe position only
            'Q': 0.25 * np.eye(2),
            'R': np.array([[0.01]]),
        },
        '10d': {
            'F': 0.95 * np.eye(10) + 0.02 * np.diag(np.ones(9), 1),
            'H': np.eye(5, 10),  # observe first 5 states only
            'Q': 0.09 * np.eye(10),
            'R': 0.04 * np.eye(5),
        },
    }
    # R -> 0 drives K -> 1 and P towards collapse
    for r in (1e-12, 1e-14, 1e-16):
        systems[f'R={r:.0e}'] = {
            'F': np.array([[1.0]]),
            'H': np.array([[1.0]]),
            'Q': np.array([[1.0]]),
            'R': np.array([[r]]),
        }
    for params in systems.values():
        n_x = params['F'].shape[0]
        params['m0'], params['P0'] = np.zeros(n_x), np.eye(n_x)
    return systems


def run_method(params, xs, ys, joseph):
    """Run KF and return metrics, or a failure reason."""
    t0 = time.perf_counter()
    try:
        m, P, cond = kalman_filter(params['F'], params['H'], params['Q'], params['R'],
                                   params['m0'], params['P0'], ys, joseph=joseph)
    except (EstimatorError, np.linalg.LinAlgError) as e:
        return None, str(e), time.perf_counter() - t0
    runtime = time.perf_counter() - t0

    if not np.all(np.isfinite(P)) or not np.all(np.isfinite(cond)):
        return None, 'P collapsed (kappa=inf)', runtime

    metrics = {
        'mse': compute_mse(m, xs),
        'log10_cond': float(np.log10(np.max(cond))),
        'max_symmetry_error': float(np.max(compute_symmetry_error(P))),
        'min_eigenvalue': float(np.min(compute_min_eigenvalues(P))),
        'runtime_ms': runtime * 1000,
    }
    return {'m_filt': m, 'P_filt': P, 'cond_nums': cond}, metrics, runtime


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--T', type=int, default=200)
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--output-dir', type=str, default=None)
    parser.add_argument('--force', action='store_true', help='Ignore cached results')
    args = parser.parse_args()

    exp = ExperimentLogger('kf_stability', results_root=args.output_dir)
    run_dir = exp.create_timestamped_run_dir()
    start = time.perf_counter()

    table = {}
    for name, params in get_systems().items():
        rng = np.random.default_rng(args.seed)
        xs, ys = linear_gaussian_ssm(params['F'], params['H'], params['Q'], params['R'],
                                     params['m0'], params['P0'], args.T, rng)
        for joseph, label in METHODS:
            key = f'{name}/{label}'
            config = {'T': args.T, 'seed': args.seed}

            if not args.force and exp.result_exists(key, **config):
                data = exp.load_result(key, **config)
                table[key] = {'mse': compute_mse(data['m_filt'], xs), 'status': 'cached'}
                continue

            data, metrics, runtime = run_method(params, xs, ys, joseph)
            if data is None:
                exp.log_failure(key, config, metrics, runtime_sec=runtime)
                table[key] = {'status': 'FAIL'}
            else:
                exp.save_result(key, config, data, metrics={'rmse': np.sqrt(metrics['mse'])},
                                runtime_sec=runtime)
                table[key] = {**metrics, 'status': 'OK'}

    text = format_metrics_table(
        table,
        columns=['mse', 'log10_cond', 'max_symmetry_error', 'min_eigenvalue', 'runtime_ms', 'status'],
        title='KALMAN FILTER NUMERICAL STABILITY: Standard vs Joseph Update',
        label='System/Method',
    )
    print(text)
    with open(os.path.join(run_dir, 'kf_stability.txt'), 'w') as f:
        f.write(text)

    exp.log_experiment(vars(args), duration_sec=time.perf_counter() - start)


if __name__ == '__main__':
    main()
