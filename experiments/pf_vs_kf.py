"""Particle filter vs Kalman filter on a linear Gaussian system.

The Kalman filter is exact here, so the distance between the particle mean
and the Kalman mean measures the Monte Carlo error of the particle filter
as the number of particles grows.
"""
import argparse
import os
import sys
import time

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from recursive_bayes.errors import EstimatorError
from recursive_bayes.filters import run_estimator
from recursive_bayes.ssm import constant_velocity_model
from recursive_bayes.utils import (
    ExperimentLogger, compute_nees, compute_rmse, format_runtime, save_metrics_table,
)


def run_trial(model, N, T, seed):
    """One trajectory: returns the KF run, the PF run and the truth."""
    rng = np.random.default_rng(seed)
    xs, ys = model.simulate(T, rng)

    m_kf, P_kf = run_estimator(model.make_kalman_filter(), ys)

    pf = model.make_particle_filter(N, rng=np.random.default_rng(seed + 1))
    ess = []
    m_pf, P_pf = [], []
    for t in range(T):
        pf.predict()
        pf.update(ys[t])
        ess.append(pf.last_ess)
        mean, cov = pf.estimate()
        m_pf.append(mean)
        P_pf.append(cov)

    return {
        'xs': xs, 'm_kf': m_kf, 'P_kf': P_kf,
        'm_pf': np.array(m_pf), 'P_pf': np.array(P_pf), 'ess': np.array(ess),
    }


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--T', type=int, default=50)
    parser.add_argument('--n-trials', type=int, default=20)
    parser.add_argument('--particles', type=int, nargs='+', default=[50, 200, 1000, 5000])
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--output-dir', type=str, default=None)
    parser.add_argument('--force', action='store_true', help='Ignore cached results')
    args = parser.parse_args()

    model = constant_velocity_model(dt=1.0, q=0.5, r=1.0)
    exp = ExperimentLogger('pf_vs_kf', results_root=args.output_dir)
    run_dir = exp.create_timestamped_run_dir()
    start = time.perf_counter()

    table = {}
    for N in args.particles:
        label = f'PF-{N}'
        config = {'T': args.T, 'N_particles': N, 'n_trials': args.n_trials, 'seed': args.seed}

        data = None if args.force else exp.load_result(label, **config)
        if data is None:
            t0 = time.perf_counter()
            try:
                trials = [run_trial(model, N, args.T, args.seed + 2 * i)
                          for i in range(args.n_trials)]
            except EstimatorError as e:
                exp.log_failure(label, config, str(e), runtime_sec=time.perf_counter() - t0)
                table[label] = {'status': 'FAIL'}
                continue
            runtime = time.perf_counter() - t0
            data = {key: np.stack([tr[key] for tr in trials]) for key in trials[0]}
            data['runtime'] = np.array(runtime)
            metrics = {
                'rmse': compute_rmse(data['m_pf'], data['xs']),
                'mean_ess': float(np.mean(data['ess'])),
            }
            exp.save_result(label, config, data, metrics=metrics, runtime_sec=runtime)

        kf_gap = np.sqrt(np.mean((data['m_pf'] - data['m_kf'])**2))
        nees = np.mean([np.mean(compute_nees(m, P, x))
                        for m, P, x in zip(data['m_pf'], data['P_pf'], data['xs'])])
        table[label] = {
            'gap_to_kf': float(kf_gap),
            'rmse_pf': compute_rmse(data['m_pf'], data['xs']),
            'rmse_kf': compute_rmse(data['m_kf'], data['xs']),
            'mean_nees': float(nees),
            'mean_ess': float(np.mean(data['ess'])),
            'runtime': format_runtime(float(data['runtime'])),
        }
        print(f"{label:<10} gap to KF mean: {kf_gap:.4f}")

    save_metrics_table(
        table, os.path.join(run_dir, 'pf_vs_kf.txt'),
        columns=['gap_to_kf', 'rmse_pf', 'rmse_kf', 'mean_nees', 'mean_ess', 'runtime'],
        title='Particle mean vs exact Kalman mean (constant velocity model)',
    )
    exp.log_experiment(vars(args), duration_sec=time.perf_counter() - start)


if __name__ == '__main__':
    main()
