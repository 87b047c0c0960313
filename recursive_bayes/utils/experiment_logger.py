"""
Experiment Logger - Track estimator runs and cache their results.

Each estimator's result arrays are cached individually as .npz files keyed
on the experiment configuration, so a rerun only recomputes what changed.
Every run (completed or failed) is appended to one CSV log.
"""
import csv
import hashlib
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from .log import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'


class ExperimentLogger:
    """
    Logger for estimator experiment configurations and results.

    Usage:
        exp = ExperimentLogger(experiment_name='pf_vs_kf')
        config = {'T': 50, 'N_particles': 500, 'seed': 42}

        result = exp.load_result('PF', **config)
        if result is None:
            result = run_pf(...)
            exp.save_result('PF', config, result, metrics={'rmse': 0.3})

        run_dir = exp.create_timestamped_run_dir()
    """

    LOG_COLUMNS = [
        'timestamp', 'experiment_name', 'estimator',
        'T', 'N_particles', 'n_trials', 'seed',
        'rmse', 'mean_nees', 'mean_ess', 'resample_count', 'runtime_sec',
        'cache_file', 'status', 'notes'
    ]

    # Config keys that identify a cached result
    CACHE_KEYS = ['T', 'N_particles', 'n_trials', 'seed']

    METRIC_FORMATS = {
        'rmse': '.4f',
        'mean_nees': '.3f',
        'mean_ess': '.1f',
        'resample_count': '.0f',
    }

    def __init__(self, experiment_name: Optional[str] = None, results_root: Optional[str] = None):
        """
        Parameters
        ----------
        experiment_name : str, optional
            Logs go to {results_root}/{experiment_name}/ when given.
        results_root : str, optional
            Root directory for results (default: ./results).
        """
        self.results_root = results_root or os.path.join(os.getcwd(), 'results')
        self.experiment_name = experiment_name
        self.log_dir = (os.path.join(self.results_root, experiment_name)
                        if experiment_name else self.results_root)
        self.log_file = os.path.join(self.log_dir, 'run_log.csv')
        self.cache_dir = os.path.join(self.log_dir, 'cache')

        os.makedirs(self.cache_dir, exist_ok=True)
        if not os.path.exists(self.log_file):
            with open(self.log_file, 'w', newline='') as f:
                csv.DictWriter(f, fieldnames=self.LOG_COLUMNS).writeheader()

        self._current_run_dir: Optional[str] = None

    def _config_hash(self, estimator: str, config: Dict) -> str:
        key_parts = [estimator] + [f"{k}={config[k]}" for k in self.CACHE_KEYS if k in config]
        return hashlib.md5('_'.join(key_parts).encode()).hexdigest()[:12]

    def get_cache_path(self, estimator: str, config: Dict) -> str:
        """Full path of the cache file for an estimator + config."""
        safe_name = ''.join(c if c.isalnum() or c in '-_' else '_' for c in estimator)
        return os.path.join(self.cache_dir, f"{safe_name}_{self._config_hash(estimator, config)}.npz")

    def result_exists(self, estimator: str, **config) -> bool:
        """True if a cached result exists for the estimator + config."""
        return os.path.exists(self.get_cache_path(estimator, config))

    def _append_row(self, estimator, config, metrics, runtime_sec, cache_file, status, notes):
        metrics = metrics or {}
        row = {
            'timestamp': datetime.now().strftime(TIMESTAMP_FORMAT),
            'experiment_name': self.experiment_name or '',
            'estimator': estimator,
            'runtime_sec': f"{runtime_sec:.3f}",
            'cache_file': cache_file,
            'status': status,
            'notes': notes,
        }
        for key in self.CACHE_KEYS:
            row[key] = config.get(key, '')
        for key, spec in self.METRIC_FORMATS.items():
            value = metrics.get(key)
            row[key] = '' if value is None else f"{value:{spec}}"

        with open(self.log_file, 'a', newline='') as f:
            csv.DictWriter(f, fieldnames=self.LOG_COLUMNS).writerow(row)

    def save_result(
        self,
        estimator: str,
        config: Dict[str, Any],
        data: Dict[str, Any],
        metrics: Optional[Dict[str, float]] = None,
        runtime_sec: float = 0.0,
        notes: str = ''
    ) -> str:
        """
        Cache an estimator's result arrays and log the run.

        Parameters
        ----------
        estimator : str
            Estimator label (e.g. 'KF', 'PF-500')
        config : dict
            Experiment configuration
        data : dict
            Arrays or scalars to cache, e.g. {'m_filt': ..., 'P_filt': ...}
        metrics : dict, optional
            Summary metrics; keys from METRIC_FORMATS are logged
        runtime_sec : float
        notes : str

        Returns
        -------
        str
            Path of the cache file
        """
        cache_path = self.get_cache_path(estimator, config)
        np.savez_compressed(cache_path, **data)
        self._append_row(estimator, config, metrics, runtime_sec,
                         os.path.basename(cache_path), 'completed', notes)
        logger.info("Cached %s: %s", estimator, os.path.basename(cache_path))
        return cache_path

    def log_failure(self, estimator: str, config: Dict[str, Any], reason: str,
                    runtime_sec: float = 0.0) -> None:
        """Record a failed run (nothing is cached)."""
        self._append_row(estimator, config, None, runtime_sec, '', 'failed', reason)
        logger.warning("%s failed: %s", estimator, reason)

    def load_result(self, estimator: str, **config) -> Optional[Dict[str, np.ndarray]]:
        """Cached arrays for the estimator + config, or None."""
        cache_path = self.get_cache_path(estimator, config)
        if not os.path.exists(cache_path):
            return None

        with np.load(cache_path) as npz:
            data = {key: npz[key] for key in npz.files}
        logger.info("Loaded cached %s: %s", estimator, os.path.basename(cache_path))
        return data

    def read_log(self) -> List[Dict[str, str]]:
        """All rows of the run log."""
        with open(self.log_file, 'r', newline='') as f:
            return list(csv.DictReader(f))

    def get_cached_estimators(self, **config) -> List[str]:
        """Estimators with a completed, still-cached run matching ``config``."""
        cached = []
        for row in self.read_log():
            if row.get('status') != 'completed':
                continue
            if any(str(row.get(k, '')) != str(config[k]) for k in self.CACHE_KEYS if k in config):
                continue
            cache_file = row.get('cache_file', '')
            if (cache_file and os.path.exists(os.path.join(self.cache_dir, cache_file))
                    and row['estimator'] not in cached):
                cached.append(row['estimator'])
        return cached

    def clear_cache(self, estimator: Optional[str] = None, **config) -> int:
        """
        Remove cached results.

        With ``estimator`` given, removes only that estimator's file for
        ``config``; otherwise removes every cache file.

        Returns
        -------
        int
            Number of files removed
        """
        if estimator is not None:
            cache_path = self.get_cache_path(estimator, config)
            if os.path.exists(cache_path):
                os.remove(cache_path)
                return 1
            return 0

        count = 0
        for name in os.listdir(self.cache_dir):
            if name.endswith('.npz'):
                os.remove(os.path.join(self.cache_dir, name))
                count += 1
        logger.info("Removed %d cache files.", count)
        return count

    def create_timestamped_run_dir(self, timestamp: Optional[str] = None) -> str:
        """Create {log_dir}/{timestamp}/ for reports of the current run."""
        timestamp = timestamp or datetime.now().strftime(TIMESTAMP_FORMAT)
        self._current_run_dir = os.path.join(self.log_dir, timestamp)
        os.makedirs(self._current_run_dir, exist_ok=True)
        return self._current_run_dir

    def get_run_dir(self) -> Optional[str]:
        """Current run directory, or None before create_timestamped_run_dir()."""
        return self._current_run_dir

    def get_metrics_dir(self, create: bool = True) -> str:
        """Metrics directory inside the current run directory."""
        if self._current_run_dir is None:
            raise RuntimeError("Call create_timestamped_run_dir() first")
        metrics_dir = os.path.join(self._current_run_dir, 'metrics')
        if create:
            os.makedirs(metrics_dir, exist_ok=True)
        return metrics_dir

    def log_experiment(self, config: Dict[str, Any], duration_sec: float = 0.0,
                       notes: str = '') -> None:
        """Append an experiment summary to experiment_log.txt."""
        log_path = os.path.join(self.log_dir, 'experiment_log.txt')
        with open(log_path, 'a') as f:
            f.write(f"\n{'=' * 60}\n")
            f.write(f"Timestamp: {datetime.now().strftime(TIMESTAMP_FORMAT)}\n")
            f.write(f"Duration: {duration_sec:.1f}s\n")
            for key, val in config.items():
                f.write(f"  {key}: {val}\n")
            if notes:
                f.write(f"Notes: {notes}\n")
        logger.info("Experiment completed in %.1fs", duration_sec)
