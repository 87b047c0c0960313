"""Logging helpers.

All library loggers live under the ``recursive_bayes`` namespace and write
to stderr. Nothing is printed by default below WARNING.
"""
import logging
import sys
from typing import Dict, Optional, Union

ROOT_NAME = 'recursive_bayes'
_DEFAULT_LEVEL = logging.WARNING
_FORMAT = '[%(levelname)s] %(name)s: %(message)s'

_loggers: Dict[str, logging.Logger] = {}


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        root.setLevel(_DEFAULT_LEVEL)
        root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger in the ``recursive_bayes`` namespace.

    Parameters
    ----------
    name : str, optional
        Usually ``__name__`` of the calling module. Names outside the
        package namespace are nested under it.

    Returns
    -------
    logging.Logger
    """
    _configure_root()
    if name is None:
        name = ROOT_NAME
    elif name != ROOT_NAME and not name.startswith(ROOT_NAME + '.'):
        name = f'{ROOT_NAME}.{name}'

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def set_log_level(level: Union[int, str]) -> None:
    """Set the level of every ``recursive_bayes`` logger, e.g. ``'DEBUG'``."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    _configure_root().setLevel(level)
