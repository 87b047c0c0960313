"""Unit tests for logging helpers."""

import logging

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from recursive_bayes.utils.log import ROOT_NAME, get_logger, set_log_level


@pytest.fixture
def restore_level():
    root = logging.getLogger(ROOT_NAME)
    level = root.level
    yield root
    root.setLevel(level)


class TestGetLogger:
    """Tests for get_logger."""

    def test_root(self):
        assert get_logger().name == ROOT_NAME

    def test_package_names_kept(self):
        assert get_logger('recursive_bayes.filters.kf').name == 'recursive_bayes.filters.kf'

    def test_foreign_names_nested(self):
        assert get_logger('experiments').name == 'recursive_bayes.experiments'

    def test_cached(self):
        assert get_logger('a.b') is get_logger('a.b')

    def test_single_handler(self):
        get_logger('x')
        get_logger('y')

        root = logging.getLogger(ROOT_NAME)
        assert len(root.handlers) == 1
        assert root.propagate is False


class TestSetLogLevel:
    """Tests for set_log_level."""

    def test_by_name(self, restore_level):
        set_log_level('debug')

        assert restore_level.level == logging.DEBUG
        assert get_logger('filters.pf').isEnabledFor(logging.DEBUG)

    def test_by_int(self, restore_level):
        set_log_level(logging.ERROR)

        assert restore_level.level == logging.ERROR

    def test_unknown(self, restore_level):
        with pytest.raises(ValueError):
            set_log_level('chatty')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
