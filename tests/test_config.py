"""
Tests for environment-driven settings.
"""

import importlib

import pytest

from fruit_market import config


@pytest.fixture
def reload_config(monkeypatch):
    def _reload(**env):
        for k, v in env.items():
            monkeypatch.setenv(k, v)
        return importlib.reload(config).settings

    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


class TestSettings:
    """Numeric settings read from the environment."""

    def test_zero_decimals_are_kept(self, reload_config):
        s = reload_config(DECIMALS="0", WEIGHT_DECIMALS="0")

        assert s.decimals == 0
        assert s.weight_decimals == 0

    def test_missing_decimals_use_defaults(self, reload_config, monkeypatch):
        monkeypatch.delenv("DECIMALS", raising=False)
        monkeypatch.delenv("WEIGHT_DECIMALS", raising=False)

        s = reload_config()

        assert s.decimals == 2
        assert s.weight_decimals == 3

    def test_blank_value_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("DECIMALS", "  ")

        assert config._get_int("DECIMALS", default=2) == 2
