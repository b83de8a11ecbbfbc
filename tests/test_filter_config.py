"""
Tests for FilterConfig validation and environment overrides.
"""

import pytest

from b64filter.filter_config import FilterConfig


class TestFilterConfig:
    def test_defaults(self):
        config = FilterConfig(command=("cat",))

        assert config.command == ["cat"]
        assert config.ledger_capacity == 32
        assert config.channel_size == 16
        assert config.progress_every == 100
        assert config.debug is False

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"command": []}, "filter command is required"),
            ({"ledger_capacity": 0}, "ledger capacity"),
            ({"channel_size": 0}, "channel size"),
            ({"progress_every": -1}, "progress interval"),
        ],
    )
    def test_invalid_values(self, overrides, message):
        values = {"command": ["cat"], **overrides}
        with pytest.raises(ValueError, match=message):
            FilterConfig(**values)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("B64FILTER_LEDGER_CAPACITY", "8")
        monkeypatch.setenv("B64FILTER_CHANNEL_SIZE", "4")
        monkeypatch.setenv("B64FILTER_PROGRESS", "0")

        config = FilterConfig.from_env(["tr", "a-z", "A-Z"])

        assert config.command == ["tr", "a-z", "A-Z"]
        assert config.ledger_capacity == 8
        assert config.channel_size == 4
        assert config.progress_every == 0

    def test_explicit_values_win_over_env(self, monkeypatch):
        monkeypatch.setenv("B64FILTER_LEDGER_CAPACITY", "8")

        config = FilterConfig.from_env(["cat"], ledger_capacity=2)

        assert config.ledger_capacity == 2

    def test_blank_env_uses_default(self, monkeypatch):
        monkeypatch.setenv("B64FILTER_CHANNEL_SIZE", " ")
        assert FilterConfig.from_env(["cat"]).channel_size == 16

    def test_malformed_env(self, monkeypatch):
        monkeypatch.setenv("B64FILTER_PROGRESS", "often")

        with pytest.raises(ValueError, match="B64FILTER_PROGRESS must be an integer"):
            FilterConfig.from_env(["cat"])
