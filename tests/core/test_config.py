# tests/core/test_config.py
"""
Tests for the Config class, particularly validate_instance.
"""

import logging

import pytest

from scalesim.core.config import DEFAULT_PRICING_FILE, Config


@pytest.fixture
def cfg():
    return Config()


class TestValidateInstance:
    """Tests for the Config.validate_instance method."""

    def test_defaults_are_valid(self, cfg):
        cfg.validate_instance()

    def test_default_pricing_file_is_bundled(self):
        assert DEFAULT_PRICING_FILE.endswith("aws_pricing_eu-west-1.json")

    @pytest.mark.parametrize(
        "attribute, value",
        [
            ("POLL_INTERVAL_SECONDS", 0),
            ("ROUND_TIMEOUT_SECONDS", -1),
            ("SCALE_DOWN_TIMEOUT_SECONDS", 0),
            ("MAX_ROUNDS", 0),
            ("DEFAULT_LEAST_WASTE", -0.5),
            ("DEFAULT_LEAST_COST", -1),
            ("PRICING_TERM", "spot"),
        ],
    )
    def test_invalid_values_are_rejected(self, cfg, attribute, value):
        setattr(cfg, attribute, value)

        with pytest.raises(ValueError):
            cfg.validate_instance()

    def test_missing_pricing_file_only_warns(self, cfg, tmp_path, caplog):
        cfg.PRICING_FILE = str(tmp_path / "missing.json")

        with caplog.at_level(logging.WARNING):
            cfg.validate_instance()

        assert "does not exist" in caplog.text
