"""Unit tests for configuration and logging helpers."""

import logging

import pytest
import yaml

from src.utils.config import load_config
from src.utils.logging import get_logger


class TestLoadConfig:
    """Test suite for load_config."""

    def test_missing_file(self, tmp_path):
        """Test a missing file gives an empty dict."""
        assert load_config(tmp_path / "missing.yaml") == {}

    def test_empty_file(self, tmp_path):
        """Test an empty document gives an empty dict."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == {}

    def test_mapping(self, tmp_path):
        """Test a mapping is returned as parsed."""
        path = tmp_path / "detector.yaml"
        path.write_text("cluster_size_min: 8\nhuman_size_limit: true\n")

        assert load_config(path) == {"cluster_size_min": 8, "human_size_limit": True}

    def test_non_mapping(self, tmp_path):
        """Test a list at the top level is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        """Test syntax errors are reported."""
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(path)


class TestGetLogger:
    """Test suite for get_logger."""

    def test_single_handler(self):
        """Test repeated calls do not stack handlers."""
        first = get_logger("tests.utils.single")
        second = get_logger("tests.utils.single")

        assert first is second
        assert len(first.handlers) == 1
        assert first.level == logging.INFO

    def test_explicit_level(self):
        """Test an explicit level overrides the default."""
        logger = get_logger("tests.utils.debug", logging.DEBUG)

        assert logger.level == logging.DEBUG
