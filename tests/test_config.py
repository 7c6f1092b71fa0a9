"""Tests for configuration loading."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from provider.config import Config, ConfigurationError


class TestConfig:
    """Tests for Config class."""

    def test_valid_config(self, tmp_path: Path) -> None:
        """Test creating a valid configuration."""
        config = Config(region="eu-west-1", state_file=tmp_path / "state.json")

        assert config.region == "eu-west-1"
        assert config.partition == "aws"
        assert config.dry_run is False
        assert config.log_level_number == logging.INFO

    def test_missing_region(self) -> None:
        """Test that missing region raises error."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="")

        assert "AWS_REGION" in str(exc_info.value)

    def test_invalid_region(self) -> None:
        """Test that a malformed region raises error."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="Europe West")

        assert "valid AWS region" in str(exc_info.value)

    def test_gov_cloud_region(self) -> None:
        """Test multi-word region names."""
        config = Config(region="us-gov-west-1", partition="aws-us-gov")
        assert config.partition == "aws-us-gov"

    def test_invalid_partition(self) -> None:
        """Test partition allowlist."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", partition="azure")

        assert "AWS_PARTITION" in str(exc_info.value)

    def test_invalid_timeouts(self) -> None:
        """Test that out-of-range timeouts raise error."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", create_timeout_seconds=0, delete_timeout_seconds=99999)

        message = str(exc_info.value)
        assert "CREATE_TIMEOUT" in message
        assert "DELETE_TIMEOUT" in message

    def test_poll_interval_bounds(self) -> None:
        """Test poll interval range."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", poll_interval_seconds=0)

        assert "POLL_INTERVAL" in str(exc_info.value)

    def test_poll_interval_cannot_exceed_timeout(self) -> None:
        """Test that polling slower than the deadline is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", poll_interval_seconds=30, delete_timeout_seconds=10)

        assert "cannot exceed" in str(exc_info.value)

    def test_invalid_max_attempts(self) -> None:
        """Test botocore retry bound."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", aws_max_attempts=50)

        assert "AWS_MAX_ATTEMPTS" in str(exc_info.value)

    def test_invalid_log_level(self) -> None:
        """Test log level allowlist."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", log_level="LOUD")

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_state_file_is_directory(self, tmp_path: Path) -> None:
        """Test that a directory is not accepted as state file."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="us-east-1", state_file=tmp_path)

        assert "STATE_FILE" in str(exc_info.value)

    def test_all_errors_reported(self) -> None:
        """Test that every problem is listed, not just the first."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(region="", partition="x", log_level="nope")

        message = str(exc_info.value)
        assert message.count("\n  - ") == 3


class TestConfigFromEnv:
    """Tests for Config.from_env."""

    def test_from_env_valid(self, tmp_path: Path) -> None:
        """Test loading config from environment."""
        state_file = tmp_path / "state.json"
        env = {
            "AWS_REGION": "ap-southeast-2",
            "STATE_FILE": str(state_file),
            "CREATE_TIMEOUT": "600",
            "POLL_INTERVAL": "5",
            "DRY_RUN": "true",
            "JSON_LOGS": "false",
            "LOG_LEVEL": "debug",
        }

        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.region == "ap-southeast-2"
        assert config.state_file == state_file
        assert config.create_timeout_seconds == 600
        assert config.poll_interval_seconds == 5
        assert config.dry_run is True
        assert config.json_logs is False
        assert config.log_level_number == logging.DEBUG

    def test_default_region_fallback(self) -> None:
        """Test AWS_DEFAULT_REGION is used when AWS_REGION is unset."""
        with patch.dict(os.environ, {"AWS_DEFAULT_REGION": "us-west-2"}, clear=True):
            config = Config.from_env()

        assert config.region == "us-west-2"

    def test_invalid_integer(self) -> None:
        """Test that non-integer values raise error."""
        env = {"AWS_REGION": "us-east-1", "DELETE_TIMEOUT": "soon"}

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                Config.from_env()

        assert "DELETE_TIMEOUT" in str(exc_info.value)

    def test_overrides_take_precedence(self, tmp_path: Path) -> None:
        """Test that CLI overrides beat the environment, None is ignored."""
        env = {"AWS_REGION": "us-east-1", "LOG_LEVEL": "WARNING"}

        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env(region="eu-central-1", log_level=None)

        assert config.region == "eu-central-1"
        assert config.log_level == "WARNING"
