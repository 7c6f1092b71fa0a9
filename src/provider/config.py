"""Configuration management with validation.

Invalid settings are rejected when the configuration is constructed, so a
bad environment fails before any remote call is made.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_CREATE_TIMEOUT_SECONDS = 480  # VPC links take several minutes
DEFAULT_DELETE_TIMEOUT_SECONDS = 300
MAX_OPERATION_TIMEOUT_SECONDS = 3600

DEFAULT_POLL_INTERVAL_SECONDS = 3
MIN_POLL_INTERVAL_SECONDS = 1
MAX_POLL_INTERVAL_SECONDS = 60

DEFAULT_AWS_MAX_ATTEMPTS = 3
MAX_AWS_MAX_ATTEMPTS = 10

DEFAULT_STATE_FILE = "provider-state.json"
MAX_MANIFEST_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max manifest
MAX_STATE_FILE_SIZE_BYTES = 10 * 1024 * 1024

VALID_REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d$"
VALID_PARTITIONS = ("aws", "aws-cn", "aws-us-gov", "aws-iso", "aws-iso-b")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-apply.
    """

    region: str
    partition: str = "aws"

    state_file: Path = field(default_factory=lambda: Path(DEFAULT_STATE_FILE))

    # Timing
    create_timeout_seconds: int = DEFAULT_CREATE_TIMEOUT_SECONDS
    delete_timeout_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS

    # botocore retry attempts per API call (standard retry mode)
    aws_max_attempts: int = DEFAULT_AWS_MAX_ATTEMPTS

    # Behavior
    dry_run: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.region:
            errors.append("AWS_REGION is required")
        elif not re.match(VALID_REGION_PATTERN, self.region):
            errors.append(f"AWS_REGION must be a valid AWS region: {self.region}")

        if self.partition not in VALID_PARTITIONS:
            errors.append(f"AWS_PARTITION must be one of {list(VALID_PARTITIONS)}: {self.partition}")

        for name, value in (
            ("CREATE_TIMEOUT", self.create_timeout_seconds),
            ("DELETE_TIMEOUT", self.delete_timeout_seconds),
        ):
            if not (1 <= value <= MAX_OPERATION_TIMEOUT_SECONDS):
                errors.append(
                    f"{name} must be between 1 and {MAX_OPERATION_TIMEOUT_SECONDS} seconds"
                )

        if not (MIN_POLL_INTERVAL_SECONDS <= self.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS):
            errors.append(
                f"POLL_INTERVAL must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS} seconds"
            )
        elif self.poll_interval_seconds > min(
            self.create_timeout_seconds, self.delete_timeout_seconds
        ):
            errors.append("POLL_INTERVAL cannot exceed CREATE_TIMEOUT or DELETE_TIMEOUT")

        if not (1 <= self.aws_max_attempts <= MAX_AWS_MAX_ATTEMPTS):
            errors.append(f"AWS_MAX_ATTEMPTS must be between 1 and {MAX_AWS_MAX_ATTEMPTS}")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if self.state_file.exists() and not self.state_file.is_file():
            errors.append(f"STATE_FILE is not a regular file: {self.state_file}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls, **overrides: object) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AWS_REGION: Target region (falls back to AWS_DEFAULT_REGION)
            AWS_PARTITION: ARN partition (default: aws)
            STATE_FILE: Path of the JSON state file (default: provider-state.json)
            CREATE_TIMEOUT: Seconds to wait for a create/update to settle (default: 480)
            DELETE_TIMEOUT: Seconds to wait for a delete to settle (default: 300)
            POLL_INTERVAL: Seconds between status polls (default: 3)
            AWS_MAX_ATTEMPTS: botocore attempts per API call (default: 3)
            DRY_RUN: If "true", plan only (default: false)
            LOG_LEVEL: Root log level (default: INFO)
            JSON_LOGS: If "false", log plain text instead of JSON (default: true)

        Args:
            **overrides: Values that take precedence over the environment
                (used by the CLI options). None values are ignored.
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        values: dict[str, object] = {
            "region": os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION", ""),
            "partition": os.environ.get("AWS_PARTITION", "aws"),
            "state_file": Path(os.environ.get("STATE_FILE", DEFAULT_STATE_FILE)),
            "create_timeout_seconds": get_int("CREATE_TIMEOUT", DEFAULT_CREATE_TIMEOUT_SECONDS),
            "delete_timeout_seconds": get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            "poll_interval_seconds": get_int("POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS),
            "aws_max_attempts": get_int("AWS_MAX_ATTEMPTS", DEFAULT_AWS_MAX_ATTEMPTS),
            "dry_run": get_bool("DRY_RUN", False),
            "log_level": os.environ.get("LOG_LEVEL", "INFO"),
            "json_logs": get_bool("JSON_LOGS", True),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)  # type: ignore[arg-type]
