"""
Configuration for the Legal Workflow SDK.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigurationError
from .validation import (
    ValidationError,
    validate_in_list,
    validate_non_negative,
    validate_positive_int,
)

ENV_PREFIX = "LEGALWORKFLOW_"

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class WorkflowConfig:
    """Tunables for the lifecycle engine, document staging and remote store client."""

    request_id_prefix: str = "CRR"
    min_rush_rationale_length: int = 10

    max_upload_retries: int = 2
    auto_retry_uploads: bool = True
    upload_backoff_seconds: float = 0.5
    upload_backoff_max_seconds: float = 8.0

    # Wait after delete/rename/type-change before reloading, then poll for visibility.
    settle_delay_seconds: float = 1.5
    settle_poll_attempts: int = 3

    store_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 30.0

    log_level: str = "info"

    def __post_init__(self):
        if self.store_url is None:
            self.store_url = os.environ.get(f"{ENV_PREFIX}STORE_URL")
        if self.api_key is None:
            self.api_key = os.environ.get(f"{ENV_PREFIX}API_KEY")
        self.validate()

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` when a value is out of range."""
        try:
            if not self.request_id_prefix or not self.request_id_prefix.strip():
                raise ValidationError("request_id_prefix cannot be empty", field="request_id_prefix")
            validate_positive_int(self.min_rush_rationale_length, "min_rush_rationale_length")
            validate_non_negative(self.max_upload_retries, "max_upload_retries")
            validate_non_negative(self.upload_backoff_seconds, "upload_backoff_seconds")
            validate_non_negative(self.upload_backoff_max_seconds, "upload_backoff_max_seconds")
            validate_non_negative(self.settle_delay_seconds, "settle_delay_seconds")
            validate_non_negative(self.settle_poll_attempts, "settle_poll_attempts")
            validate_non_negative(self.timeout, "timeout")
            validate_in_list(self.log_level.lower(), "log_level", LOG_LEVELS)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e.message}") from e

    def upload_backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), doubling and capped."""
        delay = self.upload_backoff_seconds * (2 ** (attempt - 1))
        return min(delay, self.upload_backoff_max_seconds)

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        data = asdict(self)
        if redact and data.get("api_key"):
            data["api_key"] = "***"
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkflowConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_env(cls) -> "WorkflowConfig":
        """Create configuration from ``LEGALWORKFLOW_*`` environment variables."""
        env = os.environ
        try:
            return cls(
                request_id_prefix=env.get(f"{ENV_PREFIX}REQUEST_ID_PREFIX", "CRR"),
                min_rush_rationale_length=int(env.get(f"{ENV_PREFIX}MIN_RUSH_RATIONALE_LENGTH", "10")),
                max_upload_retries=int(env.get(f"{ENV_PREFIX}MAX_UPLOAD_RETRIES", "2")),
                auto_retry_uploads=_env_bool(env.get(f"{ENV_PREFIX}AUTO_RETRY_UPLOADS", "true")),
                upload_backoff_seconds=float(env.get(f"{ENV_PREFIX}UPLOAD_BACKOFF_SECONDS", "0.5")),
                upload_backoff_max_seconds=float(
                    env.get(f"{ENV_PREFIX}UPLOAD_BACKOFF_MAX_SECONDS", "8.0")
                ),
                settle_delay_seconds=float(env.get(f"{ENV_PREFIX}SETTLE_DELAY_SECONDS", "1.5")),
                settle_poll_attempts=int(env.get(f"{ENV_PREFIX}SETTLE_POLL_ATTEMPTS", "3")),
                store_url=env.get(f"{ENV_PREFIX}STORE_URL"),
                api_key=env.get(f"{ENV_PREFIX}API_KEY"),
                timeout=float(env.get(f"{ENV_PREFIX}TIMEOUT", "30.0")),
                log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "info"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: str | Path) -> "WorkflowConfig":
        """
        Load configuration from a YAML file.

        The file may hold the settings at the top level or under a
        ``legalworkflow:`` key. Environment variables fill in ``store_url``
        and ``api_key`` when the file leaves them out.

        Raises:
            ConfigurationError: File not found, invalid YAML or invalid values
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}", path=str(path))

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", path=str(path)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {path} must be a mapping", path=str(path))
        if isinstance(data.get("legalworkflow"), dict):
            data = data["legalworkflow"]

        return cls.from_dict(data)
