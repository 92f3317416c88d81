"""Configuration management for zipdeploy.

Values are resolved in this order:

1. Environment variables (``ZIPDEPLOY_*``, then the standard ``AWS_*`` ones)
2. The JSON config file at ``~/.config/zipdeploy/config.json``
3. Built-in defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError

from .exceptions import ConfigError
from .utils import DEFAULT_SPOOL_THRESHOLD, parse_size

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "ZIPDEPLOY_CONFIG_DIR"

# Config key -> environment variables consulted, in order
ENV_VARS: dict[str, tuple[str, ...]] = {
    "aws_profile": ("ZIPDEPLOY_AWS_PROFILE", "AWS_PROFILE"),
    "aws_region": ("ZIPDEPLOY_AWS_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
    "endpoint_url": ("ZIPDEPLOY_ENDPOINT_URL", "AWS_ENDPOINT_URL"),
    "max_archive_size": ("ZIPDEPLOY_MAX_ARCHIVE_SIZE",),
    "spool_threshold": ("ZIPDEPLOY_SPOOL_THRESHOLD",),
    "upload_strategy": ("ZIPDEPLOY_UPLOAD_STRATEGY",),
    "connect_timeout": ("ZIPDEPLOY_CONNECT_TIMEOUT",),
    "read_timeout": ("ZIPDEPLOY_READ_TIMEOUT",),
}


class Config:
    """Resolved zipdeploy configuration."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding config.json. Defaults to
                        $ZIPDEPLOY_CONFIG_DIR or ~/.config/zipdeploy
        """
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV)
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "zipdeploy"
            )
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Get the path of the JSON config file."""
        return self.config_dir / "config.json"

    def _load_file(self) -> dict[str, Any]:
        if self._file_values is None:
            path = self.get_config_path()
            if not path.exists():
                self._file_values = {}
            else:
                try:
                    with open(path, encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise ConfigError(f"Cannot read config file {path}: {e}") from e
                if not isinstance(data, dict):
                    raise ConfigError(f"Config file {path} must contain an object")
                self._file_values = data
        return self._file_values

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a raw config value.

        Args:
            key: Config key (e.g. "aws_region")
            default: Value returned when the key is not set anywhere

        Returns:
            The resolved value
        """
        for env_var in ENV_VARS.get(key, ()):
            value = os.environ.get(env_var)
            if value:
                return value
        return self._load_file().get(key, default)

    def save(self, **values: Any) -> None:
        """Persist values to the config file, merging with existing ones.

        Args:
            **values: Config keys and values; None removes the key
        """
        unknown = set(values) - set(ENV_VARS)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        data = dict(self._load_file())
        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        self._file_values = data
        logger.debug(f"Saved {len(values)} config value(s) to {path}")

    @property
    def aws_profile(self) -> Optional[str]:
        return self.get("aws_profile")

    @property
    def aws_region(self) -> Optional[str]:
        return self.get("aws_region")

    @property
    def endpoint_url(self) -> Optional[str]:
        return self.get("endpoint_url")

    @property
    def max_archive_size(self) -> Optional[int]:
        """Size ceiling for source archives in bytes, None for no cap."""
        return self._size("max_archive_size")

    @property
    def spool_threshold(self) -> int:
        """Archive size kept in memory before the download spills to disk."""
        value = self._size("spool_threshold")
        return DEFAULT_SPOOL_THRESHOLD if value is None else value

    @property
    def upload_strategy(self) -> str:
        return str(self.get("upload_strategy", "force-all"))

    @property
    def connect_timeout(self) -> Optional[float]:
        return self._float("connect_timeout")

    @property
    def read_timeout(self) -> Optional[float]:
        return self._float("read_timeout")

    def _size(self, key: str) -> Optional[int]:
        value = self.get(key)
        if value is None or value == "":
            return None
        try:
            return parse_size(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {key}: {e}") from e

    def _float(self, key: str) -> Optional[float]:
        value = self.get(key)
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key}: {value!r}") from e

    def create_s3_client(
        self,
        profile_name: Optional[str] = None,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> Any:
        """Create a boto3 S3 client from this configuration.

        Explicit arguments take precedence over configured values.

        Returns:
            A boto3 S3 client
        """
        client_config = BotoConfig(
            connect_timeout=self.connect_timeout or 60,
            read_timeout=self.read_timeout or 60,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        try:
            session = boto3.Session(
                profile_name=profile_name or self.aws_profile,
                region_name=region_name or self.aws_region,
            )
            return session.client(
                "s3",
                endpoint_url=endpoint_url or self.endpoint_url,
                config=client_config,
            )
        except BotoCoreError as e:
            raise ConfigError(f"Could not initialize AWS session: {e}") from e


config = Config()
