"""
Settings for dualstore.

Built once at startup from environment variables and passed explicitly to
the orchestrator factory and the HTTP app.
"""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError
from .models import UploadConfig

DEFAULT_IPFS_API_URL = "http://127.0.0.1:5001"
DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024
DEFAULT_MAX_BUFFERED_BYTES = 1024 * 1024

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"Invalid {name}: {raw!r}") from exc


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"Invalid {name}: {raw!r}") from exc


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid {name}: {raw!r}")


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Immutable service configuration."""
    s3_bucket: str
    s3_key_prefix: str = "uploads"
    aws_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    ipfs_api_url: str = DEFAULT_IPFS_API_URL
    ipfs_pin: bool = True
    max_buffered_bytes: int = DEFAULT_MAX_BUFFERED_BYTES
    max_file_size: int = DEFAULT_MAX_FILE_SIZE  # 0 disables the limit
    upload_timeout: float = 60.0
    temp_dir: Path = Path(tempfile.gettempdir())
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Load settings from environment variables.

        Args:
            env: Mapping to read from (default: os.environ)

        Raises:
            ConfigError: if S3_BUCKET is missing or a value cannot be parsed
        """
        env = os.environ if env is None else env

        bucket = _optional(env, "S3_BUCKET")
        if bucket is None:
            raise ConfigError("S3_BUCKET not set")

        temp_dir = _optional(env, "TEMP_DIR")
        settings = cls(
            s3_bucket=bucket,
            s3_key_prefix=(env.get("S3_KEY_PREFIX") or env.get("S3_KEY") or "uploads").strip("/ "),
            aws_region=_optional(env, "AWS_REGION") or "us-east-1",
            s3_endpoint_url=_optional(env, "S3_ENDPOINT_URL"),
            aws_access_key_id=_optional(env, "AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=_optional(env, "AWS_SECRET_ACCESS_KEY"),
            ipfs_api_url=_optional(env, "IPFS_API_URL") or DEFAULT_IPFS_API_URL,
            ipfs_pin=_parse_bool(env, "IPFS_PIN", True),
            max_buffered_bytes=_parse_int(env, "MAX_BUFFERED_BYTES", DEFAULT_MAX_BUFFERED_BYTES),
            max_file_size=_parse_int(env, "MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
            upload_timeout=_parse_float(env, "UPLOAD_TIMEOUT", 60.0),
            temp_dir=Path(temp_dir) if temp_dir else Path(tempfile.gettempdir()),
            server_host=_optional(env, "SERVER_HOST") or "0.0.0.0",
            server_port=_parse_int(env, "SERVER_PORT", 8080),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.s3_bucket.strip():
            raise ConfigError("S3 bucket name cannot be empty")
        if not 0 < self.server_port < 65536:
            raise ConfigError("Server port must be between 1 and 65535")
        if self.max_file_size < 0:
            raise ConfigError("Max file size must be >= 0")
        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            raise ConfigError("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together")
        self.upload_config().validate()

    def upload_config(self) -> UploadConfig:
        return UploadConfig(
            max_buffered_bytes=self.max_buffered_bytes,
            upload_timeout=self.upload_timeout,
            max_file_size=self.max_file_size or None,
            spool_dir=self.temp_dir,
        )
