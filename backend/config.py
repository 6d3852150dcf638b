"""
Application configuration with Docker secrets support.

The signing key is read using the _read_secret() pattern:
  1. Direct env var (APP_SECRET_KEY)
  2. File-based env var (APP_SECRET_KEY_FILE → reads file path)
  3. Raises ValueError if neither is set
"""

import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 300  # 5 minutes
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB


def _read_secret(env_var: str, file_env_var: str | None = None) -> str:
    """Read a secret from env var or Docker secrets file.

    Args:
        env_var: Direct environment variable name (e.g., APP_SECRET_KEY)
        file_env_var: File path env var name (e.g., APP_SECRET_KEY_FILE).
                      If None, defaults to env_var + '_FILE'.

    Returns:
        The secret value.

    Raises:
        ValueError: If neither source provides a value.
    """
    if file_env_var is None:
        file_env_var = f"{env_var}_FILE"

    value = os.environ.get(env_var)
    if value:
        return value

    file_path = os.environ.get(file_env_var)
    if file_path:
        try:
            with open(file_path, "r") as f:
                value = f.read().strip()
            if value:
                return value
        except FileNotFoundError:
            logger.error(f"Secret file not found: {file_path} (from {file_env_var})")
        except PermissionError:
            logger.error(f"Permission denied reading: {file_path} (from {file_env_var})")

    raise ValueError(
        f"Secret not configured. Set {env_var} env var or {file_env_var} pointing to a file."
    )


def _read_bool(env_var: str, default: bool = False) -> bool:
    raw = os.environ.get(env_var)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment and Docker secrets."""

    def __init__(self, app_secret_key: str | None = None):
        # Secret (loaded lazily on first access unless given explicitly)
        self._app_secret_key: str | None = app_secret_key

        self.upload_dir = os.environ.get("UPLOAD_DIR", "uploads")
        self.session_ttl_seconds = int(
            os.environ.get("SESSION_TTL_SECONDS", str(DEFAULT_SESSION_TTL_SECONDS))
        )
        self.max_upload_bytes = int(
            os.environ.get("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))
        )
        self.cookie_secure = _read_bool("COOKIE_SECURE")
        self.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive")
        if self.max_upload_bytes <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be positive")

    @property
    def app_secret_key(self) -> str:
        if self._app_secret_key is None:
            self._app_secret_key = _read_secret("APP_SECRET_KEY")
        return self._app_secret_key


settings = Settings()
