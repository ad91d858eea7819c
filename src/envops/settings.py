"""
Settings and configuration for envops.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when a CLI command starts.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_API_URL"]

DEFAULT_API_URL = "https://api.platform.sh"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for envops.

    API Settings:
        api_url: Base URL of the projects API
        api_token: Bearer token for API requests
        project: Default project ID for activity queries
        environment: Default environment ID for activity queries
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Number of retries for failed requests (0=no retry)

    Git Settings:
        git_binary: Version-control executable to invoke
        repository_dir: Repository directory used when a command does not name one
    """
    # API settings
    api_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    project: Optional[str] = None
    environment: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 0

    # Git settings
    git_binary: str = "git"
    repository_dir: str = "."

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.api_url:
            raise ValueError("api_url is required")

        url_pattern = r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$"
        if not re.match(url_pattern, self.api_url):
            raise ValueError(f"Invalid api_url format: {self.api_url}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if not self.git_binary:
            raise ValueError("git_binary must not be empty")

        if not self.repository_dir:
            raise ValueError("repository_dir must not be empty")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        API:
        - ENVOPS_API_URL (default: https://api.platform.sh)
        - ENVOPS_API_TOKEN (optional)
        - ENVOPS_PROJECT (optional)
        - ENVOPS_ENVIRONMENT (optional)
        - ENVOPS_HTTP_TIMEOUT (default: 30.0)
        - ENVOPS_HTTP_RETRY (default: 0)

        Git:
        - ENVOPS_GIT_BINARY (default: git)
        - ENVOPS_REPOSITORY_DIR (default: .)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        try:
            return float(value) if value else default
        except ValueError:
            raise ValueError(f"{key} must be a number, got {value!r}") from None

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        try:
            return int(value) if value else default
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}") from None

    return Settings(
        api_url=os.getenv("ENVOPS_API_URL") or DEFAULT_API_URL,
        api_token=os.getenv("ENVOPS_API_TOKEN") or None,
        project=os.getenv("ENVOPS_PROJECT") or None,
        environment=os.getenv("ENVOPS_ENVIRONMENT") or None,
        http_timeout_s=get_float("ENVOPS_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("ENVOPS_HTTP_RETRY", 0),
        git_binary=os.getenv("ENVOPS_GIT_BINARY") or "git",
        repository_dir=os.getenv("ENVOPS_REPOSITORY_DIR") or ".",
    )
