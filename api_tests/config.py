"""Shared configuration for the auth API tests.

Configuration comes from the environment (optionally seeded from `.env`):

    BASE_URL                  target service, e.g. https://test.example.com/api/  (required)
    PASSWORD                  fallback password used when the recorded one was rotated
    AUTH_STATE_DIR            where signup/session records are persisted
    REQUEST_TIMEOUT           per-request ceiling in seconds
    ALLOW_OTP_VIEW            permit the OTP view endpoint on non-test hosts
    TEST_TEAM_ONE_ID / TEST_TEAM_TWO_ID
    TEST_MULTI_ROLE_EMAIL / TEST_MULTI_ROLE_PASSWORD

Values are validated when the config object is built, not on first use.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from urllib.parse import urljoin

from api_tests.constants import DEFAULT_TIMEOUT, Passwords
from api_tests.env_defaults import REPO_ROOT, get_env_default, load_env_file
from api_tests.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = REPO_ROOT / "tmp" / "auth-state"
DEFAULT_TEAM_ONE_ID = "9246583f-96c7-4f06-94a9-da5cdc87ef99"
DEFAULT_TEAM_TWO_ID = "6faf4c2e-56be-43c1-889c-3fdaa9278638"
DEFAULT_MULTI_ROLE_EMAIL = "sct02@yopmail.com"


def _env(key: str, default: str | None = None) -> str | None:
    value = os.getenv(key)
    if value:
        return value
    return get_env_default(key) or default


def _env_flag(key: str) -> bool:
    return (_env(key, "") or "").lower() in {"1", "true", "yes"}


@dataclass
class ApiTestConfig:
    """Concrete settings for one run against one service."""

    base_url: str
    fallback_password: str
    state_dir: Path = DEFAULT_STATE_DIR
    request_timeout: float = DEFAULT_TIMEOUT
    allow_otp_view: bool = False
    team_one_id: str = DEFAULT_TEAM_ONE_ID
    team_two_id: str = DEFAULT_TEAM_TWO_ID
    multi_role_email: str = DEFAULT_MULTI_ROLE_EMAIL
    multi_role_password: str = Passwords.VALID

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise ConfigurationError(
                "BASE_URL is not defined. Copy .env.example to .env and configure it."
            )
        if not self.fallback_password:
            raise ConfigurationError("A fallback password (PASSWORD) is required.")
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be positive, got {self.request_timeout}"
            )
        # Relative endpoint paths are appended to the base URL
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.state_dir = Path(self.state_dir)

    @classmethod
    def from_env(cls) -> "ApiTestConfig":
        load_env_file()

        timeout_raw = _env("REQUEST_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(timeout_raw)
        except ValueError as exc:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a number of seconds, got {timeout_raw!r}"
            ) from exc

        config = cls(
            base_url=_env("BASE_URL", "") or "",
            # Default to the password the change-password journey rotates to
            fallback_password=_env("PASSWORD", Passwords.VALID_ALT),
            state_dir=Path(_env("AUTH_STATE_DIR", str(DEFAULT_STATE_DIR))),
            request_timeout=timeout,
            allow_otp_view=_env_flag("ALLOW_OTP_VIEW"),
            team_one_id=_env("TEST_TEAM_ONE_ID", DEFAULT_TEAM_ONE_ID),
            team_two_id=_env("TEST_TEAM_TWO_ID", DEFAULT_TEAM_TWO_ID),
            multi_role_email=_env("TEST_MULTI_ROLE_EMAIL", DEFAULT_MULTI_ROLE_EMAIL),
            multi_role_password=_env("TEST_MULTI_ROLE_PASSWORD", Passwords.VALID),
        )
        logger.info("[CONFIG] Target %s (state dir %s)", config.base_url, config.state_dir)
        return config

    def url(self, path: str) -> str:
        """Return an absolute URL for the provided endpoint path."""
        return urljoin(self.base_url, path.lstrip("/"))

    @property
    def is_test_environment(self) -> bool:
        return "test." in self.base_url


@lru_cache(maxsize=1)
def get_settings() -> ApiTestConfig:
    """Process-wide configuration, built on first use."""
    return ApiTestConfig.from_env()
