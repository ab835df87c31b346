"""Exception types raised by the auth API test harness.

Every failure surfaces to the calling test unchanged; the messages are
written so the engineer reading a failed run can tell a broken run
order, rejected credentials and an unhealthy service apart.
"""
from __future__ import annotations

from typing import Optional


class ApiTestError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(ApiTestError):
    """Required configuration is missing or invalid."""


class SetupOrderError(ApiTestError):
    """A persisted record required by this test has not been written yet."""


class NotFoundError(SetupOrderError):
    """A credential store slot was read before anything was written to it."""

    def __init__(self, slot: str, hint: str):
        self.slot = slot
        self.hint = hint
        super().__init__(f"{slot} not found. {hint}")


class SuiteOrderError(ApiTestError):
    """The declared stage order contradicts a stage's requirements."""


class TransientServiceError(ApiTestError):
    """Timeout, transport failure or malformed response from the service."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ):
        self.status_code = status_code
        self.response_text = response_text
        details = message
        if status_code is not None:
            details += f" (status={status_code})"
        if response_text:
            details += f"\nResponse: {response_text[:500]}"
        super().__init__(details)


class AuthenticationExhaustedError(ApiTestError):
    """Both the recorded and the fallback password were rejected."""

    def __init__(
        self,
        email: str,
        user_type: str,
        primary_password: str,
        fallback_password: Optional[str],
        status_code: int,
        response_text: str,
    ):
        self.email = email
        self.user_type = user_type
        self.primary_password = primary_password
        self.fallback_password = fallback_password
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(
            "LOGIN FAILED (PRIMARY + FALLBACK)\n"
            f"Email: {email}\n"
            f"UserType: {user_type}\n"
            f"Primary Password: {primary_password}\n"
            f"Fallback Password: {fallback_password}\n"
            f"API Response ({status_code}):\n{response_text}"
        )
