"""Rebuild an authenticated session from the persisted signup record.

Journeys after signup never share in-process state with it; they read the
SignupRecord from the credential store and log in again. The recorded
password may no longer be valid: the change-password journey rotates the
live password on the same account. Resolution therefore works in two tiers:

1. Log in with the recorded password.
2. If the service rejects those credentials (400/401/403), log in with the
   configured fallback password.

Anything else (5xx, timeout, unparseable body) is a service fault and is
raised immediately without trying the fallback. When both tiers are
rejected, AuthenticationExhaustedError carries both passwords and the raw
response. A successful login is normalized into a SessionDescriptor and
written back to the store before it is returned.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from api_tests.auth_client import AuthApiClient
from api_tests.config import ApiTestConfig, get_settings
from api_tests.constants import (
    CREDENTIAL_REJECTION_STATUSES,
    Messages,
    Status,
    UserType,
)
from api_tests.credential_store import (
    CredentialStore,
    FileCredentialStore,
    SessionDescriptor,
)
from api_tests.errors import AuthenticationExhaustedError, TransientServiceError

logger = logging.getLogger(__name__)


class SessionResolver:
    """Turns the stored SignupRecord into a live SessionDescriptor.

    Args:
        config: Validated configuration (base URL, fallback password, timeout)
        store: Credential store holding the signup record
        client: Optional client; one is created from `config` when omitted
            and closed by `close()`
    """

    def __init__(
        self,
        config: ApiTestConfig,
        store: CredentialStore,
        client: Optional[AuthApiClient] = None,
    ):
        self.config = config
        self.store = store
        self._owns_client = client is None
        self.client = client or AuthApiClient.from_config(config)

    def _check_service_fault(self, response: httpx.Response) -> None:
        if response.status_code == Status.OK:
            return
        if response.status_code not in CREDENTIAL_REJECTION_STATUSES:
            raise TransientServiceError(
                "Login failed with an unexpected status",
                response.status_code,
                response.text,
            )

    def authenticate(self, email: str, password: str, user_type: str) -> httpx.Response:
        """One login attempt; values are sent exactly as recorded."""
        response = self.client.login(email, password, user_type)
        self._check_service_fault(response)
        return response

    def _descriptor_from(self, response: httpx.Response) -> SessionDescriptor:
        try:
            body = response.json()
        except ValueError as exc:
            raise TransientServiceError(
                "Login response is not JSON", response.status_code, response.text
            ) from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise TransientServiceError(
                "Login response has no data object", response.status_code, response.text
            )
        token = data.get("token")
        user = data.get("user")
        if not isinstance(token, str) or not token:
            raise TransientServiceError(
                "Login response has no token", response.status_code, response.text
            )
        if not isinstance(user, dict):
            raise TransientServiceError(
                "Login response has no user object", response.status_code, response.text
            )

        if body.get("message") != Messages.LOGIN_SUCCESS:
            logger.warning("Unexpected login message: %r", body.get("message"))

        return SessionDescriptor.from_login_payload(user, token)

    def resolve_session(self) -> SessionDescriptor:
        """Log in as the recorded user and persist the resulting session.

        Raises:
            SetupOrderError: No signup record has been written yet
            AuthenticationExhaustedError: Both passwords were rejected
            TransientServiceError: The service misbehaved
        """
        record = self.store.read_signup_record()
        email = record.email
        primary_password = record.password
        user_type = record.user_type or UserType.CUSTOMER.value
        fallback_password = self.config.fallback_password

        response = self.authenticate(email, primary_password, user_type)

        if response.status_code != Status.OK and fallback_password != primary_password:
            logger.warning(
                "Primary password rejected for %s (%s). Trying fallback password...",
                email,
                response.status_code,
            )
            response = self.authenticate(email, fallback_password, user_type)

        if response.status_code != Status.OK:
            raise AuthenticationExhaustedError(
                email=email,
                user_type=user_type,
                primary_password=primary_password,
                fallback_password=fallback_password,
                status_code=response.status_code,
                response_text=response.text,
            )

        descriptor = self._descriptor_from(response)
        self.store.write_session_descriptor(descriptor)
        logger.info("Resolved session for %s (%s)", descriptor.email, descriptor.user_type)
        return descriptor

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "SessionResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def get_auth_data(
    config: Optional[ApiTestConfig] = None,
    store: Optional[CredentialStore] = None,
) -> SessionDescriptor:
    """Resolve a session once, for test modules that need a logged-in user."""
    config = config or get_settings()
    store = store or FileCredentialStore(config.state_dir)
    with SessionResolver(config, store) as resolver:
        return resolver.resolve_session()
