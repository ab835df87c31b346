"""HTTP client for the authentication service under test.

Thin wrapper over `httpx` exposing one method per endpoint. Methods return
the raw `httpx.Response` so tests assert on status and body themselves;
only transport failures are translated, into TransientServiceError.

Usage:
    with AuthApiClient.from_config(get_settings()) as client:
        response = client.login(email, password, UserType.CUSTOMER)
        assert response.status_code == Status.OK
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional

import httpx

from api_tests.config import ApiTestConfig
from api_tests.constants import DEFAULT_TIMEOUT, Endpoints, Status
from api_tests.credential_store import SessionDescriptor
from api_tests.errors import ApiTestError, TransientServiceError

logger = logging.getLogger(__name__)

_JWT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")


def is_jwt_shaped(token: Any) -> bool:
    """True for three dot-separated base64url segments."""
    return isinstance(token, str) and bool(_JWT_PATTERN.match(token))


def _raise_for_failure(step: str, response: httpx.Response) -> None:
    """5xx is a service fault; any other failure means the request was refused."""
    if response.status_code >= Status.SERVER_ERROR:
        raise TransientServiceError(f"{step} failed", response.status_code, response.text)
    raise ApiTestError(f"{step} failed: {response.status_code} - {response.text}")


def _bearer(token: Optional[str]) -> dict[str, str]:
    # An empty token still sends the scheme; unauthenticated-call tests rely on it.
    # Header values may not end in whitespace, hence the strip.
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}".strip()}


class AuthApiClient:
    """Synchronous client for the auth endpoints.

    Args:
        base_url: Service base URL; endpoint paths are appended to it
        timeout: Ceiling for each request in seconds
        allow_otp_view: Permit `view_otp` on hosts that are not `test.` hosts
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        allow_otp_view: bool = False,
    ):
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self.timeout = timeout
        self.allow_otp_view = allow_otp_view
        self._client = httpx.Client(base_url=base_url, timeout=timeout)

    @classmethod
    def from_config(cls, config: ApiTestConfig) -> "AuthApiClient":
        return cls(
            config.base_url,
            timeout=config.request_timeout,
            allow_otp_view=config.allow_otp_view,
        )

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        token: Optional[str] = None,
    ) -> httpx.Response:
        """Send one request. Timeouts and transport failures are not retried."""
        try:
            return self._client.request(
                method, path.lstrip("/"), json=json, headers=_bearer(token)
            )
        except httpx.TimeoutException as exc:
            raise TransientServiceError(
                f"{method} {path} timed out after {self.timeout}s"
            ) from exc
        except httpx.TransportError as exc:
            raise TransientServiceError(f"{method} {path} failed: {exc}") from exc

    def _post(self, path: str, payload: Any = None, token: Optional[str] = None) -> httpx.Response:
        return self.request("POST", path, json=payload, token=token)

    # ---- registration and login ---------------------------------------------
    def signup(self, user_data: dict) -> httpx.Response:
        return self._post(Endpoints.SIGNUP, user_data)

    def login(
        self,
        email: Optional[str],
        password: Optional[str],
        user_type: Optional[str],
        team_id: Optional[str] = None,
    ) -> httpx.Response:
        payload: dict[str, Any] = {"email": email, "password": password, "userType": user_type}
        if team_id:
            payload["teamId"] = team_id
        return self._post(Endpoints.LOGIN, payload)

    def create_authenticated_user(self, user_data: dict) -> SessionDescriptor:
        """Register a fresh user and log in as them."""
        signup_response = self.signup(user_data)
        if signup_response.status_code not in (Status.CREATED, Status.OK):
            _raise_for_failure("Signup", signup_response)

        login_response = self.login(
            user_data["email"], user_data["password"], user_data.get("userType")
        )
        if login_response.status_code != Status.OK:
            _raise_for_failure("Login", login_response)

        data = login_response.json()["data"]
        return SessionDescriptor.from_login_payload(data["user"], data["token"])

    # ---- account inspection -------------------------------------------------
    def check_user_roles(self, email: Optional[str]) -> httpx.Response:
        return self._post(Endpoints.ROLES, {"email": email})

    def is_authenticated(self, token: Optional[str]) -> httpx.Response:
        return self._post(Endpoints.IS_AUTHENTICATED, token=token)

    # ---- OTP ----------------------------------------------------------------
    def send_email_otp(self, email: Optional[str], verification_type: Optional[str]) -> httpx.Response:
        return self._post(
            Endpoints.SEND_OTP_EMAIL, {"email": email, "verificationType": verification_type}
        )

    def send_sms_otp(self, phone_number: Optional[str], verification_type: Optional[str] = None) -> httpx.Response:
        payload: dict[str, Any] = {"phoneNumber": phone_number}
        if verification_type is not None:
            payload["verificationType"] = verification_type
        return self._post(Endpoints.SEND_OTP_SMS, payload)

    def verify_email_otp(self, email: Optional[str], otp: Optional[str]) -> httpx.Response:
        return self._post(Endpoints.VERIFY_EMAIL, {"email": email, "otp": otp})

    def verify_phone_otp(self, phone_number: Optional[str], code: Optional[str]) -> httpx.Response:
        return self._post(Endpoints.VERIFY_PHONE, {"phoneNumber": phone_number, "code": code})

    def view_otp(self, identifier: str) -> str:
        """Read the last OTP issued to an email or phone number.

        The endpoint exists only on test deployments and must never be
        relied on elsewhere.
        """
        if "test." not in self.base_url and not self.allow_otp_view:
            raise ApiTestError(
                "OTP view endpoint is only available in test environments. "
                "Set ALLOW_OTP_VIEW=true in .env if this is a test environment."
            )
        logger.warning("Using test OTP endpoint for %s", identifier)
        response = self._post(Endpoints.VIEW_OTP, {"identifier": identifier})
        if response.status_code != Status.OK:
            raise TransientServiceError(
                "Failed to retrieve OTP", response.status_code, response.text
            )
        return str(response.json()["data"])

    # ---- password management ------------------------------------------------
    def change_password(
        self,
        token: Optional[str],
        user_id: Optional[str],
        old_password: Optional[str],
        new_password: Optional[str],
    ) -> httpx.Response:
        return self._post(
            Endpoints.CHANGE_PASSWORD,
            {"userId": user_id, "oldPassword": old_password, "newPassword": new_password},
            token=token,
        )

    def reset_password(
        self,
        new_password: Optional[str],
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> httpx.Response:
        payload: dict[str, Any] = {"newPassword": new_password}
        if email is not None:
            payload["email"] = email
        if phone_number is not None:
            payload["phoneNumber"] = phone_number
        return self._post(Endpoints.RESET_PASSWORD, payload)

    # ---- account type -------------------------------------------------------
    def switch_account(
        self,
        token: Optional[str],
        user_type: Optional[str],
        team_id: Optional[str] = None,
    ) -> httpx.Response:
        payload: dict[str, Any] = {"userType": user_type}
        if team_id:
            payload["teamId"] = team_id
        return self._post(Endpoints.SWITCH_ACCOUNT, payload, token=token)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "AuthApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


async def fire_burst(
    base_url: str,
    path: str,
    payload: dict,
    count: int,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[httpx.Response]:
    """Issue `count` identical POSTs concurrently and return every response.

    Used to exercise rate limiting: all requests are in flight together, there
    is no ordering across the batch and no retry of any single request.
    """
    if not base_url.endswith("/"):
        base_url += "/"
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        try:
            return list(
                await asyncio.gather(
                    *(client.post(path.lstrip("/"), json=payload) for _ in range(count))
                )
            )
        except httpx.TimeoutException as exc:
            raise TransientServiceError(f"Burst to {path} timed out after {timeout}s") from exc
        except httpx.TransportError as exc:
            raise TransientServiceError(f"Burst to {path} failed: {exc}") from exc
