"""Tests for session resolution with password fallback.

Runs the resolver against the mock auth API; LOGIN_ATTEMPTS shows which
passwords were actually sent.
"""

from __future__ import annotations

import logging

import pytest

from api_tests import mock_auth_api
from api_tests.config import ApiTestConfig
from api_tests.constants import Messages, Passwords, UserType
from api_tests.credential_store import InMemoryCredentialStore, SignupRecord
from api_tests.errors import (
    AuthenticationExhaustedError,
    NotFoundError,
    SetupOrderError,
    TransientServiceError,
)
from api_tests.mock_auth_api import queue_login_reply, set_password
from api_tests.session_resolver import SessionResolver, get_auth_data

RECORDED_EMAIL = "recorded.customer@yopmail.com"
RECORDED_PHONE = "07123456789"
OTHER_PASSWORD = "Rotated@Elsewhere9"


def _attempted_passwords() -> list[str]:
    return [attempt.get("password") for attempt in mock_auth_api.LOGIN_ATTEMPTS]


def _login_body(message: str = Messages.LOGIN_SUCCESS) -> dict:
    return {
        "message": message,
        "data": {
            "token": "aaa.bbb.ccc",
            "user": {
                "email": RECORDED_EMAIL,
                "userId": "u-1",
                "userType": UserType.CUSTOMER.value,
                "fullName": "Recorded Customer",
                "phoneNumber": RECORDED_PHONE,
                "customer": {"customerId": "c-1"},
            },
        },
    }


@pytest.fixture
def resolver(config, store):
    with SessionResolver(config, store) as resolver:
        yield resolver


def test_primary_password_accepted(resolver, recorded_user):
    descriptor = resolver.resolve_session()

    assert descriptor.email == RECORDED_EMAIL
    assert descriptor.user_id == recorded_user["userId"]
    assert descriptor.user_type == UserType.CUSTOMER.value
    assert descriptor.phone == RECORDED_PHONE
    assert descriptor.token
    assert _attempted_passwords() == [Passwords.VALID]


def test_login_payload_uses_recorded_values(resolver, recorded_user):
    resolver.resolve_session()

    assert mock_auth_api.LOGIN_ATTEMPTS == [
        {
            "email": RECORDED_EMAIL,
            "password": Passwords.VALID,
            "userType": UserType.CUSTOMER.value,
        }
    ]


def test_fallback_password_after_rotation(resolver, recorded_user, caplog):
    set_password(RECORDED_EMAIL, Passwords.VALID_ALT)

    with caplog.at_level(logging.WARNING, logger="api_tests.session_resolver"):
        descriptor = resolver.resolve_session()

    assert descriptor.email == RECORDED_EMAIL
    assert _attempted_passwords() == [Passwords.VALID, Passwords.VALID_ALT]
    assert "Trying fallback password" in caplog.text


def test_both_passwords_rejected(resolver, store, recorded_user):
    set_password(RECORDED_EMAIL, OTHER_PASSWORD)

    with pytest.raises(AuthenticationExhaustedError) as excinfo:
        resolver.resolve_session()

    error = excinfo.value
    assert error.status_code == 401
    assert error.primary_password == Passwords.VALID
    assert error.fallback_password == Passwords.VALID_ALT
    message = str(error)
    assert RECORDED_EMAIL in message
    assert Passwords.VALID in message
    assert Passwords.VALID_ALT in message
    assert Messages.INVALID_CREDENTIALS in message
    # Nothing partial is persisted
    with pytest.raises(NotFoundError):
        store.read_session_descriptor()


def test_no_fallback_on_service_error(resolver, recorded_user):
    queue_login_reply(500, {"message": "Internal server error"})

    with pytest.raises(TransientServiceError) as excinfo:
        resolver.resolve_session()

    assert excinfo.value.status_code == 500
    assert len(mock_auth_api.LOGIN_ATTEMPTS) == 1


def test_fallback_only_on_credential_rejection(resolver, recorded_user):
    queue_login_reply(401, {"message": Messages.INVALID_CREDENTIALS})
    queue_login_reply(503, "Service Unavailable")

    with pytest.raises(TransientServiceError) as excinfo:
        resolver.resolve_session()

    assert excinfo.value.status_code == 503
    assert _attempted_passwords() == [Passwords.VALID, Passwords.VALID_ALT]


def test_malformed_success_body(resolver, recorded_user):
    queue_login_reply(200, "<html>gateway page</html>")

    with pytest.raises(TransientServiceError, match="not JSON"):
        resolver.resolve_session()


def test_success_body_without_token(resolver, recorded_user):
    queue_login_reply(200, {"message": Messages.LOGIN_SUCCESS, "data": {"user": {}}})

    with pytest.raises(TransientServiceError, match="no token"):
        resolver.resolve_session()


def test_unexpected_success_message_is_logged(resolver, recorded_user, caplog):
    queue_login_reply(200, _login_body(message="Welcome back"))

    with caplog.at_level(logging.WARNING, logger="api_tests.session_resolver"):
        descriptor = resolver.resolve_session()

    assert descriptor.token == "aaa.bbb.ccc"
    assert "Unexpected login message" in caplog.text


def test_absent_roles_map_to_none(resolver, recorded_user):
    descriptor = resolver.resolve_session()

    assert descriptor.customer_id == recorded_user["role_ids"][UserType.CUSTOMER.value]
    assert descriptor.merchant_id is None
    assert descriptor.driver_id is None
    assert descriptor.team_id is None


def test_descriptor_is_persisted(resolver, store, recorded_user):
    descriptor = resolver.resolve_session()

    assert store.read_session_descriptor() == descriptor


def test_resolution_without_signup_record(config, store):
    with SessionResolver(config, store) as resolver:
        with pytest.raises(SetupOrderError, match="test_01_signup"):
            resolver.resolve_session()

    assert mock_auth_api.LOGIN_ATTEMPTS == []


@pytest.mark.parametrize("content", ["", "{}", '{"email": "recorded.customer@yopmail.com"}'])
def test_resolution_with_damaged_signup_record(config, store, content):
    store.state_dir.mkdir(parents=True)
    store.signup_path.write_text(content)

    with SessionResolver(config, store) as resolver:
        with pytest.raises(SetupOrderError, match="test_01_signup") as excinfo:
            resolver.resolve_session()

    assert not isinstance(excinfo.value, AuthenticationExhaustedError)
    assert mock_auth_api.LOGIN_ATTEMPTS == []


def test_fallback_equal_to_primary_is_not_retried(mock_auth_api_server, tmp_path, recorded_user, store):
    set_password(RECORDED_EMAIL, OTHER_PASSWORD)
    config = ApiTestConfig(
        base_url=mock_auth_api_server.url,
        fallback_password=Passwords.VALID,
        state_dir=tmp_path / "auth-state",
    )

    with SessionResolver(config, store) as resolver:
        with pytest.raises(AuthenticationExhaustedError):
            resolver.resolve_session()

    assert _attempted_passwords() == [Passwords.VALID]


def test_unreachable_service(tmp_path):
    store = InMemoryCredentialStore()
    config = ApiTestConfig(
        base_url="http://127.0.0.1:1/",
        fallback_password=Passwords.VALID_ALT,
        state_dir=tmp_path,
        request_timeout=2.0,
    )
    store.write_signup_record(
        SignupRecord(
            user_id="u-1",
            system_id=None,
            email=RECORDED_EMAIL,
            username="recorded",
            full_name="Recorded Customer",
            phone_number=RECORDED_PHONE,
            user_type=UserType.CUSTOMER.value,
            account_type=None,
            password=Passwords.VALID,
        )
    )

    with SessionResolver(config, store) as resolver:
        with pytest.raises(TransientServiceError):
            resolver.resolve_session()


def test_get_auth_data(config, store, recorded_user):
    descriptor = get_auth_data(config, store)

    assert descriptor.email == RECORDED_EMAIL
    assert store.read_session_descriptor().token == descriptor.token



def test_fallback_reply_is_normalized(resolver, recorded_user):
    queue_login_reply(401, {"message": Messages.INVALID_CREDENTIALS})
    queue_login_reply(200, _login_body())

    descriptor = resolver.resolve_session()

    assert descriptor.user_id == "u-1"
    assert descriptor.customer_id == "c-1"
    assert descriptor.merchant_id is None
    assert _attempted_passwords() == [Passwords.VALID, Passwords.VALID_ALT]
