"""Pytest fixtures for offline testing against the mock auth API."""
import threading
import time

import httpx
import pytest
from werkzeug.serving import make_server

from api_tests.config import ApiTestConfig
from api_tests.constants import Passwords, UserType
from api_tests.credential_store import FileCredentialStore, SignupRecord
from api_tests.mock_auth_api import create_mock_auth_app, reset_mock_state, seed_user

RECORDED_EMAIL = "recorded.customer@yopmail.com"
RECORDED_PHONE = "07123456789"


class MockAuthAPIServer:
    """Wrapper for running the mock auth API in a background thread."""

    def __init__(self, host="127.0.0.1", port=0):
        self.host = host
        self.port = port
        self.app = create_mock_auth_app()
        self.server = None
        self.thread = None

    def start(self):
        """Start the mock API server in a background thread."""
        self.server = make_server(self.host, self.port, self.app, threaded=True)
        # Port 0 asks the OS for a free port
        self.port = self.server.server_port
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            try:
                httpx.get(f"http://{self.host}:{self.port}/", timeout=0.5)
                break
            except httpx.HTTPError:
                time.sleep(0.1)

    def stop(self):
        """Stop the mock API server."""
        if self.server:
            self.server.shutdown()
            self.thread.join(timeout=5)

    @property
    def url(self):
        """Base URL the endpoint paths are appended to."""
        return f"http://{self.host}:{self.port}/"


@pytest.fixture(scope="function")
def mock_auth_api_server():
    """Fixture that provides a running mock auth API server.

    Usage:
        def test_something(mock_auth_api_server):
            base_url = mock_auth_api_server.url
    """
    reset_mock_state()
    server = MockAuthAPIServer()
    server.start()

    yield server

    server.stop()
    reset_mock_state()


@pytest.fixture
def config(mock_auth_api_server, tmp_path):
    """Configuration pointing at the mock server, with state in tmp_path."""
    return ApiTestConfig(
        base_url=mock_auth_api_server.url,
        fallback_password=Passwords.VALID_ALT,
        state_dir=tmp_path / "auth-state",
        request_timeout=5.0,
    )


@pytest.fixture
def store(config):
    return FileCredentialStore(config.state_dir)


@pytest.fixture
def recorded_user(store):
    """A customer that exists on the mock and has a signup record on disk.

    Returns the mock's account dict.
    """
    account = seed_user(
        RECORDED_EMAIL,
        Passwords.VALID,
        user_type=UserType.CUSTOMER.value,
        phone_number=RECORDED_PHONE,
        full_name="Recorded Customer",
    )
    store.write_signup_record(
        SignupRecord(
            user_id=account["userId"],
            system_id=str(account["id"]),
            email=RECORDED_EMAIL,
            username=account["username"],
            full_name=account["fullName"],
            phone_number=RECORDED_PHONE,
            user_type=UserType.CUSTOMER.value,
            account_type=account["accountType"],
            password=Passwords.VALID,
            roles=[UserType.CUSTOMER.value],
        )
    )
    return account
