"""
Fixtures for the journey suite.

These fixtures provide:
- Configuration from the environment (BASE_URL is mandatory)
- The credential store shared with earlier pytest invocations
- An HTTP client per module
- A resolved session for every journey after signup
"""
from pathlib import Path

import pytest

from api_tests.auth_client import AuthApiClient
from api_tests.config import ApiTestConfig, get_settings
from api_tests.credential_store import FileCredentialStore, SessionDescriptor, SignupRecord
from api_tests.session_resolver import SessionResolver
from api_tests.suite_order import order_key

JOURNEYS_DIR = Path(__file__).resolve().parent


def pytest_collection_modifyitems(session, config, items):
    """Run journey modules in declared order, whatever order pytest found them in."""
    journeys = [item for item in items if JOURNEYS_DIR in Path(str(item.fspath)).parents]
    if not journeys:
        return
    others = [item for item in items if item not in journeys]
    # sorted() is stable: tests keep their in-file order within a module
    items[:] = others + sorted(journeys, key=lambda item: order_key(str(item.fspath)))


@pytest.fixture(scope="session")
def settings() -> ApiTestConfig:
    return get_settings()


@pytest.fixture(scope="session")
def credential_store(settings) -> FileCredentialStore:
    return FileCredentialStore(settings.state_dir)


@pytest.fixture(scope="module")
def auth_client(settings):
    with AuthApiClient.from_config(settings) as client:
        yield client


@pytest.fixture(scope="module")
def signup_record(credential_store) -> SignupRecord:
    """The identity registered by journey 01; fails fast if signup never ran."""
    return credential_store.read_signup_record()


@pytest.fixture(scope="module")
def auth_data(settings, credential_store, auth_client) -> SessionDescriptor:
    """Fresh session for the recorded user, re-resolved once per module."""
    resolver = SessionResolver(settings, credential_store, client=auth_client)
    return resolver.resolve_session()
