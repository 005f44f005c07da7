"""
Shared test configuration.
Services are built on in-memory fakes; no Firebase, Firestore or MongoDB access.
"""
import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("RECONCILE_ON_STARTUP", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from onboarding.config import Settings  # noqa: E402
from onboarding.db import build_services  # noqa: E402
from onboarding.main import app  # noqa: E402
from tests.fakes import FakeIdentityProvider, FakeNotifier, InMemoryDocumentStore  # noqa: E402


@pytest.fixture
def test_settings():
    return Settings(debug=True, jwt_secret_key="test-secret-key", store_retry_backoff_seconds=0)


@pytest.fixture
def store():
    s = InMemoryDocumentStore()
    s.add_class("class-cs101", "CS101")
    s.add_class("class-cs102", "CS102")
    return s


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def services(test_settings, store, identity, notifier):
    return build_services(test_settings, store, identity, notifier)


@pytest.fixture
def client(services):
    """HTTP test client wired to the in-memory services (lifespan not run)."""
    app.state.services = services
    yield TestClient(app)
    del app.state.services
