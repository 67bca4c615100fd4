"""
Shared fixtures for API tests

Routers build their services inline, so tests patch the service or
repository class in the router module and drive the app through TestClient.
"""
import pytest
from fastapi.testclient import TestClient

from readymix.core.auth import get_current_user
from readymix.core.rate_limit import rate_limiter
from readymix.main import app


@pytest.fixture(autouse=True)
def clean_app():
    rate_limiter.reset()
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def login():
    """login(user) makes every request run as that user"""
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login
