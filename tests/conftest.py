"""Fixtures shared by the API tests."""

from fastapi.testclient import TestClient
import pytest

from waitlist import main
from waitlist.config import get_settings
from waitlist.routers import contacts, forms, recaptcha, webhooks
from tests.helpers import make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    main.app.dependency_overrides[get_settings] = lambda: settings
    for router_module in (contacts, recaptcha, webhooks):
        router_module.limiter.reset()
    forms.spent_tokens.reset()
    yield main.app
    main.app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
