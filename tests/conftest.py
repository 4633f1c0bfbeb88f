import os

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator, Dict, Any
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from travelease import config
from travelease.app import app as fastapi_app
from travelease.utils.security import require_user
from tests.fakes import FakeStripe, InMemoryBookingStore

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "metadata": {"full_name": "Test User"},
        "token": "fake-token",
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Configuration Stripe factice (aucune vraie clé, aucun appel réseau)
@pytest.fixture(autouse=True)
def _stripe_config(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_PUBLISHABLE_KEY", "pk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "DEFAULT_CURRENCY", "usd")

# Aucun test ne doit joindre Supabase
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("travelease.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("travelease.infra.supabase_client.get_service_supabase", lambda: MagicMock())

@pytest.fixture
def booking_store(monkeypatch) -> InMemoryBookingStore:
    """Table 'bookings' en mémoire à la place du repository Supabase."""
    return InMemoryBookingStore().install(monkeypatch)

@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    """PaymentIntents en mémoire à la place de stripe.PaymentIntent.retrieve."""
    return FakeStripe().install(monkeypatch)

@pytest.fixture
def webhook_secret() -> str:
    return WEBHOOK_SECRET
