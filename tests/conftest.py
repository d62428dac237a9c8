"""
Pytest configuration and fixtures for the storefront API tests.
"""

import sys
from pathlib import Path

import mongomock
import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import create_app
from config import Settings


TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


# =============================================================================
# Settings and database
# =============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    """Return settings configured for testing."""
    return Settings(
        mongo_db="storefront_test",
        jwt_secret_key=TEST_SECRET,
        static_dir=str(tmp_path / "public"),
        log_level="WARNING",
    )


@pytest.fixture
def mongo_client():
    """In-memory MongoDB client."""
    return mongomock.MongoClient()


@pytest.fixture
def db(mongo_client, settings):
    return mongo_client[settings.mongo_db]


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(settings, mongo_client):
    application = create_app(settings, client=mongo_client)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """HTTP client with the app lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def user_payload() -> dict:
    return {
        "name": "Ada Lovelace",
        "username": "ada",
        "email": "ada@example.com",
        "password": "Analytical1!",
    }


@pytest.fixture
def user(client, user_payload) -> dict:
    """A registered user."""
    response = client.post("/user/add", json=user_payload)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def token(client, user, user_payload) -> str:
    response = client.post(
        "/user/login",
        json={"email": user_payload["email"], "password": user_payload["password"]},
    )
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def category(client, auth_headers) -> dict:
    response = client.post(
        "/category/add",
        json={"name": "Stationery", "description": "Paper and pens"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    return response.json()
