import pytest
from fastapi.testclient import TestClient

from src.api.config import Settings
from src.api.database import Database
from src.api.main import create_app
from src.api.storage import DatabaseStorage

TEST_PASSWORD = "password123"


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", secret_key="test-secret", log_level="WARNING")


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def storage(database):
    session = database.session()
    yield DatabaseStorage(session)
    session.close()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register(client, email, password=TEST_PASSWORD, **extra):
    return client.post("/api/auth/register", json={"email": email, "password": password, **extra})


@pytest.fixture
def make_user(client):
    """Register a user and return (user json, auth headers)."""

    def _make_user(email="alice@example.com", **extra):
        response = register(client, email, **extra)
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _make_user


@pytest.fixture
def auth_headers(make_user):
    _, headers = make_user()
    return headers
