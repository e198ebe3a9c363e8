"""Tests for the /api/auth endpoints."""

from conftest import TEST_PASSWORD, register


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Healthy"}


def test_register_returns_user_and_token(client):
    response = register(client, "alice@example.com", firstName="Alice", lastName="Liddell")
    assert response.status_code == 201

    body = response.json()
    assert body["message"] == "User created successfully"
    assert body["token"]
    user = body["user"]
    assert user["email"] == "alice@example.com"
    assert user["firstName"] == "Alice"
    assert user["lastName"] == "Liddell"
    assert "createdAt" in user and "updatedAt" in user
    assert "password" not in user
    assert "passwordHash" not in user
    assert "password_hash" not in user


def test_register_duplicate_email(client):
    assert register(client, "alice@example.com").status_code == 201
    response = register(client, "Alice@Example.com")
    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email"


def test_register_validation_errors(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "123"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request data"
    fields = {error["field"] for error in body["errors"]}
    assert fields == {"email", "password"}


def test_login_success(client):
    user = register(client, "alice@example.com").json()["user"]
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["id"] == user["id"]

    me = client.get("/api/auth/user", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
    assert response.status_code == 404
    assert response.json()["message"] == "USER_NOT_EXISTS"


def test_login_wrong_password(client):
    register(client, "alice@example.com")
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["message"] == "WRONG_CREDENTIALS"


def test_current_user_requires_token(client):
    response = client.get("/api/auth/user")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

    response = client.get("/api/auth/user", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_update_profile(client, make_user):
    user, headers = make_user(firstName="Alice")
    response = client.put(
        "/api/auth/user",
        json={"lastName": "Liddell", "profileImageUrl": "https://example.com/a.png"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user["id"]
    assert body["firstName"] == "Alice"
    assert body["lastName"] == "Liddell"
    assert body["profileImageUrl"] == "https://example.com/a.png"
    assert body["email"] == user["email"]
