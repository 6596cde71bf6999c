from typing import Dict
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from cleanapi.api.dependencies import get_storage_adapter
from cleanapi.api.main import app
from cleanapi.storage.repositories.audit_repository import AuditRepository
from cleanapi.storage.repositories.user_repository import UserRepository

PASSWORD = "secret123"


@pytest.fixture
def client():
    # Each client gets a fresh in-memory database and freshly seeded policies
    with TestClient(app) as client:
        yield client


def register_and_login(client: TestClient, email: str = None) -> Dict[str, str]:
    email = email or f"user-{uuid4().hex[:8]}@example.com"
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, "first_name": "Test", "last_name": "User"},
    )
    assert response.status_code == 201, response.text
    user = response.json()

    response = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    tokens = response.json()
    return {
        "id": user["id"],
        "email": email,
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
    }


def auth_headers(account: Dict[str, str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {account['access_token']}"}


def promote_to_admin(user_id: str) -> None:
    with get_storage_adapter().get_session() as session:
        UserRepository().update(session, user_id, {"role": "admin"})


def test_register_and_login(client):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "Alice@Example.com", "password": PASSWORD},
    )
    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert "hashed_password" not in user

    # Duplicate email
    response = client.post("/api/v1/auth/register", json={"email": "alice@example.com", "password": PASSWORD})
    assert response.status_code == 409
    assert response.json()["code"] == "USER_ALREADY_EXISTS"

    response = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 15 * 60
    assert body["user"]["id"] == user["id"]

    response = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "wrong-one"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_register_validation(client):
    response = client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": PASSWORD})
    assert response.status_code == 422

    response = client.post("/api/v1/auth/register", json={"email": "short@example.com", "password": "123"})
    assert response.status_code == 422


def test_refresh_token(client):
    account = register_and_login(client)

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": account["refresh_token"]})
    assert response.status_code == 200
    refreshed = response.json()

    response = client.get("/api/v1/products/", headers={"Authorization": f"Bearer {refreshed['access_token']}"})
    assert response.status_code == 200

    # An access token cannot be used to refresh
    response = client.post("/api/v1/auth/refresh", json={"refresh_token": account["access_token"]})
    assert response.status_code == 401

    # A refresh token cannot be used as an access token
    response = client.get("/api/v1/products/", headers={"Authorization": f"Bearer {account['refresh_token']}"})
    assert response.status_code == 401


def test_unauthenticated_requests(client):
    response = client.get("/api/v1/products/")
    assert response.status_code == 401
    assert response.json()["code"] == "MISSING_TOKEN"

    response = client.get("/api/v1/users/", headers={"Authorization": "Bearer invalid.token.value"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


def test_user_product_crud(client):
    account = register_and_login(client)
    headers = auth_headers(account)

    # Create
    response = client.post(
        "/api/v1/products/",
        json={"name": "Widget", "description": "A widget", "price": 9.99, "stock": 5, "category": "tools"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    product = response.json()
    assert product["created_by"] == account["id"]
    product_id = product["id"]

    # Read
    response = client.get(f"/api/v1/products/{product_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Widget"

    # List and category
    response = client.get("/api/v1/products/", headers=headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1

    response = client.get("/api/v1/products/category/tools", headers=headers)
    assert [p["id"] for p in response.json()] == [product_id]
    assert client.get("/api/v1/products/category/toys", headers=headers).json() == []

    # Update
    response = client.put(f"/api/v1/products/{product_id}", json={"price": 12.5}, headers=headers)
    assert response.status_code == 200
    assert response.json()["price"] == 12.5
    assert response.json()["name"] == "Widget"

    # Invalid payload
    response = client.post("/api/v1/products/", json={"name": "Free", "price": 0}, headers=headers)
    assert response.status_code == 422

    # Delete
    response = client.delete(f"/api/v1/products/{product_id}", headers=headers)
    assert response.status_code == 204

    response = client.get(f"/api/v1/products/{product_id}", headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"


def test_product_access_is_audited(client):
    account = register_and_login(client)
    headers = auth_headers(account)

    product_id = client.post("/api/v1/products/", json={"name": "Gadget", "price": 3.0}, headers=headers).json()["id"]
    client.get(f"/api/v1/products/{product_id}", headers=headers)

    with get_storage_adapter().get_session() as session:
        entries = AuditRepository().list_by_user(session, account["id"])
        actions = sorted(entry.action for entry in entries)
        assert actions == ["create", "read"]
        assert all(entry.resource == "product" for entry in entries)


def test_user_role_cannot_manage_users(client):
    account = register_and_login(client)
    headers = auth_headers(account)

    response = client.get("/api/v1/users/", headers=headers)
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "PERMISSION_DENIED"
    assert "no matching policy found" in body["error"]

    # Not even their own record: the default policies grant users nothing on users
    response = client.get(f"/api/v1/users/{account['id']}", headers=headers)
    assert response.status_code == 403


def test_admin_manages_users(client):
    admin = register_and_login(client)
    promote_to_admin(admin["id"])
    headers = auth_headers(admin)
    other = register_and_login(client)

    response = client.get("/api/v1/users/", headers=headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = client.put(f"/api/v1/users/{other['id']}", json={"first_name": "Renamed"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["first_name"] == "Renamed"

    response = client.put(f"/api/v1/users/{other['id']}", json={"role": "superuser"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "ROLE_NOT_FOUND"

    response = client.delete(f"/api/v1/users/{other['id']}", headers=headers)
    assert response.status_code == 204

    # A deleted user's token no longer authenticates
    response = client.get("/api/v1/products/", headers=auth_headers(other))
    assert response.status_code == 401


def test_deactivated_user_is_rejected(client):
    admin = register_and_login(client)
    promote_to_admin(admin["id"])
    other = register_and_login(client)

    response = client.put(f"/api/v1/users/{other['id']}", json={"is_active": False}, headers=auth_headers(admin))
    assert response.status_code == 200

    response = client.get("/api/v1/products/", headers=auth_headers(other))
    assert response.status_code == 401
    assert response.json()["code"] == "USER_DEACTIVATED"

    response = client.post("/api/v1/auth/login", json={"email": other["email"], "password": PASSWORD})
    assert response.status_code == 401
