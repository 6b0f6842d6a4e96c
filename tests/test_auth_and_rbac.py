from __future__ import annotations

from cityflow.extensions import db
from cityflow.models import User


def _bootstrap_admin(client):
    return client.post(
        "/api/v1/auth/bootstrap-admin",
        json={"name": "Admin", "email": "admin1@example.com", "password": "Admin123!"},
    )


def _admin_headers(client) -> dict[str, str]:
    _bootstrap_admin(client)
    login = client.post(
        "/api/v1/auth/login",
        json={"email": "admin1@example.com", "password": "Admin123!"},
    )
    return {"Authorization": f"Bearer {login.get_json()['access_token']}"}


def test_bootstrap_admin_only_once(client):
    first = _bootstrap_admin(client)
    assert first.status_code == 201
    assert first.get_json()["user"]["roles"] == ["admin"]

    second = _bootstrap_admin(client)
    assert second.status_code == 409


def test_register_and_login(client):
    register_response = client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "Dana@Example.com", "password": "Staff123!"},
    )
    assert register_response.status_code == 201
    register_data = register_response.get_json()
    assert register_data["user"]["email"] == "dana@example.com"
    assert register_data["user"]["roles"] == ["field_staff"]

    login_response = client.post(
        "/api/v1/auth/login",
        json={"email": "dana@example.com", "password": "Staff123!"},
    )
    assert login_response.status_code == 200
    login_data = login_response.get_json()
    assert "access_token" in login_data
    assert "refresh_token" in login_data


def test_register_rejects_duplicate_email(client):
    body = {"name": "Dana", "email": "dana@example.com", "password": "Staff123!"}
    assert client.post("/api/v1/auth/register", json=body).status_code == 201

    response = client.post("/api/v1/auth/register", json=body)
    assert response.status_code == 409


def test_register_rejects_short_password(client):
    response = client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert response.get_json()["message"].startswith("password")


def test_login_rejects_wrong_password(client):
    client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "Staff123!"},
    )
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "dana@example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401


def test_refresh_and_me(client):
    register = client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "Staff123!"},
    ).get_json()

    refreshed = client.post(
        "/api/v1/auth/refresh",
        headers={"Authorization": f"Bearer {register['refresh_token']}"},
    )
    assert refreshed.status_code == 200
    access_token = refreshed.get_json()["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.status_code == 200
    assert me.get_json()["email"] == "dana@example.com"


def test_protected_endpoint_requires_token(client):
    response = client.get("/api/v1/batch-orders")
    assert response.status_code == 401
    assert response.get_json() == {"message": "Unauthorized"}


def test_protected_endpoint_rejects_garbage_token(client):
    response = client.get(
        "/api/v1/batch-orders", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_field_staff_can_read_but_not_manage_suppliers(client):
    register = client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "Staff123!"},
    )
    headers = {"Authorization": f"Bearer {register.get_json()['access_token']}"}

    assert client.get("/api/v1/suppliers", headers=headers).status_code == 200

    response = client.post("/api/v1/suppliers", json={"name": "Acme"}, headers=headers)
    assert response.status_code == 403
    assert response.get_json() == {"message": "Forbidden"}


def test_user_listing_requires_permission(client, manager_headers):
    response = client.get("/api/v1/auth/users", headers=manager_headers)
    assert response.status_code == 403


def test_admin_can_list_users(client):
    headers = _admin_headers(client)

    response = client.get("/api/v1/auth/users", headers=headers)
    assert response.status_code == 200
    data = response.get_json()
    assert any(item["email"] == "admin1@example.com" for item in data["items"])


def test_role_assignment_requires_admin(client, manager_user, manager_headers):
    response = client.post(
        f"/api/v1/auth/users/{manager_user.id}/roles",
        json={"roles": ["admin"]},
        headers=manager_headers,
    )
    assert response.status_code == 403


def test_admin_can_assign_roles(client):
    headers = _admin_headers(client)
    client.post(
        "/api/v1/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "Staff123!"},
    )
    user = db.session.query(User).filter_by(email="dana@example.com").one()

    response = client.post(
        f"/api/v1/auth/users/{user.id}/roles",
        json={"roles": ["Manager", "field_staff"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.get_json()["roles"] == ["field_staff", "manager"]

    db.session.expire_all()
    refreshed_user = db.session.get(User, user.id)
    assert sorted(role.name for role in refreshed_user.roles) == ["field_staff", "manager"]


def test_admin_role_assignment_rejects_unknown_roles(client):
    headers = _admin_headers(client)
    user = db.session.query(User).filter_by(email="admin1@example.com").one()

    response = client.post(
        f"/api/v1/auth/users/{user.id}/roles",
        json={"roles": ["superuser"]},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.get_json()["roles"] == ["superuser"]
