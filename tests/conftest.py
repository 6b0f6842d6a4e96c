from __future__ import annotations

from decimal import Decimal

import pytest

from cityflow import create_app
from cityflow.extensions import db
from cityflow.models import Part, Role, Supplier, User
from cityflow.security.password import hash_password
from cityflow.services.auth_service import seed_roles_permissions


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    LOG_LEVEL = "WARNING"
    MAIL_BACKEND = "log"
    MAIL_SENDER = "noreply@cityflow.example.com"
    BATCH_NUMBER_MAX_ATTEMPTS = 5


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_roles_permissions()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def create_user_with_role(email: str, role_name: str, password: str = "Password123!") -> User:
    role = db.session.query(Role).filter_by(name=role_name).one()
    user = User(
        name=email.split("@")[0],
        email=email,
        password_hash=hash_password(password),
        is_active=True,
    )
    user.roles.append(role)
    db.session.add(user)
    db.session.commit()
    db.session.refresh(user)
    return user


def login(client, email: str, password: str = "Password123!") -> dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture()
def manager_user(app) -> User:
    return create_user_with_role("manager@example.com", "manager")


@pytest.fixture()
def staff_user(app) -> User:
    return create_user_with_role("staff@example.com", "field_staff")


@pytest.fixture()
def manager_headers(client, manager_user) -> dict[str, str]:
    return login(client, manager_user.email)


@pytest.fixture()
def staff_headers(client, staff_user) -> dict[str, str]:
    return login(client, staff_user.email)


@pytest.fixture()
def supplier(app) -> Supplier:
    row = Supplier(name="Acme Traffic Supply", email="sales@acme.example.com", is_active=True)
    db.session.add(row)
    db.session.commit()
    db.session.refresh(row)
    return row


@pytest.fixture()
def part(app, supplier) -> Part:
    row = Part(
        part_number="TL-100",
        name="Signal lamp",
        category="traffic",
        unit_price=Decimal("10.00"),
        supplier_id=supplier.id,
        is_active=True,
    )
    db.session.add(row)
    db.session.commit()
    db.session.refresh(row)
    return row
