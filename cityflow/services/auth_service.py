from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from cityflow.extensions import db
from cityflow.models import Permission, Role, User
from cityflow.security.password import hash_password, verify_password

DEFAULT_ROLE = "field_staff"


def find_user_by_email(email: str) -> User | None:
    stmt = (
        select(User)
        .where(User.email == email.lower().strip())
        .options(selectinload(User.roles).selectinload(Role.permissions))
    )
    return db.session.execute(stmt).scalar_one_or_none()


def find_user_by_id(user_id: int) -> User | None:
    stmt = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.roles).selectinload(Role.permissions))
    )
    return db.session.execute(stmt).scalar_one_or_none()


def authenticate_user(email: str, password: str) -> User | None:
    user = find_user_by_email(email)
    if not user or not user.is_active:
        return None

    if not verify_password(user.password_hash, password):
        return None

    return user


def any_users_exist() -> bool:
    return db.session.scalar(select(User.id).limit(1)) is not None


def find_role_by_name(name: str) -> Role | None:
    stmt = select(Role).where(Role.name == name)
    return db.session.execute(stmt).scalar_one_or_none()


def create_user(name: str, email: str, password: str, roles: list[Role] | None = None) -> User:
    user = User(
        name=name,
        email=email.lower().strip(),
        password_hash=hash_password(password),
        is_active=True,
    )
    if roles:
        user.roles.extend(roles)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise

    db.session.refresh(user)
    return user


def assign_roles_to_user(user: User, roles: list[Role]) -> User:
    user.roles = roles
    db.session.commit()
    db.session.refresh(user)
    return user


def list_users() -> list[User]:
    stmt = select(User).options(selectinload(User.roles)).order_by(User.id.asc())
    return list(db.session.execute(stmt).scalars().all())


def build_auth_claims(user: User) -> dict[str, list[str]]:
    roles = sorted({role.name for role in user.roles})
    permissions = sorted(
        {
            permission.code
            for role in user.roles
            for permission in role.permissions
        }
    )
    return {"roles": roles, "permissions": permissions}


ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": (
        "procurement.read",
        "procurement.manage",
        "supplier.manage",
        "inventory.manage",
        "request.read",
        "request.review",
        "complaint.read",
        "complaint.manage",
        "asset.read",
        "asset.manage",
        "user.read",
    ),
    "manager": (
        "procurement.read",
        "procurement.manage",
        "supplier.manage",
        "inventory.manage",
        "request.read",
        "request.review",
        "complaint.read",
        "complaint.manage",
        "asset.read",
        "asset.manage",
    ),
    "field_staff": (
        "procurement.read",
        "procurement.manage",
        "request.read",
        "complaint.read",
        "asset.read",
    ),
}


def seed_roles_permissions() -> None:
    """Create any missing roles and permissions and link them. Safe to re-run."""
    existing_permissions = {p.code: p for p in db.session.execute(select(Permission)).scalars()}
    for code in ROLE_PERMISSIONS["admin"]:
        if code not in existing_permissions:
            existing_permissions[code] = Permission(code=code)
            db.session.add(existing_permissions[code])

    existing_roles = {r.name: r for r in db.session.execute(select(Role)).scalars()}
    for role_name, codes in ROLE_PERMISSIONS.items():
        role = existing_roles.get(role_name)
        if role is None:
            role = Role(name=role_name)
            db.session.add(role)
        linked = {permission.code for permission in role.permissions}
        for code in codes:
            if code not in linked:
                role.permissions.append(existing_permissions[code])

    db.session.commit()
