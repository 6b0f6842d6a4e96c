import logging

from flask import Blueprint, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt_identity,
    jwt_required,
)
from sqlalchemy.exc import IntegrityError

from cityflow.models import User
from cityflow.schemas.auth import LoginRequest, RegisterRequest, RoleAssignmentRequest
from cityflow.security.decorators import current_user_id, require_permissions, require_roles
from cityflow.services.auth_service import (
    DEFAULT_ROLE,
    any_users_exist,
    assign_roles_to_user,
    authenticate_user,
    build_auth_claims,
    create_user,
    find_role_by_name,
    find_user_by_id,
    list_users,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/bootstrap-admin")
def bootstrap_admin() -> tuple[dict[str, object], int]:
    payload = RegisterRequest.model_validate(request.get_json(silent=True) or {})

    if any_users_exist():
        return {"message": "bootstrap already completed"}, 409

    admin_role = find_role_by_name("admin")
    if admin_role is None:
        return {"message": "admin role not found; run migrations"}, 500

    try:
        user = create_user(payload.name, payload.email, payload.password, roles=[admin_role])
    except IntegrityError:
        return {"message": "email already exists"}, 409

    logger.info("bootstrapped admin user %s", user.email)
    return _build_token_response(user), 201


@auth_bp.post("/register")
def register() -> tuple[dict[str, object], int]:
    payload = RegisterRequest.model_validate(request.get_json(silent=True) or {})

    role = find_role_by_name(DEFAULT_ROLE)
    if role is None:
        return {"message": "role not found; run migrations"}, 500

    try:
        user = create_user(payload.name, payload.email, payload.password, roles=[role])
    except IntegrityError:
        return {"message": "email already exists"}, 409

    return _build_token_response(user), 201


@auth_bp.post("/login")
def login() -> tuple[dict[str, object], int]:
    payload = LoginRequest.model_validate(request.get_json(silent=True) or {})

    user = authenticate_user(payload.email, payload.password)
    if user is None:
        return {"message": "invalid credentials"}, 401

    return _build_token_response(user), 200


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
def refresh() -> tuple[dict[str, str], int]:
    user = find_user_by_id(current_user_id())
    if user is None or not user.is_active:
        return {"message": "user not found or inactive"}, 401

    claims = build_auth_claims(user)
    access_token = create_access_token(identity=str(user.id), additional_claims=claims)
    return {"access_token": access_token}, 200


@auth_bp.get("/me")
@jwt_required()
def me() -> tuple[dict[str, object], int]:
    user = find_user_by_id(current_user_id())
    if user is None:
        return {"message": "user not found"}, 404

    return _build_user_response(user), 200


@auth_bp.get("/users")
@require_permissions("user.read")
def get_users() -> tuple[dict[str, list[dict[str, object]]], int]:
    return {"items": [_build_user_response(user) for user in list_users()]}, 200


@auth_bp.post("/users/<int:user_id>/roles")
@require_roles("admin")
def update_user_roles(user_id: int) -> tuple[dict[str, object], int]:
    payload = RoleAssignmentRequest.model_validate(request.get_json(silent=True) or {})

    normalized = sorted({role.strip().lower() for role in payload.roles if role.strip()})
    roles = []
    missing_roles = []
    for role_name in normalized:
        role = find_role_by_name(role_name)
        if role is None:
            missing_roles.append(role_name)
        else:
            roles.append(role)

    if missing_roles or not roles:
        return {"message": "unknown roles", "roles": missing_roles}, 400

    user = find_user_by_id(user_id)
    if user is None:
        return {"message": "user not found"}, 404

    updated_user = assign_roles_to_user(user, roles)
    logger.info(
        "user %s set roles of user %s to %s",
        get_jwt_identity(),
        updated_user.id,
        ", ".join(normalized),
    )
    return _build_user_response(updated_user), 200


def _build_token_response(user: User) -> dict[str, object]:
    claims = build_auth_claims(user)
    access_token = create_access_token(identity=str(user.id), additional_claims=claims)
    refresh_token = create_refresh_token(identity=str(user.id))
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "user": _build_user_response(user),
    }


def _build_user_response(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_active": user.is_active,
        "roles": sorted(role.name for role in user.roles),
    }
