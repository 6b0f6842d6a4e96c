from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from cityflow.errors import ForbiddenError, UnauthorizedError


def require_roles(*required_roles: str) -> Callable[..., Any]:
    required_set = set(required_roles)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            verify_jwt_in_request()
            claims = get_jwt()
            roles = set(claims.get("roles", []))

            if not required_set.issubset(roles):
                raise ForbiddenError("Forbidden")

            return func(*args, **kwargs)

        return wrapper

    return decorator


def require_permissions(*required_permissions: str) -> Callable[..., Any]:
    required_set = set(required_permissions)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            verify_jwt_in_request()
            claims = get_jwt()
            permissions = set(claims.get("permissions", []))

            if not required_set.issubset(permissions):
                raise ForbiddenError("Forbidden")

            return func(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> int:
    """Return the user id carried by the verified access token."""
    raw_identity = get_jwt_identity()
    try:
        return int(raw_identity)
    except (TypeError, ValueError):
        raise UnauthorizedError("invalid token identity") from None
