"""Error types raised by services and rendered by the app factory.

Route handlers and services raise these instead of building error
responses by hand; :func:`register_error_handlers` turns each into a
``{"message": ...}`` body with the matching status code.
"""

from __future__ import annotations

import logging

from flask import Flask
from pydantic import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from cityflow.extensions import db, jwt

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message}


class ValidationError(ApiError):
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError) -> tuple[dict[str, object], int]:
        db.session.rollback()
        return error.to_dict(), error.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(error: SchemaValidationError) -> tuple[dict[str, object], int]:
        details = [
            {
                "field": ".".join(str(part) for part in item["loc"]),
                "message": item["msg"],
            }
            for item in error.errors()
        ]
        first = details[0] if details else {"field": "", "message": "invalid request body"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        return {"message": message, "details": details}, 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> tuple[dict[str, str], int]:
        return {"message": error.description or error.name}, error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception) -> tuple[dict[str, str], int]:
        db.session.rollback()
        logger.exception("unhandled error: %s", error)
        return {"message": "internal server error"}, 500

    @jwt.unauthorized_loader
    def missing_token(reason: str) -> tuple[dict[str, str], int]:
        return {"message": "Unauthorized"}, 401

    @jwt.invalid_token_loader
    def invalid_token(reason: str) -> tuple[dict[str, str], int]:
        return {"message": f"invalid token: {reason}"}, 401

    @jwt.expired_token_loader
    def expired_token(_header: dict, _payload: dict) -> tuple[dict[str, str], int]:
        return {"message": "token has expired"}, 401
