from __future__ import annotations

from pydantic import EmailStr, Field, field_validator

from .base import RequestSchema


class RegisterRequest(RequestSchema):
    name: str = Field(max_length=250)
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(RequestSchema):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class RoleAssignmentRequest(RequestSchema):
    roles: list[str] = Field(min_length=1)
