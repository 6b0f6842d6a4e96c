from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import EmailStr, Field, model_validator

from .base import RequestSchema

ComplaintStatus = Literal["pending", "in_progress", "resolved"]


class InventoryItemCreate(RequestSchema):
    name: str = Field(max_length=250)
    quantity: int = Field(ge=0)
    description: str | None = None


class EquipmentRequestCreate(RequestSchema):
    requestor_email: EmailStr
    inventory_id: int
    quantity: int = Field(ge=1)
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_dates(self) -> "EquipmentRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EquipmentRequestReview(RequestSchema):
    status: Literal["approved", "denied"]
    denial_reason: str | None = None

    @model_validator(mode="after")
    def _require_denial_reason(self) -> "EquipmentRequestReview":
        if self.status == "denied" and not self.denial_reason:
            raise ValueError("denial_reason is required when denying a request")
        return self


class ComplaintCreate(RequestSchema):
    description: str
    location: str = Field(max_length=500)
    name: str | None = Field(default=None, max_length=250)
    email: EmailStr | None = None
    image_url: str | None = Field(default=None, max_length=1000)


class ComplaintUpdate(RequestSchema):
    status: ComplaintStatus


class AssetCreate(RequestSchema):
    name: str = Field(max_length=250)
    lng: Decimal = Field(ge=-180, le=180)
    lat: Decimal = Field(ge=-90, le=90)
    description: str | None = None
    color: str | None = Field(default=None, max_length=16)


class AssetUpdate(RequestSchema):
    name: str | None = Field(default=None, max_length=250)
    lng: Decimal | None = Field(default=None, ge=-180, le=180)
    lat: Decimal | None = Field(default=None, ge=-90, le=90)
    description: str | None = None
    color: str | None = Field(default=None, max_length=16)


class MaintenanceLogCreate(RequestSchema):
    title: str = Field(max_length=250)
    description: str
    job_type: str = Field(max_length=100)
    technician: str = Field(max_length=250)
