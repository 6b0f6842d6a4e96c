from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import EmailStr, Field

from .base import RequestSchema

BatchOrderStatus = Literal["draft", "pending", "ordered", "received", "cancelled"]
UrgencyLevel = Literal["low", "normal", "high", "critical"]

MAX_LINE_QUANTITY = 1_000_000


class SupplierCreate(RequestSchema):
    name: str = Field(max_length=250)
    contact_name: str | None = Field(default=None, max_length=250)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=500)
    website: str | None = Field(default=None, max_length=500)
    notes: str | None = None


class SupplierUpdate(RequestSchema):
    name: str | None = Field(default=None, max_length=250)
    contact_name: str | None = Field(default=None, max_length=250)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=500)
    website: str | None = Field(default=None, max_length=500)
    notes: str | None = None
    is_active: bool | None = None


class PartCreate(RequestSchema):
    part_number: str = Field(max_length=100)
    name: str = Field(max_length=250)
    category: str = Field(max_length=100)
    supplier_id: int
    description: str | None = None
    manufacturer: str | None = Field(default=None, max_length=250)
    unit_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    minimum_order_quantity: int = Field(default=1, ge=1)
    lead_time_days: int = Field(default=7, ge=0)


class PartUpdate(RequestSchema):
    part_number: str | None = Field(default=None, max_length=100)
    name: str | None = Field(default=None, max_length=250)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = None
    manufacturer: str | None = Field(default=None, max_length=250)
    unit_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    minimum_order_quantity: int | None = Field(default=None, ge=1)
    lead_time_days: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class BatchOrderCreate(RequestSchema):
    supplier_id: int
    notes: str | None = None
    expected_delivery_date: datetime | None = None


class BatchOrderUpdate(RequestSchema):
    notes: str | None = None
    expected_delivery_date: datetime | None = None
    actual_delivery_date: datetime | None = None
    order_date: datetime | None = None
    status: BatchOrderStatus | None = None


class PartOrderCreate(RequestSchema):
    batch_order_id: int
    part_id: int
    quantity: int = Field(strict=True, ge=1, le=MAX_LINE_QUANTITY)
    request_reason: str
    urgency_level: UrgencyLevel = "normal"
    asset_id: int | None = None
    work_order_number: str | None = Field(default=None, max_length=100)
