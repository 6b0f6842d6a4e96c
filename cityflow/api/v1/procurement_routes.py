from __future__ import annotations

import logging
from decimal import Decimal

from flask import Blueprint, request
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError

from cityflow.api.v1.serializers import iso_datetime
from cityflow.errors import ValidationError
from cityflow.extensions import db
from cityflow.models import BatchOrder, Part, PartOrder, Supplier
from cityflow.schemas.procurement import (
    BatchOrderCreate,
    BatchOrderUpdate,
    PartCreate,
    PartOrderCreate,
    PartUpdate,
    SupplierCreate,
    SupplierUpdate,
)
from cityflow.security.decorators import current_user_id, require_permissions
from cityflow.services import procurement_service

logger = logging.getLogger(__name__)

procurement_bp = Blueprint("procurement", __name__)


@procurement_bp.get("/suppliers")
@require_permissions("procurement.read")
def list_suppliers() -> tuple[dict[str, list[dict[str, object]]], int]:
    search = (request.args.get("search") or "").strip()
    query = db.session.query(Supplier)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_name.ilike(pattern),
                Supplier.email.ilike(pattern),
            )
        )
    if _bool_query_arg("active_only"):
        query = query.filter(Supplier.is_active.is_(True))

    suppliers = query.order_by(Supplier.created_at.desc(), Supplier.id.desc()).all()
    return {"items": [_build_supplier_response(s) for s in suppliers]}, 200


@procurement_bp.post("/suppliers")
@require_permissions("supplier.manage")
def create_supplier() -> tuple[dict[str, object], int]:
    payload = SupplierCreate.model_validate(request.get_json(silent=True) or {})

    supplier = Supplier(**payload.model_dump(), is_active=True)
    db.session.add(supplier)
    db.session.commit()
    db.session.refresh(supplier)
    logger.info("created supplier %s (%s)", supplier.id, supplier.name)
    return _build_supplier_response(supplier), 201


@procurement_bp.get("/suppliers/<int:supplier_id>")
@require_permissions("procurement.read")
def get_supplier(supplier_id: int) -> tuple[dict[str, object], int]:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        return {"message": "supplier not found"}, 404
    return _build_supplier_response(supplier), 200


@procurement_bp.put("/suppliers/<int:supplier_id>")
@require_permissions("supplier.manage")
def update_supplier(supplier_id: int) -> tuple[dict[str, object], int]:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        return {"message": "supplier not found"}, 404

    payload = SupplierUpdate.model_validate(request.get_json(silent=True) or {})
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return {"message": "no supplier fields provided"}, 400
    if "name" in changes and not changes["name"]:
        return {"message": "name is required"}, 400
    if "is_active" in changes and changes["is_active"] is None:
        return {"message": "is_active must be boolean"}, 400

    for field, value in changes.items():
        setattr(supplier, field, value)
    db.session.commit()
    db.session.refresh(supplier)
    return _build_supplier_response(supplier), 200


@procurement_bp.delete("/suppliers/<int:supplier_id>")
@require_permissions("supplier.manage")
def delete_supplier(supplier_id: int) -> tuple[dict[str, str], int]:
    # Parts, batch orders and their part orders go with it via ON DELETE CASCADE.
    result = db.session.execute(delete(Supplier).where(Supplier.id == supplier_id))
    if result.rowcount == 0:
        db.session.rollback()
        return {"message": "supplier not found"}, 404

    db.session.commit()
    db.session.expire_all()
    logger.info("deleted supplier %s", supplier_id)
    return {"message": "deleted"}, 200


@procurement_bp.get("/parts")
@require_permissions("procurement.read")
def list_parts() -> tuple[dict[str, list[dict[str, object]]], int]:
    search = (request.args.get("search") or "").strip()
    category = (request.args.get("category") or "").strip()
    supplier_id = _optional_int_query_arg("supplier_id")

    query = db.session.query(Part)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Part.name.ilike(pattern),
                Part.part_number.ilike(pattern),
                Part.description.ilike(pattern),
                Part.manufacturer.ilike(pattern),
            )
        )
    if category:
        query = query.filter(Part.category == category)
    if supplier_id is not None:
        query = query.filter(Part.supplier_id == supplier_id)
    if _bool_query_arg("active_only"):
        query = query.filter(Part.is_active.is_(True))

    parts = query.order_by(Part.created_at.desc(), Part.id.desc()).all()
    return {"items": [_build_part_response(p) for p in parts]}, 200


@procurement_bp.post("/parts")
@require_permissions("supplier.manage")
def create_part() -> tuple[dict[str, object], int]:
    payload = PartCreate.model_validate(request.get_json(silent=True) or {})

    if db.session.get(Supplier, payload.supplier_id) is None:
        return {"message": "supplier not found"}, 404

    part = Part(**payload.model_dump(), is_active=True)
    db.session.add(part)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return {"message": "part_number already exists for this supplier"}, 409

    db.session.refresh(part)
    return _build_part_response(part), 201


@procurement_bp.get("/parts/<int:part_id>")
@require_permissions("procurement.read")
def get_part(part_id: int) -> tuple[dict[str, object], int]:
    part = db.session.get(Part, part_id)
    if part is None:
        return {"message": "part not found"}, 404
    return _build_part_response(part), 200


@procurement_bp.put("/parts/<int:part_id>")
@require_permissions("supplier.manage")
def update_part(part_id: int) -> tuple[dict[str, object], int]:
    part = db.session.get(Part, part_id)
    if part is None:
        return {"message": "part not found"}, 404

    payload = PartUpdate.model_validate(request.get_json(silent=True) or {})
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return {"message": "no part fields provided"}, 400
    for required in ("part_number", "name", "category", "minimum_order_quantity", "lead_time_days", "is_active"):
        if required in changes and changes[required] is None:
            return {"message": f"{required} cannot be empty"}, 400

    # Existing part orders keep their own unit_price snapshot.
    for field, value in changes.items():
        setattr(part, field, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return {"message": "part_number already exists for this supplier"}, 409

    db.session.refresh(part)
    return _build_part_response(part), 200


@procurement_bp.get("/batch-orders")
@require_permissions("procurement.read")
def list_batch_orders() -> tuple[dict[str, list[dict[str, object]]], int]:
    status = (request.args.get("status") or "").strip().lower() or None
    orders = procurement_service.list_batch_orders(status)
    return {"items": [_build_batch_order_response(order) for order in orders]}, 200


@procurement_bp.post("/batch-orders")
@require_permissions("procurement.manage")
def create_batch_order() -> tuple[dict[str, object], int]:
    payload = BatchOrderCreate.model_validate(request.get_json(silent=True) or {})
    order = procurement_service.create_batch_order(
        supplier_id=payload.supplier_id,
        ordered_by=current_user_id(),
        notes=payload.notes,
        expected_delivery_date=payload.expected_delivery_date,
    )
    return _build_batch_order_response(order), 201


@procurement_bp.get("/batch-orders/<int:batch_order_id>")
@require_permissions("procurement.read")
def get_batch_order(batch_order_id: int) -> tuple[dict[str, object], int]:
    order = procurement_service.get_batch_order(batch_order_id)
    return _build_batch_order_detail(order), 200


@procurement_bp.put("/batch-orders/<int:batch_order_id>")
@require_permissions("procurement.manage")
def update_batch_order(batch_order_id: int) -> tuple[dict[str, object], int]:
    payload = BatchOrderUpdate.model_validate(request.get_json(silent=True) or {})
    order = procurement_service.update_batch_order(batch_order_id, payload)
    return _build_batch_order_response(order), 200


@procurement_bp.post("/batch-orders/<int:batch_order_id>/submit")
@require_permissions("procurement.manage")
def submit_batch_order(batch_order_id: int) -> tuple[dict[str, object], int]:
    order = procurement_service.submit_batch_order(batch_order_id)
    return _build_batch_order_response(order), 200


@procurement_bp.post("/part-orders")
@require_permissions("procurement.manage")
def create_part_order() -> tuple[dict[str, object], int]:
    payload = PartOrderCreate.model_validate(request.get_json(silent=True) or {})
    line = procurement_service.add_part_order(payload, requested_by=current_user_id())
    order = procurement_service.get_batch_order(line.batch_order_id)
    return {
        **_build_part_order_response(line),
        "batch_order_total_amount": _money(order.total_amount),
    }, 201


@procurement_bp.delete("/part-orders/<int:part_order_id>")
@require_permissions("procurement.manage")
def delete_part_order(part_order_id: int) -> tuple[dict[str, object], int]:
    order = procurement_service.remove_part_order(part_order_id)
    return {"message": "deleted", "batch_order_total_amount": _money(order.total_amount)}, 200


def _build_supplier_response(supplier: Supplier) -> dict[str, object]:
    return {
        "id": supplier.id,
        "name": supplier.name,
        "contact_name": supplier.contact_name,
        "email": supplier.email,
        "phone": supplier.phone,
        "address": supplier.address,
        "website": supplier.website,
        "notes": supplier.notes,
        "is_active": supplier.is_active,
        "created_at": iso_datetime(supplier.created_at),
        "updated_at": iso_datetime(supplier.updated_at),
    }


def _build_part_response(part: Part, *, include_supplier: bool = True) -> dict[str, object]:
    data: dict[str, object] = {
        "id": part.id,
        "part_number": part.part_number,
        "name": part.name,
        "description": part.description,
        "category": part.category,
        "manufacturer": part.manufacturer,
        "unit_price": _money(part.unit_price),
        "minimum_order_quantity": part.minimum_order_quantity,
        "lead_time_days": part.lead_time_days,
        "supplier_id": part.supplier_id,
        "is_active": part.is_active,
        "created_at": iso_datetime(part.created_at),
        "updated_at": iso_datetime(part.updated_at),
    }
    if include_supplier:
        data["supplier"] = _build_supplier_response(part.supplier) if part.supplier else None
    return data


def _build_batch_order_response(order: BatchOrder) -> dict[str, object]:
    return {
        "id": order.id,
        "batch_number": order.batch_number,
        "supplier_id": order.supplier_id,
        "status": order.status,
        "total_amount": _money(order.total_amount),
        "order_date": iso_datetime(order.order_date),
        "expected_delivery_date": iso_datetime(order.expected_delivery_date),
        "actual_delivery_date": iso_datetime(order.actual_delivery_date),
        "notes": order.notes,
        "ordered_by": order.ordered_by,
        "created_at": iso_datetime(order.created_at),
        "updated_at": iso_datetime(order.updated_at),
        "supplier": _build_supplier_response(order.supplier) if order.supplier else None,
    }


def _build_batch_order_detail(order: BatchOrder) -> dict[str, object]:
    return {
        **_build_batch_order_response(order),
        "part_orders": [_build_part_order_response(line) for line in order.part_orders],
        "line_items_total": _money(procurement_service.recalculate_total(order.id)),
    }


def _build_part_order_response(line: PartOrder) -> dict[str, object]:
    return {
        "id": line.id,
        "batch_order_id": line.batch_order_id,
        "part_id": line.part_id,
        "quantity": line.quantity,
        "unit_price": _money(line.unit_price),
        "total_price": _money(line.total_price),
        "requested_by": line.requested_by,
        "request_reason": line.request_reason,
        "urgency_level": line.urgency_level,
        "asset_id": line.asset_id,
        "work_order_number": line.work_order_number,
        "received_quantity": line.received_quantity,
        "created_at": iso_datetime(line.created_at),
        "updated_at": iso_datetime(line.updated_at),
        "part": _build_part_response(line.part, include_supplier=False) if line.part else None,
        "requested_by_user": (
            {"id": line.requester.id, "name": line.requester.name, "email": line.requester.email}
            if line.requester
            else None
        ),
        "asset": {"id": line.asset.id, "name": line.asset.name} if line.asset else None,
    }


def _money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))


def _bool_query_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


def _optional_int_query_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None
