from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, request
from sqlalchemy import delete, or_

from cityflow.api.v1.serializers import iso_datetime
from cityflow.extensions import db
from cityflow.models import Asset, Complaint, EquipmentRequest, InventoryItem, MaintenanceLog
from cityflow.models.asset import DEFAULT_ASSET_COLOR
from cityflow.models.complaint import COMPLAINT_STATUSES
from cityflow.models.inventory import EQUIPMENT_REQUEST_STATUSES
from cityflow.schemas.base import as_utc
from cityflow.schemas.operations import (
    AssetCreate,
    AssetUpdate,
    ComplaintCreate,
    ComplaintUpdate,
    EquipmentRequestCreate,
    EquipmentRequestReview,
    InventoryItemCreate,
    MaintenanceLogCreate,
)
from cityflow.security.decorators import require_permissions
from cityflow.services.notification_service import (
    send_request_approval_email,
    send_request_denial_email,
)

logger = logging.getLogger(__name__)

operations_bp = Blueprint("operations", __name__)


@operations_bp.get("/inventory")
def list_inventory() -> tuple[dict[str, list[dict[str, object]]], int]:
    search = (request.args.get("search") or "").strip()
    query = db.session.query(InventoryItem)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(InventoryItem.name.ilike(pattern), InventoryItem.description.ilike(pattern))
        )
    items = query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()
    return {"items": [_build_inventory_item_response(item) for item in items]}, 200


@operations_bp.post("/inventory")
@require_permissions("inventory.manage")
def create_inventory_item() -> tuple[dict[str, object], int]:
    payload = InventoryItemCreate.model_validate(request.get_json(silent=True) or {})
    item = InventoryItem(**payload.model_dump())
    db.session.add(item)
    db.session.commit()
    db.session.refresh(item)
    return _build_inventory_item_response(item), 201


@operations_bp.get("/requests")
@require_permissions("request.read")
def list_equipment_requests() -> tuple[dict[str, list[dict[str, object]]], int]:
    status = (request.args.get("status") or "").strip().lower()
    query = db.session.query(EquipmentRequest)
    if status:
        if status not in EQUIPMENT_REQUEST_STATUSES:
            return {"message": f"status must be one of {', '.join(EQUIPMENT_REQUEST_STATUSES)}"}, 400
        query = query.filter(EquipmentRequest.status == status)
    rows = query.order_by(EquipmentRequest.created_at.desc(), EquipmentRequest.id.desc()).all()
    return {"items": [_build_equipment_request_response(row) for row in rows]}, 200


@operations_bp.post("/requests")
def create_equipment_request() -> tuple[dict[str, object], int]:
    payload = EquipmentRequestCreate.model_validate(request.get_json(silent=True) or {})

    item = db.session.get(InventoryItem, payload.inventory_id)
    if item is None:
        return {"message": "inventory item not found"}, 404

    row = EquipmentRequest(
        requestor_email=payload.requestor_email,
        inventory_id=item.id,
        inventory_item_name=item.name,
        quantity=payload.quantity,
        start_date=as_utc(payload.start_date),
        end_date=as_utc(payload.end_date),
        status="pending",
    )
    db.session.add(row)
    db.session.commit()
    db.session.refresh(row)
    return _build_equipment_request_response(row), 201


@operations_bp.put("/requests/<int:request_id>")
@require_permissions("request.review")
def review_equipment_request(request_id: int) -> tuple[dict[str, object], int]:
    payload = EquipmentRequestReview.model_validate(request.get_json(silent=True) or {})

    row = db.session.get(EquipmentRequest, request_id)
    if row is None:
        return {"message": "equipment request not found"}, 404

    row.status = payload.status
    row.denial_reason = payload.denial_reason if payload.status == "denied" else None
    db.session.commit()
    db.session.refresh(row)
    logger.info("equipment request %s %s", row.id, row.status)

    # Notification is outside the transaction; a failed send does not undo the decision.
    if row.status == "approved":
        notified = send_request_approval_email(row)
    else:
        notified = send_request_denial_email(row)

    return {**_build_equipment_request_response(row), "notification_sent": notified}, 200


@operations_bp.get("/complaints")
@require_permissions("complaint.read")
def list_complaints() -> tuple[dict[str, list[dict[str, object]]], int]:
    status = (request.args.get("status") or "").strip().lower()
    query = db.session.query(Complaint)
    if status:
        if status not in COMPLAINT_STATUSES:
            return {"message": f"status must be one of {', '.join(COMPLAINT_STATUSES)}"}, 400
        query = query.filter(Complaint.status == status)
    rows = query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()
    return {"items": [_build_complaint_response(row) for row in rows]}, 200


@operations_bp.post("/complaints")
def create_complaint() -> tuple[dict[str, object], int]:
    payload = ComplaintCreate.model_validate(request.get_json(silent=True) or {})
    row = Complaint(**payload.model_dump(), status="pending", reviewed=False)
    db.session.add(row)
    db.session.commit()
    db.session.refresh(row)
    return _build_complaint_response(row), 201


@operations_bp.put("/complaints/<int:complaint_id>")
@require_permissions("complaint.manage")
def update_complaint(complaint_id: int) -> tuple[dict[str, object], int]:
    payload = ComplaintUpdate.model_validate(request.get_json(silent=True) or {})

    row = db.session.get(Complaint, complaint_id)
    if row is None:
        return {"message": "complaint not found"}, 404

    row.status = payload.status
    row.reviewed = True
    if payload.status == "resolved":
        row.resolved_at = row.resolved_at or datetime.now(timezone.utc)
    else:
        row.resolved_at = None
    db.session.commit()
    db.session.refresh(row)
    return _build_complaint_response(row), 200


@operations_bp.delete("/complaints/<int:complaint_id>")
@require_permissions("complaint.manage")
def delete_complaint(complaint_id: int) -> tuple[dict[str, str], int]:
    result = db.session.execute(delete(Complaint).where(Complaint.id == complaint_id))
    if result.rowcount == 0:
        db.session.rollback()
        return {"message": "complaint not found"}, 404

    db.session.commit()
    return {"message": "deleted"}, 200


@operations_bp.get("/assets")
@require_permissions("asset.read")
def list_assets() -> tuple[dict[str, list[dict[str, object]]], int]:
    assets = db.session.query(Asset).order_by(Asset.name.asc(), Asset.id.asc()).all()
    return {"items": [_build_asset_response(asset) for asset in assets]}, 200


@operations_bp.post("/assets")
@require_permissions("asset.manage")
def create_asset() -> tuple[dict[str, object], int]:
    payload = AssetCreate.model_validate(request.get_json(silent=True) or {})
    asset = Asset(
        name=payload.name,
        description=payload.description,
        lng=payload.lng,
        lat=payload.lat,
        color=payload.color or DEFAULT_ASSET_COLOR,
    )
    db.session.add(asset)
    db.session.commit()
    db.session.refresh(asset)
    return _build_asset_response(asset), 201


@operations_bp.put("/assets/<int:asset_id>")
@require_permissions("asset.manage")
def update_asset(asset_id: int) -> tuple[dict[str, object], int]:
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        return {"message": "asset not found"}, 404

    payload = AssetUpdate.model_validate(request.get_json(silent=True) or {})
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return {"message": "no asset fields provided"}, 400
    for required in ("name", "lng", "lat", "color"):
        if required in changes and changes[required] is None:
            return {"message": f"{required} cannot be empty"}, 400

    for field, value in changes.items():
        setattr(asset, field, value)
    db.session.commit()
    db.session.refresh(asset)
    return _build_asset_response(asset), 200


@operations_bp.delete("/assets/<int:asset_id>")
@require_permissions("asset.manage")
def delete_asset(asset_id: int) -> tuple[dict[str, str], int]:
    # Part orders keep their row with asset_id nulled; maintenance logs are removed.
    result = db.session.execute(delete(Asset).where(Asset.id == asset_id))
    if result.rowcount == 0:
        db.session.rollback()
        return {"message": "asset not found"}, 404

    db.session.commit()
    db.session.expire_all()
    logger.info("deleted asset %s", asset_id)
    return {"message": "deleted"}, 200


@operations_bp.get("/assets/<int:asset_id>/logs")
@require_permissions("asset.read")
def list_maintenance_logs(asset_id: int) -> tuple[dict[str, object], int]:
    if db.session.get(Asset, asset_id) is None:
        return {"message": "asset not found"}, 404

    logs = (
        db.session.query(MaintenanceLog)
        .filter(MaintenanceLog.asset_id == asset_id)
        .order_by(MaintenanceLog.created_at.desc(), MaintenanceLog.id.desc())
        .all()
    )
    return {"items": [_build_maintenance_log_response(entry) for entry in logs]}, 200


@operations_bp.post("/assets/<int:asset_id>/logs")
@require_permissions("asset.manage")
def create_maintenance_log(asset_id: int) -> tuple[dict[str, object], int]:
    if db.session.get(Asset, asset_id) is None:
        return {"message": "asset not found"}, 404

    payload = MaintenanceLogCreate.model_validate(request.get_json(silent=True) or {})
    entry = MaintenanceLog(asset_id=asset_id, **payload.model_dump())
    db.session.add(entry)
    db.session.commit()
    db.session.refresh(entry)
    return _build_maintenance_log_response(entry), 201


def _build_inventory_item_response(item: InventoryItem) -> dict[str, object]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "quantity": item.quantity,
        "created_at": iso_datetime(item.created_at),
        "updated_at": iso_datetime(item.updated_at),
    }


def _build_equipment_request_response(row: EquipmentRequest) -> dict[str, object]:
    return {
        "id": row.id,
        "requestor_email": row.requestor_email,
        "inventory_id": row.inventory_id,
        "inventory_item_name": row.inventory_item_name,
        "quantity": row.quantity,
        "start_date": iso_datetime(row.start_date),
        "end_date": iso_datetime(row.end_date),
        "status": row.status,
        "denial_reason": row.denial_reason,
        "created_at": iso_datetime(row.created_at),
        "updated_at": iso_datetime(row.updated_at),
    }


def _build_complaint_response(row: Complaint) -> dict[str, object]:
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "description": row.description,
        "location": row.location,
        "image_url": row.image_url,
        "status": row.status,
        "reviewed": row.reviewed,
        "resolved_at": iso_datetime(row.resolved_at),
        "created_at": iso_datetime(row.created_at),
        "updated_at": iso_datetime(row.updated_at),
    }


def _build_asset_response(asset: Asset) -> dict[str, object]:
    return {
        "id": asset.id,
        "name": asset.name,
        "description": asset.description,
        "lng": float(asset.lng),
        "lat": float(asset.lat),
        "color": asset.color,
        "created_at": iso_datetime(asset.created_at),
        "updated_at": iso_datetime(asset.updated_at),
    }


def _build_maintenance_log_response(entry: MaintenanceLog) -> dict[str, object]:
    return {
        "id": entry.id,
        "asset_id": entry.asset_id,
        "title": entry.title,
        "description": entry.description,
        "job_type": entry.job_type,
        "technician": entry.technician,
        "created_at": iso_datetime(entry.created_at),
        "updated_at": iso_datetime(entry.updated_at),
    }
