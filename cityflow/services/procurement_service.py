"""Batch orders and their part-order line items.

A batch order's ``total_amount`` always equals the sum of its line items'
``total_price``. The total is never recomputed on write: every insert or
removal of a line item adjusts it with a single ``total_amount = total_amount
+ delta`` statement issued in the same transaction as the line-item write,
so concurrent writers against the same order cannot lose updates.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from cityflow.errors import ConflictError, NotFoundError, ValidationError
from cityflow.extensions import db
from cityflow.models import Asset, BatchOrder, Part, PartOrder, Supplier
from cityflow.models.batch_order import BATCH_ORDER_STATUSES
from cityflow.schemas.base import as_utc
from cityflow.schemas.procurement import BatchOrderUpdate, PartOrderCreate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a Numeric(10, 2) line total can hold.
MAX_LINE_TOTAL = Decimal("99999999.99")

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "draft": {"pending", "cancelled"},
    "pending": {"ordered", "cancelled"},
    "ordered": {"received", "cancelled"},
    "received": set(),
    "cancelled": set(),
}
DRAFT_ONLY_FIELDS = ("notes", "expected_delivery_date")
DELIVERY_STATUSES = ("ordered", "received")


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (unit_price * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_batch_number(now: datetime | None = None, *, random_suffix: bool = False) -> str:
    """Build ``BO-YYYYMMDD-NNNNNN``.

    The first candidate takes its suffix from the last six digits of the
    millisecond timestamp; retries after a collision use a random suffix.
    """
    now = now or datetime.now(timezone.utc)
    if random_suffix:
        suffix = f"{secrets.randbelow(1_000_000):06d}"
    else:
        suffix = str(int(now.timestamp() * 1000))[-6:]
    return f"BO-{now:%Y%m%d}-{suffix}"


def list_batch_orders(status: str | None = None) -> list[BatchOrder]:
    stmt = select(BatchOrder)
    if status:
        if status not in BATCH_ORDER_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(BATCH_ORDER_STATUSES)}")
        stmt = stmt.where(BatchOrder.status == status)
    stmt = stmt.order_by(BatchOrder.created_at.desc(), BatchOrder.id.desc())
    return list(db.session.execute(stmt).unique().scalars().all())


def get_batch_order(batch_order_id: int) -> BatchOrder:
    order = db.session.get(BatchOrder, batch_order_id)
    if order is None:
        raise NotFoundError("batch order not found")
    return order


def create_batch_order(
    *,
    supplier_id: int,
    ordered_by: int,
    notes: str | None = None,
    expected_delivery_date: datetime | None = None,
) -> BatchOrder:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("supplier not found")
    if not supplier.is_active:
        raise ValidationError("supplier is inactive")

    max_attempts = int(current_app.config.get("BATCH_NUMBER_MAX_ATTEMPTS", 5))
    now = datetime.now(timezone.utc)
    for attempt in range(max_attempts):
        batch_number = generate_batch_number(now, random_suffix=attempt > 0)
        taken = db.session.scalar(
            select(BatchOrder.id).where(BatchOrder.batch_number == batch_number)
        )
        if taken is not None:
            continue

        order = BatchOrder(
            batch_number=batch_number,
            supplier_id=supplier_id,
            status="draft",
            total_amount=ZERO,
            expected_delivery_date=as_utc(expected_delivery_date),
            notes=notes,
            ordered_by=ordered_by,
        )
        db.session.add(order)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning("batch number %s collided on insert, retrying", batch_number)
            continue

        db.session.refresh(order)
        logger.info("created batch order %s for supplier %s", order.batch_number, supplier_id)
        return order

    raise ConflictError("could not allocate a unique batch number")


def add_part_order(payload: PartOrderCreate, *, requested_by: int) -> PartOrder:
    order = get_batch_order(payload.batch_order_id)
    if order.status != "draft":
        raise ConflictError("line items can only be added to draft batch orders")

    part = db.session.get(Part, payload.part_id)
    if part is None:
        raise NotFoundError("part not found")
    if part.supplier_id != order.supplier_id:
        raise ValidationError("part does not belong to the batch order supplier")
    if payload.asset_id is not None and db.session.get(Asset, payload.asset_id) is None:
        raise NotFoundError("asset not found")

    # Price is copied onto the line item; later catalog changes do not touch it.
    unit_price = part.unit_price if part.unit_price is not None else ZERO
    total_price = line_total(unit_price, payload.quantity)
    if total_price > MAX_LINE_TOTAL:
        raise ValidationError(f"line total {total_price} exceeds the maximum of {MAX_LINE_TOTAL}")
    now = datetime.now(timezone.utc)

    line = PartOrder(
        batch_order_id=order.id,
        part_id=part.id,
        quantity=payload.quantity,
        unit_price=unit_price,
        total_price=total_price,
        requested_by=requested_by,
        request_reason=payload.request_reason,
        urgency_level=payload.urgency_level,
        asset_id=payload.asset_id,
        work_order_number=payload.work_order_number,
        received_quantity=0,
    )
    try:
        db.session.add(line)
        db.session.flush()
        _adjust_total(order.id, total_price, now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(line)
    logger.info(
        "added part %s x%s to batch order %s (+%s)",
        part.part_number,
        payload.quantity,
        order.batch_number,
        total_price,
    )
    return line


def remove_part_order(part_order_id: int) -> BatchOrder:
    line = db.session.get(PartOrder, part_order_id)
    if line is None:
        raise NotFoundError("part order not found")
    if line.batch_order.status != "draft":
        raise ConflictError("line items can only be removed from draft batch orders")

    batch_order_id = line.batch_order_id
    try:
        _adjust_total(batch_order_id, -line.total_price, datetime.now(timezone.utc))
        db.session.delete(line)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("removed part order %s from batch order %s", part_order_id, batch_order_id)
    return get_batch_order(batch_order_id)


def update_batch_order(batch_order_id: int, payload: BatchOrderUpdate) -> BatchOrder:
    order = get_batch_order(batch_order_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("no batch order fields provided")

    if "status" in changes and changes["status"] is None:
        raise ValidationError("status cannot be empty")

    locked = [field for field in DRAFT_ONLY_FIELDS if field in changes]
    if locked and order.status != "draft":
        raise ConflictError(f"{', '.join(locked)} can only be edited while the batch order is draft")

    target_status = changes.get("status") or order.status
    if "order_date" in changes and changes["order_date"] is None and target_status != "draft":
        raise ValidationError("order_date cannot be cleared once the batch order is submitted")
    if "actual_delivery_date" in changes:
        if target_status not in DELIVERY_STATUSES:
            raise ConflictError("actual_delivery_date can only be set on ordered or received batch orders")
        if changes["actual_delivery_date"] is None and target_status == "received":
            raise ValidationError("actual_delivery_date cannot be cleared on a received batch order")

    now = datetime.now(timezone.utc)
    new_status = changes.pop("status", None)
    if new_status is not None:
        _apply_status_transition(order, new_status, changes, now)

    if "notes" in changes:
        order.notes = changes["notes"]
    for field in ("expected_delivery_date", "actual_delivery_date", "order_date"):
        if field in changes:
            setattr(order, field, as_utc(changes[field]))
    order.updated_at = now

    db.session.commit()
    db.session.refresh(order)
    return order


def submit_batch_order(batch_order_id: int, order_date: datetime | None = None) -> BatchOrder:
    payload = BatchOrderUpdate(status="pending")
    if order_date is not None:
        payload = BatchOrderUpdate(status="pending", order_date=order_date)
    order = update_batch_order(batch_order_id, payload)
    logger.info("submitted batch order %s (total %s)", order.batch_number, order.total_amount)
    return order


def recalculate_total(batch_order_id: int) -> Decimal:
    """Sum the line items from storage, for drift checks against ``total_amount``."""
    value = db.session.scalar(
        select(func.coalesce(func.sum(PartOrder.total_price), 0)).where(
            PartOrder.batch_order_id == batch_order_id
        )
    )
    return Decimal(str(value)).quantize(CENT)


def _adjust_total(batch_order_id: int, delta: Decimal, now: datetime) -> None:
    result = db.session.execute(
        update(BatchOrder)
        .where(BatchOrder.id == batch_order_id, BatchOrder.status == "draft")
        .values(total_amount=BatchOrder.total_amount + delta, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("batch order is no longer a draft")


def _apply_status_transition(
    order: BatchOrder, new_status: str, changes: dict[str, object], now: datetime
) -> None:
    if new_status == order.status:
        raise ConflictError(f"batch order is already {order.status}")
    if new_status not in ALLOWED_TRANSITIONS.get(order.status, set()):
        raise ConflictError(f"cannot move batch order from {order.status} to {new_status}")

    if new_status == "pending":
        line_count = db.session.scalar(
            select(func.count(PartOrder.id)).where(PartOrder.batch_order_id == order.id)
        )
        if not line_count:
            raise ConflictError("cannot submit a batch order without line items")
        if changes.get("order_date") is None:
            changes["order_date"] = now
    elif new_status == "received" and order.actual_delivery_date is None:
        if changes.get("actual_delivery_date") is None:
            changes["actual_delivery_date"] = now

    order.status = new_status
