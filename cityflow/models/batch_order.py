from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cityflow.extensions import db

BATCH_ORDER_STATUSES = ("draft", "pending", "ordered", "received", "cancelled")


class BatchOrder(db.Model):
    __tablename__ = "batch_orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending', 'ordered', 'received', 'cancelled')",
            name="ck_batch_orders_status",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    supplier_id: Mapped[int] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", index=True)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    order_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expected_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actual_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    ordered_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    supplier: Mapped["Supplier"] = relationship(lazy="joined")
    part_orders: Mapped[list["PartOrder"]] = relationship(
        back_populates="batch_order",
        passive_deletes=True,
        order_by="PartOrder.id",
        lazy="selectin",
    )


class PartOrder(db.Model):
    __tablename__ = "part_orders"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_part_orders_quantity_positive"),
        CheckConstraint(
            "urgency_level IN ('low', 'normal', 'high', 'critical')",
            name="ck_part_orders_urgency",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_order_id: Mapped[int] = mapped_column(
        ForeignKey("batch_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    part_id: Mapped[int] = mapped_column(ForeignKey("parts.id", ondelete="CASCADE"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    requested_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    request_reason: Mapped[str] = mapped_column(Text, nullable=False)
    urgency_level: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")
    asset_id: Mapped[int | None] = mapped_column(ForeignKey("assets.id", ondelete="SET NULL"))
    work_order_number: Mapped[str | None] = mapped_column(String(100))
    received_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    batch_order: Mapped[BatchOrder] = relationship(back_populates="part_orders")
    part: Mapped["Part"] = relationship(lazy="joined")
    requester: Mapped["User"] = relationship(foreign_keys=[requested_by], lazy="joined")
    asset: Mapped["Asset | None"] = relationship(lazy="joined")


from .asset import Asset  # noqa: E402
from .part import Part  # noqa: E402
from .supplier import Supplier  # noqa: E402
from .user import User  # noqa: E402
