"""suppliers, parts catalog, batch orders and part orders

Revision ID: 20261012_0003
Revises: 20261012_0002
Create Date: 2026-10-12 00:40:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261012_0003"
down_revision: str | None = "20261012_0002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=250), nullable=False),
        sa.Column("contact_name", sa.String(length=250), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "parts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("part_number", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=250), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("manufacturer", sa.String(length=250), nullable=True),
        sa.Column("unit_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("minimum_order_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("lead_time_days", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("part_number", "supplier_id", name="uq_part_number_supplier"),
    )
    op.create_index(op.f("ix_parts_category"), "parts", ["category"], unique=False)
    op.create_index(op.f("ix_parts_supplier_id"), "parts", ["supplier_id"], unique=False)

    op.create_table(
        "batch_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column(
            "total_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0.00",
        ),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("ordered_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'pending', 'ordered', 'received', 'cancelled')",
            name="ck_batch_orders_status",
        ),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["ordered_by"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_batch_orders_batch_number"), "batch_orders", ["batch_number"], unique=True)
    op.create_index(op.f("ix_batch_orders_status"), "batch_orders", ["status"], unique=False)
    op.create_index(op.f("ix_batch_orders_supplier_id"), "batch_orders", ["supplier_id"], unique=False)

    op.create_table(
        "part_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_order_id", sa.Integer(), nullable=False),
        sa.Column("part_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("total_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("requested_by", sa.Integer(), nullable=False),
        sa.Column("request_reason", sa.Text(), nullable=False),
        sa.Column("urgency_level", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("asset_id", sa.Integer(), nullable=True),
        sa.Column("work_order_number", sa.String(length=100), nullable=True),
        sa.Column("received_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_part_orders_quantity_positive"),
        sa.CheckConstraint(
            "urgency_level IN ('low', 'normal', 'high', 'critical')",
            name="ck_part_orders_urgency",
        ),
        sa.ForeignKeyConstraint(["batch_order_id"], ["batch_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["part_id"], ["parts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_by"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_part_orders_batch_order_id"), "part_orders", ["batch_order_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_part_orders_batch_order_id"), table_name="part_orders")
    op.drop_table("part_orders")
    op.drop_index(op.f("ix_batch_orders_supplier_id"), table_name="batch_orders")
    op.drop_index(op.f("ix_batch_orders_status"), table_name="batch_orders")
    op.drop_index(op.f("ix_batch_orders_batch_number"), table_name="batch_orders")
    op.drop_table("batch_orders")
    op.drop_index(op.f("ix_parts_supplier_id"), table_name="parts")
    op.drop_index(op.f("ix_parts_category"), table_name="parts")
    op.drop_table("parts")
    op.drop_table("suppliers")
