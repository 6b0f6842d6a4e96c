"""users, roles and permissions

Revision ID: 20261012_0001
Revises:
Create Date: 2026-10-12 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261012_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ROLE_PERMISSIONS = {
    "admin": [
        "procurement.read",
        "procurement.manage",
        "supplier.manage",
        "inventory.manage",
        "request.read",
        "request.review",
        "complaint.read",
        "complaint.manage",
        "asset.read",
        "asset.manage",
        "user.read",
    ],
    "manager": [
        "procurement.read",
        "procurement.manage",
        "supplier.manage",
        "inventory.manage",
        "request.read",
        "request.review",
        "complaint.read",
        "complaint.manage",
        "asset.read",
        "asset.manage",
    ],
    "field_staff": [
        "procurement.read",
        "procurement.manage",
        "request.read",
        "complaint.read",
        "asset.read",
    ],
}


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=250), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["permission_id"], ["permissions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions"),
    )

    roles_table = sa.table("roles", sa.column("id", sa.Integer), sa.column("name", sa.String))
    permissions_table = sa.table(
        "permissions", sa.column("id", sa.Integer), sa.column("code", sa.String)
    )
    role_permissions_table = sa.table(
        "role_permissions",
        sa.column("role_id", sa.Integer),
        sa.column("permission_id", sa.Integer),
    )

    op.bulk_insert(roles_table, [{"name": name} for name in ROLE_PERMISSIONS])
    op.bulk_insert(permissions_table, [{"code": code} for code in ROLE_PERMISSIONS["admin"]])

    connection = op.get_bind()
    role_rows = connection.execute(sa.text("SELECT id, name FROM roles")).mappings().all()
    permission_rows = (
        connection.execute(sa.text("SELECT id, code FROM permissions")).mappings().all()
    )
    role_id_by_name = {row["name"]: row["id"] for row in role_rows}
    permission_id_by_code = {row["code"]: row["id"] for row in permission_rows}

    op.bulk_insert(
        role_permissions_table,
        [
            {"role_id": role_id_by_name[role_name], "permission_id": permission_id_by_code[code]}
            for role_name, codes in ROLE_PERMISSIONS.items()
            for code in codes
        ],
    )


def downgrade() -> None:
    op.drop_table("role_permissions")
    op.drop_table("user_roles")
    op.drop_table("permissions")
    op.drop_table("roles")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
