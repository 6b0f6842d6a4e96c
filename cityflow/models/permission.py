from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cityflow.extensions import db


class Permission(db.Model):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    roles: Mapped[list["Role"]] = relationship(
        secondary="role_permissions", back_populates="permissions", lazy="selectin"
    )


from .role import Role  # noqa: E402
