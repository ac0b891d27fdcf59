"""
Module: contract_kernel.models.user_role
Responsibility: ORM persistence for the user -> role assignment.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - UNIQUE(user_id): one role per user.
    - role limited to the closed Role enum values.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from contract_kernel.db.base import TimestampedBase, UUIDString


class UserRoleModel(TimestampedBase):
    """A user's application role.  Rows are created lazily on first lookup."""

    __tablename__ = "user_roles"

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'reviewer', 'approval', 'manager', 'admin')",
            name="ck_user_roles_valid_role",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="user")

    def __repr__(self) -> str:
        return f"<UserRole {self.user_id} role={self.role}>"
