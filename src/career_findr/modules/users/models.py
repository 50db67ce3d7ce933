"""
User Models

The identity directory: one row per student, institute, company or admin.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, String, Text, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from career_findr.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system. Immutable after creation."""

    STUDENT = "student"
    INSTITUTE = "institute"
    COMPANY = "company"
    ADMIN = "admin"


# Roles whose accounts must be approved by an admin before acting
APPROVAL_REQUIRED_ROLES = frozenset({UserRole.INSTITUTE, UserRole.COMPANY})


class User(BaseModel):
    """
    Identity record.

    ``profile`` is a free-form JSON blob (name, phone, location, skills,
    education, experience...). Only the candidate search reads into it.

    Institutes and companies start unapproved; an admin flips
    ``is_approved``. Students and admins are created approved.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        nullable=False,
        index=True,
    )

    # Account status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Approval (institutes and companies)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    profile: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def requires_approval(self) -> bool:
        return self.role in APPROVAL_REQUIRED_ROLES
