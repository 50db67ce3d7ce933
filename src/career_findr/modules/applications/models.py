"""
Application Models

One ledger for course and job applications. ``owner_id`` is copied from the
listing at submission so ownership checks never need a join.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from career_findr.modules.catalog.models import ListingType
from career_findr.modules.shared import BaseModel, utcnow


class ApplicationStatus(str, enum.Enum):
    """Status of a course or job application."""

    PENDING = "pending"
    SHORTLISTED = "shortlisted"
    INTERVIEWING = "interviewing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class Application(BaseModel):
    """
    A student's application to a course or job.

    Uniqueness of (student, target) is enforced by the database so that
    concurrent duplicate submissions cannot both succeed.
    """

    __tablename__ = "applications"

    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    target_type: Mapped[ListingType] = mapped_column(
        Enum(ListingType, name="listing_type"), nullable=False
    )
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )

    # Submission payload
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    resume_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    documents: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Review
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "target_type",
            "target_id",
            name="uq_applications_student_target",
        ),
        Index("ix_applications_target", "target_type", "target_id", "status"),
        Index("ix_applications_student_owner", "student_id", "owner_id", "target_type"),
        Index("ix_applications_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, {self.target_type.value}={self.target_id}, "
            f"status={self.status.value})>"
        )
