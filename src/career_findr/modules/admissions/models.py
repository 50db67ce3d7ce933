"""
Admission Models

Offers extended by institutes to students whose course application was
accepted. A student may accept at most one admission, system-wide; the
partial unique index below makes that a database guarantee.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from career_findr.modules.shared import BaseModel, utcnow


class AdmissionStatus(str, enum.Enum):
    OFFERED = "offered"


class AdmissionResponse(str, enum.Enum):
    """The student's answer. Null until they respond; immutable after."""

    ACCEPTED = "accepted"
    DECLINED = "declined"


# Enum columns store member names
_ACCEPTED_ONLY = text("student_response = 'ACCEPTED'")


class Admission(BaseModel):
    __tablename__ = "admissions"

    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    institution_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    application_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    status: Mapped[AdmissionStatus] = mapped_column(
        Enum(AdmissionStatus, name="admission_status"),
        nullable=False,
        default=AdmissionStatus.OFFERED,
    )
    student_response: Mapped[AdmissionResponse | None] = mapped_column(
        Enum(AdmissionResponse, name="admission_response"),
        nullable=True,
    )

    offered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_admissions_student_course"),
        Index(
            "uq_admissions_one_accepted_per_student",
            "student_id",
            unique=True,
            postgresql_where=_ACCEPTED_ONLY,
            sqlite_where=_ACCEPTED_ONLY,
        ),
        Index("ix_admissions_institution_id", "institution_id"),
        Index("ix_admissions_course_id", "course_id"),
    )

    @property
    def has_response(self) -> bool:
        return self.student_response is not None
