"""
Catalog Models

Course and job listings. Capacity (``seats`` / ``positions``) is a ceiling
and is never decremented; consumption is computed from accepted
applications at read and decision time.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from career_findr.modules.shared import BaseModel


class ListingType(str, enum.Enum):
    COURSE = "course"
    JOB = "job"


class ListingStatus(str, enum.Enum):
    """Whether a listing still accepts applications."""

    ACTIVE = "active"
    CLOSED = "closed"


class JobType(str, enum.Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


class Course(BaseModel):
    """A course offered by an institute."""

    __tablename__ = "courses"

    institution_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    eligibility: Mapped[str | None] = mapped_column(Text, nullable=True)

    seats: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, name="listing_status"),
        nullable=False,
        default=ListingStatus.ACTIVE,
    )
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_courses_institution_id", "institution_id"),
        Index("ix_courses_status", "status"),
    )

    @property
    def owner_id(self) -> uuid.UUID:
        return self.institution_id

    @property
    def deadline(self) -> datetime | None:
        return self.application_deadline


class Job(BaseModel):
    """A job posted by a company."""

    __tablename__ = "jobs"

    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requirements: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    job_type: Mapped[JobType] = mapped_column(
        Enum(JobType, name="job_type"),
        nullable=False,
        default=JobType.FULL_TIME,
    )
    experience: Mapped[str] = mapped_column(String(100), nullable=False, default="Entry level")
    # {"min": 0, "max": 0, "currency": "USD"}
    salary: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Only enforced when ENFORCE_JOB_POSITIONS is on
    positions: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, name="listing_status"),
        nullable=False,
        default=ListingStatus.ACTIVE,
    )
    closing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_jobs_company_id", "company_id"),
        Index("ix_jobs_status", "status"),
    )

    @property
    def owner_id(self) -> uuid.UUID:
        return self.company_id

    @property
    def deadline(self) -> datetime | None:
        return self.closing_date
