"""
Applications Schemas

Pydantic schemas for request validation and response serialization.
Request validation runs before any store read.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from career_findr.modules.applications.models import ApplicationStatus
from career_findr.modules.catalog.models import ListingType


class ApplicationCreate(BaseModel):
    """Request body for POST /applications."""

    target_type: ListingType
    target_id: UUID
    cover_letter: str | None = Field(None, max_length=5000)
    resume_url: str | None = Field(None, max_length=500)
    documents: list[str] = Field(default_factory=list, max_length=20)
    additional_info: str | None = Field(None, max_length=2000)


class ReviewDecision(str, Enum):
    """Statuses a reviewer may set. Which apply depends on the target type."""

    SHORTLISTED = "shortlisted"
    INTERVIEWING = "interviewing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ReviewRequest(BaseModel):
    """Request body for PUT /applications/{id}/review."""

    status: ReviewDecision
    remarks: str | None = Field(None, max_length=2000)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    target_type: ListingType
    target_id: UUID
    owner_id: UUID
    status: ApplicationStatus
    cover_letter: str | None
    resume_url: str | None
    documents: list[str]
    additional_info: str | None
    remarks: str | None
    applied_at: datetime
    reviewed_at: datetime | None
    reviewed_by: UUID | None
    withdrawn_at: datetime | None


class ApplicationSummary(BaseModel):
    total: int = 0
    pending: int = 0
    shortlisted: int = 0
    interviewing: int = 0
    accepted: int = 0
    rejected: int = 0
    withdrawn: int = 0


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    summary: ApplicationSummary


class OwnerStats(BaseModel):
    """Dashboard counts for an institute or company."""

    listing_type: ListingType
    total_listings: int
    active_listings: int
    total_applications: int
    pending_applications: int
    accepted_applications: int
    rejected_applications: int
    admissions_offered: int | None = None
    admissions_accepted: int | None = None
