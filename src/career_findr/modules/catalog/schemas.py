"""
Catalog Schemas

Pydantic schemas for listing requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from career_findr.modules.catalog.models import JobType, ListingStatus, ListingType


class CourseCreate(BaseModel):
    """Request body for POST /courses."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    category: str | None = Field(None, max_length=100)
    duration: str | None = Field(None, max_length=100)
    fee: Decimal | None = Field(None, ge=0)
    eligibility: str | None = Field(None, max_length=2000)
    seats: int = Field(..., gt=0)
    application_deadline: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "CourseCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class Salary(BaseModel):
    min: int = Field(0, ge=0)
    max: int = Field(0, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)

    @model_validator(mode="after")
    def validate_range(self) -> "Salary":
        if self.max and self.max < self.min:
            raise ValueError("salary.max cannot be less than salary.min")
        return self


class JobCreate(BaseModel):
    """Request body for POST /jobs."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    requirements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    location: str | None = Field(None, max_length=200)
    job_type: JobType = JobType.FULL_TIME
    experience: str = Field("Entry level", max_length=100)
    salary: Salary | None = None
    positions: int | None = Field(None, gt=0)
    closing_date: datetime | None = None


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    institution_id: UUID
    title: str
    description: str
    category: str | None
    duration: str | None
    fee: Decimal | None
    eligibility: str | None
    seats: int
    status: ListingStatus
    application_deadline: datetime | None
    start_date: datetime | None
    end_date: datetime | None
    closed_at: datetime | None
    created_at: datetime

    # Computed, never stored
    available_seats: int | None = None
    application_count: int | None = None
    pending_applications: int | None = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    title: str
    description: str
    requirements: list[str]
    skills: list[str]
    location: str | None
    job_type: JobType
    experience: str
    salary: dict | None
    positions: int | None
    status: ListingStatus
    closing_date: datetime | None
    closed_at: datetime | None
    created_at: datetime

    application_count: int | None = None
    pending_applications: int | None = None


class CloseListingResponse(BaseModel):
    id: UUID
    listing_type: ListingType
    status: ListingStatus
    closed_at: datetime
    message: str
