"""
Admissions Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from career_findr.modules.admissions.models import AdmissionResponse, AdmissionStatus


class IssueAdmissionsRequest(BaseModel):
    """Request body for POST /admissions."""

    course_id: UUID
    student_ids: list[UUID] = Field(..., min_length=1, max_length=500)


class RespondRequest(BaseModel):
    """Request body for POST /admissions/respond."""

    admission_id: UUID
    accept: bool


class AdmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    course_id: UUID
    institution_id: UUID
    application_id: UUID
    status: AdmissionStatus
    student_response: AdmissionResponse | None
    offered_at: datetime
    responded_at: datetime | None


class IssueAdmissionsResponse(BaseModel):
    admissions: list[AdmissionOut]
    issued: int
    skipped_student_ids: list[UUID]


class AdmissionSummary(BaseModel):
    total: int = 0
    awaiting_response: int = 0
    accepted: int = 0
    declined: int = 0


class AdmissionListResponse(BaseModel):
    admissions: list[AdmissionOut]
    summary: AdmissionSummary
    has_accepted_admission: bool = False
