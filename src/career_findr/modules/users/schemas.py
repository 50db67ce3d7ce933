"""
Users Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from career_findr.modules.users.models import UserRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: UserRole
    is_active: bool
    is_verified: bool
    is_approved: bool
    approved_at: datetime | None
    approval_remarks: str | None
    created_at: datetime


class PendingApprovalsResponse(BaseModel):
    users: list[UserOut]
    total: int


class ApprovalRequest(BaseModel):
    """Request body for PUT /admin/users/{id}/approval."""

    approved: bool
    remarks: str | None = Field(None, max_length=2000)


class CandidateOut(BaseModel):
    """Public candidate card. Contact details stay private."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    profile: dict


class CandidateListResponse(BaseModel):
    candidates: list[CandidateOut]
    total: int


class PlatformStats(BaseModel):
    users_by_role: dict[str, int]
    pending_approvals: int
    applications_by_status: dict[str, int]
    admissions: dict[str, int]
