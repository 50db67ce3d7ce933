"""
Users Admin Router

API endpoints for platform administrators.

Endpoints:
- GET /admin/users/pending - Institutes/companies waiting for approval
- PUT /admin/users/{id}/approval - Approve or revoke an account
- GET /admin/stats - Platform dashboard counts

Security:
- All endpoints require a valid JWT with the admin role
- Approval changes are rate limited and logged
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.auth import CurrentUser, get_current_admin_user
from career_findr.core.database import get_db
from career_findr.core.rate_limit import enforce_actor_rate_limit
from career_findr.modules.shared.errors import LifecycleError, to_http_exception
from career_findr.modules.users import service
from career_findr.modules.users.models import UserRole
from career_findr.modules.users.schemas import (
    ApprovalRequest,
    PendingApprovalsResponse,
    PlatformStats,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_APPROVAL = (30, 60)  # 30 approval changes per minute


@router.get("/users/pending", response_model=PendingApprovalsResponse, summary="Pending Approvals")
async def list_pending_approvals(
    role: UserRole | None = Query(None),
    admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> PendingApprovalsResponse:
    """Verified institutes and companies waiting for approval, oldest first."""
    try:
        users = await service.get_pending_approvals(db, role)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return PendingApprovalsResponse(
        users=[UserOut.model_validate(u) for u in users],
        total=len(users),
    )


@router.put("/users/{user_id}/approval", response_model=UserOut, summary="Set Account Approval")
async def set_approval(
    user_id: UUID,
    request: ApprovalRequest,
    admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    await enforce_actor_rate_limit(admin.id, "set_approval", *RATE_LIMIT_APPROVAL)

    try:
        user = await service.set_approval(
            db, admin.id, user_id, approved=request.approved, remarks=request.remarks
        )
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return UserOut.model_validate(user)


@router.get("/stats", response_model=PlatformStats, summary="Platform Stats")
async def get_platform_stats(
    admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> PlatformStats:
    stats = await service.get_platform_stats(db)
    return PlatformStats(**stats)
