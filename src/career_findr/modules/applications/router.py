"""
Applications Router

API endpoints for the application ledger.

Endpoints:
- POST /applications - Student submits a course or job application
- PUT /applications/{id}/review - Listing owner records a decision
- DELETE /applications/{id} - Student withdraws a pending application
- GET /applications/mine - Student's own applications with a summary
- GET /applications/stats - Owner dashboard counts
- GET /applications/listings/{target_type}/{listing_id} - Owner's review queue
- GET /applications/{id} - Single application (applicant, owner or admin)

Security:
- Role checks via ``require_roles`` dependencies
- Ownership checks in the service layer
- Per-actor rate limits on submission and review
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.auth import (
    CurrentUser,
    get_current_listing_owner,
    get_current_student,
    get_current_user,
)
from career_findr.core.database import get_db
from career_findr.core.rate_limit import enforce_actor_rate_limit
from career_findr.modules.applications import service
from career_findr.modules.applications.models import ApplicationStatus
from career_findr.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationSummary,
    OwnerStats,
    ReviewRequest,
)
from career_findr.modules.catalog.models import ListingType
from career_findr.modules.shared.errors import LifecycleError, to_http_exception
from career_findr.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_SUBMIT = (20, 60)  # 20 submissions per minute
RATE_LIMIT_REVIEW = (60, 60)  # 60 reviews per minute


def _listing_type_for(user: CurrentUser) -> ListingType:
    return ListingType.COURSE if user.role == UserRole.INSTITUTE else ListingType.JOB


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Application",
    description="""
Apply to a course or a job.

**Rules:**
- The listing must be active and not past its deadline
- At most 2 course applications per institution (any status)
- One application per listing
- Listings with no capacity left refuse new applications
""",
)
async def submit_application(
    data: ApplicationCreate,
    student: CurrentUser = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    await enforce_actor_rate_limit(student.id, "submit_application", *RATE_LIMIT_SUBMIT)

    try:
        application = await service.submit_application(db, student.id, data)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return ApplicationResponse.model_validate(application)


@router.put(
    "/{application_id}/review",
    response_model=ApplicationResponse,
    summary="Review Application",
    description="""
Record a decision on an application to one of your listings.

Course applications accept `accepted` or `rejected`. Job applications also
accept `shortlisted`.

Job applications additionally accept `interviewing`, an extension to the
shortlist/accept/reject decisions. It can be set from `pending` or
`shortlisted`, is not terminal, and must be followed by `accepted` or
`rejected`. Sending `interviewing` for a course application returns 400
`INVALID_REVIEW_STATUS`.
""",
)
async def review_application(
    application_id: UUID,
    request: ReviewRequest,
    owner: CurrentUser = Depends(get_current_listing_owner),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    await enforce_actor_rate_limit(owner.id, "review_application", *RATE_LIMIT_REVIEW)

    try:
        application = await service.review_application(
            db, owner.id, application_id, request.status, request.remarks
        )
    except LifecycleError as e:
        raise to_http_exception(e) from e

    logger.info(f"Owner {owner.id} reviewed application {application_id}: {request.status.value}")
    return ApplicationResponse.model_validate(application)


@router.delete(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Withdraw Application",
)
async def withdraw_application(
    application_id: UUID,
    student: CurrentUser = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Withdraw one of your pending applications."""
    try:
        application = await service.withdraw_application(db, student.id, application_id)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return ApplicationResponse.model_validate(application)


@router.get("/mine", response_model=ApplicationListResponse, summary="My Applications")
async def list_my_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    target_type: ListingType | None = Query(None),
    student: CurrentUser = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    applications, summary = await service.list_student_applications(
        db, student.id, status=status_filter, target_type=target_type
    )
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        summary=ApplicationSummary(**summary),
    )


@router.get("/stats", response_model=OwnerStats, summary="Owner Dashboard Stats")
async def get_owner_stats(
    owner: CurrentUser = Depends(get_current_listing_owner),
    db: AsyncSession = Depends(get_db),
) -> OwnerStats:
    stats = await service.get_owner_stats(db, owner.id, _listing_type_for(owner))
    return OwnerStats(**stats)


@router.get(
    "/listings/{target_type}/{listing_id}",
    response_model=ApplicationListResponse,
    summary="Applications For Listing",
)
async def list_listing_applications(
    target_type: ListingType,
    listing_id: UUID,
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    owner: CurrentUser = Depends(get_current_listing_owner),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    """Applications received for one of your listings."""
    try:
        applications, summary = await service.list_listing_applications(
            db, owner.id, target_type, listing_id, status=status_filter
        )
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        summary=ApplicationSummary(**summary),
    )


@router.get("/{application_id}", response_model=ApplicationResponse, summary="Get Application")
async def get_application(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    try:
        application = await service.get_application(db, user.id, user.role, application_id)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return ApplicationResponse.model_validate(application)
