"""
Admissions Router

Endpoints:
- POST /admissions - Institute offers admission to students with accepted applications
- POST /admissions/respond - Student accepts or declines an offer
- GET /admissions/mine - Student's offers
- GET /admissions/issued - Offers an institute has issued
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.auth import CurrentUser, get_current_institute, get_current_student
from career_findr.core.database import get_db
from career_findr.core.rate_limit import enforce_actor_rate_limit
from career_findr.modules.admissions import service
from career_findr.modules.admissions.schemas import (
    AdmissionListResponse,
    AdmissionOut,
    AdmissionSummary,
    IssueAdmissionsRequest,
    IssueAdmissionsResponse,
    RespondRequest,
)
from career_findr.modules.shared.errors import LifecycleError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_ISSUE = (10, 60)  # 10 batches per minute
RATE_LIMIT_RESPOND = (10, 60)  # 10 responses per minute


@router.post(
    "",
    response_model=IssueAdmissionsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue Admission Offers",
    description="""
Offer admission for one of your courses to a batch of students.

Students without an accepted application for the course, or who already
hold an offer for it, are skipped and listed in `skipped_student_ids`.
""",
)
async def issue_admissions(
    request: IssueAdmissionsRequest,
    institute: CurrentUser = Depends(get_current_institute),
    db: AsyncSession = Depends(get_db),
) -> IssueAdmissionsResponse:
    await enforce_actor_rate_limit(institute.id, "issue_admissions", *RATE_LIMIT_ISSUE)

    try:
        admissions = await service.issue_admission_offers(
            db, institute.id, request.course_id, request.student_ids
        )
    except LifecycleError as e:
        raise to_http_exception(e) from e

    offered = {a.student_id for a in admissions}
    skipped = [sid for sid in dict.fromkeys(request.student_ids) if sid not in offered]

    return IssueAdmissionsResponse(
        admissions=[AdmissionOut.model_validate(a) for a in admissions],
        issued=len(admissions),
        skipped_student_ids=skipped,
    )


@router.post("/respond", response_model=AdmissionOut, summary="Respond To Admission Offer")
async def respond_to_admission(
    request: RespondRequest,
    student: CurrentUser = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> AdmissionOut:
    """Accept or decline an offer. Each offer can be answered once."""
    await enforce_actor_rate_limit(student.id, "respond_admission", *RATE_LIMIT_RESPOND)

    try:
        admission = await service.respond_to_admission(
            db, student.id, request.admission_id, request.accept
        )
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return AdmissionOut.model_validate(admission)


@router.get("/mine", response_model=AdmissionListResponse, summary="My Admission Offers")
async def list_my_admissions(
    student: CurrentUser = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
) -> AdmissionListResponse:
    admissions, summary = await service.list_student_admissions(db, student.id)
    return AdmissionListResponse(
        admissions=[AdmissionOut.model_validate(a) for a in admissions],
        summary=AdmissionSummary(**summary),
        has_accepted_admission=summary["accepted"] > 0,
    )


@router.get("/issued", response_model=AdmissionListResponse, summary="Issued Admission Offers")
async def list_issued_admissions(
    course_id: UUID | None = Query(None),
    institute: CurrentUser = Depends(get_current_institute),
    db: AsyncSession = Depends(get_db),
) -> AdmissionListResponse:
    admissions, summary = await service.list_institution_admissions(
        db, institute.id, course_id=course_id
    )
    return AdmissionListResponse(
        admissions=[AdmissionOut.model_validate(a) for a in admissions],
        summary=AdmissionSummary(**summary),
        has_accepted_admission=summary["accepted"] > 0,
    )
