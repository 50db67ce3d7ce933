"""
Catalog Router

Endpoints:
- POST /courses - Institute publishes a course
- POST /jobs - Company posts a job
- POST /courses/{id}/close, POST /jobs/{id}/close - Owner closes a listing
- GET /courses/mine, GET /jobs/mine - Owner's listings with application counts
- GET /courses, GET /jobs - Public browse of active listings

Browse endpoints are public. Seat availability and application counts are
computed on every read.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.auth import CurrentUser, get_current_company, get_current_institute
from career_findr.core.database import get_db
from career_findr.modules.catalog import service
from career_findr.modules.catalog.models import JobType, ListingType
from career_findr.modules.catalog.schemas import (
    CloseListingResponse,
    CourseCreate,
    CourseResponse,
    JobCreate,
    JobResponse,
)
from career_findr.modules.search import service as search_service
from career_findr.modules.shared.errors import LifecycleError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


def _course_out(item: dict) -> CourseResponse:
    return CourseResponse.model_validate(item["listing"]).model_copy(
        update={
            "available_seats": item["available_seats"],
            "application_count": item["application_count"],
            "pending_applications": item["pending_applications"],
        }
    )


def _job_out(item: dict) -> JobResponse:
    return JobResponse.model_validate(item["listing"]).model_copy(
        update={
            "application_count": item["application_count"],
            "pending_applications": item["pending_applications"],
        }
    )


async def _close(
    db: AsyncSession, owner: CurrentUser, listing_type: ListingType, listing_id: UUID
) -> CloseListingResponse:
    try:
        listing = await service.close_listing(db, owner.id, listing_type, listing_id)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return CloseListingResponse(
        id=listing.id,
        listing_type=listing_type,
        status=listing.status,
        closed_at=listing.closed_at,
        message=f"{listing_type.value.title()} closed. It no longer accepts applications.",
    )


# ============================================
# Courses
# ============================================


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish Course",
)
async def create_course(
    data: CourseCreate,
    institute: CurrentUser = Depends(get_current_institute),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    try:
        course = await service.create_course(db, institute.id, data)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return CourseResponse.model_validate(course).model_copy(
        update={"available_seats": course.seats, "application_count": 0, "pending_applications": 0}
    )


@router.post("/courses/{course_id}/close", response_model=CloseListingResponse, summary="Close Course")
async def close_course(
    course_id: UUID,
    institute: CurrentUser = Depends(get_current_institute),
    db: AsyncSession = Depends(get_db),
) -> CloseListingResponse:
    """Stop accepting applications. Refused while applications are pending."""
    return await _close(db, institute, ListingType.COURSE, course_id)


@router.get("/courses/mine", response_model=list[CourseResponse], summary="My Courses")
async def list_my_courses(
    institute: CurrentUser = Depends(get_current_institute),
    db: AsyncSession = Depends(get_db),
) -> list[CourseResponse]:
    items = await service.list_owner_listings(db, institute.id, ListingType.COURSE)
    return [_course_out(item) for item in items]


@router.get("/courses", response_model=list[CourseResponse], summary="Browse Courses")
async def browse_courses(
    q: str | None = Query(None, max_length=200),
    category: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
) -> list[CourseResponse]:
    items = await search_service.search_listings(db, ListingType.COURSE, query=q, category=category)
    return [_course_out(item) for item in items]


# ============================================
# Jobs
# ============================================


@router.post(
    "/jobs",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post Job",
)
async def create_job(
    data: JobCreate,
    company: CurrentUser = Depends(get_current_company),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    try:
        job = await service.create_job(db, company.id, data)
    except LifecycleError as e:
        raise to_http_exception(e) from e

    return JobResponse.model_validate(job).model_copy(
        update={"application_count": 0, "pending_applications": 0}
    )


@router.post("/jobs/{job_id}/close", response_model=CloseListingResponse, summary="Close Job")
async def close_job(
    job_id: UUID,
    company: CurrentUser = Depends(get_current_company),
    db: AsyncSession = Depends(get_db),
) -> CloseListingResponse:
    return await _close(db, company, ListingType.JOB, job_id)


@router.get("/jobs/mine", response_model=list[JobResponse], summary="My Jobs")
async def list_my_jobs(
    company: CurrentUser = Depends(get_current_company),
    db: AsyncSession = Depends(get_db),
) -> list[JobResponse]:
    items = await service.list_owner_listings(db, company.id, ListingType.JOB)
    return [_job_out(item) for item in items]


@router.get("/jobs", response_model=list[JobResponse], summary="Browse Jobs")
async def browse_jobs(
    q: str | None = Query(None, max_length=200),
    location: str | None = Query(None, max_length=200),
    job_type: JobType | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[JobResponse]:
    items = await search_service.search_listings(
        db, ListingType.JOB, query=q, location=location, job_type=job_type
    )
    return [_job_out(item) for item in items]
