"""
Catalog Service Layer

Listing management for institutes and companies plus the read contract the
lifecycle depends on: ``get_listing`` returns a ``Listing`` snapshot with
owner, capacity, status and deadline for either kind of listing.

Seat availability is always computed:
    available_seats = seats - count(accepted course applications)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.config import settings
from career_findr.modules.applications import repository as application_repository
from career_findr.modules.applications.models import ApplicationStatus
from career_findr.modules.catalog import repository
from career_findr.modules.catalog.models import Course, Job, JobType, ListingStatus, ListingType
from career_findr.modules.catalog.schemas import CourseCreate, JobCreate
from career_findr.modules.shared import as_utc, utcnow
from career_findr.modules.shared.errors import ConflictError, NotFoundError
from career_findr.modules.shared.guards import load_owned
from career_findr.modules.users import service as user_service

logger = logging.getLogger(__name__)


class ListingHasPendingApplicationsError(ConflictError):
    def __init__(self, pending: int):
        super().__init__(
            message=f"Cannot close a course with {pending} pending application(s). "
            "Review them first.",
            error_code="LISTING_HAS_PENDING_APPLICATIONS",
        )


class ListingAlreadyClosedError(ConflictError):
    def __init__(self):
        super().__init__(message="This listing is already closed", error_code="LISTING_CLOSED")


@dataclass(frozen=True)
class Listing:
    """Read-only view of a course or job used by the lifecycle services."""

    id: UUID
    listing_type: ListingType
    owner_id: UUID
    title: str
    status: ListingStatus
    capacity: int | None
    deadline: datetime | None

    def is_open(self, now: datetime) -> bool:
        if self.status != ListingStatus.ACTIVE:
            return False
        return self.deadline is None or now <= self.deadline


def capacity_of(listing: Course | Job) -> int | None:
    """
    Acceptance ceiling for a listing, or None when unlimited.

    Job positions are advisory unless ENFORCE_JOB_POSITIONS is on.
    """
    if isinstance(listing, Course):
        return listing.seats
    if settings.enforce_job_positions:
        return listing.positions
    return None


def to_listing(listing: Course | Job) -> Listing:
    return Listing(
        id=listing.id,
        listing_type=ListingType.COURSE if isinstance(listing, Course) else ListingType.JOB,
        owner_id=listing.owner_id,
        title=listing.title,
        status=listing.status,
        capacity=capacity_of(listing),
        deadline=as_utc(listing.deadline),
    )


async def get_listing(
    db: AsyncSession,
    listing_type: ListingType,
    listing_id: UUID,
    *,
    for_update: bool = False,
) -> Listing:
    """
    Load a listing snapshot.

    Raises:
        NotFoundError: If the listing doesn't exist
    """
    listing = await repository.get_by_id(db, listing_type, listing_id, for_update=for_update)
    if listing is None:
        raise NotFoundError(listing_type.value.title(), listing_id)
    return to_listing(listing)


async def create_course(db: AsyncSession, institution_id: UUID, data: CourseCreate) -> Course:
    """
    Publish a course.

    Raises:
        NotFoundError: If the institute doesn't exist
        ForbiddenError: If the institute account is not approved
    """
    await user_service.ensure_account_approved(db, institution_id)

    course = await repository.create_course(db, institution_id, data)
    await db.commit()

    logger.info(f"Institute {institution_id} created course {course.id} ({course.seats} seats)")
    return course


async def create_job(db: AsyncSession, company_id: UUID, data: JobCreate) -> Job:
    """Publish a job. Same approval rules as ``create_course``."""
    await user_service.ensure_account_approved(db, company_id)

    job = await repository.create_job(db, company_id, data)
    await db.commit()

    logger.info(f"Company {company_id} posted job {job.id}")
    return job


async def close_listing(
    db: AsyncSession,
    owner_id: UUID,
    listing_type: ListingType,
    listing_id: UUID,
) -> Course | Job:
    """
    Close a listing so it stops accepting applications.

    A course with pending applications cannot be closed; those students
    are still waiting on a decision.

    Raises:
        NotFoundError: If the listing doesn't exist
        ForbiddenError: If the caller doesn't own it
        ConflictError: If already closed or a course has pending applications
    """

    async def _load_locked(session: AsyncSession, id: UUID) -> Course | Job | None:
        return await repository.get_by_id(session, listing_type, id, for_update=True)

    listing = await load_owned(
        db,
        _load_locked,
        listing_id,
        owner_id,
        lambda item: item.owner_id,
        resource_name=listing_type.value,
    )

    if listing.status == ListingStatus.CLOSED:
        raise ListingAlreadyClosedError()

    if listing_type == ListingType.COURSE:
        pending = await application_repository.count_for_target(
            db, listing_type, listing_id, ApplicationStatus.PENDING
        )
        if pending:
            logger.warning(f"Refusing to close course {listing_id}: {pending} pending applications")
            raise ListingHasPendingApplicationsError(pending)

    await repository.close(db, listing, utcnow())
    await db.commit()

    logger.info(f"{listing_type.value.title()} {listing_id} closed by owner {owner_id}")
    return listing


def _summarize(counts: dict[ApplicationStatus, int]) -> tuple[int, int, int]:
    """(total, pending, accepted) from a status histogram."""
    return (
        sum(counts.values()),
        counts.get(ApplicationStatus.PENDING, 0),
        counts.get(ApplicationStatus.ACCEPTED, 0),
    )


async def annotate_listings(
    db: AsyncSession,
    listing_type: ListingType,
    listings: list[Course] | list[Job],
) -> list[dict]:
    """
    Pair each listing with its computed counts.

    Returns dicts of ``{"listing", "application_count", "pending_applications",
    "available_seats"}``; ``available_seats`` is None for jobs.
    """
    counts = await application_repository.status_counts_for_targets(
        db, listing_type, [item.id for item in listings]
    )

    annotated = []
    for item in listings:
        total, pending, accepted = _summarize(counts.get(item.id, {}))
        available = max(item.seats - accepted, 0) if isinstance(item, Course) else None
        annotated.append(
            {
                "listing": item,
                "application_count": total,
                "pending_applications": pending,
                "available_seats": available,
            }
        )
    return annotated


async def list_owner_listings(
    db: AsyncSession,
    owner_id: UUID,
    listing_type: ListingType,
) -> list[dict]:
    listings = await repository.list_by_owner(db, listing_type, owner_id)
    return await annotate_listings(db, listing_type, listings)


async def browse_listings(
    db: AsyncSession,
    listing_type: ListingType,
    *,
    query: str | None = None,
    category: str | None = None,
    location: str | None = None,
    job_type: JobType | None = None,
) -> list[dict]:
    """Public listing search straight from the store, with computed counts."""
    listings = await repository.search(
        db,
        listing_type,
        query=query,
        category=category,
        location=location,
        job_type=job_type,
    )
    return await annotate_listings(db, listing_type, listings)


async def get_available_seats(db: AsyncSession, course_id: UUID) -> int:
    course = await repository.get_course(db, course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    accepted = await application_repository.count_for_target(
        db, ListingType.COURSE, course_id, ApplicationStatus.ACCEPTED
    )
    return max(course.seats - accepted, 0)
