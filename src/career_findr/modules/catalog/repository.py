"""
Catalog Repository

Database operations for course and job listings. Functions flush but do not
commit; the calling service owns the transaction.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Course, Job, JobType, ListingStatus, ListingType
from .schemas import CourseCreate, JobCreate

ListingModel = type[Course] | type[Job]

_MODELS: dict[ListingType, ListingModel] = {
    ListingType.COURSE: Course,
    ListingType.JOB: Job,
}


def model_for(listing_type: ListingType) -> ListingModel:
    return _MODELS[listing_type]


async def create_course(db: AsyncSession, institution_id: UUID, data: CourseCreate) -> Course:
    course = Course(
        institution_id=institution_id,
        title=data.title,
        description=data.description,
        category=data.category,
        duration=data.duration,
        fee=data.fee,
        eligibility=data.eligibility,
        seats=data.seats,
        application_deadline=data.application_deadline,
        start_date=data.start_date,
        end_date=data.end_date,
        status=ListingStatus.ACTIVE,
    )
    db.add(course)
    await db.flush()
    await db.refresh(course)
    return course


async def create_job(db: AsyncSession, company_id: UUID, data: JobCreate) -> Job:
    job = Job(
        company_id=company_id,
        title=data.title,
        description=data.description,
        requirements=data.requirements,
        skills=data.skills,
        location=data.location,
        job_type=data.job_type,
        experience=data.experience,
        salary=data.salary.model_dump() if data.salary else None,
        positions=data.positions,
        closing_date=data.closing_date,
        status=ListingStatus.ACTIVE,
    )
    db.add(job)
    await db.flush()
    await db.refresh(job)
    return job


async def get_by_id(
    db: AsyncSession,
    listing_type: ListingType,
    listing_id: UUID,
    *,
    for_update: bool = False,
) -> Course | Job | None:
    """
    Get a course or job by ID.

    With ``for_update`` the row stays locked until the transaction ends;
    acceptance uses this to serialize seat consumption per listing.
    """
    model = model_for(listing_type)
    stmt = select(model).where(model.id == listing_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_many(
    db: AsyncSession,
    listing_type: ListingType,
    listing_ids: list[UUID],
    *,
    active_only: bool = True,
) -> list[Course] | list[Job]:
    """Listings among ``listing_ids``, in no particular order."""
    if not listing_ids:
        return []
    model = model_for(listing_type)
    stmt = select(model).where(model.id.in_(listing_ids))
    if active_only:
        stmt = stmt.where(model.status == ListingStatus.ACTIVE)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_course(db: AsyncSession, course_id: UUID) -> Course | None:
    return await get_by_id(db, ListingType.COURSE, course_id)


async def get_job(db: AsyncSession, job_id: UUID) -> Job | None:
    return await get_by_id(db, ListingType.JOB, job_id)


async def list_by_owner(
    db: AsyncSession,
    listing_type: ListingType,
    owner_id: UUID,
) -> list[Course] | list[Job]:
    model = model_for(listing_type)
    owner_column = model.institution_id if model is Course else model.company_id
    result = await db.execute(
        select(model).where(owner_column == owner_id).order_by(model.created_at.desc())
    )
    return list(result.scalars().all())


async def search(
    db: AsyncSession,
    listing_type: ListingType,
    *,
    query: str | None = None,
    category: str | None = None,
    location: str | None = None,
    job_type: JobType | None = None,
    active_only: bool = True,
    limit: int = 50,
) -> list[Course] | list[Job]:
    """
    Case-insensitive substring search over listings.

    Used directly and as the fallback when no search index is configured.
    """
    model = model_for(listing_type)
    stmt = select(model)

    if active_only:
        stmt = stmt.where(model.status == ListingStatus.ACTIVE)

    if query:
        pattern = f"%{query}%"
        stmt = stmt.where(or_(model.title.ilike(pattern), model.description.ilike(pattern)))

    if model is Course:
        if category:
            stmt = stmt.where(Course.category.ilike(f"%{category}%"))
    else:
        if location:
            stmt = stmt.where(Job.location.ilike(f"%{location}%"))
        if job_type:
            stmt = stmt.where(Job.job_type == job_type)

    stmt = stmt.order_by(model.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_active_past_deadline(
    db: AsyncSession,
    listing_type: ListingType,
    now: datetime,
) -> list[Course] | list[Job]:
    """Active listings whose application deadline is before ``now``."""
    model = model_for(listing_type)
    deadline_column = model.application_deadline if model is Course else model.closing_date
    result = await db.execute(
        select(model).where(
            model.status == ListingStatus.ACTIVE,
            deadline_column.is_not(None),
            deadline_column < now,
        )
    )
    return list(result.scalars().all())


async def close(db: AsyncSession, listing: Course | Job, closed_at: datetime) -> Course | Job:
    listing.status = ListingStatus.CLOSED
    listing.closed_at = closed_at
    await db.flush()
    return listing
